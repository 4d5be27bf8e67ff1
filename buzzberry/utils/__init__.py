"""
Utility modules for Buzzberry.

Available utilities:
- formatters: Display formatting for creator metrics and buzz scores
"""

__all__ = [
    "formatters",
]
