"""
Buzzberry - Creator discovery pipeline for influencer marketing

Filters, sorts and pages a hosted database of social-media creators,
normalizes their heterogeneous records for display, and computes
aggregate metrics for the active filter set.
"""

__version__ = "1.0.0"
__author__ = "Buzzberry Team"
