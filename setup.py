"""
Setup configuration for buzzberry package.
"""

from setuptools import setup, find_packages

setup(
    name="buzzberry",
    version="1.0.0",
    description="Creator discovery data pipeline: filtering, sorting and pagination over the creator store",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "supabase>=2.0.0",
        "pydantic>=2.0.0",
        "python-dotenv>=1.0.0",
        "click>=8.1.0",
        "logfire>=3.0.0",
        "httpx>=0.25.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "buzzberry=buzzberry.cli.main:cli",
        ],
    },
)
