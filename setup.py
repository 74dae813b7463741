#!/usr/bin/env python3
"""
Raito Client Setup Script
=========================
Allows installation of the raito-client package.

Usage:
    pip install -e .           # Development install
    pip install -e .[test]     # With test dependencies
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="raito-client",
    version="0.1.0",
    description="Asyncio client for the Raito cache server",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.10",
    install_requires=[
        "websockets>=13.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "raito=raito.cli:main",
        ],
    },
)
