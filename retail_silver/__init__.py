"""
Retail Silver Pipeline

Cleanses raw retail extracts into typed silver tables.
"""

__version__ = "1.0.0"
