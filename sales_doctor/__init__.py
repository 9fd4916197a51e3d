"""Retail sales spreadsheet ingestion and analytics."""

__version__ = "0.1.0"
