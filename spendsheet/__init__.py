"""Identify, normalize, and classify financial spreadsheet exports."""

__version__ = "0.3.0"
