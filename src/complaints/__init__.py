"""Complaint topic classification for social-media spreadsheets."""

__version__ = "0.3.0"
