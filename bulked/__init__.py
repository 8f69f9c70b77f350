"""Bulk code search and edit: search, edit the structured text, apply."""

__version__ = "0.1.0"
