"""Vellum - versioned document storage for a content management system."""

__version__ = "0.4.0"
