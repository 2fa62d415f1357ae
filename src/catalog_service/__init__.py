"""Webflow catalog sync and retrieval-augmented product chat."""

__version__ = "1.0.0"
