"""Bulletin - curated newsletter composition and campaign delivery."""

__version__ = "0.1.0"
