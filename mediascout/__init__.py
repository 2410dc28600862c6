"""Discover media referenced by web pages and rebuild segmented HLS streams."""

__version__ = "1.0.0"
