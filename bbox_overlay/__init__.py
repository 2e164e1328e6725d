"""Overlay extracted bounding boxes on rendered PDF pages."""

__version__ = "0.1.0"
