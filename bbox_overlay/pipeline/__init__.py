"""Geometry pipeline: unit conversion, viewport projection, ingestion and storage."""

from .ingestion import parse_analysis_result, polygon_to_rect
from .rectangle_store import RectangleStore
from .space_converter import from_page_space, to_page_space
from .viewport import AffineViewport, ViewportTransform, to_viewport_box

__all__ = [
    "AffineViewport",
    "RectangleStore",
    "ViewportTransform",
    "from_page_space",
    "parse_analysis_result",
    "polygon_to_rect",
    "to_page_space",
    "to_viewport_box",
]
