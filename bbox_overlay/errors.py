"""Exceptions raised by the overlay geometry engine."""


class OverlayError(Exception):
    """Base class for overlay engine errors."""
    pass


class InvalidPageGeometry(OverlayError):
    """Raised when a page size is missing or degenerate where a flip is required."""
    pass


class ProjectionError(OverlayError):
    """Raised when a viewport transform yields a non-finite pixel coordinate."""
    pass


class MalformedPolygon(OverlayError):
    """Raised when a polygon passed to the strict helper has fewer than 8 numbers."""
    pass


class IngestionParseError(OverlayError):
    """Raised when analysis JSON text cannot be parsed at all."""
    pass


class RenderCancelled(OverlayError):
    """Raised when a render was superseded by a newer one and its output discarded."""
    pass
