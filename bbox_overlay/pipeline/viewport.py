"""Projection of page-space boxes into pixel space through a viewport transform."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from ..errors import ProjectionError
from ..models.rectangle import PageBounds, PageSize, Rectangle, RectUnit, ViewportBox
from .space_converter import from_page_space, to_page_space

Point = Tuple[float, float]

# (A, B, C, D) unit matrix per clockwise page rotation, page space -> top-left pixel space
_ROTATION_COEFFICIENTS = {
    0: (1, 0, 0, -1),
    90: (0, 1, 1, 0),
    180: (-1, 0, 0, 1),
    270: (0, -1, -1, 0),
}


class ViewportTransform(ABC):
    """Maps page-space points (bottom-left origin) to pixel-space points."""

    @abstractmethod
    def to_viewport_point(self, x: float, y: float) -> Point:
        """Map a page-space point to a pixel-space point (top-left origin)."""
        pass

    def to_page_point(self, px: float, py: float) -> Point:
        """Map a pixel-space point back to page space.

        Raises:
            ProjectionError: If the transform has no inverse
        """
        raise ProjectionError(f"{type(self).__name__} does not support inverse mapping")


def normalize_rotation(rotation: int) -> int:
    """Normalize rotation to 0/90/180/270.

    Raises:
        ValueError: If rotation is not a multiple of 90 degrees
    """
    if rotation % 90 != 0:
        raise ValueError(f"Rotation must be a multiple of 90 degrees, got {rotation}")
    return rotation % 360


class AffineViewport(ViewportTransform):
    """Affine page viewport: scale, clockwise rotation and origin shift.

    Equivalent to the viewport a PDF.js page produces for
    ``getViewport({scale, rotation})``: the view box is centred, rotated and
    scaled so that the rotated page occupies (0, 0)..(width, height) in
    pixel space with y increasing downward.

    Args:
        view_box: Page box (x0, y0, x1, y1) in points, bottom-left origin
        scale: Pixels per point
        rotation: Clockwise rotation in degrees, multiple of 90
        offset_x: Extra horizontal pixel shift
        offset_y: Extra vertical pixel shift
    """

    def __init__(
        self,
        view_box: Tuple[float, float, float, float],
        scale: float = 1.0,
        rotation: int = 0,
        offset_x: float = 0.0,
        offset_y: float = 0.0,
    ):
        if not math.isfinite(scale) or scale <= 0:
            raise ValueError(f"Viewport scale must be positive, got {scale}")
        self.view_box = tuple(float(v) for v in view_box)
        self.scale = float(scale)
        self.rotation = normalize_rotation(rotation)

        x0, y0, x1, y1 = self.view_box
        center_x = (x1 + x0) / 2
        center_y = (y1 + y0) / 2
        rot_a, rot_b, rot_c, rot_d = _ROTATION_COEFFICIENTS[self.rotation]

        if rot_a == 0:
            offset_canvas_x = abs(center_y - y0) * scale + offset_x
            offset_canvas_y = abs(center_x - x0) * scale + offset_y
            self.width = abs(y1 - y0) * scale
            self.height = abs(x1 - x0) * scale
        else:
            offset_canvas_x = abs(center_x - x0) * scale + offset_x
            offset_canvas_y = abs(center_y - y0) * scale + offset_y
            self.width = abs(x1 - x0) * scale
            self.height = abs(y1 - y0) * scale

        self.a = rot_a * scale
        self.b = rot_b * scale
        self.c = rot_c * scale
        self.d = rot_d * scale
        self.e = offset_canvas_x - self.a * center_x - self.c * center_y
        self.f = offset_canvas_y - self.b * center_x - self.d * center_y

    @classmethod
    def for_page(cls, page_size: PageSize, scale: float = 1.0, rotation: int = 0) -> AffineViewport:
        """Viewport over a page whose box starts at the origin."""
        return cls((0.0, 0.0, page_size.width, page_size.height), scale=scale, rotation=rotation)

    @property
    def coefficients(self) -> Tuple[float, float, float, float, float, float]:
        return (self.a, self.b, self.c, self.d, self.e, self.f)

    def to_viewport_point(self, x: float, y: float) -> Point:
        return (
            self.a * x + self.c * y + self.e,
            self.b * x + self.d * y + self.f,
        )

    def to_page_point(self, px: float, py: float) -> Point:
        det = self.a * self.d - self.b * self.c
        if det == 0:
            raise ProjectionError("Viewport transform is not invertible")
        dx = px - self.e
        dy = py - self.f
        return (
            (self.d * dx - self.c * dy) / det,
            (-self.b * dx + self.a * dy) / det,
        )

    def __repr__(self) -> str:
        return (
            f"AffineViewport(view_box={self.view_box}, scale={self.scale}, "
            f"rotation={self.rotation})"
        )


def _map_point(viewport_transform: ViewportTransform, x: float, y: float) -> Point:
    px, py = viewport_transform.to_viewport_point(x, y)
    if not (math.isfinite(px) and math.isfinite(py)):
        raise ProjectionError(
            f"Viewport transform mapped ({x}, {y}) to non-finite point ({px}, {py})"
        )
    return px, py


def bounds_to_viewport_box(bounds: PageBounds, viewport_transform: ViewportTransform) -> ViewportBox:
    """Project page-space bounds to an axis-aligned pixel box.

    Both opposite corners are mapped independently because rotation can swap
    which axis grows; the result is their bounding box.

    Raises:
        ProjectionError: If a mapped coordinate is non-finite
    """
    x1, y1 = _map_point(viewport_transform, bounds.left, bounds.top)
    x2, y2 = _map_point(viewport_transform, bounds.right, bounds.bottom)
    return ViewportBox(
        left=min(x1, x2),
        top=min(y1, y2),
        width=abs(x2 - x1),
        height=abs(y2 - y1),
    )


def to_viewport_box(
    rect: Rectangle,
    viewport_transform: ViewportTransform,
    page_size: Optional[PageSize],
) -> ViewportBox:
    """Convert a rectangle to a pixel-space box on a rendered page.

    Args:
        rect: Rectangle in any unit
        viewport_transform: Page-space to pixel-space mapping for the page
        page_size: Unrotated page size in points

    Returns:
        ViewportBox with top-left origin and non-negative width/height

    Raises:
        InvalidPageGeometry: If page_size is missing/degenerate for inch or ratio units
        ProjectionError: If the transform yields a non-finite coordinate
    """
    bounds = to_page_space(rect, page_size)
    return bounds_to_viewport_box(bounds, viewport_transform)


def from_viewport_box(
    box: ViewportBox,
    viewport_transform: ViewportTransform,
    page_size: Optional[PageSize],
    unit: RectUnit,
) -> Tuple[float, float, float, float]:
    """Map a pixel-space box back to (x, y, width, height) in ``unit``.

    Used when a box has been moved or resized on screen.

    Raises:
        ProjectionError: If the transform has no inverse or yields non-finite values
        InvalidPageGeometry: If page_size is missing/degenerate for inch or ratio units
    """
    corners = [
        viewport_transform.to_page_point(box.left, box.top),
        viewport_transform.to_page_point(box.left + box.width, box.top + box.height),
    ]
    for x, y in corners:
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ProjectionError(f"Inverse transform produced non-finite point ({x}, {y})")
    xs = [c[0] for c in corners]
    ys = [c[1] for c in corners]
    bounds = PageBounds(left=min(xs), right=max(xs), bottom=min(ys), top=max(ys))
    return from_page_space(bounds, page_size, unit)
