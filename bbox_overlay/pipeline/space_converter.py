"""Conversion between rectangle units and absolute PDF page space.

Page space is the page's native system: points (1/72 inch), origin at the
bottom-left corner. ``inch`` and ``ratio`` rectangles are measured from the
visual top of the page, so the vertical axis is flipped exactly once here,
at the unit boundary. The viewport projector never flips again.
"""

from __future__ import annotations

import math
from typing import Optional, Tuple

from ..errors import InvalidPageGeometry
from ..models.rectangle import POINTS_PER_INCH, PageBounds, PageSize, Rectangle, RectUnit


def _require_height(page_size: Optional[PageSize]) -> float:
    if page_size is None:
        raise InvalidPageGeometry("Page size is required to flip a top-left origin rectangle")
    height = page_size.height
    if not math.isfinite(height) or height <= 0:
        raise InvalidPageGeometry(f"Page height must be positive, got {height}")
    return height


def _require_width(page_size: PageSize) -> float:
    width = page_size.width
    if not math.isfinite(width) or width <= 0:
        raise InvalidPageGeometry(f"Page width must be positive, got {width}")
    return width


def to_page_space(rect: Rectangle, page_size: Optional[PageSize]) -> PageBounds:
    """Convert a rectangle in its own unit to page-space bounds.

    Args:
        rect: Rectangle in inch, ratio or pdf units
        page_size: Unrotated page size in points (unused for pdf units)

    Returns:
        PageBounds (left, right, bottom, top) in points, bottom-left origin.
        Negative extents are passed through and yield an inverted box
        (see PageBounds.is_degenerate).

    Raises:
        InvalidPageGeometry: If the page size is missing or degenerate and the
            unit needs a vertical flip
        ValueError: If the rectangle carries an unknown unit
    """
    unit = rect.unit
    if unit is RectUnit.PDF:
        return PageBounds(
            left=rect.x,
            right=rect.x + rect.width,
            bottom=rect.y,
            top=rect.y + rect.height,
        )

    if unit is RectUnit.INCH:
        page_height = _require_height(page_size)
        sx = sy = POINTS_PER_INCH
    elif unit is RectUnit.RATIO:
        page_height = _require_height(page_size)
        sx = _require_width(page_size)
        sy = page_height
    else:
        raise ValueError(f"Unsupported rectangle unit: {unit!r}")

    # Still top-left origin at this point
    left = rect.x * sx
    right = (rect.x + rect.width) * sx
    top_from_top = rect.y * sy
    bottom_from_top = (rect.y + rect.height) * sy

    return PageBounds(
        left=left,
        right=right,
        bottom=page_height - bottom_from_top,
        top=page_height - top_from_top,
    )


def from_page_space(
    bounds: PageBounds,
    page_size: Optional[PageSize],
    unit: RectUnit,
) -> Tuple[float, float, float, float]:
    """Express page-space bounds as (x, y, width, height) in ``unit``.

    Inverse of to_page_space for each unit.

    Raises:
        InvalidPageGeometry: If the page size is missing or degenerate and the
            unit needs a vertical flip
        ValueError: If unit is unknown
    """
    unit = RectUnit.parse(unit)
    width_pts = bounds.right - bounds.left
    height_pts = bounds.top - bounds.bottom

    if unit is RectUnit.PDF:
        return bounds.left, bounds.bottom, width_pts, height_pts

    if unit is RectUnit.INCH:
        page_height = _require_height(page_size)
        sx = sy = POINTS_PER_INCH
    elif unit is RectUnit.RATIO:
        page_height = _require_height(page_size)
        sx = _require_width(page_size)
        sy = page_height
    else:
        raise ValueError(f"Unsupported rectangle unit: {unit!r}")

    top_from_top = page_height - bounds.top
    return (
        bounds.left / sx,
        top_from_top / sy,
        width_pts / sx,
        height_pts / sy,
    )
