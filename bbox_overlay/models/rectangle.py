"""Rectangle data model and the geometry value types shared by the converters."""

from __future__ import annotations

import itertools
import threading
import uuid
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Callable, Dict, Optional

POINTS_PER_INCH = 72.0

IdGenerator = Callable[[], str]


class RectUnit(str, Enum):
    """Coordinate systems a rectangle can be expressed in.

    - INCH: fractional inches, origin top-left (document-intelligence output)
    - RATIO: fraction 0..1 of page width/height, origin top-left
    - PDF: absolute page-space points, origin bottom-left
    """

    INCH = "inch"
    RATIO = "ratio"
    PDF = "pdf"

    @classmethod
    def parse(cls, value: Any) -> RectUnit:
        """Coerce a string (case-insensitive) or RectUnit into a RectUnit.

        Raises:
            ValueError: If value does not name a known unit
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise ValueError(
            f"Unknown rectangle unit: {value!r} "
            f"(expected one of {', '.join(u.value for u in cls)})"
        )


def uuid_id_generator() -> str:
    """Default id generator: random UUID4 hex string."""
    return uuid.uuid4().hex


class SequentialIdGenerator:
    """Deterministic id generator producing prefix-1, prefix-2, ..."""

    def __init__(self, prefix: str = "rect", start: int = 1):
        self.prefix = prefix
        self._counter = itertools.count(start)
        self._lock = threading.Lock()

    def __call__(self) -> str:
        with self._lock:
            n = next(self._counter)
        return f"{self.prefix}-{n}"


@dataclass
class Rectangle:
    """A labeled rectangle on one page, in the coordinates it was entered in.

    The numeric fields are always interpreted according to ``unit``. Changing
    ``unit`` without recomputing x/y/width/height changes the geometric
    meaning of the record.

    Attributes:
        id: Opaque unique identifier (immutable once created)
        page: 1-based page number (not validated against the document)
        x: Left edge in ``unit``
        y: Top edge for inch/ratio, bottom edge for pdf
        width: Horizontal extent in ``unit``
        height: Vertical extent in ``unit``
        unit: Coordinate system of x/y/width/height
        label: Optional display text
        color: Optional display color (CSS-style string, e.g. "#ff9900")
    """

    id: str
    page: int
    x: float
    y: float
    width: float
    height: float
    unit: RectUnit = RectUnit.INCH
    label: Optional[str] = None
    color: Optional[str] = None

    def __post_init__(self):
        self.unit = RectUnit.parse(self.unit)

    def copy(self) -> Rectangle:
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict (unit as its string value)."""
        return {
            "id": self.id,
            "page": self.page,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "unit": self.unit.value,
            "label": self.label,
            "color": self.color,
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        id_generator: Optional[IdGenerator] = None,
    ) -> Rectangle:
        """Create a Rectangle from a dict.

        A missing ``id`` is filled from ``id_generator`` (UUID by default).

        Raises:
            ValueError: If unit is unknown
            KeyError: If a coordinate field is missing
        """
        rect_id = data.get("id") or (id_generator or uuid_id_generator)()
        return cls(
            id=str(rect_id),
            page=int(data.get("page", 1)),
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
            unit=RectUnit.parse(data.get("unit", RectUnit.INCH)),
            label=data.get("label"),
            color=data.get("color"),
        )


RECTANGLE_FIELDS = frozenset(f.name for f in fields(Rectangle))


@dataclass(frozen=True)
class PageSize:
    """Unrotated page size in points (1/72 inch)."""

    width: float
    height: float


@dataclass(frozen=True)
class PageBounds:
    """Box in absolute page space: points, origin bottom-left."""

    left: float
    right: float
    bottom: float
    top: float

    @property
    def is_degenerate(self) -> bool:
        """True when the box is inverted (came from a negative extent)."""
        return self.right < self.left or self.top < self.bottom


@dataclass(frozen=True)
class ViewportBox:
    """Axis-aligned box in pixel space: origin top-left, non-negative extents."""

    left: float
    top: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "left": self.left,
            "top": self.top,
            "width": self.width,
            "height": self.height,
        }
