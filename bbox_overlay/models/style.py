"""Overlay drawing style and color parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

RGBA = Tuple[int, int, int, int]

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")

# Alpha appended to a per-rectangle color for its fill (0x40 = 25%)
FILL_ALPHA = 0x40


def parse_color(value: str) -> RGBA:
    """Parse "#rgb", "#rrggbb" or "#rrggbbaa" into an (r, g, b, a) tuple.

    Raises:
        ValueError: If value is not a hex color
    """
    match = _HEX_RE.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid color: {value!r} (expected #rrggbb or #rrggbbaa)")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    if len(digits) == 6:
        digits += "ff"
    return tuple(int(digits[i:i + 2], 16) for i in range(0, 8, 2))  # type: ignore[return-value]


@dataclass
class OverlayStyle:
    """Drawing style for overlay boxes.

    A rectangle's own color replaces the stroke color and, at FILL_ALPHA,
    the fill color.
    """

    fill_color: str = "#ffe60040"
    stroke_color: str = "#ffa000f2"
    stroke_width: int = 2
    label_color: str = "#111111e6"
    label_size: int = 11

    def colors_for(self, rect_color: Optional[str]) -> Tuple[RGBA, RGBA]:
        """Return (fill, stroke) RGBA for a rectangle with optional own color.

        An unparsable rectangle color falls back to the style defaults.
        """
        if rect_color:
            try:
                r, g, b, _ = parse_color(rect_color)
                return (r, g, b, FILL_ALPHA), (r, g, b, 255)
            except ValueError:
                pass
        return parse_color(self.fill_color), parse_color(self.stroke_color)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> OverlayStyle:
        defaults = cls()
        return cls(
            fill_color=data.get("fill_color", defaults.fill_color),
            stroke_color=data.get("stroke_color", defaults.stroke_color),
            stroke_width=int(data.get("stroke_width", defaults.stroke_width)),
            label_color=data.get("label_color", defaults.label_color),
            label_size=int(data.get("label_size", defaults.label_size)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fill_color": self.fill_color,
            "stroke_color": self.stroke_color,
            "stroke_width": self.stroke_width,
            "label_color": self.label_color,
            "label_size": self.label_size,
        }
