"""In-memory, insertion-ordered collection of overlay rectangles."""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from ..models.rectangle import (
    RECTANGLE_FIELDS,
    IdGenerator,
    Rectangle,
    RectUnit,
    uuid_id_generator,
)

logger = logging.getLogger(__name__)

# Default manual rectangle (x, y, width, height) in the selected unit
DEFAULT_MANUAL_RECT = (1.0, 1.0, 1.5, 0.5)


class RectangleStore:
    """Canonical collection of rectangles for one editing session.

    Order is insertion order and only matters for stable display. Width and
    height are not validated; inverted rectangles are kept and left to the
    renderer to skip.

    All operations hold an internal lock and reads return copies, so a
    reader on another thread never sees a partially applied patch.
    """

    def __init__(self, id_generator: Optional[IdGenerator] = None):
        self.id_generator: IdGenerator = id_generator or uuid_id_generator
        self._rects: Dict[str, Rectangle] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rects)

    def __contains__(self, rect_id: object) -> bool:
        with self._lock:
            return rect_id in self._rects

    def __iter__(self) -> Iterator[Rectangle]:
        return iter(self.snapshot())

    def add(self, rect: Rectangle) -> Rectangle:
        """Add a rectangle; an existing rectangle with the same id is replaced in place."""
        with self._lock:
            self._rects[rect.id] = rect.copy()
        return rect

    def add_many(self, rects: Iterable[Rectangle]) -> int:
        """Add several rectangles, returning how many were added."""
        count = 0
        with self._lock:
            for rect in rects:
                self._rects[rect.id] = rect.copy()
                count += 1
        return count

    def create(
        self,
        page: int,
        x: float,
        y: float,
        width: float,
        height: float,
        unit: RectUnit = RectUnit.INCH,
        label: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Rectangle:
        """Create and add a rectangle with a fresh id."""
        rect = Rectangle(
            id=self.id_generator(),
            page=page,
            x=x,
            y=y,
            width=width,
            height=height,
            unit=unit,
            label=label,
            color=color,
        )
        return self.add(rect)

    def create_default(self, unit: RectUnit = RectUnit.INCH, page: int = 1) -> Rectangle:
        """Create the default manual rectangle in ``unit``."""
        x, y, width, height = DEFAULT_MANUAL_RECT
        return self.create(page=page, x=x, y=y, width=width, height=height, unit=unit)

    def get(self, rect_id: str) -> Optional[Rectangle]:
        with self._lock:
            rect = self._rects.get(rect_id)
            return rect.copy() if rect is not None else None

    def update(self, rect_id: str, patch: Mapping[str, Any]) -> Optional[Rectangle]:
        """Merge a field-level patch into a rectangle.

        The id is immutable and unknown keys are ignored. The patch is
        applied atomically.

        Args:
            rect_id: Target rectangle id
            patch: Subset of rectangle fields to change

        Returns:
            Copy of the updated rectangle, or None if the id is absent
            (treated as "target already gone", not an error)

        Raises:
            ValueError: If the patch carries an unknown unit
        """
        changes = {}
        for key, value in patch.items():
            if key == "id" or key not in RECTANGLE_FIELDS:
                logger.debug("Ignoring patch key %r for rectangle %s", key, rect_id)
                continue
            if key == "unit":
                value = RectUnit.parse(value)
            changes[key] = value

        with self._lock:
            rect = self._rects.get(rect_id)
            if rect is None:
                logger.debug("Update of missing rectangle %s ignored", rect_id)
                return None
            updated = rect.copy()
            for key, value in changes.items():
                setattr(updated, key, value)
            self._rects[rect_id] = updated
            return updated.copy()

    def remove(self, rect_id: str) -> bool:
        """Remove a rectangle. Returns False when it was not present."""
        with self._lock:
            return self._rects.pop(rect_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._rects.clear()

    def snapshot(self) -> List[Rectangle]:
        """Copies of all rectangles in insertion order."""
        with self._lock:
            return [rect.copy() for rect in self._rects.values()]

    def all(self) -> List[Rectangle]:
        return self.snapshot()

    def list_for_page(self, page: int) -> List[Rectangle]:
        """Rectangles on ``page`` in insertion order."""
        with self._lock:
            return [rect.copy() for rect in self._rects.values() if rect.page == page]
