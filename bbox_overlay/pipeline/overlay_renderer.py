"""Per-page projection of stored rectangles into pixel-space overlay boxes.

One render cycle takes a snapshot of the rectangle store and projects each
page independently. Pages can be projected in parallel. A render started
with parameters that have since changed (document, scale) is abandoned:
its output is discarded instead of being merged with a newer render.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..errors import InvalidPageGeometry, ProjectionError, RenderCancelled
from ..models.rectangle import PageSize, Rectangle, ViewportBox
from .rectangle_store import RectangleStore
from .space_converter import to_page_space
from .viewport import ViewportTransform, bounds_to_viewport_box, from_viewport_box

logger = logging.getLogger(__name__)


@dataclass
class OverlayBox:
    """A rectangle ready to draw: pixel box plus display attributes."""

    page: int
    rect_id: str
    box: ViewportBox
    label: Optional[str] = None
    color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"id": self.rect_id, "page": self.page, "label": self.label, "color": self.color}
        data.update(self.box.to_dict())
        return data


@dataclass
class PageOverlay:
    """All overlay boxes for one page, with the viewport's pixel size."""

    page_number: int
    width: float
    height: float
    boxes: List[OverlayBox] = field(default_factory=list)
    skipped: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page": self.page_number,
            "width": self.width,
            "height": self.height,
            "boxes": [b.to_dict() for b in self.boxes],
            "skipped": self.skipped,
        }


@dataclass
class RenderPage:
    """Per-page inputs of a render: page size and its viewport transform.

    Attributes:
        page_number: 1-based page number
        page_size: Unrotated page size in points
        viewport: Page-space to pixel-space mapping at the render scale
        width: Viewport width in pixels
        height: Viewport height in pixels
    """

    page_number: int
    page_size: PageSize
    viewport: ViewportTransform
    width: float
    height: float


def project_page(
    page_number: int,
    rects: Iterable[Rectangle],
    viewport: ViewportTransform,
    page_size: PageSize,
    width: float = 0.0,
    height: float = 0.0,
) -> PageOverlay:
    """Project the rectangles of one page.

    Rectangles on other pages are ignored. Inverted rectangles and
    rectangles whose conversion or projection fails are dropped and counted
    in ``skipped``; the rest of the page is still projected.
    """
    overlay = PageOverlay(page_number=page_number, width=width, height=height)
    for rect in rects:
        if rect.page != page_number:
            continue
        try:
            bounds = to_page_space(rect, page_size)
            if bounds.is_degenerate:
                logger.debug("Skipping inverted rectangle %s on page %d", rect.id, page_number)
                overlay.skipped += 1
                continue
            box = bounds_to_viewport_box(bounds, viewport)
        except (InvalidPageGeometry, ProjectionError) as e:
            logger.warning("Dropping rectangle %s on page %d: %s", rect.id, page_number, e)
            overlay.skipped += 1
            continue
        overlay.boxes.append(
            OverlayBox(page=page_number, rect_id=rect.id, box=box, label=rect.label, color=rect.color)
        )
    return overlay


def apply_viewport_box(
    store: RectangleStore,
    rect_id: str,
    box: ViewportBox,
    viewport: ViewportTransform,
    page_size: PageSize,
) -> Optional[Rectangle]:
    """Store a rectangle that was moved or resized on screen.

    The pixel box is mapped back through the viewport and written in the
    rectangle's own unit, so page, unit, label and color are unchanged.

    Returns:
        Copy of the updated rectangle, or None if it is no longer stored

    Raises:
        ProjectionError: If the box cannot be mapped back to page space
        InvalidPageGeometry: If page_size is unusable for the rectangle's unit
    """
    rect = store.get(rect_id)
    if rect is None:
        return None
    x, y, width, height = from_viewport_box(box, viewport, page_size, rect.unit)
    return store.update(rect_id, {"x": x, "y": y, "width": width, "height": height})


class OverlayRenderer:
    """Runs render cycles and discards renders made stale by invalidate()."""

    def __init__(self, max_workers: Optional[int] = None):
        self.max_workers = max_workers
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def invalidate(self) -> int:
        """Mark every in-flight render as stale (document or scale changed)."""
        with self._lock:
            self._generation += 1
            return self._generation

    def is_current(self, generation: int) -> bool:
        with self._lock:
            return generation == self._generation

    def render(
        self,
        pages: Sequence[RenderPage],
        store: RectangleStore,
        generation: Optional[int] = None,
    ) -> List[PageOverlay]:
        """Project all rectangles of ``store`` onto ``pages``.

        Args:
            pages: Per-page sizes and viewports, any order
            store: Rectangle source; snapshotted once at the start
            generation: Generation the caller started under (current by default)

        Returns:
            One PageOverlay per page, in page order

        Raises:
            RenderCancelled: If invalidate() was called before the render completed
        """
        if generation is None:
            generation = self.generation
        rects = store.snapshot()
        by_page: Dict[int, List[Rectangle]] = {}
        for rect in rects:
            by_page.setdefault(rect.page, []).append(rect)

        def _project(render_page: RenderPage) -> PageOverlay:
            if not self.is_current(generation):
                raise RenderCancelled(f"Render generation {generation} superseded")
            return project_page(
                render_page.page_number,
                by_page.get(render_page.page_number, []),
                render_page.viewport,
                render_page.page_size,
                width=render_page.width,
                height=render_page.height,
            )

        ordered = sorted(pages, key=lambda p: p.page_number)
        if self.max_workers == 1 or len(ordered) <= 1:
            overlays = [_project(p) for p in ordered]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                overlays = list(executor.map(_project, ordered))

        if not self.is_current(generation):
            raise RenderCancelled(f"Render generation {generation} superseded")

        drawn = sum(len(o.boxes) for o in overlays)
        skipped = sum(o.skipped for o in overlays)
        logger.info(
            "Rendered %d overlay box(es) on %d page(s), %d skipped", drawn, len(overlays), skipped
        )
        return overlays
