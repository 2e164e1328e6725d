"""Unit tests for overlay rendering cycles."""

import math
import threading

import pytest

from bbox_overlay.errors import RenderCancelled
from bbox_overlay.models.rectangle import PageSize, Rectangle, RectUnit, SequentialIdGenerator, ViewportBox
from bbox_overlay.pipeline.overlay_renderer import OverlayRenderer, RenderPage, apply_viewport_box, project_page
from bbox_overlay.pipeline.rectangle_store import RectangleStore
from bbox_overlay.pipeline.viewport import AffineViewport, ViewportTransform

LETTER = PageSize(width=612, height=792)


def _render_page(page_number, page_size=LETTER, scale=1.0, rotation=0):
    viewport = AffineViewport.for_page(page_size, scale=scale, rotation=rotation)
    return RenderPage(
        page_number=page_number,
        page_size=page_size,
        viewport=viewport,
        width=viewport.width,
        height=viewport.height,
    )


@pytest.fixture
def store():
    store = RectangleStore(id_generator=SequentialIdGenerator())
    store.create(page=1, x=1, y=1, width=2, height=1, label="Total")
    store.create(page=2, x=0.5, y=0.5, width=0.25, height=0.25, unit=RectUnit.RATIO, color="#ff0000")
    store.create(page=1, x=72, y=72, width=144, height=36, unit=RectUnit.PDF)
    return store


class _InvalidatingViewport(ViewportTransform):
    """Viewport that invalidates its renderer while being used."""

    def __init__(self, renderer):
        self.renderer = renderer
        self.inner = AffineViewport.for_page(LETTER)

    def to_viewport_point(self, x, y):
        self.renderer.invalidate()
        return self.inner.to_viewport_point(x, y)


class TestProjectPage:
    """Test single-page projection."""

    def test_only_rectangles_of_the_page(self, store):
        overlay = project_page(1, store.snapshot(), AffineViewport.for_page(LETTER), LETTER)
        assert [b.rect_id for b in overlay.boxes] == ["rect-1", "rect-3"]
        assert overlay.boxes[0].label == "Total"
        assert overlay.skipped == 0

    def test_box_geometry(self, store):
        overlay = project_page(2, store.snapshot(), AffineViewport.for_page(LETTER), LETTER)
        box = overlay.boxes[0].box
        assert (box.left, box.top) == pytest.approx((306, 396))
        assert (box.width, box.height) == pytest.approx((153, 198))
        assert overlay.boxes[0].color == "#ff0000"

    def test_degenerate_rectangle_skipped(self):
        rects = [
            Rectangle(id="neg", page=1, x=1, y=1, width=-1, height=1),
            Rectangle(id="ok", page=1, x=1, y=1, width=1, height=1),
        ]
        overlay = project_page(1, rects, AffineViewport.for_page(LETTER), LETTER)
        assert [b.rect_id for b in overlay.boxes] == ["ok"]
        assert overlay.skipped == 1

    def test_invalid_page_size_skips_inch_but_keeps_pdf(self):
        rects = [
            Rectangle(id="inch", page=1, x=1, y=1, width=1, height=1),
            Rectangle(id="pdf", page=1, x=0, y=0, width=10, height=10, unit=RectUnit.PDF),
        ]
        bad_size = PageSize(width=612, height=0)
        overlay = project_page(1, rects, AffineViewport.for_page(LETTER), bad_size)
        assert [b.rect_id for b in overlay.boxes] == ["pdf"]
        assert overlay.skipped == 1

    def test_non_finite_projection_skipped(self):
        class _Broken(ViewportTransform):
            def to_viewport_point(self, x, y):
                return (math.nan, y)

        rects = [Rectangle(id="a", page=1, x=1, y=1, width=1, height=1)]
        overlay = project_page(1, rects, _Broken(), LETTER)
        assert overlay.boxes == []
        assert overlay.skipped == 1

    def test_to_dict(self, store):
        overlay = project_page(1, store.snapshot(), AffineViewport.for_page(LETTER), LETTER, 612, 792)
        data = overlay.to_dict()
        assert data["page"] == 1
        assert data["width"] == 612
        assert data["boxes"][0] == {
            "id": "rect-1",
            "page": 1,
            "label": "Total",
            "color": None,
            "left": 72,
            "top": 72,
            "width": 144,
            "height": 72,
        }


class TestApplyViewportBox:
    """Test writing on-screen moves back into the store."""

    def test_moved_inch_rectangle(self, store):
        viewport = AffineViewport.for_page(LETTER)
        rect = apply_viewport_box(store, "rect-1", ViewportBox(144, 216, 144, 72), viewport, LETTER)

        assert (rect.x, rect.y, rect.width, rect.height) == pytest.approx((2, 3, 2, 1))
        assert rect.unit is RectUnit.INCH
        assert rect.label == "Total"
        assert rect.page == 1
        assert store.get("rect-1") == rect

    def test_resized_ratio_rectangle_keeps_unit(self, store):
        viewport = AffineViewport.for_page(LETTER, scale=2.0)
        rect = apply_viewport_box(store, "rect-2", ViewportBox(0, 0, 612, 792), viewport, LETTER)

        assert (rect.x, rect.y, rect.width, rect.height) == pytest.approx((0, 0, 0.5, 0.5))
        assert rect.unit is RectUnit.RATIO
        assert rect.color == "#ff0000"

    def test_unmoved_box_on_rotated_page_is_unchanged(self, store):
        viewport = AffineViewport.for_page(LETTER, scale=2.0, rotation=90)
        before = store.get("rect-1")
        box = project_page(1, [before], viewport, LETTER).boxes[0].box

        after = apply_viewport_box(store, "rect-1", box, viewport, LETTER)

        assert (after.x, after.y, after.width, after.height) == pytest.approx(
            (before.x, before.y, before.width, before.height)
        )

    def test_missing_rectangle(self, store):
        viewport = AffineViewport.for_page(LETTER)
        assert apply_viewport_box(store, "gone", ViewportBox(0, 0, 10, 10), viewport, LETTER) is None
        assert len(store) == 3


class TestOverlayRenderer:
    """Test render cycles and cancellation."""

    def test_render_all_pages_in_order(self, store):
        renderer = OverlayRenderer()
        overlays = renderer.render([_render_page(3), _render_page(2), _render_page(1)], store)
        assert [o.page_number for o in overlays] == [1, 2, 3]
        assert [len(o.boxes) for o in overlays] == [2, 1, 0]

    def test_sequential_and_parallel_agree(self, store):
        pages = [_render_page(n, scale=1.5, rotation=90) for n in (1, 2, 3)]
        sequential = OverlayRenderer(max_workers=1).render(pages, store)
        parallel = OverlayRenderer(max_workers=3).render(pages, store)
        assert [o.to_dict() for o in sequential] == [o.to_dict() for o in parallel]

    def test_render_is_deterministic(self, store):
        pages = [_render_page(1), _render_page(2)]
        renderer = OverlayRenderer()
        first = [o.to_dict() for o in renderer.render(pages, store)]
        second = [o.to_dict() for o in renderer.render(pages, store)]
        assert first == second

    def test_stale_generation_is_cancelled(self, store):
        renderer = OverlayRenderer()
        generation = renderer.generation
        renderer.invalidate()
        with pytest.raises(RenderCancelled):
            renderer.render([_render_page(1)], store, generation=generation)

    def test_invalidate_during_render_discards_output(self, store):
        renderer = OverlayRenderer(max_workers=1)
        page = RenderPage(
            page_number=1,
            page_size=LETTER,
            viewport=_InvalidatingViewport(renderer),
            width=612,
            height=792,
        )
        with pytest.raises(RenderCancelled):
            renderer.render([page], store)

    def test_generation_counter(self):
        renderer = OverlayRenderer()
        start = renderer.generation
        assert renderer.is_current(start)
        assert renderer.invalidate() == start + 1
        assert not renderer.is_current(start)
        assert renderer.is_current(start + 1)

    def test_render_uses_snapshot(self, store):
        class _MutatingViewport(ViewportTransform):
            def __init__(self):
                self.inner = AffineViewport.for_page(LETTER)
                self.done = threading.Event()

            def to_viewport_point(self, x, y):
                if not self.done.is_set():
                    self.done.set()
                    store.clear()
                return self.inner.to_viewport_point(x, y)

        page = RenderPage(1, LETTER, _MutatingViewport(), 612, 792)
        overlays = OverlayRenderer(max_workers=1).render([page], store)
        assert len(overlays[0].boxes) == 2
        assert len(store) == 0

    def test_empty_store(self):
        overlays = OverlayRenderer().render([_render_page(1)], RectangleStore())
        assert overlays[0].boxes == []
        assert overlays[0].skipped == 0
