"""PDF page viewer that draws stored rectangles as overlay boxes."""

from __future__ import annotations

import logging
from functools import partial
from pathlib import Path
from typing import List, Optional

try:
    import fitz  # pymupdf
except ImportError:
    fitz = None

from PySide6.QtCore import Qt, QTimer, Signal
from PySide6.QtGui import QBrush, QColor, QFont, QPen, QPixmap, QWheelEvent
from PySide6.QtWidgets import (
    QGraphicsPixmapItem,
    QGraphicsRectItem,
    QGraphicsScene,
    QGraphicsSimpleTextItem,
    QGraphicsView,
    QLabel,
    QPushButton,
    QSizePolicy,
    QToolBar,
    QVBoxLayout,
    QWidget,
)

from ...config.settings import DEFAULT_SCALE, MAX_SCALE, MIN_SCALE, clamp_scale
from ...errors import InvalidPageGeometry, ProjectionError, RenderCancelled
from ...models.rectangle import PageSize, ViewportBox
from ...models.style import OverlayStyle, parse_color
from ...pipeline.overlay_renderer import OverlayRenderer, PageOverlay, RenderPage, apply_viewport_box
from ...pipeline.pdf_renderer import FitzViewport, page_size_of
from ...pipeline.rectangle_store import RectangleStore
from ...pipeline.viewport import ViewportTransform

logger = logging.getLogger(__name__)

ZOOM_STEP = 1.2


def _qcolor(rgba) -> QColor:
    r, g, b, a = rgba
    return QColor(r, g, b, a)


class _BoxItem(QGraphicsRectItem):
    """Overlay box that can be dragged; reports its new box on release."""

    def __init__(self, rect_id: str, box: ViewportBox, on_moved) -> None:
        super().__init__(box.left, box.top, box.width, box.height)
        self.rect_id = rect_id
        self.box = box
        self._on_moved = on_moved
        self.setFlag(QGraphicsRectItem.GraphicsItemFlag.ItemIsMovable, True)
        self.setFlag(QGraphicsRectItem.GraphicsItemFlag.ItemIsSelectable, True)
        self.setCursor(Qt.CursorShape.SizeAllCursor)

    def mouseReleaseEvent(self, event) -> None:
        super().mouseReleaseEvent(event)
        offset = self.pos()
        if offset.x() or offset.y():
            moved = ViewportBox(
                left=self.box.left + offset.x(),
                top=self.box.top + offset.y(),
                width=self.box.width,
                height=self.box.height,
            )
            # Deferred: the handler redraws the scene, which deletes this item
            QTimer.singleShot(0, partial(self._on_moved, self.rect_id, moved))


class _OverlayGraphicsView(QGraphicsView):
    """Internal graphics view: renders one page at the zoom scale plus its overlay."""

    zoom_changed = Signal(float)
    rectangle_moved = Signal(str)

    def __init__(self, store: RectangleStore, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        if fitz is None:
            raise ImportError(
                "pymupdf (fitz) is required for PDF viewer. "
                "Install with: pip install pymupdf"
            )
        self._scene = QGraphicsScene(self)
        self.setScene(self._scene)
        self.store = store
        self.renderer = OverlayRenderer(max_workers=1)
        self.style = OverlayStyle()
        self.pdf_doc = None
        self.current_page_number = 1
        self.zoom = DEFAULT_SCALE
        self.overlay: Optional[PageOverlay] = None
        self._viewport: Optional[ViewportTransform] = None
        self._page_size: Optional[PageSize] = None
        self._pixmap_item: Optional[QGraphicsPixmapItem] = None
        self._overlay_items: List = []

        self.setDragMode(QGraphicsView.DragMode.ScrollHandDrag)
        self.setFocusPolicy(Qt.FocusPolicy.NoFocus)

    @property
    def page_count(self) -> int:
        return len(self.pdf_doc) if self.pdf_doc else 0

    def load_pdf(self, path: str) -> None:
        pdf_path = Path(path)
        if not pdf_path.exists():
            raise FileNotFoundError(f"PDF file not found: {path}")
        doc = fitz.open(str(pdf_path))
        if len(doc) == 0:
            doc.close()
            raise ValueError("PDF has no pages")
        if self.pdf_doc is not None:
            self.pdf_doc.close()
        self.pdf_doc = doc
        self.current_page_number = 1
        self._render_page()
        logger.info("Loaded PDF: %s (%d pages)", path, len(doc))

    def _render_page(self) -> None:
        """Render the current page at the current zoom and redraw its overlay.

        Any render started under the previous page or zoom is invalidated.
        """
        if self.pdf_doc is None:
            return
        generation = self.renderer.invalidate()
        self._scene.clear()
        self._overlay_items.clear()
        self.overlay = None

        fitz_page = self.pdf_doc[self.current_page_number - 1]
        pix = fitz_page.get_pixmap(matrix=fitz.Matrix(self.zoom, self.zoom))
        qpixmap = QPixmap()
        qpixmap.loadFromData(pix.tobytes("png"), "PNG")
        self._pixmap_item = QGraphicsPixmapItem(qpixmap)
        self._scene.addItem(self._pixmap_item)
        self._scene.setSceneRect(self._pixmap_item.boundingRect())

        viewport = FitzViewport(fitz_page, self.zoom)
        self._viewport = viewport
        self._page_size = page_size_of(fitz_page)
        render_page = RenderPage(
            page_number=self.current_page_number,
            page_size=self._page_size,
            viewport=viewport,
            width=viewport.width,
            height=viewport.height,
        )
        try:
            overlays = self.renderer.render([render_page], self.store, generation=generation)
        except RenderCancelled:
            logger.debug("Discarded stale overlay for page %d", self.current_page_number)
            return
        self.overlay = overlays[0]
        self._draw_overlay()
        logger.debug("Rendered page %d at zoom %.2f", self.current_page_number, self.zoom)

    def _draw_overlay(self) -> None:
        font = QFont()
        font.setPixelSize(self.style.label_size)
        label_color = _qcolor(parse_color(self.style.label_color))
        for item in self.overlay.boxes:
            fill, stroke = self.style.colors_for(item.color)
            box = item.box
            rect_item = _BoxItem(item.rect_id, box, self._on_box_moved)
            rect_item.setBrush(QBrush(_qcolor(fill)))
            rect_item.setPen(QPen(_qcolor(stroke), self.style.stroke_width))
            rect_item.setToolTip(item.label or item.rect_id)
            self._scene.addItem(rect_item)
            self._overlay_items.append(rect_item)
            if item.label:
                text_item = QGraphicsSimpleTextItem(item.label)
                text_item.setFont(font)
                text_item.setBrush(QBrush(label_color))
                text_item.setParentItem(rect_item)
                text_item.setPos(box.left + 4, box.top + 2)

    def _on_box_moved(self, rect_id: str, box: ViewportBox) -> None:
        """Write a dragged box back to the store in the rectangle's unit."""
        if self._viewport is None:
            return
        try:
            rect = apply_viewport_box(self.store, rect_id, box, self._viewport, self._page_size)
        except (InvalidPageGeometry, ProjectionError) as e:
            logger.warning("Could not move rectangle %s: %s", rect_id, e)
            rect = None
        # Redraw from the store so the box matches the stored value
        self._render_page()
        if rect is not None:
            logger.debug("Moved rectangle %s to %s", rect_id, box)
            self.rectangle_moved.emit(rect_id)

    def refresh_overlay(self) -> None:
        """Re-render the current page after the store changed."""
        if self.pdf_doc is None:
            return
        self._render_page()

    def set_page(self, page_number: int) -> None:
        if self.pdf_doc is None:
            return
        self.current_page_number = max(1, min(page_number, len(self.pdf_doc)))
        self._render_page()

    def set_zoom(self, zoom: float) -> None:
        zoom = clamp_scale(zoom)
        if zoom == self.zoom:
            return
        self.zoom = zoom
        self._render_page()
        self.zoom_changed.emit(self.zoom)

    def zoom_in(self) -> None:
        self.set_zoom(min(self.zoom * ZOOM_STEP, MAX_SCALE))

    def zoom_out(self) -> None:
        self.set_zoom(max(self.zoom / ZOOM_STEP, MIN_SCALE))

    def fit_to_width(self) -> None:
        if self.pdf_doc is None:
            return
        page_width = self.pdf_doc[self.current_page_number - 1].rect.width
        if page_width > 0:
            self.set_zoom(self.viewport().width() / page_width)

    def wheelEvent(self, event: QWheelEvent) -> None:
        if event.modifiers() & Qt.KeyboardModifier.ControlModifier:
            if event.angleDelta().y() > 0:
                self.zoom_in()
            else:
                self.zoom_out()
            event.accept()
            return
        super().wheelEvent(event)

    def close_document(self) -> None:
        self.renderer.invalidate()
        if self.pdf_doc is not None:
            self.pdf_doc.close()
            self.pdf_doc = None


class OverlayViewer(QWidget):
    """Overlay viewer with toolbar (zoom, fit width, prev/next page, page and zoom indicator)."""

    page_changed = Signal(int)
    rectangle_moved = Signal(str)

    def __init__(self, store: RectangleStore, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        toolbar = QToolBar()
        toolbar.setObjectName("overlay_viewer_toolbar")

        zoom_out_btn = QPushButton("Zoom out")
        zoom_in_btn = QPushButton("Zoom in")
        fit_btn = QPushButton("Fit width")
        prev_btn = QPushButton("Previous")
        next_btn = QPushButton("Next")
        self._page_label = QLabel("Page 1 / 1")
        self._page_label.setSizePolicy(QSizePolicy.Policy.Preferred, QSizePolicy.Policy.Fixed)
        self._zoom_label = QLabel(f"{DEFAULT_SCALE:.0%}")

        toolbar.addWidget(zoom_out_btn)
        toolbar.addWidget(zoom_in_btn)
        toolbar.addWidget(fit_btn)
        toolbar.addWidget(self._zoom_label)
        toolbar.addSeparator()
        toolbar.addWidget(prev_btn)
        toolbar.addWidget(next_btn)
        toolbar.addWidget(self._page_label)

        self._view = _OverlayGraphicsView(store, self)
        layout.addWidget(toolbar)
        layout.addWidget(self._view)

        zoom_in_btn.clicked.connect(self._view.zoom_in)
        zoom_out_btn.clicked.connect(self._view.zoom_out)
        fit_btn.clicked.connect(self._view.fit_to_width)
        prev_btn.clicked.connect(self._on_prev_page)
        next_btn.clicked.connect(self._on_next_page)
        self._view.zoom_changed.connect(self._update_zoom_label)
        self._view.rectangle_moved.connect(self.rectangle_moved)

    @property
    def current_page_number(self) -> int:
        return self._view.current_page_number

    @property
    def page_count(self) -> int:
        return self._view.page_count

    def _on_prev_page(self) -> None:
        if self._view.page_count == 0:
            return
        self.set_page(self._view.current_page_number - 1)

    def _on_next_page(self) -> None:
        if self._view.page_count == 0:
            return
        self.set_page(self._view.current_page_number + 1)

    def _update_page_label(self) -> None:
        n = self._view.current_page_number
        total = self._view.page_count
        self._page_label.setText(f"Page {n} / {total}" if total else "Page 1 / 1")

    def _update_zoom_label(self, zoom: float) -> None:
        self._zoom_label.setText(f"{zoom:.0%}")

    def load_pdf(self, path: str) -> None:
        self._view.load_pdf(path)
        self._update_page_label()
        self.page_changed.emit(self._view.current_page_number)

    def set_page(self, page_number: int) -> None:
        self._view.set_page(page_number)
        self._update_page_label()
        self.page_changed.emit(self._view.current_page_number)

    def set_zoom(self, zoom: float) -> None:
        self._view.set_zoom(zoom)

    def set_style(self, style: OverlayStyle) -> None:
        self._view.style = style
        self._view.refresh_overlay()

    def refresh_overlay(self) -> None:
        self._view.refresh_overlay()

    def closeEvent(self, event) -> None:
        self._view.close_document()
        super().closeEvent(event)
