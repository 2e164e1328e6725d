"""Main window for the bbox-overlay viewer."""

import logging
from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QDragEnterEvent, QDropEvent, QKeySequence
from PySide6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSplitter,
    QToolBar,
    QVBoxLayout,
    QWidget,
)

from ...config import get_default_scale, get_default_unit
from ...config.profile_manager import get_profile
from ...errors import IngestionParseError
from ...models.rectangle import Rectangle, RectUnit
from ...pipeline.ingestion import load_analysis_file
from ...pipeline.rectangle_store import RectangleStore
from .overlay_viewer import OverlayViewer
from .rectangle_editor import RectangleEditor

logger = logging.getLogger(__name__)


def _describe(rect: Rectangle) -> str:
    name = rect.label or rect.id
    return (
        f"p{rect.page}  {name}  "
        f"({rect.x:g}, {rect.y:g}, {rect.width:g} x {rect.height:g} {rect.unit.value})"
    )


class MainWindow(QMainWindow):
    """Main application window: viewer on the left, rectangle list on the right."""

    def __init__(self, store: Optional[RectangleStore] = None):
        super().__init__()
        self.setWindowTitle("bbox-overlay")
        self.resize(1100, 800)
        self.setAcceptDrops(True)

        # State
        self.store = store if store is not None else RectangleStore()
        self.pdf_path: Optional[str] = None

        self.setup_ui()

    def setup_ui(self):
        """Initialize UI: toolbar, splitter (viewer | rectangle panel), status bar."""
        toolbar = QToolBar()
        toolbar.setObjectName("main_toolbar")
        self.addToolBar(toolbar)

        self.open_action = QAction("Open PDF", self)
        self.open_action.setShortcut(QKeySequence.StandardKey.Open)
        self.open_action.triggered.connect(self.browse_pdf)
        toolbar.addAction(self.open_action)

        self.import_action = QAction("Import JSON", self)
        self.import_action.setShortcut(QKeySequence("Ctrl+I"))
        self.import_action.triggered.connect(self.browse_json)
        toolbar.addAction(self.import_action)

        splitter = QSplitter(Qt.Orientation.Horizontal)
        self.setCentralWidget(splitter)

        profile = get_profile()
        self.viewer = OverlayViewer(self.store)
        self.viewer.set_style(profile.style)
        self.viewer.set_zoom(get_default_scale(profile.scale))
        splitter.addWidget(self.viewer)

        panel = QWidget()
        panel_layout = QVBoxLayout(panel)

        unit_row = QHBoxLayout()
        unit_row.addWidget(QLabel("Unit"))
        self.unit_combo = QComboBox()
        for unit in RectUnit:
            self.unit_combo.addItem(unit.value, unit.value)
        self.unit_combo.setCurrentIndex(self.unit_combo.findData(get_default_unit(profile.unit).value))
        unit_row.addWidget(self.unit_combo)
        panel_layout.addLayout(unit_row)

        button_row = QHBoxLayout()
        add_btn = QPushButton("Add rectangle")
        add_btn.clicked.connect(self.add_default_rectangle)
        remove_btn = QPushButton("Remove")
        remove_btn.clicked.connect(self.remove_selected)
        clear_btn = QPushButton("Clear")
        clear_btn.clicked.connect(self.clear_rectangles)
        button_row.addWidget(add_btn)
        button_row.addWidget(remove_btn)
        button_row.addWidget(clear_btn)
        panel_layout.addLayout(button_row)

        self.rect_list = QListWidget()
        self.rect_list.itemDoubleClicked.connect(self._on_rect_activated)
        self.rect_list.currentItemChanged.connect(self._on_current_rect_changed)
        panel_layout.addWidget(self.rect_list)

        self.editor = RectangleEditor()
        self.editor.patch_requested.connect(self.update_rectangle)
        panel_layout.addWidget(self.editor)

        splitter.addWidget(panel)
        splitter.setSizes([800, 300])

        self.viewer.page_changed.connect(lambda _page: self._update_status_bar())
        self.viewer.rectangle_moved.connect(self._on_rect_moved)
        self._update_status_bar()

    def _update_status_bar(self) -> None:
        parts = [Path(self.pdf_path).name if self.pdf_path else "No PDF"]
        parts.append(f"{len(self.store)} rectangle(s)")
        if self.viewer.page_count:
            page = self.viewer.current_page_number
            parts.append(f"{len(self.store.list_for_page(page))} on page {page}")
        self.statusBar().showMessage("  |  ".join(parts))

    def _refresh(self, select_id: Optional[str] = None) -> None:
        """Rebuild the rectangle list and redraw the overlay.

        The rectangle with select_id (else the current one) stays selected.
        """
        if select_id is None:
            select_id = self.editor.rect_id
        self.rect_list.blockSignals(True)
        self.rect_list.clear()
        selected_row = -1
        for row, rect in enumerate(self.store.snapshot()):
            item = QListWidgetItem(_describe(rect))
            item.setData(Qt.ItemDataRole.UserRole, rect.id)
            self.rect_list.addItem(item)
            if rect.id == select_id:
                selected_row = row
        self.rect_list.setCurrentRow(selected_row)
        self.rect_list.blockSignals(False)
        self.editor.load(self.store.get(select_id) if selected_row >= 0 else None)
        self.viewer.refresh_overlay()
        self._update_status_bar()

    def dragEnterEvent(self, event: QDragEnterEvent):
        if event.mimeData().hasUrls():
            event.accept()
        else:
            event.ignore()

    def dropEvent(self, event: QDropEvent):
        for url in event.mimeData().urls():
            path = url.toLocalFile()
            if path.lower().endswith(".pdf"):
                self.open_pdf(path)
            elif path.lower().endswith(".json"):
                self.import_json(path)

    def browse_pdf(self):
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Open PDF", str(Path.home()), "PDF Files (*.pdf)"
        )
        if file_path:
            self.open_pdf(file_path)

    def browse_json(self):
        file_path, _ = QFileDialog.getOpenFileName(
            self, "Import analysis JSON", str(Path.home()), "JSON Files (*.json)"
        )
        if file_path:
            self.import_json(file_path)

    def open_pdf(self, path: str) -> None:
        try:
            self.viewer.load_pdf(path)
        except Exception as e:
            logger.warning("Could not load PDF %s: %s", path, e)
            QMessageBox.critical(self, "Open PDF", f"Could not open PDF:\n{e}")
            return
        self.pdf_path = path
        self._update_status_bar()

    def import_json(self, path: str) -> None:
        """Add rectangles from an analysis JSON file.

        On a parse error the existing rectangles are kept.
        """
        try:
            rects = load_analysis_file(path, id_generator=self.store.id_generator)
        except (IngestionParseError, OSError) as e:
            logger.warning("Import of %s failed: %s", path, e)
            QMessageBox.warning(self, "Import JSON", f"Could not parse JSON:\n{e}")
            return
        added = self.store.add_many(rects)
        logger.info("Imported %d rectangle(s) from %s", added, path)
        self._refresh()

    def selected_unit(self) -> RectUnit:
        return RectUnit.parse(self.unit_combo.currentData())

    def add_default_rectangle(self) -> None:
        page = self.viewer.current_page_number if self.viewer.page_count else 1
        rect = self.store.create_default(unit=self.selected_unit(), page=page)
        self._refresh(select_id=rect.id)

    def remove_selected(self) -> None:
        for item in self.rect_list.selectedItems():
            self.store.remove(item.data(Qt.ItemDataRole.UserRole))
        self._refresh()

    def clear_rectangles(self) -> None:
        self.store.clear()
        self._refresh()

    def update_rectangle(self, rect_id: str, patch: dict) -> None:
        """Apply an editor patch to the store."""
        try:
            rect = self.store.update(rect_id, patch)
        except ValueError as e:
            QMessageBox.warning(self, "Edit rectangle", str(e))
            return
        if rect is None:
            logger.debug("Rectangle %s was removed before the edit was applied", rect_id)
        self._refresh(select_id=rect_id)

    def _on_rect_moved(self, rect_id: str) -> None:
        self._refresh(select_id=rect_id)

    def _on_current_rect_changed(self, current: Optional[QListWidgetItem], _previous) -> None:
        rect_id = current.data(Qt.ItemDataRole.UserRole) if current is not None else None
        self.editor.load(self.store.get(rect_id) if rect_id else None)

    def _on_rect_activated(self, item: QListWidgetItem) -> None:
        rect = self.store.get(item.data(Qt.ItemDataRole.UserRole))
        if rect is not None and self.viewer.page_count:
            self.viewer.set_page(rect.page)
