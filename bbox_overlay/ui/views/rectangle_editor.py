"""Form for editing one stored rectangle (page, unit, position, size, label, color)."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QComboBox,
    QDoubleSpinBox,
    QFormLayout,
    QGroupBox,
    QLabel,
    QLineEdit,
    QPushButton,
    QSpinBox,
)

from ...models.rectangle import Rectangle, RectUnit
from ...models.style import parse_color

logger = logging.getLogger(__name__)

COORD_LIMIT = 1_000_000.0
MAX_PAGE = 100_000


def _coord_spin() -> QDoubleSpinBox:
    spin = QDoubleSpinBox()
    spin.setRange(-COORD_LIMIT, COORD_LIMIT)
    spin.setDecimals(4)
    spin.setSingleStep(0.01)
    return spin


class RectangleEditor(QGroupBox):
    """Edits the selected rectangle; Apply emits the changed fields as a patch."""

    patch_requested = Signal(str, object)

    def __init__(self, parent=None):
        super().__init__("Selected rectangle", parent)
        self.rect_id: Optional[str] = None
        self.setup_ui()
        self.load(None)

    def setup_ui(self) -> None:
        form = QFormLayout(self)

        self.page_spin = QSpinBox()
        self.page_spin.setRange(1, MAX_PAGE)
        form.addRow("Page", self.page_spin)

        self.unit_combo = QComboBox()
        for unit in RectUnit:
            self.unit_combo.addItem(unit.value, unit.value)
        form.addRow("Unit", self.unit_combo)

        self.x_spin = _coord_spin()
        self.y_spin = _coord_spin()
        self.width_spin = _coord_spin()
        self.height_spin = _coord_spin()
        form.addRow("X", self.x_spin)
        form.addRow("Y", self.y_spin)
        form.addRow("Width", self.width_spin)
        form.addRow("Height", self.height_spin)

        self.label_edit = QLineEdit()
        self.label_edit.setPlaceholderText("Optional")
        form.addRow("Label", self.label_edit)

        self.color_edit = QLineEdit()
        self.color_edit.setPlaceholderText("#ff9900")
        form.addRow("Color", self.color_edit)

        self.error_label = QLabel()
        self.error_label.setProperty("class", "muted")
        self.error_label.setWordWrap(True)
        form.addRow(self.error_label)

        self.apply_btn = QPushButton("Apply")
        self.apply_btn.clicked.connect(self.apply)
        form.addRow(self.apply_btn)

    def load(self, rect: Optional[Rectangle]) -> None:
        """Show a rectangle in the form, or disable the form when None."""
        self.rect_id = rect.id if rect is not None else None
        self.setEnabled(rect is not None)
        self.error_label.clear()
        if rect is None:
            self.setTitle("Selected rectangle")
            return
        self.setTitle(f"Rectangle {rect.id[:6]}")
        self.page_spin.setValue(rect.page)
        self.unit_combo.setCurrentIndex(self.unit_combo.findData(rect.unit.value))
        self.x_spin.setValue(rect.x)
        self.y_spin.setValue(rect.y)
        self.width_spin.setValue(rect.width)
        self.height_spin.setValue(rect.height)
        self.label_edit.setText(rect.label or "")
        self.color_edit.setText(rect.color or "")

    def patch(self) -> Dict[str, Any]:
        """Field values as a store patch. Empty label or color clears it.

        Raises:
            ValueError: If the color is not #rrggbb or #rrggbbaa
        """
        color = self.color_edit.text().strip() or None
        if color is not None:
            parse_color(color)
        return {
            "page": self.page_spin.value(),
            "unit": self.unit_combo.currentData(),
            "x": self.x_spin.value(),
            "y": self.y_spin.value(),
            "width": self.width_spin.value(),
            "height": self.height_spin.value(),
            "label": self.label_edit.text() or None,
            "color": color,
        }

    def apply(self) -> None:
        if self.rect_id is None:
            return
        try:
            patch = self.patch()
        except ValueError as e:
            logger.debug("Rejected edit of %s: %s", self.rect_id, e)
            self.error_label.setText(str(e))
            return
        self.error_label.clear()
        self.patch_requested.emit(self.rect_id, patch)
