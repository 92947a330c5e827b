from __future__ import annotations

from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtWidgets import QDialog, QDialogButtonBox, QFormLayout, QLabel, QVBoxLayout

from ...backend.records import Material
from ...utils.helpers import fmt_qty
from .model import material_status


def _when(value) -> str:
    return value.astimezone().strftime("%Y-%m-%d %H:%M") if value else "—"


class MaterialDetailsDialog(QDialog):
    """Read-only card for one material."""

    def __init__(self, material: Material, parent=None):
        super().__init__(parent)
        self.setWindowTitle(material.name or material.code)
        self.material = material
        self._values: dict = {}

        root = QVBoxLayout(self)
        form = QFormLayout()
        unit = material.unit or "unit"
        for key, label, text in (
            ("code", "Code", material.code),
            ("name", "Name", material.name),
            ("category", "Category", material.category),
            ("location", "Location", material.location),
            ("status", "Status", material_status(material)),
            ("current_stock", "Current stock", f"{fmt_qty(material.current_stock)} {unit}"),
            ("min_stock", "Minimum stock", f"{fmt_qty(material.min_stock)} {unit}"),
            ("initial_stock", "Initial stock", f"{fmt_qty(material.initial_stock)} {unit}"),
            ("unit_price", "Unit price", f"{material.unit_price:.2f}"),
            ("created_at", "Created", _when(material.created_at)),
            ("updated_at", "Last updated", _when(material.updated_at)),
        ):
            lbl = QLabel(text)
            lbl.setTextInteractionFlags(Qt.TextSelectableByMouse)
            self._values[key] = lbl
            form.addRow(label, lbl)
        root.addLayout(form)

        buttons = QDialogButtonBox(QDialogButtonBox.Close)
        buttons.rejected.connect(self.reject)
        root.addWidget(buttons)

    def value(self, key: str) -> Optional[str]:
        lbl = self._values.get(key)
        return lbl.text() if lbl is not None else None
