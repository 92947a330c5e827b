from __future__ import annotations

from typing import Iterable, Optional

from PySide6.QtWidgets import (
    QDialog, QFormLayout, QLineEdit, QDialogButtonBox, QVBoxLayout, QComboBox, QLabel
)

from ...backend.records import Material, MaterialEdit
from ...errors import ValidationError
from ...utils.helpers import fmt_qty
from .forms import validate_material_edit


class EditMaterialDialog(QDialog):
    """
    Edit the descriptive fields of one material, prefilled from it.
    Code and stock levels are shown but not editable.
    """

    def __init__(
        self,
        material: Material,
        parent=None,
        categories: Iterable[str] = (),
        locations: Iterable[str] = (),
    ):
        super().__init__(parent)
        self.setWindowTitle(f"Edit {material.code}")
        self.setModal(True)
        self.material = material
        self._payload: Optional[MaterialEdit] = None

        root = QVBoxLayout(self)
        self.lbl_error = QLabel()
        self.lbl_error.setWordWrap(True)
        self.lbl_error.setVisible(False)
        self.lbl_error.setStyleSheet("color:#b10000;")
        root.addWidget(self.lbl_error)

        form = QFormLayout()
        self.name = QLineEdit(material.name)
        self.category = self._editable_combo(categories, material.category)
        self.location = self._editable_combo(locations, material.location)
        self.min_stock = QLineEdit(fmt_qty(material.min_stock))
        self.unit_price = QLineEdit(fmt_qty(material.unit_price))
        self.unit = QLineEdit(material.unit)
        self.unit.setPlaceholderText("unit")

        form.addRow("Code", QLabel(material.code))
        form.addRow("Current stock", QLabel(fmt_qty(material.current_stock)))
        form.addRow("Name*", self.name)
        form.addRow("Category", self.category)
        form.addRow("Location", self.location)
        form.addRow("Minimum stock", self.min_stock)
        form.addRow("Unit price", self.unit_price)
        form.addRow("Unit", self.unit)
        root.addLayout(form)

        self.buttons = QDialogButtonBox(QDialogButtonBox.Save | QDialogButtonBox.Cancel)
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)
        root.addWidget(self.buttons)

    @staticmethod
    def _editable_combo(values: Iterable[str], current: str) -> QComboBox:
        cmb = QComboBox()
        cmb.setEditable(True)
        cmb.addItem("")
        for v in values:
            cmb.addItem(v)
        cmb.setCurrentText(current)
        return cmb

    def get_edit(self) -> MaterialEdit:
        return MaterialEdit(
            name=self.name.text(),
            category=self.category.currentText(),
            location=self.location.currentText(),
            min_stock=self.min_stock.text().strip() or 0,
            unit_price=self.unit_price.text().strip() or 0,
            unit=self.unit.text(),
        )

    def accept(self):
        try:
            checked = validate_material_edit(self.get_edit())
        except ValidationError as e:
            self.lbl_error.setText(e.message)
            self.lbl_error.setVisible(True)
            return
        self._payload = checked
        super().accept()

    def payload(self) -> Optional[MaterialEdit]:
        return self._payload
