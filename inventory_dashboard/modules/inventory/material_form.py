from __future__ import annotations

from typing import Iterable, Optional

from PySide6.QtWidgets import (
    QDialog, QFormLayout, QLineEdit, QDialogButtonBox, QVBoxLayout, QComboBox, QLabel
)

from ...backend.records import NewMaterial
from ...errors import ValidationError
from .forms import validate_new_material


class NewMaterialDialog(QDialog):
    """
    Create-material form. Leave Code blank to get a generated one.

    accept() validates locally and keeps the dialog open on error;
    payload() returns the validated NewMaterial after acceptance.
    """

    def __init__(
        self,
        parent=None,
        categories: Iterable[str] = (),
        locations: Iterable[str] = (),
    ):
        super().__init__(parent)
        self.setWindowTitle("New material")
        self.setModal(True)
        self._payload: Optional[NewMaterial] = None

        root = QVBoxLayout(self)
        self.lbl_error = QLabel()
        self.lbl_error.setWordWrap(True)
        self.lbl_error.setVisible(False)
        self.lbl_error.setStyleSheet("color:#b10000;")
        root.addWidget(self.lbl_error)

        form = QFormLayout()
        self.code = QLineEdit()
        self.code.setPlaceholderText("Generated when empty")
        self.name = QLineEdit()
        self.category = self._editable_combo(categories)
        self.location = self._editable_combo(locations)
        self.quantity = QLineEdit()
        self.quantity.setPlaceholderText("0")
        self.min_stock = QLineEdit()
        self.min_stock.setPlaceholderText("0")
        self.unit_price = QLineEdit()
        self.unit_price.setPlaceholderText("0")
        self.unit = QLineEdit()
        self.unit.setPlaceholderText("unit")
        self.comment = QLineEdit()

        form.addRow("Code", self.code)
        form.addRow("Name*", self.name)
        form.addRow("Category", self.category)
        form.addRow("Location", self.location)
        form.addRow("Initial quantity", self.quantity)
        form.addRow("Minimum stock", self.min_stock)
        form.addRow("Unit price", self.unit_price)
        form.addRow("Unit", self.unit)
        form.addRow("Comment", self.comment)
        root.addLayout(form)

        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.buttons.accepted.connect(self.accept)
        self.buttons.rejected.connect(self.reject)
        root.addWidget(self.buttons)

    @staticmethod
    def _editable_combo(values: Iterable[str]) -> QComboBox:
        cmb = QComboBox()
        cmb.setEditable(True)
        cmb.addItem("")
        for v in values:
            cmb.addItem(v)
        return cmb

    def get_new_material(self) -> NewMaterial:
        return NewMaterial(
            code=self.code.text().strip(),
            name=self.name.text(),
            category=self.category.currentText(),
            location=self.location.currentText(),
            quantity=self.quantity.text().strip() or 0,
            min_stock=self.min_stock.text().strip() or 0,
            unit_price=self.unit_price.text().strip() or 0,
            unit=self.unit.text(),
            comment=self.comment.text(),
        )

    def accept(self):
        new = self.get_new_material()
        try:
            checked = validate_new_material(new, require_code=False)
        except ValidationError as e:
            self.lbl_error.setText(e.message)
            self.lbl_error.setVisible(True)
            return
        self._payload = checked
        super().accept()

    def payload(self) -> Optional[NewMaterial]:
        return self._payload

