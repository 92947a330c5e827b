from __future__ import annotations

from typing import Dict

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton, QLineEdit,
    QComboBox, QFrame, QGroupBox, QSplitter, QDoubleSpinBox
)

from ...backend.records import InventoryStats, MovementType
from ...widgets.table_view import TableView
from .model import MaterialsTableModel, MovementsTableModel


class KPICard(QFrame):
    def __init__(self, title: str) -> None:
        super().__init__()
        self.setObjectName("kpi_card")
        self.setStyleSheet("QFrame#kpi_card {border: 1px solid #e1e1e1; border-radius: 10px; background: #fff;}")

        v = QVBoxLayout(self)
        v.setContentsMargins(12, 10, 12, 12)
        v.setSpacing(2)

        self.lbl_title = QLabel(title)
        f = self.lbl_title.font()
        f.setBold(True)
        self.lbl_title.setFont(f)

        self.lbl_value = QLabel("—")
        fv = QFont(self.lbl_value.font())
        fv.setPointSize(fv.pointSize() + 6)
        fv.setBold(True)
        self.lbl_value.setFont(fv)

        v.addWidget(self.lbl_title)
        v.addWidget(self.lbl_value)

    def set_value(self, value) -> None:
        self.lbl_value.setText(str(value))


class InventoryView(QWidget):
    """
    Pure-UI inventory page. The controller fills it through the setters and
    listens to the signals; nothing here talks to the backend.

    Signals:
        refresh_requested()
        search_requested(text)
        adjust_requested(operation, quantity, comment)
        new_material_requested()
        details_requested()      button or double-click on a material
        edit_requested()
    """

    refresh_requested = Signal()
    search_requested = Signal(str)
    adjust_requested = Signal(str, float, str)
    new_material_requested = Signal()
    details_requested = Signal()
    edit_requested = Signal()

    KPI_KEYS = (
        ("total_materials", "Materials"),
        ("low_stock", "Low stock"),
        ("critical_stock", "Out of stock"),
        ("total_movements", "Movements today"),
    )

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._kpis: Dict[str, KPICard] = {}
        self._build_ui()
        self._wire()

    # ---------------- UI ----------------
    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(8, 8, 8, 8)
        root.setSpacing(8)

        # KPI strip
        kpis = QHBoxLayout()
        for key, title in self.KPI_KEYS:
            card = KPICard(title)
            self._kpis[key] = card
            kpis.addWidget(card)
        root.addLayout(kpis)

        # Actions + search
        row = QHBoxLayout()
        self.btn_refresh = QPushButton("Refresh")
        self.btn_new = QPushButton("New material")
        self.btn_details = QPushButton("Details")
        self.btn_edit = QPushButton("Edit material")
        row.addWidget(self.btn_refresh)
        row.addWidget(self.btn_new)
        row.addWidget(self.btn_details)
        row.addWidget(self.btn_edit)
        row.addStretch(1)
        self.lbl_status = QLabel()
        self.lbl_status.setStyleSheet("color:#777;")
        row.addWidget(self.lbl_status)
        row.addWidget(QLabel("Search:"))
        self.search = QLineEdit()
        self.search.setPlaceholderText("Name, code, category or location…")
        self.search.setClearButtonEnabled(True)
        row.addWidget(self.search, 2)
        root.addLayout(row)

        # Tables
        split = QSplitter(Qt.Vertical)
        self.materials_model = MaterialsTableModel()
        self.tbl_materials = TableView()
        self.tbl_materials.setModel(self.materials_model)
        split.addWidget(self.tbl_materials)

        self.movements_model = MovementsTableModel()
        self.tbl_movements = TableView()
        self.tbl_movements.setModel(self.movements_model)
        split.addWidget(self.tbl_movements)
        root.addWidget(split, 1)

        # Stock adjustment
        self.box_adjust = QGroupBox("Adjust stock of the selected material")
        adj = QHBoxLayout(self.box_adjust)
        self.cmb_operation = QComboBox()
        self.cmb_operation.addItem("Increase", MovementType.INCREASE.value)
        self.cmb_operation.addItem("Decrease", MovementType.DECREASE.value)
        adj.addWidget(self.cmb_operation)
        self.spin_qty = QDoubleSpinBox()
        self.spin_qty.setDecimals(2)
        self.spin_qty.setRange(0, 1_000_000)
        adj.addWidget(self.spin_qty)
        self.txt_comment = QLineEdit()
        self.txt_comment.setPlaceholderText("Comment (required)")
        adj.addWidget(self.txt_comment, 1)
        self.btn_apply = QPushButton("Apply")
        adj.addWidget(self.btn_apply)
        root.addWidget(self.box_adjust)

    def _wire(self) -> None:
        self.btn_refresh.clicked.connect(self.refresh_requested)
        self.btn_new.clicked.connect(self.new_material_requested)
        self.btn_details.clicked.connect(self.details_requested)
        self.btn_edit.clicked.connect(self.edit_requested)
        self.tbl_materials.doubleClicked.connect(lambda _idx: self.details_requested.emit())
        self.search.returnPressed.connect(lambda: self.search_requested.emit(self.search.text()))
        self.btn_apply.clicked.connect(self._emit_adjust)

    # ---------------- Public setters ----------------
    def set_stats(self, stats: InventoryStats) -> None:
        for key, _title in self.KPI_KEYS:
            self._kpis[key].set_value(getattr(stats, key))

    def kpi_text(self, key: str) -> str:
        return self._kpis[key].lbl_value.text()

    def set_materials(self, materials) -> None:
        current = self.selected_material()
        self.materials_model.replace(materials)
        if current is not None:
            self.select_material(current.id)

    def set_movements(self, movements) -> None:
        self.movements_model.replace(movements)

    def set_loading(self, loading: bool) -> None:
        self.btn_refresh.setEnabled(not loading)
        self.lbl_status.setText("Loading…" if loading else "")

    def apply_permissions(self, *, can_write: bool, can_edit_materials: bool) -> None:
        self.box_adjust.setEnabled(can_write)
        self.btn_apply.setEnabled(can_write)
        self.btn_new.setEnabled(can_edit_materials)
        self.btn_new.setVisible(can_edit_materials)
        self.btn_edit.setEnabled(can_edit_materials)
        self.btn_edit.setVisible(can_edit_materials)

    def selected_material(self):
        row = self.tbl_materials.selected_row()
        return self.materials_model.record(row) if row >= 0 else None

    def select_material(self, material_id: str) -> None:
        row = self.materials_model.find_row(material_id)
        if row >= 0:
            self.tbl_materials.selectRow(row)

    def clear_adjustment(self) -> None:
        self.spin_qty.setValue(0)
        self.txt_comment.clear()

    # ---------------- Internals ----------------
    def _emit_adjust(self) -> None:
        self.adjust_requested.emit(
            str(self.cmb_operation.currentData()),
            float(self.spin_qty.value()),
            self.txt_comment.text(),
        )
