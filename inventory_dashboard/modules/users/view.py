from PySide6.QtCore import Signal
from PySide6.QtWidgets import QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QComboBox, QLabel, QLineEdit

from ...widgets.table_view import TableView
from ..login.permissions import Role
from .model import ProfilesTableModel


class UsersView(QWidget):
    refresh_requested = Signal()
    role_change_requested = Signal(str)  # Role value
    rename_requested = Signal(str)  # new full name

    def __init__(self, parent=None):
        super().__init__(parent)
        layout = QVBoxLayout(self)

        row = QHBoxLayout()
        self.btn_refresh = QPushButton("Refresh")
        row.addWidget(self.btn_refresh)
        row.addStretch(1)
        row.addWidget(QLabel("Role:"))
        self.cmb_role = QComboBox()
        for r in Role:
            self.cmb_role.addItem(r.value, r.value)
        row.addWidget(self.cmb_role)
        self.btn_apply = QPushButton("Change role")
        row.addWidget(self.btn_apply)
        self.txt_name = QLineEdit()
        self.txt_name.setPlaceholderText("Full name")
        row.addWidget(self.txt_name)
        self.btn_rename = QPushButton("Rename")
        row.addWidget(self.btn_rename)
        layout.addLayout(row)

        self.model = ProfilesTableModel()
        self.table = TableView()
        self.table.setModel(self.model)
        layout.addWidget(self.table, 1)

        self.btn_refresh.clicked.connect(self.refresh_requested)
        self.btn_apply.clicked.connect(lambda: self.role_change_requested.emit(str(self.cmb_role.currentData())))
        self.btn_rename.clicked.connect(lambda: self.rename_requested.emit(self.txt_name.text()))

    def selected_profile(self):
        row = self.table.selected_row()
        return self.model.record(row) if row >= 0 else None
