from __future__ import annotations

from typing import Any, List, Optional, Sequence

from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex

from ...backend.records import Profile
from ..login.permissions import coarsen_role


class ProfilesTableModel(QAbstractTableModel):
    HEADERS: List[str] = ["Name", "Email", "Role", "Access", "Since"]

    def __init__(self, rows: Optional[Sequence[Profile]] = None) -> None:
        super().__init__()
        self._rows: List[Profile] = list(rows or [])

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self.HEADERS)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole) -> Any:
        if not index.isValid() or role not in (Qt.DisplayRole, Qt.EditRole):
            return None
        p = self._rows[index.row()]
        col = index.column()
        if col == 0:
            return p.full_name or ""
        if col == 1:
            return p.email or ""
        if col == 2:
            return p.role or "(none)"
        if col == 3:
            return coarsen_role(p.role).value
        if col == 4:
            return p.created_at.astimezone().strftime("%Y-%m-%d") if p.created_at else ""
        return None

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.DisplayRole) -> Any:
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            try:
                return self.HEADERS[section]
            except IndexError:
                return ""
        return super().headerData(section, orientation, role)

    def replace(self, rows: Sequence[Profile]) -> None:
        self.beginResetModel()
        self._rows = list(rows or [])
        self.endResetModel()

    def record(self, row: int) -> Profile:
        return self._rows[row]
