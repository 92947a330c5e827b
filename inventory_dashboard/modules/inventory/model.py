from __future__ import annotations

from typing import Any, List, Optional, Sequence

from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex
from PySide6.QtGui import QColor

from ...backend.records import Material, Movement, MovementType
from ...utils.helpers import fmt_qty

_CRITICAL_BG = QColor("#fcebea")
_LOW_BG = QColor("#fff4ce")


class _RecordTableModel(QAbstractTableModel):
    """Read-only table over a sequence of frozen records."""

    HEADERS: List[str] = []
    NUMERIC_COLUMNS: tuple = ()

    def __init__(self, rows: Optional[Sequence[Any]] = None) -> None:
        super().__init__()
        self._rows: List[Any] = list(rows or [])

    # ---------- Qt model basics ----------

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self.HEADERS)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole) -> Any:
        if not index.isValid():
            return None
        rec = self._rows[index.row()]
        col = index.column()

        if role in (Qt.DisplayRole, Qt.EditRole):
            return self.display(rec, col)
        if role == Qt.TextAlignmentRole and col in self.NUMERIC_COLUMNS:
            return int(Qt.AlignRight | Qt.AlignVCenter)
        if role == Qt.BackgroundRole:
            return self.background(rec)
        return None

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.DisplayRole) -> Any:
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            try:
                return self.HEADERS[section]
            except IndexError:
                return ""
        if orientation == Qt.Horizontal and role == Qt.TextAlignmentRole and section in self.NUMERIC_COLUMNS:
            return int(Qt.AlignRight | Qt.AlignVCenter)
        return super().headerData(section, orientation, role)

    def display(self, rec: Any, col: int) -> str:
        raise NotImplementedError

    def background(self, rec: Any):
        return None

    # ---------- Convenience helpers ----------

    def replace(self, rows: Sequence[Any]) -> None:
        """Replace all rows at once (keeps column schema unchanged)."""
        self.beginResetModel()
        self._rows = list(rows or [])
        self.endResetModel()

    def record(self, row: int) -> Any:
        return self._rows[row]

    def rows(self) -> List[Any]:
        return list(self._rows)


class MaterialsTableModel(_RecordTableModel):
    """Active materials; critical rows tinted red, low rows amber."""

    HEADERS = ["Code", "Name", "Category", "Location", "Stock", "Min", "Status"]
    NUMERIC_COLUMNS = (4, 5)

    def display(self, m: Material, col: int) -> str:
        if col == 0:
            return m.code
        if col == 1:
            return m.name
        if col == 2:
            return m.category
        if col == 3:
            return m.location
        if col == 4:
            return fmt_qty(m.current_stock)
        if col == 5:
            return fmt_qty(m.min_stock)
        if col == 6:
            return material_status(m)
        return ""

    def background(self, m: Material):
        if m.is_critical:
            return _CRITICAL_BG
        if m.is_low:
            return _LOW_BG
        return None

    def find_row(self, material_id: str) -> int:
        for i, m in enumerate(self._rows):
            if m.id == material_id:
                return i
        return -1


class MovementsTableModel(_RecordTableModel):
    HEADERS = ["Date", "Type", "Material", "Qty", "Responsible", "Comment"]
    NUMERIC_COLUMNS = (3,)

    _TYPE_LABELS = {
        MovementType.CREATE: "Created",
        MovementType.INCREASE: "Increase",
        MovementType.DECREASE: "Decrease",
    }

    def display(self, mv: Movement, col: int) -> str:
        if col == 0:
            return mv.timestamp.astimezone().strftime("%Y-%m-%d %H:%M") if mv.timestamp else ""
        if col == 1:
            return self._TYPE_LABELS.get(mv.type, mv.type.value)
        if col == 2:
            return mv.material_name
        if col == 3:
            q = fmt_qty(mv.quantity)
            return f"+{q}" if mv.quantity > 0 else q
        if col == 4:
            return mv.responsible
        if col == 5:
            return mv.comment
        return ""


def material_status(m: Material) -> str:
    if m.is_critical:
        return "Out of stock"
    if m.is_low:
        return "Low"
    return "OK"
