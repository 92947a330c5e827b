from PySide6.QtWidgets import QTableView


class TableView(QTableView):
    """Read-only, single-row-selection table used by every page."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setAlternatingRowColors(True)
        self.setSelectionBehavior(QTableView.SelectRows)
        self.setSelectionMode(QTableView.SingleSelection)
        self.setEditTriggers(QTableView.NoEditTriggers)
        self.setWordWrap(False)
        self.verticalHeader().setVisible(False)
        self.horizontalHeader().setStretchLastSection(True)

    def selected_row(self) -> int:
        """Source row of the current selection, or -1."""
        sel = self.selectionModel()
        if sel is None:
            return -1
        rows = sel.selectedRows()
        return rows[0].row() if rows else -1
