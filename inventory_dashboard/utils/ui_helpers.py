from PySide6.QtWidgets import QWidget, QMessageBox, QStatusBar

NOTIFY_TIMEOUT_MS = 6000


def error(parent: QWidget, title: str, text: str):
    QMessageBox.critical(parent, title, text)


def toast(bar: QStatusBar, level: str, text: str, timeout_ms: int = NOTIFY_TIMEOUT_MS):
    """Transient, self-dismissing notification in the status bar."""
    prefix = {"error": "Error: ", "warning": "Warning: "}.get(level, "")
    color = {"error": "#b10000", "warning": "#8a6d00"}.get(level, "#2b6")
    bar.setStyleSheet(f"QStatusBar {{color:{color};}}")
    bar.showMessage(f"{prefix}{text}", timeout_ms)
