from PySide6.QtCore import QObject
from PySide6.QtWidgets import QWidget


class BaseModule(QObject):
    """A page of the main window; `close()` releases whatever the page subscribed to."""

    def get_widget(self) -> QWidget:
        raise NotImplementedError

    def close(self) -> None:
        pass
