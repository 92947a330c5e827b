# inventory_dashboard/modules/login/view.py
from __future__ import annotations

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QFormLayout,
    QLineEdit, QDialogButtonBox, QLabel, QCheckBox, QWidget
)


class LoginDialog(QDialog):
    """
    Sign-in dialog (UI-only).

    OK does not close the dialog: it emits `submitted(email, password)` and
    the controller calls accept() once the backend agrees.

    Helpers for the controller:
      - set_error(msg: str | None)
      - set_info(msg: str | None)
      - show_busy(is_busy: bool)
    """

    submitted = Signal(str, str)

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self.setWindowTitle("Sign in")
        self.setModal(True)

        root = QVBoxLayout(self)
        root.setContentsMargins(12, 12, 12, 12)
        root.setSpacing(8)

        self.lbl_info = QLabel()
        self.lbl_info.setWordWrap(True)
        self.lbl_info.setVisible(False)
        self.lbl_info.setStyleSheet("color:#2b6;")
        root.addWidget(self.lbl_info)

        self.lbl_error = QLabel()
        self.lbl_error.setWordWrap(True)
        self.lbl_error.setVisible(False)
        self.lbl_error.setStyleSheet(
            "QLabel {background:#fcebea; color:#b10000; border:1px solid #f5c6cb; border-radius:6px; padding:6px;}"
        )
        root.addWidget(self.lbl_error)

        form = QFormLayout()
        form.setLabelAlignment(Qt.AlignRight)
        form.setFormAlignment(Qt.AlignLeft | Qt.AlignTop)
        form.setContentsMargins(0, 0, 0, 0)

        self.email = QLineEdit()
        self.email.setPlaceholderText("you@company.com")
        self.email.setClearButtonEnabled(True)
        form.addRow("Email", self.email)

        pw_row = QHBoxLayout()
        self.password = QLineEdit()
        self.password.setEchoMode(QLineEdit.Password)
        self.password.setPlaceholderText("Your password")
        self.password.setClearButtonEnabled(True)
        pw_row.addWidget(self.password, 1)

        self.chk_show = QCheckBox("Show")
        self.chk_show.toggled.connect(self._toggle_password_visibility)
        pw_row.addWidget(self.chk_show, 0, Qt.AlignRight)

        pw_container = QWidget()
        pw_container.setLayout(pw_row)
        form.addRow("Password", pw_container)

        root.addLayout(form)

        self.buttons = QDialogButtonBox(QDialogButtonBox.Ok | QDialogButtonBox.Cancel)
        self.buttons.button(QDialogButtonBox.Ok).setText("Sign in")
        self.buttons.accepted.connect(self._emit_submitted)
        self.buttons.rejected.connect(self.reject)
        root.addWidget(self.buttons)

        self.email.setFocus()

    # ---------- Public API ----------

    def get_values(self) -> tuple[str, str]:
        """(email, password); the password is never trimmed."""
        return self.email.text().strip(), self.password.text()

    def set_error(self, msg: str | None) -> None:
        if msg:
            self.lbl_error.setText(msg)
            self.lbl_error.setVisible(True)
        else:
            self.lbl_error.clear()
            self.lbl_error.setVisible(False)

    def set_info(self, msg: str | None) -> None:
        if msg:
            self.lbl_info.setText(msg)
            self.lbl_info.setVisible(True)
        else:
            self.lbl_info.clear()
            self.lbl_info.setVisible(False)

    def show_busy(self, is_busy: bool) -> None:
        for w in (self.email, self.password, self.chk_show, self.buttons):
            w.setEnabled(not is_busy)
        self.set_info("Signing in…" if is_busy else None)

    # ---------- Internals ----------

    def _emit_submitted(self) -> None:
        email, password = self.get_values()
        self.submitted.emit(email, password)

    def _toggle_password_visibility(self, checked: bool) -> None:
        self.password.setEchoMode(QLineEdit.Normal if checked else QLineEdit.Password)
