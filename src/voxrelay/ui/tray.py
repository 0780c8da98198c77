"""
System tray icon and menu using PySide6.

Shows the recording status as a colored dot and offers a Quit action.
"""

from typing import Dict, Optional

from PySide6.QtCore import QObject, Qt, Signal
from PySide6.QtGui import QAction, QBrush, QColor, QIcon, QPainter, QPen, QPixmap
from PySide6.QtWidgets import QMenu, QSystemTrayIcon

from voxrelay import __app_name__
from voxrelay.core.session.status import RecordingStatus

STATUS_COLORS: Dict[RecordingStatus, str] = {
    RecordingStatus.IDLE: "#4CAF50",
    RecordingStatus.RECORDING: "#F44336",
    RecordingStatus.PROCESSING: "#FF9800",
    RecordingStatus.ERROR: "#9E9E9E",
}

STATUS_TEXTS: Dict[RecordingStatus, str] = {
    RecordingStatus.IDLE: "Ready - hold or double-click the shortcut key",
    RecordingStatus.RECORDING: "Recording... (Esc to cancel)",
    RecordingStatus.PROCESSING: "Processing... (Esc to cancel)",
    RecordingStatus.ERROR: "Error",
}


class SystemTray(QObject):
    """
    Signals:
        quit_requested: Emitted when user clicks "Quit"
    """

    quit_requested = Signal()

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)

        self._status = RecordingStatus.IDLE
        self._message = ""
        self._tray_icon = QSystemTrayIcon(self)
        self._menu = QMenu()

        self._status_action = QAction(STATUS_TEXTS[self._status], self._menu)
        self._status_action.setEnabled(False)
        self._menu.addAction(self._status_action)

        self._menu.addSeparator()

        quit_action = QAction("Quit", self._menu)
        quit_action.triggered.connect(self.quit_requested.emit)
        self._menu.addAction(quit_action)

        self._tray_icon.setContextMenu(self._menu)
        self._update_icon()
        self._tray_icon.show()

    @property
    def status(self) -> RecordingStatus:
        return self._status

    @property
    def status_text(self) -> str:
        return self._status_action.text()

    def set_status(self, status: RecordingStatus) -> None:
        self._status = status
        if status is not RecordingStatus.ERROR:
            self._message = ""
        self._refresh()

    def show_error(self, message: str) -> None:
        self._message = message
        self._refresh()

    def _refresh(self) -> None:
        text = STATUS_TEXTS.get(self._status, "Unknown")
        if self._status is RecordingStatus.ERROR and self._message:
            text = f"Error: {self._message}"
        self._status_action.setText(text)
        self._update_icon()

    def _update_icon(self) -> None:
        size = 22
        pixmap = QPixmap(size, size)
        pixmap.fill(Qt.transparent)

        painter = QPainter(pixmap)
        painter.setRenderHint(QPainter.Antialiasing)

        color = QColor(STATUS_COLORS.get(self._status, "#808080"))
        painter.setBrush(QBrush(color))
        painter.setPen(QPen(color.darker(120), 1))

        margin = 2
        painter.drawEllipse(margin, margin, size - 2 * margin, size - 2 * margin)

        if self._status is RecordingStatus.ERROR:
            painter.setPen(QPen(QColor("#FFFFFF"), 2))
            inner = 6
            painter.drawLine(inner, inner, size - inner, size - inner)
            painter.drawLine(size - inner, inner, inner, size - inner)

        painter.end()

        self._tray_icon.setIcon(QIcon(pixmap))
        self._tray_icon.setToolTip(f"{__app_name__} - {self._status.value.capitalize()}")

    def hide(self) -> None:
        self._tray_icon.hide()
