"""Control panel window: start, stop and feed the live context."""
from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import QHBoxLayout, QLabel, QPushButton, QVBoxLayout, QWidget

from codelink.common.models import EngineStatus

BUTTON_STYLE = """
    QPushButton {
        background-color: rgba(40, 40, 40, 230);
        color: #FFFFFF;
        border: 1px solid rgba(16, 163, 127, 0.4);
        border-radius: 6px;
        padding: 6px 10px;
        font-family: 'Segoe UI', sans-serif;
        font-size: 9pt;
    }
    QPushButton:hover { background-color: rgba(16, 163, 127, 0.25); }
    QPushButton:disabled { color: #777777; border-color: rgba(120, 120, 120, 0.3); }
"""


class ControlPanel(QWidget):
    """Small always-on-top panel mirroring the engine's state."""

    start_requested = Signal()
    structure_requested = Signal()
    stop_requested = Signal()
    export_requested = Signal()

    def __init__(self):
        super().__init__()
        self.setWindowTitle("CodeLink")
        self.setWindowFlags(Qt.WindowType.WindowStaysOnTopHint | Qt.WindowType.Tool)
        self.setFixedSize(360, 220)
        self.setStyleSheet("QWidget { background-color: rgba(22, 22, 22, 240); }")
        self.setup_ui()
        self.set_status(EngineStatus(is_initialized=False, state="uninitialized"))

    def setup_ui(self):
        layout = QVBoxLayout()
        layout.setContentsMargins(12, 12, 12, 12)
        layout.setSpacing(8)

        title = QLabel("CodeLink Live Context")
        title.setStyleSheet("""
            QLabel {
                color: #10A37F;
                font-family: 'Segoe UI', sans-serif;
                font-size: 12pt;
                font-weight: bold;
            }
        """)
        layout.addWidget(title)

        self.status_label = QLabel()
        self.status_label.setStyleSheet("QLabel { color: #FFFFFF; font-size: 9pt; }")
        layout.addWidget(self.status_label)

        self.message_label = QLabel()
        self.message_label.setWordWrap(True)
        self.message_label.setStyleSheet("QLabel { color: #BBBBBB; font-size: 8pt; }")
        layout.addWidget(self.message_label, stretch=1)

        row = QHBoxLayout()
        self.start_button = self._button("Start", self.start_requested)
        self.structure_button = self._button("Send Structure", self.structure_requested)
        self.stop_button = self._button("Stop", self.stop_requested)
        for button in (self.start_button, self.structure_button, self.stop_button):
            row.addWidget(button)
        layout.addLayout(row)

        self.export_button = self._button("Export Context...", self.export_requested)
        layout.addWidget(self.export_button)

        self.setLayout(layout)

    def _button(self, text: str, signal) -> QPushButton:
        button = QPushButton(text)
        button.setStyleSheet(BUTTON_STYLE)
        button.clicked.connect(signal.emit)
        return button

    def set_status(self, status: EngineStatus):
        if status.is_initialized:
            self.status_label.setText(
                f"Active: {status.project} ({status.total_files} files)"
            )
        else:
            self.status_label.setText("Live context is not running")
        self.start_button.setEnabled(not status.is_initialized)
        self.structure_button.setEnabled(status.is_initialized)
        self.stop_button.setEnabled(status.is_initialized)
        self.export_button.setEnabled(status.is_initialized)

    def show_message(self, message: Optional[str]):
        self.message_label.setText(message or "")

    def set_busy(self):
        """Disable every action until the next ``set_status``."""
        for button in (self.start_button, self.structure_button, self.stop_button, self.export_button):
            button.setEnabled(False)
