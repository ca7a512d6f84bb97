"""PySide6 tray app and control panel."""
