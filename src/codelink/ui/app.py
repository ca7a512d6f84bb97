"""Main GUI application coordinator"""
import asyncio
import signal
import sys
from concurrent.futures import Future
from threading import Thread
from typing import Any, Coroutine, Optional

# Import pynput-dependent core before PySide6 to avoid shibokensupport/six conflict
from codelink.core.app import App

from PySide6.QtCore import QObject, QTimer, Signal, Slot
from PySide6.QtGui import QColor, QIcon, QPixmap
from PySide6.QtWidgets import QApplication, QFileDialog, QMenu, QMessageBox, QSystemTrayIcon

from codelink.core.config import configure_logging
from codelink.core.errors import UserCancelled
from codelink.host.main import HostRuntime
from codelink.ui.control_panel import ControlPanel


class EngineSignals(QObject):
    """Signals for thread-safe engine results"""
    ready = Signal()
    failed = Signal(str)
    finished = Signal(str, object)
    error = Signal(str, str)


class EngineThread(Thread):
    """Background thread running the browser, engine and control API loop"""

    def __init__(self, runtime: HostRuntime):
        super().__init__(daemon=True)
        self.runtime = runtime
        self.signals = EngineSignals()

    @property
    def is_ready(self) -> bool:
        return self.runtime.started.is_set() and self.runtime.loop is not None

    def run(self):
        """Run the asyncio loop until the runtime exits"""
        try:
            asyncio.run(self._main())
        except Exception as e:
            self.signals.failed.emit(str(e))

    async def _main(self):
        serve = asyncio.create_task(self.runtime.serve())
        while not self.runtime.started.is_set() and not serve.done():
            await asyncio.sleep(0.1)
        if self.runtime.started.is_set():
            self.signals.ready.emit()
        await serve

    def submit(self, operation: str, coro: Coroutine[Any, Any, Any]) -> Future:
        """Schedule ``coro`` on the engine loop; the result comes back as a signal."""
        future = asyncio.run_coroutine_threadsafe(coro, self.runtime.loop)

        def done(f: Future):
            try:
                self.signals.finished.emit(operation, f.result())
            except Exception as e:
                self.signals.error.emit(operation, str(e))

        future.add_done_callback(done)
        return future

    def stop(self):
        if self.runtime.loop is not None:
            self.runtime.loop.call_soon_threadsafe(self.runtime.request_exit)


class HotkeySignals(QObject):
    """Signals for hotkey communication"""
    triggered = Signal()


class CodeLinkApp:
    """Main application coordinator"""

    def __init__(self):
        self.app = QApplication.instance() or QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)  # Keep running when windows close
        self.panel: Optional[ControlPanel] = None

        # Initialize core app (pure Python)
        self.core_app = App()
        self.hotkey = self.core_app.config.get("hotkey", "Ctrl+Alt+L")

        self.engine = EngineThread(HostRuntime(self.core_app))
        self.engine.signals.ready.connect(self.on_engine_ready)
        self.engine.signals.failed.connect(self.on_engine_failed)
        self.engine.signals.finished.connect(self.on_operation_finished)
        self.engine.signals.error.connect(self.on_operation_error)

        # Create hotkey signals
        self.hotkey_signals = HotkeySignals()
        self.hotkey_signals.triggered.connect(self.show_control_panel)

        # Register hotkey
        self.core_app.register_hotkey(self._on_hotkey_triggered)

        self.setup_system_tray()
        self.engine.start()

    def _on_hotkey_triggered(self):
        """Hotkey callback - must be thread-safe"""
        self.hotkey_signals.triggered.emit()

    def setup_system_tray(self):
        """Create system tray icon"""
        pixmap = QPixmap(64, 64)
        pixmap.fill(QColor(16, 163, 127))
        icon = QIcon(pixmap)

        self.tray_icon = QSystemTrayIcon(icon, self.app)
        self.tray_icon.setToolTip(f"CodeLink - {self.hotkey}")

        tray_menu = QMenu()

        open_action = tray_menu.addAction(f"Open Control Panel ({self.hotkey})")
        open_action.triggered.connect(self.show_control_panel)

        tray_menu.addSeparator()

        start_action = tray_menu.addAction("Start Live Context...")
        start_action.triggered.connect(self.start_live_context)
        structure_action = tray_menu.addAction("Send Project Structure")
        structure_action.triggered.connect(self.send_project_structure)
        stop_action = tray_menu.addAction("Stop Live Context")
        stop_action.triggered.connect(self.stop_live_context)

        tray_menu.addSeparator()

        quit_action = tray_menu.addAction("Quit")
        quit_action.triggered.connect(self.quit)

        self.tray_icon.setContextMenu(tray_menu)
        self.tray_icon.activated.connect(self.on_tray_activated)
        self.tray_icon.show()

    def on_tray_activated(self, reason):
        """Handle tray icon clicks"""
        if reason == QSystemTrayIcon.ActivationReason.Trigger:  # Left click
            self.show_control_panel()

    def show_control_panel(self):
        if not self.panel:
            self.panel = ControlPanel()
            self.panel.start_requested.connect(self.start_live_context)
            self.panel.structure_requested.connect(self.send_project_structure)
            self.panel.stop_requested.connect(self.stop_live_context)
            self.panel.export_requested.connect(self.export_context)
        if self.engine.is_ready:
            self.panel.set_status(self.engine.runtime.controller.check_status())
        self.panel.show()
        self.panel.raise_()
        self.panel.activateWindow()

    # -- Engine operations ----------------------------------------------------

    def _submit(self, operation: str, coro) -> bool:
        if not self.engine.is_ready:
            coro.close()
            self._show_message("The browser is still starting, try again in a moment.")
            return False
        if self.panel:
            self.panel.set_busy()
        self.engine.submit(operation, coro)
        return True

    @Slot()
    def start_live_context(self):
        start_dir = self.core_app.config.get("project_root") or ""
        folder = QFileDialog.getExistingDirectory(self.panel, "Select project folder", start_dir)
        if not folder:
            print("Project selection cancelled")
            return
        controller = self.engine.runtime.controller if self.engine.is_ready else None
        if controller is None:
            self._show_message("The browser is still starting, try again in a moment.")
            return
        self._submit("init", controller.init(folder))

    @Slot()
    def send_project_structure(self):
        if self.engine.is_ready:
            self._submit("structure", self.engine.runtime.controller.send_project_structure())

    @Slot()
    def stop_live_context(self):
        if self.engine.is_ready:
            self._submit("stop", self.engine.runtime.controller.stop())

    @Slot()
    def export_context(self):
        if not self.engine.is_ready:
            return
        default = str(self.core_app.default_export_path())
        destination, _ = QFileDialog.getSaveFileName(
            self.panel, "Export context", default, "JSON files (*.json)"
        )
        if destination:
            self._submit("export", self.engine.runtime.controller.export(destination))

    @Slot(str, object)
    def on_operation_finished(self, operation: str, result):
        controller = self.engine.runtime.controller
        status = controller.check_status()
        if self.panel:
            self.panel.set_status(status)

        if operation == "init":
            error = controller.last_error
            if result:
                self._show_message(f"Live context started for {status.project}")
            elif isinstance(error, UserCancelled):
                print("Project selection cancelled")
            elif error is not None:
                self._show_error("Failed to load project", str(error))
            else:
                self._show_message("Live context already initialized")
        elif operation == "structure":
            self._show_message("Project structure sent" if result else "Could not write to the composer")
        elif operation == "stop":
            self._show_message("Live context stopped")
        elif operation == "export":
            self._show_message(f"Context file saved: {result}")

    @Slot(str, str)
    def on_operation_error(self, operation: str, error_text: str):
        if self.panel:
            self.panel.set_status(self.engine.runtime.controller.check_status())
        self._show_error(f"{operation.capitalize()} failed", error_text)

    @Slot()
    def on_engine_ready(self):
        print("* Chat browser ready")
        if self.panel:
            self.panel.set_status(self.engine.runtime.controller.check_status())

    @Slot(str)
    def on_engine_failed(self, error_text: str):
        print(f"ERROR: {error_text}")
        QMessageBox.critical(self.panel, "CodeLink", f"The browser host stopped: {error_text}")

    def _show_message(self, message: str):
        print(message)
        if self.panel:
            self.panel.show_message(message)

    def _show_error(self, title: str, message: str):
        print(f"ERROR: {message}")
        if self.panel:
            self.panel.show_message(message)
        QMessageBox.warning(self.panel, title, message)

    def quit(self):
        self.engine.stop()
        self.engine.join(timeout=5)
        if self.core_app.hotkey_manager:
            self.core_app.hotkey_manager.stop()
        self.app.quit()

    def run(self):
        """Start application loop"""
        print("\nCodeLink is running!")
        print(f"   Press {self.hotkey} to open the control panel")
        print("   Press Ctrl+C to exit\n")

        return self.app.exec()


def main():
    """Main entry point for GUI application"""
    configure_logging()

    # Set up signal handler for Ctrl+C
    def signal_handler(sig, frame):
        print("\nShutting down CodeLink...")
        QApplication.quit()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)

    app = CodeLinkApp()

    # Allow Ctrl+C to work by processing events periodically
    timer = QTimer()
    timer.timeout.connect(lambda: None)  # Wake up event loop
    timer.start(100)

    sys.exit(app.run())
