"""Global hotkey registration and management"""
import threading
from typing import Callable, FrozenSet, Optional

from pynput import keyboard
from pynput.keyboard import Key

MODIFIERS = {
    "ctrl": (Key.ctrl_l, Key.ctrl_r),
    "alt": (Key.alt_l, Key.alt_r, Key.alt_gr),
    "shift": (Key.shift_l, Key.shift_r),
}


def parse_hotkey(combo: str) -> FrozenSet[str]:
    """``"Ctrl+Alt+L"`` -> ``{"ctrl", "alt", "l"}``.

    Exactly one non-modifier key is required.
    """
    parts = {part.strip().lower() for part in combo.split("+") if part.strip()}
    keys = parts - set(MODIFIERS)
    if len(keys) != 1 or len(next(iter(keys))) != 1:
        raise ValueError(f"Unsupported hotkey: {combo!r}")
    return frozenset(parts)


def normalize_key(key) -> Optional[str]:
    """Map a pynput key to the names used by ``parse_hotkey``."""
    for name, variants in MODIFIERS.items():
        if key in variants:
            return name
    char = getattr(key, "char", None)
    if char:
        return char.lower()
    vk = getattr(key, "vk", None)
    if vk is not None and 65 <= vk <= 90:  # A-Z virtual key codes
        return chr(vk).lower()
    return None


class HotkeyManager:
    """Manages global hotkey registration"""

    def __init__(self, callback: Callable[[], None], combo: str = "Ctrl+Alt+L"):
        """
        Initialize hotkey manager

        Args:
            callback: Function to call when hotkey is pressed (must be thread-safe)
            combo: Key combination such as "Ctrl+Alt+L"
        """
        self.callback = callback
        self.combo = combo
        self.required = parse_hotkey(combo)
        self.listener = None
        self.listener_thread = None
        self.current_keys = set()
        self._running = False

    def on_press(self, key):
        """Track pressed keys and check for hotkey combination"""
        name = normalize_key(key)
        if name is None:
            return
        self.current_keys.add(name)
        if self.required <= self.current_keys:
            self.callback()

    def on_release(self, key):
        """Remove released keys from tracking"""
        name = normalize_key(key)
        if name is not None:
            self.current_keys.discard(name)

    def register(self):
        """Start listening for the configured combination"""
        def listen():
            """Start listener in background thread"""
            try:
                with keyboard.Listener(
                    on_press=self.on_press,
                    on_release=self.on_release
                ) as listener:
                    self.listener = listener
                    self._running = True
                    listener.join()
            except Exception as e:
                print(f"ERROR: Listener error: {e}")
                self._running = False

        self.listener_thread = threading.Thread(target=listen, daemon=True)
        self.listener_thread.start()
        print(f"* Hotkey registered: {self.combo}")

    def stop(self):
        """Stop the hotkey listener"""
        self._running = False
        if self.listener:
            self.listener.stop()
