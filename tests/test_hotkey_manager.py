"""Tests for hotkey parsing and key tracking (needs a pynput backend)."""
import pytest

pytest.importorskip("pynput.keyboard")

from pynput.keyboard import Key, KeyCode  # noqa: E402

from codelink.core.hotkey_manager import HotkeyManager, normalize_key, parse_hotkey  # noqa: E402


class TestParseHotkey:
    def test_default_combo(self):
        assert parse_hotkey("Ctrl+Alt+L") == frozenset({"ctrl", "alt", "l"})

    def test_spacing_and_case(self):
        assert parse_hotkey(" shift + ctrl + K ") == frozenset({"shift", "ctrl", "k"})

    @pytest.mark.parametrize("combo", ["Ctrl+Alt", "Ctrl+A+B", "Ctrl+F12", ""])
    def test_invalid(self, combo):
        with pytest.raises(ValueError):
            parse_hotkey(combo)


class TestKeyTracking:
    def test_normalize_key(self):
        assert normalize_key(Key.ctrl_r) == "ctrl"
        assert normalize_key(KeyCode.from_char("L")) == "l"
        assert normalize_key(KeyCode.from_vk(76)) == "l"
        assert normalize_key(Key.space) is None

    def test_callback_fires_on_full_combo(self):
        calls = []
        manager = HotkeyManager(lambda: calls.append(1), "Ctrl+Alt+L")

        manager.on_press(Key.ctrl_l)
        manager.on_press(KeyCode.from_char("l"))
        assert calls == []
        manager.on_press(Key.alt_l)
        assert calls == [1]

        manager.on_release(Key.alt_l)
        assert "alt" not in manager.current_keys
