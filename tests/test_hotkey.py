from __future__ import annotations

import pytest

import hotkey
from hotkey import PushToTalkHotkey, normalize_key_name


class _Key:
    def __init__(self, name: str) -> None:
        self._name = name

    def __str__(self) -> str:
        return self._name


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("Key.alt_r", "Key.alt_r"), ("alt_r", "Key.alt_r"), (" f8 ", "Key.f8"), ("a", "'a'")],
)
def test_normalize_key_name(raw: str, expected: str) -> None:
    assert normalize_key_name(raw) == expected


def test_auto_repeat_presses_fire_once() -> None:
    ptt = PushToTalkHotkey("Key.alt_r")
    events: list[str] = []

    for _ in range(3):
        ptt.handle_press(_Key("Key.alt_r"), lambda: events.append("press"))
    ptt.handle_release(_Key("Key.alt_r"), lambda: events.append("release"))
    ptt.handle_release(_Key("Key.alt_r"), lambda: events.append("release"))

    assert events == ["press", "release"]
    assert ptt.is_held is False


def test_other_keys_are_ignored() -> None:
    ptt = PushToTalkHotkey("alt_r")
    events: list[str] = []

    ptt.handle_press(_Key("Key.shift"), lambda: events.append("press"))
    ptt.handle_release(_Key("Key.shift"), lambda: events.append("release"))

    assert events == []


def test_start_raises_without_pynput(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(hotkey, "keyboard", None)
    with pytest.raises(RuntimeError, match="pynput is not installed"):
        PushToTalkHotkey().start(lambda: None, lambda: None)
