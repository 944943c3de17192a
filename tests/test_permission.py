from __future__ import annotations

import threading
from unittest.mock import MagicMock, patch

import permission
from permission import SoundDevicePermission


def _request(checker: SoundDevicePermission) -> bool:
    results: list[bool] = []
    done = threading.Event()

    def on_result(granted: bool) -> None:
        results.append(granted)
        done.set()

    checker.request(on_result)
    assert done.wait(2.0)
    return results[0]


@patch("permission.sd")
def test_grant_is_cached(mock_sd: MagicMock) -> None:
    checker = SoundDevicePermission()

    assert _request(checker) is True
    mock_sd.check_input_settings.assert_called_once_with(samplerate=16000, channels=1, dtype="int16")

    results: list[bool] = []
    checker.request(results.append)
    assert results == [True]
    assert mock_sd.check_input_settings.call_count == 1


@patch("permission.sd")
def test_device_check_failure_is_denied_and_retried(mock_sd: MagicMock) -> None:
    mock_sd.check_input_settings.side_effect = RuntimeError("No input device")
    checker = SoundDevicePermission()

    assert _request(checker) is False
    assert _request(checker) is False
    assert mock_sd.check_input_settings.call_count == 2


def test_missing_sounddevice_is_denied(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(permission, "sd", None)
    assert SoundDevicePermission().check() is False
