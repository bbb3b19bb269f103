import json
from pathlib import Path

import pytest

from conftest import FakeContext, FakePage
from models import FingerprintConfig, SavedState
from session_store import (
    get_fingerprint_path,
    get_session_info,
    get_storage_state,
    load_saved_state,
    save_session_state,
)


def _saved_state() -> SavedState:
    return SavedState(
        fingerprint=FingerprintConfig(
            device_name="Desktop Edge",
            locale="de-DE",
            timezone_id="Europe/Berlin",
            color_scheme="dark",
        ),
        google_domain="https://www.google.co.uk",
    )


def test_fingerprint_path_is_derived_from_state_file(tmp_path) -> None:
    assert get_fingerprint_path(tmp_path / "browser-state.json") == tmp_path / "browser-state-fingerprint.json"
    assert get_fingerprint_path("state/browser-state-2.json") == Path("state/browser-state-2-fingerprint.json")
    assert get_fingerprint_path(tmp_path / "session") == tmp_path / "session-fingerprint"


def test_load_returns_empty_state_when_nothing_saved(tmp_path) -> None:
    state = load_saved_state(tmp_path / "browser-state.json")

    assert state.fingerprint is None
    assert state.google_domain is None
    assert get_storage_state(tmp_path / "browser-state.json") is None


def test_corrupted_sidecar_is_ignored_with_warning(tmp_path, log_messages) -> None:
    state_file = tmp_path / "browser-state.json"
    get_fingerprint_path(state_file).write_text("{not json")

    state = load_saved_state(state_file)

    assert state == SavedState()
    assert any("Cannot load fingerprint file" in m for m in log_messages)


def test_sidecar_with_invalid_fields_is_ignored(tmp_path, log_messages) -> None:
    state_file = tmp_path / "browser-state.json"
    get_fingerprint_path(state_file).write_text(json.dumps({"fingerprint": {"deviceName": "Desktop Chrome"}}))

    assert load_saved_state(state_file) == SavedState()
    assert any("Cannot load fingerprint file" in m for m in log_messages)


@pytest.mark.asyncio
async def test_save_then_load_round_trip(tmp_path) -> None:
    state_file = tmp_path / "nested" / "browser-state.json"
    context = FakeContext(FakePage(), {})

    saved = await save_session_state(context, state_file, _saved_state())

    assert saved is True
    assert state_file.exists()
    assert get_storage_state(state_file) == str(state_file)
    assert load_saved_state(state_file) == _saved_state()

    raw = get_fingerprint_path(state_file).read_text()
    assert raw.startswith('{\n  "fingerprint": {\n    "deviceName": "Desktop Edge"')
    assert json.loads(raw)["googleDomain"] == "https://www.google.co.uk"


@pytest.mark.asyncio
async def test_no_save_state_writes_nothing(tmp_path) -> None:
    state_file = tmp_path / "browser-state.json"

    saved = await save_session_state(FakeContext(FakePage(), {}), state_file, _saved_state(), no_save_state=True)

    assert saved is False
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_snapshot_failure_is_logged_not_raised(tmp_path, log_messages) -> None:
    context = FakeContext(FakePage(), {})
    context.fail_storage_state = True

    saved = await save_session_state(context, tmp_path / "browser-state.json", _saved_state())

    assert saved is False
    assert any("Failed to save browser state" in m for m in log_messages)


@pytest.mark.asyncio
async def test_session_info(tmp_path) -> None:
    state_file = tmp_path / "browser-state.json"
    assert get_session_info(state_file) is None

    await save_session_state(FakeContext(FakePage(), {}), state_file, _saved_state())
    info = get_session_info(state_file)

    assert info["cookie_count"] == 1
    assert info["google_domain"] == "https://www.google.co.uk"
    assert info["device_name"] == "Desktop Edge"
    assert info["timezone_id"] == "Europe/Berlin"
