import json

from src.magister.session import EXTENSION_KEY, SessionStore, build_snapshot

STATE = {
    "cookies": [{"name": "Magister.Session", "value": "abc", "domain": "x.magister.net"}],
    "origins": [{"origin": "https://x.magister.net", "localStorage": []}],
}


def test_save_then_load_round_trip(tmp_path):
    store = SessionStore(tmp_path / "auth.json")
    assert store.save(build_snapshot(STATE, 4321, "eyJtoken"))

    snapshot = store.load()

    assert snapshot is not None
    assert snapshot.storage_state == STATE
    assert snapshot.extension.subject_id == 4321
    assert snapshot.extension.bearer_token == "eyJtoken"


def test_saved_file_keeps_storage_state_at_top_level(tmp_path):
    path = tmp_path / "auth.json"
    SessionStore(path).save(build_snapshot(STATE, 4321, None))

    data = json.loads(path.read_text())

    assert data["cookies"] == STATE["cookies"]
    assert data[EXTENSION_KEY]["subjectId"] == 4321
    assert data[EXTENSION_KEY]["bearerToken"] is None
    assert "savedAt" in data[EXTENSION_KEY]


def test_missing_file_loads_as_absent(tmp_path):
    assert SessionStore(tmp_path / "auth.json").load() is None


def test_corrupt_file_loads_as_absent(tmp_path):
    path = tmp_path / "auth.json"
    path.write_text("]]")
    assert SessionStore(path).load() is None


def test_state_without_extension_is_not_partially_restored(tmp_path):
    path = tmp_path / "auth.json"
    path.write_text(json.dumps(STATE))
    assert SessionStore(path).load() is None


def test_invalid_extension_loads_as_absent(tmp_path):
    path = tmp_path / "auth.json"
    path.write_text(json.dumps({**STATE, EXTENSION_KEY: {"subjectId": "not-a-number"}}))
    assert SessionStore(path).load() is None


def test_save_failure_returns_false(tmp_path):
    path = tmp_path / "auth.json"
    path.mkdir()
    assert SessionStore(path).save(build_snapshot(STATE, 1, None)) is False


def test_clear_removes_file(tmp_path):
    path = tmp_path / "auth.json"
    store = SessionStore(path)
    store.save(build_snapshot(STATE, 1, None))

    store.clear()
    store.clear()

    assert not path.exists()
    assert store.load() is None
