import json

import pytest

from bookmarksync.cli import main
from bookmarksync.storage import JsonFileStorage


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("BOOKMARKSYNC_STORAGE_DIR", "BOOKMARKSYNC_SERVER", "BOOKMARKSYNC_NAMESPACE", "BOOKMARKSYNC_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def test_push_and_pull_with_user_secret(tmp_path, snapshot, capsys):
    storage_dir = tmp_path / "store"
    source = tmp_path / "snapshot.json"
    source.write_text(json.dumps(snapshot.to_dict()), encoding="utf-8")
    output = tmp_path / "out.json"

    assert main(["--storage-dir", str(storage_dir), "settings", "--enable", "--secret", "pw"]) == 0
    assert json.loads(capsys.readouterr().out) == {"enabled": True, "keySource": "user"}

    assert main(["--storage-dir", str(storage_dir), "push", str(source)]) == 0
    stored = JsonFileStorage(storage_dir / "local.json").get("bookmarkSnapshot")
    assert stored["kind"] == "encrypted"

    assert main(["--storage-dir", str(storage_dir), "pull", "--output", str(output)]) == 0
    assert json.loads(output.read_text(encoding="utf-8")) == snapshot.to_dict()


def test_pull_to_stdout_in_plain_mode(tmp_path, snapshot, capsys, monkeypatch):
    monkeypatch.setenv("BOOKMARKSYNC_STORAGE_DIR", str(tmp_path))
    source = tmp_path / "snapshot.json"
    source.write_text(json.dumps(snapshot.to_dict()), encoding="utf-8")

    assert main(["push", str(source)]) == 0
    assert main(["pull"]) == 0
    assert json.loads(capsys.readouterr().out) == snapshot.to_dict()


def test_pull_with_mismatched_settings_fails(tmp_path, snapshot):
    storage_dir = str(tmp_path)
    source = tmp_path / "snapshot.json"
    source.write_text(json.dumps(snapshot.to_dict()), encoding="utf-8")

    main(["--storage-dir", storage_dir, "settings", "--enable", "--secret", "pw"])
    main(["--storage-dir", storage_dir, "push", str(source)])
    main(["--storage-dir", storage_dir, "settings", "--platform"])

    assert main(["--storage-dir", storage_dir, "pull"]) == 1


def test_push_missing_file(tmp_path):
    assert main(["--storage-dir", str(tmp_path), "push", str(tmp_path / "missing.json")]) == 1
