import json

import pytest
import requests

from bookmarksync.exceptions import StorageException
from bookmarksync.storage import HttpStorage, JsonFileStorage, MemoryStorage, StorageAreas


class FakeResponse:
    def __init__(self, status_code, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("no body")
        return self._body


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)

    def put(self, url, **kwargs):
        return self._next("PUT", url, **kwargs)


def test_json_file_storage_round_trip(tmp_path):
    path = tmp_path / "nested" / "local.json"
    storage = JsonFileStorage(path)

    assert storage.get("missing") is None
    storage.set("bookmarkSnapshot", {"kind": "plain"})
    storage.set("other", "value")

    assert JsonFileStorage(path).get("bookmarkSnapshot") == {"kind": "plain"}
    assert json.loads(path.read_text(encoding="utf-8")) == {"bookmarkSnapshot": {"kind": "plain"}, "other": "value"}
    assert not list(path.parent.glob("*.tmp"))


def test_json_file_storage_corrupt_file(tmp_path):
    path = tmp_path / "local.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StorageException):
        JsonFileStorage(path).get("anything")


def test_areas_read_in_order_and_write_everywhere():
    local, sync = MemoryStorage(), MemoryStorage({"key": "from-sync"})
    areas = StorageAreas({"local": local, "sync": sync})

    assert areas.get_item("key", ["local", "sync"]) == "from-sync"
    assert areas.get_item("key") is None

    areas.set_item("key", "both", ["local", "sync"])
    assert local.get("key") == sync.get("key") == "both"
    assert areas.get_item("key", "local") == "both"


def test_areas_unavailable():
    with pytest.raises(StorageException, match="unavailable"):
        StorageAreas({"local": MemoryStorage()}).get_item("key", "sync")


def test_http_get_and_absent_key():
    session = FakeSession([FakeResponse(200, {"value": {"kind": "plain"}}), FakeResponse(404)])
    storage = HttpStorage("127.0.0.1:5000", "alice", session=session, backoff=0)

    assert storage.get("bookmarkSnapshot") == {"kind": "plain"}
    assert storage.get("missing") is None
    assert session.calls[0][1] == "http://127.0.0.1:5000/storage/alice/bookmarkSnapshot"


def test_http_put_sends_value():
    session = FakeSession([FakeResponse(201)])
    HttpStorage("http://sync.test", "alice", session=session, backoff=0).set("key", {"a": 1})

    method, url, kwargs = session.calls[0]
    assert method == "PUT"
    assert url == "http://sync.test/storage/alice/key"
    assert kwargs["json"] == {"value": {"a": 1}}


def test_http_retries_transient_failures():
    session = FakeSession([
        requests.exceptions.ConnectionError("down"),
        FakeResponse(503),
        FakeResponse(200, {"value": "ok"}),
    ])

    assert HttpStorage("sync.test", "alice", session=session, backoff=0).get("key") == "ok"
    assert len(session.calls) == 3


def test_http_gives_up():
    session = FakeSession([requests.exceptions.ConnectionError("down")] * 3)
    storage = HttpStorage("sync.test", "alice", session=session, retries=3, backoff=0)

    with pytest.raises(StorageException):
        storage.get("key")
    assert len(session.calls) == 3


def test_http_client_errors_are_not_retried():
    session = FakeSession([FakeResponse(403)])

    with pytest.raises(StorageException, match="status=403"):
        HttpStorage("sync.test", "alice", session=session, backoff=0).set("key", "v")
    assert len(session.calls) == 1


def test_json_file_storage_unserializable_value(tmp_path):
    path = tmp_path / "local.json"
    storage = JsonFileStorage(path)
    storage.set("kept", "value")

    with pytest.raises(StorageException):
        storage.set("broken", object())

    assert storage.get("kept") == "value"
    assert storage.get("broken") is None
    assert not list(tmp_path.glob("*.tmp"))


def test_http_non_object_body():
    session = FakeSession([FakeResponse(200, ["not", "an", "object"])])

    with pytest.raises(StorageException, match="expected an object"):
        HttpStorage("sync.test", "alice", session=session, backoff=0).get("key")
