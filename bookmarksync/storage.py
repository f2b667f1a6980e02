import json
import logging
import os
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from pathlib import Path

import requests

from bookmarksync.constants import AREA_LOCAL
from bookmarksync.exceptions import StorageException


logger = logging.getLogger(__name__)


class StorageBackend(ABC):
    """Key/value store a payload is written to verbatim."""

    @abstractmethod
    def get(self, key: str):
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    def set(self, key: str, value) -> None:
        pass


class MemoryStorage(StorageBackend):
    def __init__(self, initial: dict = None):
        self.items = dict(initial or {})

    def get(self, key: str):
        return self.items.get(key)

    def set(self, key: str, value) -> None:
        self.items[key] = value


class JsonFileStorage(StorageBackend):
    """All keys in a single JSON document, replaced atomically on write."""

    def __init__(self, path):
        self.path = Path(os.path.expanduser(str(path)))
        self._lock = threading.Lock()

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageException(f"Unable to read storage file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageException(f"Storage file {self.path} does not hold an object")
        return data

    def get(self, key: str):
        return self._read().get(key)

    def set(self, key: str, value) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
            except OSError as e:
                raise StorageException(f"Unable to write storage file {self.path}: {e}") from e
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except (OSError, TypeError, ValueError) as e:
                os.unlink(tmp_path)
                raise StorageException(f"Unable to write storage file {self.path}: {e}") from e


class HttpStorage(StorageBackend):
    """Key/value store exposed over HTTP.

    GET /storage/<namespace>/<key> answers 200 with {"value": ...} or 404,
    PUT /storage/<namespace>/<key> takes {"value": ...}.
    """

    RETRY_CODES = (502, 503, 504)

    def __init__(self, server: str, namespace: str, session: requests.Session = None,
                 retries: int = 5, backoff: float = 1.0, timeout: float = 10.0):
        self.server = server if server.startswith("http") else f"http://{server}"
        self.namespace = namespace
        self.session = session or requests.Session()
        self.retries = retries
        self.backoff = backoff
        self.timeout = timeout

    def _url(self, key: str) -> str:
        return f"{self.server.rstrip('/')}/storage/{self.namespace}/{key}"

    def get(self, key: str):
        response = self._retry_request(self.session.get, self._url(key), expected_codes=(200, 404))
        if response.status_code == 404:
            return None
        try:
            body = response.json()
        except ValueError as e:
            raise StorageException(f"Malformed response for {key}: {e}") from e
        if not isinstance(body, dict):
            raise StorageException(f"Malformed response for {key}: expected an object")
        return body.get("value")

    def set(self, key: str, value) -> None:
        self._retry_request(self.session.put, self._url(key), expected_codes=(200, 201),
                            json={"value": value})

    def _retry_request(self, method, url, expected_codes=(200,), **kwargs):
        backoff = self.backoff
        last_error = None

        for i in range(self.retries):
            logger.debug("HTTP,%s,try=%d/%d", url, i + 1, self.retries)
            try:
                response = method(url, timeout=self.timeout, **kwargs)
            except requests.exceptions.RequestException as e:
                last_error = e
                logger.debug("HTTP,%s,exception=%s,backoff_s=%.1f", url, e, backoff)
            else:
                status = response.status_code
                if status in expected_codes:
                    return response
                last_error = f"status={status}"
                if status not in self.RETRY_CODES:
                    break
                logger.debug("HTTP,%s,status=%d,backoff_s=%.1f", url, status, backoff)

            if i < self.retries - 1:
                time.sleep(backoff)
                backoff *= 2

        logger.warning("HTTP,%s,FAIL,%s", url, last_error)
        raise StorageException(f"Storage request failed: {url} ({last_error})")


class StorageAreas(object):
    """Named storage areas, e.g. a device-local one and a synchronized one."""

    def __init__(self, areas: dict):
        self.areas = dict(areas)

    def _resolve(self, areas) -> list:
        names = [areas] if isinstance(areas, str) else list(areas or [AREA_LOCAL])
        resolved = [self.areas[name] for name in names if self.areas.get(name) is not None]
        if not resolved:
            raise StorageException("Storage is unavailable")
        return resolved

    def area(self, name: str) -> StorageBackend:
        return self._resolve(name)[0]

    def get_item(self, key: str, areas=None):
        """First value found for key, searching the areas in order."""
        for storage in self._resolve(areas):
            value = storage.get(key)
            if value is not None:
                return value
        return None

    def set_item(self, key: str, value, areas=None) -> None:
        for storage in self._resolve(areas):
            storage.set(key, value)
