import logging
import secrets
import threading

from bookmarksync.constants import PLATFORM_SECRET_BYTES, PLATFORM_SECRET_STORAGE_KEY
from bookmarksync.storage import StorageBackend


logger = logging.getLogger(__name__)


class PlatformSecretStore:
    """Device-bound random secret used when the user gives no passphrase.

    The secret is created once and then only read. The lock serializes the
    read-then-write sequence inside one process; two processes starting at
    the same time can still each write their own secret (last writer wins).
    """

    def __init__(self, storage: StorageBackend, key: str = PLATFORM_SECRET_STORAGE_KEY):
        self.storage = storage
        self.key = key
        self._secret = None
        self._lock = threading.Lock()

    def get_or_create(self) -> str:
        with self._lock:
            if self._secret is None:
                self._secret = self._load() or self._create()
            return self._secret

    def _load(self):
        value = self.storage.get(self.key)
        if isinstance(value, str) and value:
            return value
        if value is not None:
            logger.warning("Ignoring malformed platform secret stored under %s", self.key)
        return None

    def _create(self) -> str:
        secret = secrets.token_urlsafe(PLATFORM_SECRET_BYTES)
        self.storage.set(self.key, secret)
        logger.info("Created platform secret under %s", self.key)
        return secret
