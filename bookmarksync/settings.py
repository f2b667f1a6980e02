import logging
from dataclasses import dataclass
from typing import Optional

from bookmarksync.constants import AREA_LOCAL, KEY_SOURCE_PLATFORM, KEY_SOURCE_USER, SYNC_SETTINGS_STORAGE_KEY
from bookmarksync.models import EncryptionContext
from bookmarksync.storage import StorageAreas


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncSettings:
    enabled: bool = False
    key_source: str = KEY_SOURCE_PLATFORM
    secret: Optional[str] = None

    def encryption_context(self) -> Optional[EncryptionContext]:
        """None while synchronization is off, so snapshots are stored plain."""
        if not self.enabled:
            return None
        if self.secret and self.secret.strip():
            return EncryptionContext.user(self.secret.strip())
        return EncryptionContext.platform()

    def to_dict(self) -> dict:
        value = {"enabled": self.enabled, "keySource": self.key_source}
        if self.secret:
            value["secret"] = self.secret
        return value

    def __repr__(self):
        return f"SyncSettings(enabled={self.enabled!r}, key_source={self.key_source!r})"


def _normalize_secret(value) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_settings(value) -> SyncSettings:
    """Coerce a stored or user supplied settings record.

    A user key source without a usable secret falls back to the platform
    secret, and the secret is only kept for the user key source.
    """
    if isinstance(value, SyncSettings):
        value = value.to_dict()
    if not isinstance(value, dict):
        return SyncSettings()

    secret = _normalize_secret(value.get("secret"))
    key_source = KEY_SOURCE_USER if secret and value.get("keySource") == KEY_SOURCE_USER else KEY_SOURCE_PLATFORM
    return SyncSettings(
        enabled=value.get("enabled") is True,
        key_source=key_source,
        secret=secret if key_source == KEY_SOURCE_USER else None,
    )


def load_sync_settings(areas: StorageAreas) -> SyncSettings:
    stored = areas.get_item(SYNC_SETTINGS_STORAGE_KEY, AREA_LOCAL)
    if not stored:
        return SyncSettings()
    return normalize_settings(stored)


def save_sync_settings(areas: StorageAreas, settings: SyncSettings) -> SyncSettings:
    normalized = normalize_settings(settings)
    areas.set_item(SYNC_SETTINGS_STORAGE_KEY, normalized.to_dict(), AREA_LOCAL)
    logger.debug("Saved %r", normalized)
    return normalized
