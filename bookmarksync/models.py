from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from bookmarksync.constants import (
    COMPRESSION_GZIP,
    COMPRESSION_NONE,
    ENCRYPTION_ALGORITHM,
    KEY_SOURCE_PLATFORM,
    KEY_SOURCE_USER,
    KIND_ENCRYPTED,
    KIND_PLAIN,
    PAYLOAD_VERSION,
)
from bookmarksync.exceptions import ConfigurationException, PayloadFormatException


KEY_SOURCES = (KEY_SOURCE_USER, KEY_SOURCE_PLATFORM)
COMPRESSION_METHODS = (COMPRESSION_GZIP, COMPRESSION_NONE)


@dataclass
class Snapshot:
    """Merged and categorized bookmark lists.

    Bookmarks are kept as the JSON objects the browser side produced
    (id, title, url, tags, createdAt, source and category); nothing here
    interprets them.
    """

    merged: List[Dict[str, Any]] = field(default_factory=list)
    categorized: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"merged": list(self.merged), "categorized": list(self.categorized)}

    @classmethod
    def from_dict(cls, value) -> "Snapshot":
        if not isinstance(value, dict):
            raise PayloadFormatException("Bookmark snapshot must be an object")
        merged = value.get("merged") or []
        categorized = value.get("categorized") or []
        if not isinstance(merged, list) or not isinstance(categorized, list):
            raise PayloadFormatException("Bookmark snapshot lists are malformed")
        return cls(merged=list(merged), categorized=list(categorized))


@dataclass(frozen=True)
class EncryptionContext:
    key_source: str
    secret: Optional[str] = None

    def __post_init__(self):
        if self.key_source not in KEY_SOURCES:
            raise ConfigurationException(f"Unknown key source: {self.key_source!r}")

    @classmethod
    def user(cls, secret: str) -> "EncryptionContext":
        return cls(KEY_SOURCE_USER, secret)

    @classmethod
    def platform(cls) -> "EncryptionContext":
        return cls(KEY_SOURCE_PLATFORM)

    def __repr__(self):
        # keep passphrases out of logs and tracebacks
        return f"EncryptionContext(key_source={self.key_source!r})"


@dataclass(frozen=True)
class PlainPayload:
    snapshot: Optional[Snapshot]
    version: int = PAYLOAD_VERSION
    kind: str = KIND_PLAIN

    def to_dict(self) -> dict:
        snapshot = None if self.snapshot is None else self.snapshot.to_dict()
        return {"version": self.version, "kind": self.kind, "snapshot": snapshot}


@dataclass(frozen=True)
class LegacyBarePayload:
    """A snapshot stored before payloads were tagged with a kind."""

    snapshot: Snapshot

    def to_dict(self) -> dict:
        return self.snapshot.to_dict()


@dataclass(frozen=True)
class EncryptedPayload:
    compression: str
    key_source: str
    iv: str
    salt: str
    ciphertext: str
    version: int = PAYLOAD_VERSION
    kind: str = KIND_ENCRYPTED
    algorithm: str = ENCRYPTION_ALGORITHM

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "kind": self.kind,
            "algorithm": self.algorithm,
            "compression": self.compression,
            "keySource": self.key_source,
            "iv": self.iv,
            "salt": self.salt,
            "ciphertext": self.ciphertext,
        }

    @classmethod
    def from_dict(cls, value: dict) -> "EncryptedPayload":
        try:
            payload = cls(
                compression=value["compression"],
                key_source=value["keySource"],
                iv=value["iv"],
                salt=value["salt"],
                ciphertext=value["ciphertext"],
                version=value.get("version", PAYLOAD_VERSION),
                algorithm=value.get("algorithm", ENCRYPTION_ALGORITHM),
            )
        except KeyError as e:
            raise PayloadFormatException(f"Encrypted payload is missing {e.args[0]!r}") from e

        if payload.algorithm != ENCRYPTION_ALGORITHM:
            raise PayloadFormatException(f"Unsupported algorithm: {payload.algorithm!r}")
        if payload.compression not in COMPRESSION_METHODS:
            raise PayloadFormatException(f"Unsupported compression: {payload.compression!r}")
        if payload.key_source not in KEY_SOURCES:
            raise PayloadFormatException(f"Unknown key source: {payload.key_source!r}")
        for name in ("iv", "salt", "ciphertext"):
            if not isinstance(getattr(payload, name), str):
                raise PayloadFormatException(f"Encrypted payload field {name!r} must be a string")
        return payload


StoragePayload = Union[PlainPayload, EncryptedPayload, LegacyBarePayload]


def parse_payload(value) -> Optional[StoragePayload]:
    """Map a stored wire value onto the payload union.

    Absent and non-object values yield None.
    """
    if value is None or isinstance(value, (PlainPayload, EncryptedPayload, LegacyBarePayload)):
        return value
    if not isinstance(value, dict):
        return None

    if "kind" not in value:
        return LegacyBarePayload(Snapshot.from_dict(value))

    kind = value["kind"]
    if kind == KIND_PLAIN:
        snapshot = value.get("snapshot")
        return PlainPayload(None if snapshot is None else Snapshot.from_dict(snapshot))
    if kind == KIND_ENCRYPTED:
        return EncryptedPayload.from_dict(value)
    raise PayloadFormatException(f"Unknown payload kind: {kind!r}")
