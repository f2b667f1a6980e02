import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from bookmarksync.constants import IV_LENGTH, KEY_SOURCE_PLATFORM, SALT_LENGTH
from bookmarksync.exceptions import ConfigurationException, DecryptionException, PayloadFormatException
from bookmarksync.models import (
    EncryptedPayload,
    EncryptionContext,
    LegacyBarePayload,
    PlainPayload,
    Snapshot,
    parse_payload,
)
from bookmarksync.nfrs.compress import ObjectCompressor
from bookmarksync.nfrs.encoding import Base64Codec
from bookmarksync.nfrs.kdf import KeyDeriver
from bookmarksync.nfrs.migration import LegacyMigrator


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecryptResult:
    snapshot: Optional[Snapshot]
    # set when the payload was upgraded and should be written back
    migrated_payload: Optional[EncryptedPayload] = None


def serialize_snapshot(snapshot: Snapshot) -> str:
    return json.dumps(snapshot.to_dict(), separators=(",", ":"))


def deserialize_snapshot(text: str) -> Snapshot:
    try:
        value = json.loads(text)
    except ValueError as e:
        raise PayloadFormatException(f"Decrypted snapshot is not valid JSON: {e}") from e
    return Snapshot.from_dict(value)


class SnapshotCipher:
    """Seals bookmark snapshots into storage payloads and opens them again."""

    def __init__(self, key_deriver: KeyDeriver, compressor: ObjectCompressor = None,
                 codec: Base64Codec = None, migrator: LegacyMigrator = None):
        self.key_deriver = key_deriver
        self.compressor = compressor or ObjectCompressor()
        self.codec = codec or Base64Codec(self.compressor.capabilities)
        self.migrator = migrator

    def encrypt(self, snapshot: Snapshot, context: EncryptionContext) -> EncryptedPayload:
        """Serialize, compress and AES-256-GCM encrypt with a fresh salt and IV."""
        compressed = self.compressor.compress(serialize_snapshot(snapshot))
        salt = os.urandom(SALT_LENGTH)  # Random salt for KDF
        iv = os.urandom(IV_LENGTH)      # Recommended IV size for GCM
        key = self.key_deriver.derive_key(context, salt)
        # the GCM tag is appended to the ciphertext
        ciphertext = AESGCM(key).encrypt(iv, compressed.data, None)
        logger.debug("Encrypted snapshot: key_source=%s compression=%s bytes=%d",
                     context.key_source, compressed.method, len(ciphertext))
        return EncryptedPayload(
            compression=compressed.method,
            key_source=context.key_source,
            iv=self.codec.encode(iv),
            salt=self.codec.encode(salt),
            ciphertext=self.codec.encode(ciphertext),
        )

    def decrypt(self, stored, context: Optional[EncryptionContext]) -> DecryptResult:
        payload = parse_payload(stored)
        if payload is None:
            return DecryptResult(None)
        if isinstance(payload, (LegacyBarePayload, PlainPayload)):
            return DecryptResult(payload.snapshot)
        if isinstance(payload, EncryptedPayload):
            return self._decrypt_encrypted(payload, context)
        raise TypeError(f"Unhandled payload type: {type(payload).__name__}")

    def _decrypt_encrypted(self, payload: EncryptedPayload,
                           context: Optional[EncryptionContext]) -> DecryptResult:
        if context is None or payload.key_source != context.key_source:
            raise ConfigurationException("Unable to decrypt bookmark snapshot with the provided context")

        # fail before spending a key derivation on data we could not read anyway
        self.compressor.ensure_supported(payload.compression)

        try:
            iv = self.codec.decode(payload.iv)
            salt = self.codec.decode(payload.salt)
            ciphertext = self.codec.decode(payload.ciphertext)
        except ValueError as e:
            raise DecryptionException() from e

        migrated = False
        try:
            compressed = self._open(self.key_deriver.derive_key(context, salt), iv, ciphertext)
        except DecryptionException:
            if context.key_source != KEY_SOURCE_PLATFORM or self.migrator is None:
                raise
            compressed = self.migrator.recover(iv, salt, ciphertext)
            if compressed is None:
                raise
            migrated = True

        snapshot = deserialize_snapshot(self.compressor.decompress(compressed, payload.compression))
        if not migrated:
            return DecryptResult(snapshot)

        logger.info("Recovered snapshot sealed with the legacy platform key, re-encrypting")
        return DecryptResult(snapshot, self.encrypt(snapshot, context))

    @staticmethod
    def _open(key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
        try:
            return AESGCM(key).decrypt(iv, ciphertext, None)
        except (InvalidTag, ValueError) as e:
            # ValueError covers nonce lengths AESGCM refuses
            raise DecryptionException() from e
