import locale
import logging
import platform
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from bookmarksync.nfrs.kdf import derive_key_from_secret


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuntimeFingerprint:
    """Host details the retired platform key was derived from.

    That secret changed whenever the browser or OS reported a new string,
    which is why platform keys now come from a persisted random secret.
    """

    user_agent: str
    platform: str
    language: str

    def legacy_secret(self) -> str:
        return f"{self.user_agent}::{self.platform}::{self.language}"

    @classmethod
    def detect(cls) -> "RuntimeFingerprint":
        language = locale.getlocale()[0] or ""
        return cls(
            user_agent=f"{platform.python_implementation()}/{platform.python_version()}",
            platform=platform.system(),
            language=language.replace("_", "-"),
        )


class LegacyMigrator:
    def __init__(self, fingerprint: RuntimeFingerprint):
        self.fingerprint = fingerprint

    def recover(self, iv: bytes, salt: bytes, ciphertext: bytes):
        """Open a payload sealed with the fingerprint-derived key.

        Returns the plaintext bytes, or None when the legacy key does not fit.
        """
        key = derive_key_from_secret(self.fingerprint.legacy_secret(), salt)
        try:
            return AESGCM(key).decrypt(iv, ciphertext, None)
        except (InvalidTag, ValueError):
            logger.debug("Legacy platform key did not open the payload")
            return None
