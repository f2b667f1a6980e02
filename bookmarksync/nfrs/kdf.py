from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from bookmarksync.auth.platform_secret import PlatformSecretStore
from bookmarksync.constants import KEY_LENGTH, KEY_SOURCE_USER, PBKDF2_ITERATIONS
from bookmarksync.exceptions import ConfigurationException
from bookmarksync.models import EncryptionContext


def derive_key_from_secret(secret: str, salt: bytes) -> bytes:
    """Derives a 256-bit AES key from the secret and salt using PBKDF2-HMAC-SHA256."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
        backend=default_backend()
    )
    return kdf.derive(secret.encode("utf-8"))


class KeyDeriver:
    def __init__(self, secret_store: PlatformSecretStore = None):
        self.secret_store = secret_store

    def resolve_secret(self, context: EncryptionContext) -> str:
        if context.key_source == KEY_SOURCE_USER:
            secret = (context.secret or "").strip()
        elif self.secret_store is None:
            raise ConfigurationException("Platform key source requires a platform secret store")
        else:
            secret = self.secret_store.get_or_create()

        if not secret:
            raise ConfigurationException("Unable to derive encryption key without a secret")
        return secret

    def derive_key(self, context: EncryptionContext, salt: bytes) -> bytes:
        return derive_key_from_secret(self.resolve_secret(context), salt)
