import pytest

from bookmarksync.auth.platform_secret import PlatformSecretStore
from bookmarksync.models import Snapshot
from bookmarksync.nfrs.capabilities import RuntimeCapabilities
from bookmarksync.nfrs.cipher import SnapshotCipher
from bookmarksync.nfrs.compress import ObjectCompressor
from bookmarksync.nfrs.encoding import Base64Codec
from bookmarksync.nfrs.kdf import KeyDeriver
from bookmarksync.nfrs.migration import LegacyMigrator, RuntimeFingerprint
from bookmarksync.storage import MemoryStorage


LEGACY_FINGERPRINT = RuntimeFingerprint("TestBrowser/1.0", "TestOS", "en-US")


def make_snapshot() -> Snapshot:
    return Snapshot(
        merged=[
            {
                "id": "merged-sample-1",
                "title": "Sample",
                "url": "https://sample.test",
                "tags": ["sample"],
                "createdAt": "2024-01-01T00:00:00.000Z",
                "source": "chromium",
            }
        ],
        categorized=[
            {
                "id": "categorized-sample-1",
                "title": "Sample",
                "url": "https://sample.test",
                "tags": ["sample"],
                "createdAt": "2024-01-01T00:00:00.000Z",
                "source": "firefox",
                "category": "testing",
            }
        ],
    )


def make_cipher(storage=None, capabilities=None, fingerprint=LEGACY_FINGERPRINT) -> SnapshotCipher:
    storage = MemoryStorage() if storage is None else storage
    capabilities = capabilities or RuntimeCapabilities()
    return SnapshotCipher(
        KeyDeriver(PlatformSecretStore(storage)),
        compressor=ObjectCompressor(capabilities),
        codec=Base64Codec(capabilities),
        migrator=LegacyMigrator(fingerprint) if fingerprint else None,
    )


@pytest.fixture()
def snapshot() -> Snapshot:
    return make_snapshot()


@pytest.fixture()
def device_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def cipher(device_storage) -> SnapshotCipher:
    return make_cipher(device_storage)
