import logging
import time

from bookmarksync.auth.platform_secret import PlatformSecretStore
from bookmarksync.config import ClientConfig
from bookmarksync.constants import AREA_LOCAL, AREA_SYNC, BOOKMARK_SNAPSHOT_STORAGE_KEY
from bookmarksync.models import PlainPayload, Snapshot
from bookmarksync.nfrs.capabilities import RuntimeCapabilities
from bookmarksync.nfrs.cipher import SnapshotCipher
from bookmarksync.nfrs.compress import ObjectCompressor
from bookmarksync.nfrs.encoding import Base64Codec
from bookmarksync.nfrs.kdf import KeyDeriver
from bookmarksync.nfrs.migration import LegacyMigrator, RuntimeFingerprint
from bookmarksync.settings import SyncSettings, load_sync_settings
from bookmarksync.storage import HttpStorage, JsonFileStorage, StorageAreas


logger = logging.getLogger(__name__)


def _log(operation: str, key: str, phase: str, status: str, msg: str = ""):
    # Format: SERVICE, OPERATION, OBJECTKEY, START/END, Status, MSG
    logger.debug(f"CLIENT,{operation},{key},{phase},{status},{msg}")


def _ms(ns_start: int) -> float:
    return (time.perf_counter_ns() - ns_start) / 1e6


class Client(object):
    """Reads and writes the bookmark snapshot through the storage areas."""

    def __init__(self, areas: StorageAreas, cipher: SnapshotCipher, settings_loader=None):
        self.areas = areas
        self.cipher = cipher
        self.settings_loader = settings_loader or (lambda: load_sync_settings(self.areas))

    @classmethod
    def from_config(cls, config: ClientConfig, capabilities: RuntimeCapabilities = None,
                    fingerprint: RuntimeFingerprint = None) -> "Client":
        local = JsonFileStorage(config.local_path)
        if config.server:
            sync = HttpStorage(config.server, config.namespace)
        else:
            sync = JsonFileStorage(config.sync_path)
        areas = StorageAreas({AREA_LOCAL: local, AREA_SYNC: sync})

        capabilities = capabilities or RuntimeCapabilities.detect()
        cipher = SnapshotCipher(
            KeyDeriver(PlatformSecretStore(local)),
            compressor=ObjectCompressor(capabilities),
            codec=Base64Codec(capabilities),
            migrator=LegacyMigrator(fingerprint or RuntimeFingerprint.detect()),
        )
        return cls(areas, cipher)

    def _load_settings(self) -> SyncSettings:
        try:
            return self.settings_loader()
        except Exception as e:
            logger.error("Failed to load synchronization settings: %s", e)
            return SyncSettings()

    @staticmethod
    def _write_areas(settings: SyncSettings) -> list:
        return [AREA_LOCAL, AREA_SYNC] if settings.enabled else [AREA_LOCAL]

    def persist(self, snapshot: Snapshot) -> dict:
        t_total = time.perf_counter_ns()
        key = BOOKMARK_SNAPSHOT_STORAGE_KEY
        settings = self._load_settings()
        context = settings.encryption_context()
        _log("PERSIST", key, "START", "RUN",
             f"merged={len(snapshot.merged)};categorized={len(snapshot.categorized)};enabled={int(settings.enabled)}")

        if context is not None:
            t_enc = time.perf_counter_ns()
            try:
                payload = self.cipher.encrypt(snapshot, context)
            except Exception as e:
                _log("PERSIST", key, "END", "ERROR", f"phase=ENCRYPT;msg={e};total_time_ms={_ms(t_total):.3f}")
                raise
            _log("PERSIST", key, "END", "SUCCESS",
                 f"phase=ENCRYPT;key_source={context.key_source};compression={payload.compression};"
                 f"time_ms={_ms(t_enc):.3f}")
        else:
            payload = PlainPayload(snapshot)

        value = payload.to_dict()
        t_write = time.perf_counter_ns()
        self.areas.set_item(key, value, self._write_areas(settings))
        _log("PERSIST", key, "END", "SUCCESS",
             f"phase=WRITE;kind={payload.kind};write_time_ms={_ms(t_write):.3f};total_time_ms={_ms(t_total):.3f}")
        return value

    def hydrate(self):
        """Load the stored snapshot, writing back an upgraded payload if one was produced.

        Decryption errors are logged and re-raised rather than read as an empty
        snapshot, so a wrong key never looks like an empty library.
        """
        t_total = time.perf_counter_ns()
        key = BOOKMARK_SNAPSHOT_STORAGE_KEY
        settings = self._load_settings()
        areas = self._write_areas(settings)
        _log("HYDRATE", key, "START", "RUN", f"areas={'+'.join(areas)}")

        stored = self.areas.get_item(key, areas)
        if stored is None:
            _log("HYDRATE", key, "END", "SUCCESS", f"phase=READ;empty=1;total_time_ms={_ms(t_total):.3f}")
            return None

        t_dec = time.perf_counter_ns()
        try:
            result = self.cipher.decrypt(stored, settings.encryption_context())
        except Exception as e:
            logger.error("Failed to decrypt bookmark snapshot: %s", e)
            _log("HYDRATE", key, "END", "ERROR", f"phase=DECRYPT;msg={e};total_time_ms={_ms(t_total):.3f}")
            raise
        _log("HYDRATE", key, "END", "SUCCESS",
             f"phase=DECRYPT;migrated={int(result.migrated_payload is not None)};time_ms={_ms(t_dec):.3f}")

        if result.migrated_payload is not None:
            self.areas.set_item(key, result.migrated_payload.to_dict(), areas)
            _log("HYDRATE", key, "END", "SUCCESS", f"phase=MIGRATE;areas={'+'.join(areas)}")

        _log("HYDRATE", key, "END", "SUCCESS", f"total_time_ms={_ms(t_total):.3f}")
        return result.snapshot
