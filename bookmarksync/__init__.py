from bookmarksync.models import EncryptionContext, Snapshot
from bookmarksync.nfrs.cipher import DecryptResult, SnapshotCipher

__all__ = ["DecryptResult", "EncryptionContext", "Snapshot", "SnapshotCipher"]
