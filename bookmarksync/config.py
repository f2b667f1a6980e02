import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class ClientConfig:
    """Where the client keeps its storage areas.

    The local area is always a JSON file under storage_dir. The sync area is
    an HTTP key/value server when server is set, otherwise a second file.
    """

    storage_dir: Path
    server: Optional[str] = None
    namespace: str = "default"
    log_level: str = "INFO"

    @property
    def local_path(self) -> Path:
        return self.storage_dir / "local.json"

    @property
    def sync_path(self) -> Path:
        return self.storage_dir / "sync.json"

    @staticmethod
    def from_env(environ=None) -> "ClientConfig":
        environ = os.environ if environ is None else environ
        return ClientConfig(
            storage_dir=Path(os.path.expanduser(environ.get("BOOKMARKSYNC_STORAGE_DIR", "~/.bookmarksync"))),
            server=environ.get("BOOKMARKSYNC_SERVER") or None,
            namespace=environ.get("BOOKMARKSYNC_NAMESPACE", "default"),
            log_level=environ.get("BOOKMARKSYNC_LOG_LEVEL", "INFO").upper(),
        )
