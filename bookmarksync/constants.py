ENCRYPTION_ALGORITHM = "AES-GCM"
COMPRESSION_GZIP = "gzip"
COMPRESSION_NONE = "none"
PAYLOAD_VERSION = 1

KIND_PLAIN = "plain"
KIND_ENCRYPTED = "encrypted"

KEY_SOURCE_USER = "user"
KEY_SOURCE_PLATFORM = "platform"

# AES-256
KEY_LENGTH = 32
# Not stored in the payload; changing it orphans every existing snapshot.
PBKDF2_ITERATIONS = 250_000
SALT_LENGTH = 16
IV_LENGTH = 12

PLATFORM_SECRET_BYTES = 32

BOOKMARK_SNAPSHOT_STORAGE_KEY = "bookmarkSnapshot"
SYNC_SETTINGS_STORAGE_KEY = "syncSettings"
PLATFORM_SECRET_STORAGE_KEY = "bookmarkSyncPlatformSecret"

AREA_LOCAL = "local"
AREA_SYNC = "sync"

MAX_CHUNK_LENGTH = 64 * 1024
