class SnapshotException(Exception):
    pass


class ConfigurationException(SnapshotException):
    """The caller passed an inconsistent encryption context."""


class CompressionUnsupportedException(SnapshotException):
    """The payload needs a compression primitive this runtime lacks."""


class DecryptionException(SnapshotException):
    """Generic decryption failure.

    Wrong keys and tampered ciphertext deliberately share this one message.
    """

    def __init__(self, message: str = "Unable to decrypt bookmark snapshot"):
        super().__init__(message)


class DecompressException(SnapshotException):
    pass


class PayloadFormatException(SnapshotException):
    pass


class StorageException(Exception):
    pass
