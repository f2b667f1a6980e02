import logging
from dataclasses import dataclass

from bookmarksync.constants import COMPRESSION_GZIP, COMPRESSION_NONE, MAX_CHUNK_LENGTH
from bookmarksync.exceptions import (
    CompressionUnsupportedException,
    DecompressException,
    PayloadFormatException,
)
from bookmarksync.nfrs.capabilities import RuntimeCapabilities


logger = logging.getLogger(__name__)

# zlib window bits (16 + MAX_WBITS) selecting gzip framing instead of a raw zlib stream
GZIP_WBITS = 31


@dataclass(frozen=True)
class CompressionResult:
    data: bytes
    method: str


def _decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8", "surrogatepass")
    except UnicodeDecodeError as e:
        raise PayloadFormatException("Bookmark snapshot is not valid UTF-8") from e


def _chunks(data: bytes, size: int):
    for i in range(0, len(data), size):
        yield data[i:i + size]


class ObjectCompressor:
    def __init__(self, capabilities: RuntimeCapabilities = None, compression_level: int = 9,
                 chunk_size: int = MAX_CHUNK_LENGTH):
        self.capabilities = capabilities or RuntimeCapabilities.detect()
        self.compression_level = compression_level
        self.chunk_size = chunk_size

    def compress(self, plaintext: str) -> CompressionResult:
        """Gzip the text when the runtime can, otherwise store it as UTF-8 bytes."""
        raw = plaintext.encode("utf-8", "surrogatepass")
        if not self.capabilities.gzip_compress:
            logger.debug("gzip unavailable, storing %d bytes uncompressed", len(raw))
            return CompressionResult(raw, COMPRESSION_NONE)

        import zlib

        compressor = zlib.compressobj(self.compression_level, zlib.DEFLATED, GZIP_WBITS)
        out = bytearray()
        for chunk in _chunks(raw, self.chunk_size):
            out += compressor.compress(chunk)
        out += compressor.flush()
        return CompressionResult(bytes(out), COMPRESSION_GZIP)

    def ensure_supported(self, method: str) -> None:
        if method == COMPRESSION_NONE:
            return
        if method != COMPRESSION_GZIP:
            raise PayloadFormatException(f"Unsupported compression: {method!r}")
        if not self.capabilities.gzip_decompress:
            raise CompressionUnsupportedException(
                "gzip compression is not supported in this environment")

    def decompress(self, data: bytes, method: str) -> str:
        self.ensure_supported(method)
        if method == COMPRESSION_NONE:
            return _decode_text(data)

        import zlib

        decompressor = zlib.decompressobj(GZIP_WBITS)
        out = bytearray()
        try:
            for chunk in _chunks(data, self.chunk_size):
                out += decompressor.decompress(chunk)
            out += decompressor.flush()
        except zlib.error as e:
            raise DecompressException(f"Decompression failed: {e}") from e
        if not decompressor.eof:
            raise DecompressException("Decompression failed: truncated gzip stream")
        return _decode_text(bytes(out))
