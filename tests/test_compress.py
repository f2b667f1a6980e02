import gzip

import pytest

from bookmarksync.exceptions import (
    CompressionUnsupportedException,
    DecompressException,
    PayloadFormatException,
)
from bookmarksync.nfrs.capabilities import RuntimeCapabilities
from bookmarksync.nfrs.compress import ObjectCompressor


TEXT = '{"merged":[{"title":"Café"}],"categorized":[]}' * 50


def test_gzip_output_is_standard_gzip():
    result = ObjectCompressor(RuntimeCapabilities()).compress(TEXT)

    assert result.method == "gzip"
    assert result.data[:2] == b"\x1f\x8b"
    assert gzip.decompress(result.data).decode("utf-8") == TEXT


def test_gzip_round_trip_in_small_chunks():
    compressor = ObjectCompressor(RuntimeCapabilities(), chunk_size=7)
    result = compressor.compress(TEXT)

    assert compressor.decompress(result.data, result.method) == TEXT


def test_reads_gzip_written_elsewhere():
    data = gzip.compress(TEXT.encode("utf-8"))

    assert ObjectCompressor(RuntimeCapabilities()).decompress(data, "gzip") == TEXT


def test_falls_back_to_plain_bytes():
    compressor = ObjectCompressor(RuntimeCapabilities.without_compression())
    result = compressor.compress(TEXT)

    assert result.method == "none"
    assert result.data == TEXT.encode("utf-8")
    assert compressor.decompress(result.data, "none") == TEXT


def test_gzip_without_decompression_fails_loudly():
    data = ObjectCompressor(RuntimeCapabilities()).compress(TEXT).data
    compressor = ObjectCompressor(RuntimeCapabilities(gzip_decompress=False))

    with pytest.raises(CompressionUnsupportedException, match="not supported in this environment"):
        compressor.decompress(data, "gzip")


def test_corrupt_and_truncated_streams():
    compressor = ObjectCompressor(RuntimeCapabilities())
    data = compressor.compress(TEXT).data

    with pytest.raises(DecompressException):
        compressor.decompress(b"not gzip at all", "gzip")
    with pytest.raises(DecompressException, match="truncated"):
        compressor.decompress(data[: len(data) // 2], "gzip")


def test_unknown_method():
    with pytest.raises(PayloadFormatException):
        ObjectCompressor(RuntimeCapabilities()).decompress(b"", "brotli")


@pytest.mark.parametrize("capabilities", [RuntimeCapabilities(), RuntimeCapabilities.without_compression()])
def test_lone_surrogate_never_fails_compression(capabilities):
    compressor = ObjectCompressor(capabilities)
    result = compressor.compress("broken \ud83d emoji")

    assert compressor.decompress(result.data, result.method) == "broken \ud83d emoji"
