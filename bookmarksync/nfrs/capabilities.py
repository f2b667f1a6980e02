import importlib
from dataclasses import dataclass


def _has_module(name: str, *attributes: str) -> bool:
    try:
        module = importlib.import_module(name)
    except ImportError:
        return False
    return all(hasattr(module, attribute) for attribute in attributes)


@dataclass(frozen=True)
class RuntimeCapabilities:
    """Primitives the codec and compressor may rely on.

    Passed in explicitly so a missing primitive can be simulated without
    patching modules.
    """

    buffer_codec: bool = True
    gzip_compress: bool = True
    gzip_decompress: bool = True

    @classmethod
    def detect(cls) -> "RuntimeCapabilities":
        return cls(
            buffer_codec=_has_module("binascii", "b2a_base64", "a2b_base64"),
            gzip_compress=_has_module("zlib", "compressobj"),
            gzip_decompress=_has_module("zlib", "decompressobj"),
        )

    @classmethod
    def without_compression(cls) -> "RuntimeCapabilities":
        return cls(gzip_compress=False, gzip_decompress=False)
