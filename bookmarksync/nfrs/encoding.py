from bookmarksync.nfrs.capabilities import RuntimeCapabilities


_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_INDEX = {char: i for i, char in enumerate(_ALPHABET)}


def buffer_encode(data: bytes) -> str:
    import base64

    return base64.b64encode(data).decode("ascii")


def buffer_decode(value: str) -> bytes:
    import base64
    import binascii

    try:
        return base64.b64decode(value.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise ValueError(f"Invalid base64 data: {e}") from e


def charcode_encode(data: bytes) -> str:
    """Encode three bytes at a time into four alphabet characters."""
    out = []
    for i in range(0, len(data), 3):
        chunk = data[i:i + 3]
        n = int.from_bytes(chunk.ljust(3, b"\0"), "big")
        chars = [_ALPHABET[(n >> shift) & 0x3F] for shift in (18, 12, 6, 0)]
        pad = 3 - len(chunk)
        if pad:
            chars[-pad:] = "=" * pad
        out.append("".join(chars))
    return "".join(out)


def charcode_decode(value: str) -> bytes:
    if len(value) % 4:
        raise ValueError("Invalid base64 data: length is not a multiple of 4")
    out = bytearray()
    for i in range(0, len(value), 4):
        quad = value[i:i + 4]
        stripped = quad.rstrip("=")
        pad = len(quad) - len(stripped)
        if pad > 2 or (pad and i + 4 != len(value)):
            raise ValueError("Invalid base64 data: misplaced padding")
        n = 0
        for char in stripped.ljust(4, "A"):
            if char not in _INDEX:
                raise ValueError(f"Invalid base64 data: unexpected character {char!r}")
            n = (n << 6) | _INDEX[char]
        out += n.to_bytes(3, "big")[:3 - pad]
    return bytes(out)


class Base64Codec:
    """Encodes raw buffers into the string form kept in storage.

    Both strategies produce identical output; the character code one is used
    when the runtime reports no buffer codec.
    """

    def __init__(self, capabilities: RuntimeCapabilities = None):
        capabilities = capabilities or RuntimeCapabilities.detect()
        if capabilities.buffer_codec:
            self.strategy = "buffer"
            self._encode, self._decode = buffer_encode, buffer_decode
        else:
            self.strategy = "charcode"
            self._encode, self._decode = charcode_encode, charcode_decode

    def encode(self, data: bytes) -> str:
        return self._encode(bytes(data))

    def decode(self, value: str) -> bytes:
        if not isinstance(value, str):
            raise ValueError("Invalid base64 data: expected a string")
        return self._decode(value)
