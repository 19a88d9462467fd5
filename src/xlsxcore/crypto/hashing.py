"""Hash algorithms named by encryption descriptors."""

import hashlib
import struct

from Crypto.Hash import MD4, RIPEMD160

_HASH_FACTORIES = {
    "md4": MD4.new,
    "md5": hashlib.md5,
    "ripemd-160": RIPEMD160.new,
    "sha1": hashlib.sha1,
    "sha-1": hashlib.sha1,
    "sha256": hashlib.sha256,
    "sha384": hashlib.sha384,
    "sha512": hashlib.sha512,
}


def hashing(algorithm: str, *buffers: bytes) -> bytes:
    """Hash the concatenation of ``buffers`` with the named algorithm.

    The lookup is case-insensitive. An unknown name yields ``b""``, which
    later fails cipher initialization.
    """
    factory = _HASH_FACTORIES.get(algorithm.lower())
    if factory is None:
        return b""
    handler = factory()
    for buf in buffers:
        handler.update(buf)
    return handler.digest()


def uint32_le(value: int) -> bytes:
    """Little-endian 32-bit unsigned integer."""
    return struct.pack("<I", value)
