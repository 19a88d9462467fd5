"""ECMA-376 standard encryption (binary header, AES-ECB)."""

import logging
import struct

from Crypto.Cipher import AES

from ..config import settings
from ..errors import (
    CipherInitializationError,
    InvalidPasswordError,
    MalformedContainerError,
    MalformedEncryptionDescriptorError,
    UnsupportedEncryptionMechanismError,
)
from .hashing import hashing, uint32_le
from .models import StandardEncryptionHeader, StandardEncryptionVerifier

logger = logging.getLogger(__name__)

AES_ALGORITHM_IDS = {0x660E: "AES-128", 0x660F: "AES-192", 0x6610: "AES-256"}
ITER_COUNT = 50000
PACKAGE_OFFSET = 8
HEADER_FIXED_SIZE = 32
AES_VERIFIER_SIZE = 72


def parse_standard_info(
    encryption_info: bytes,
) -> tuple[StandardEncryptionHeader, StandardEncryptionVerifier]:
    """
    Split a standard EncryptionInfo stream into header and verifier.

    Layout: version (4), flags (4), header size (4), header, verifier.

    Raises:
        MalformedEncryptionDescriptorError: if the stream is too short
    """
    if len(encryption_info) < 12:
        raise MalformedEncryptionDescriptorError("encryption info is truncated")
    header_size = struct.unpack_from("<I", encryption_info, 8)[0]
    block = encryption_info[12 : 12 + header_size]
    if len(block) < HEADER_FIXED_SIZE:
        raise MalformedEncryptionDescriptorError(
            f"encryption header is {len(block)} bytes, expected at least {HEADER_FIXED_SIZE}"
        )
    fields = struct.unpack_from("<8I", block, 0)
    csp_name = block[HEADER_FIXED_SIZE:].decode("utf-16-le", errors="ignore").rstrip("\x00")
    header = StandardEncryptionHeader(
        flags=fields[0],
        size_extra=fields[1],
        alg_id=fields[2],
        alg_id_hash=fields[3],
        key_size=fields[4],
        provider_type=fields[5],
        reserved1=fields[6],
        reserved2=fields[7],
        csp_name=csp_name,
    )

    raw = encryption_info[12 + header_size :]
    if len(raw) < AES_VERIFIER_SIZE:
        raise MalformedEncryptionDescriptorError(
            f"encryption verifier is {len(raw)} bytes, expected {AES_VERIFIER_SIZE}"
        )
    verifier = StandardEncryptionVerifier(
        salt_size=struct.unpack_from("<I", raw, 0)[0],
        salt=raw[4:20],
        encrypted_verifier=raw[20:36],
        verifier_hash_size=struct.unpack_from("<I", raw, 36)[0],
        encrypted_verifier_hash=raw[40:72],
    )
    return header, verifier


def standard_convert_password_to_key(
    header: StandardEncryptionHeader,
    verifier: StandardEncryptionVerifier,
    password: str,
) -> bytes:
    """Derive the AES key from a password (SHA-1, 50000 rounds)."""
    key = hashing("sha1", verifier.salt, password.encode("utf-16-le"))
    for i in range(ITER_COUNT):
        key = hashing("sha1", uint32_le(i), key)
    hfinal = hashing("sha1", key, uint32_le(0))

    buf1 = bytearray(b"\x36" * 64)
    buf2 = bytearray(b"\x5c" * 64)
    for i, byte in enumerate(hfinal):
        buf1[i] ^= byte
        buf2[i] ^= byte
    derived = hashing("sha1", bytes(buf1)) + hashing("sha1", bytes(buf2))
    return derived[: header.key_size // 8]


def _verify_password(cipher, verifier: StandardEncryptionVerifier) -> None:
    plain_verifier = cipher.decrypt(verifier.encrypted_verifier)
    verifier_hash = cipher.decrypt(verifier.encrypted_verifier_hash)
    expected = hashing("sha1", plain_verifier)
    if verifier_hash[: verifier.verifier_hash_size] != expected[: verifier.verifier_hash_size]:
        raise InvalidPasswordError("password verifier does not match")


def standard_decrypt(encryption_info: bytes, encrypted_package: bytes, password: str) -> bytes:
    """
    Decrypt a package protected with standard encryption.

    Args:
        encryption_info: The EncryptionInfo stream
        encrypted_package: The EncryptedPackage stream (size prefix included)
        password: Workbook password

    Returns:
        The plaintext package, truncated to its declared size when enabled
    """
    header, verifier = parse_standard_info(encryption_info)
    if header.alg_id not in AES_ALGORITHM_IDS:
        raise UnsupportedEncryptionMechanismError(
            f"unsupported cipher algorithm id 0x{header.alg_id:04X}"
        )
    if len(encrypted_package) < PACKAGE_OFFSET:
        raise MalformedContainerError("encrypted package is truncated")

    key = standard_convert_password_to_key(header, verifier, password)
    try:
        cipher = AES.new(key, AES.MODE_ECB)
    except ValueError as e:
        raise CipherInitializationError(f"cannot initialize AES cipher: {e}") from e

    if settings.verify_password:
        _verify_password(cipher, verifier)

    payload = encrypted_package[PACKAGE_OFFSET:]
    remainder = len(payload) % AES.block_size
    if remainder:
        payload += b"\x00" * (AES.block_size - remainder)
    decrypted = cipher.decrypt(payload)

    if settings.truncate_to_declared_size:
        declared_size = struct.unpack_from("<Q", encrypted_package, 0)[0]
        decrypted = decrypted[:declared_size]
    logger.debug(
        f"Decrypted {len(decrypted)} bytes with {AES_ALGORITHM_IDS[header.alg_id]} (standard)"
    )
    return decrypted
