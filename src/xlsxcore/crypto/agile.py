"""ECMA-376 agile encryption (XML descriptor, chunked AES)."""

import base64
import binascii
import logging
import struct
import xml.etree.ElementTree as ET

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
from .models import DataIntegrity, EncryptedKey, Encryption, KeyData, KeyEncryptor

logger = logging.getLogger(__name__)

ENCRYPTION_NS = "http://schemas.microsoft.com/office/2006/encryption"
PASSWORD_NS = "http://schemas.microsoft.com/office/2006/keyEncryptor/password"

ENCRYPTED_KEY_BLOCK_KEY = bytes.fromhex("146e0be7abacd0d6")
VERIFIER_HASH_INPUT_BLOCK_KEY = bytes.fromhex("fea7d2763b4b9e79")
VERIFIER_HASH_VALUE_BLOCK_KEY = bytes.fromhex("d7aa0f6d3061344e")

PACKAGE_OFFSET = 8
PACKAGE_CHUNK_SIZE = 4096

_CHAINING_MODES = {
    "chainingmodecbc": AES.MODE_CBC,
    "chainingmodecfb": AES.MODE_CFB,
}

_KEY_DATA_ATTRIBUTES = {
    "salt_size": ("saltSize", int),
    "block_size": ("blockSize", int),
    "key_bits": ("keyBits", int),
    "hash_size": ("hashSize", int),
    "cipher_algorithm": ("cipherAlgorithm", str),
    "cipher_chaining": ("cipherChaining", str),
    "hash_algorithm": ("hashAlgorithm", str),
    "salt_value": ("saltValue", str),
}

_ENCRYPTED_KEY_ATTRIBUTES = {
    **_KEY_DATA_ATTRIBUTES,
    "spin_count": ("spinCount", int),
    "encrypted_verifier_hash_input": ("encryptedVerifierHashInput", str),
    "encrypted_verifier_hash_value": ("encryptedVerifierHashValue", str),
    "encrypted_key_value": ("encryptedKeyValue", str),
}


def _read_attributes(element: ET.Element, attributes: dict) -> dict:
    values = {}
    for field, (name, convert) in attributes.items():
        raw = element.get(name)
        if raw is None:
            raise MalformedEncryptionDescriptorError(
                f"<{element.tag}> is missing attribute {name}"
            )
        try:
            values[field] = convert(raw)
        except ValueError as e:
            raise MalformedEncryptionDescriptorError(
                f"attribute {name}={raw!r} is not valid"
            ) from e
    return values


def parse_encryption_info(descriptor: bytes) -> Encryption:
    """
    Parse the agile XML descriptor (EncryptionInfo after its 8-byte prefix).

    Raises:
        MalformedEncryptionDescriptorError: on unparsable XML or missing fields
    """
    try:
        root = ET.fromstring(descriptor.rstrip(b"\x00"))
    except ET.ParseError as e:
        raise MalformedEncryptionDescriptorError(f"cannot parse encryption info: {e}") from e

    key_data_el = root.find(f"{{{ENCRYPTION_NS}}}keyData")
    if key_data_el is None:
        raise MalformedEncryptionDescriptorError("encryption info has no keyData")
    key_data = KeyData(**_read_attributes(key_data_el, _KEY_DATA_ATTRIBUTES))
    if key_data.block_size <= 0:
        raise MalformedEncryptionDescriptorError(f"invalid block size {key_data.block_size}")

    data_integrity = None
    integrity_el = root.find(f"{{{ENCRYPTION_NS}}}dataIntegrity")
    if integrity_el is not None:
        data_integrity = DataIntegrity(
            encrypted_hmac_key=integrity_el.get("encryptedHmacKey", ""),
            encrypted_hmac_value=integrity_el.get("encryptedHmacValue", ""),
        )

    key_encryptors = []
    for encryptor_el in root.iterfind(f"{{{ENCRYPTION_NS}}}keyEncryptors/{{{ENCRYPTION_NS}}}keyEncryptor"):
        encrypted_key_el = encryptor_el.find(f"{{{PASSWORD_NS}}}encryptedKey")
        if encrypted_key_el is None:
            logger.debug(f"Skipping key encryptor {encryptor_el.get('uri')}")
            continue
        key_encryptors.append(
            KeyEncryptor(
                uri=encryptor_el.get("uri", ""),
                encrypted_key=EncryptedKey(
                    **_read_attributes(encrypted_key_el, _ENCRYPTED_KEY_ATTRIBUTES)
                ),
            )
        )

    return Encryption(
        key_data=key_data,
        data_integrity=data_integrity,
        key_encryptors=key_encryptors,
    )


def _b64(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedEncryptionDescriptorError(f"invalid base64 value {value!r}") from e


def _fit(data: bytes, size: int) -> bytes:
    """Pad with 0x36 bytes or truncate to ``size``. Empty input stays empty."""
    if not data:
        return data
    if len(data) < size:
        return data + b"\x36" * (size - len(data))
    return data[:size]


def _password_hash(password: str, encrypted_key: EncryptedKey) -> bytes:
    """H(salt + password) iterated ``spin_count`` times."""
    if encrypted_key.spin_count > settings.max_spin_count:
        raise MalformedEncryptionDescriptorError(
            f"spin count {encrypted_key.spin_count} exceeds limit {settings.max_spin_count}"
        )
    algorithm = encrypted_key.hash_algorithm
    key = hashing(algorithm, _b64(encrypted_key.salt_value), password.encode("utf-16-le"))
    if not key:
        return key
    for i in range(encrypted_key.spin_count):
        key = hashing(algorithm, uint32_le(i), key)
    return key


def _block_key(base_hash: bytes, block_key: bytes, encrypted_key: EncryptedKey) -> bytes:
    if not base_hash:
        return base_hash
    key = hashing(encrypted_key.hash_algorithm, base_hash, block_key)
    return _fit(key, encrypted_key.key_bits // 8)


def convert_password_to_key(password: str, encrypted_key: EncryptedKey, block_key: bytes) -> bytes:
    """Derive the key that decrypts one of the encryptor's values."""
    return _block_key(_password_hash(password, encrypted_key), block_key, encrypted_key)


def crypt(cipher_algorithm: str, cipher_chaining: str, key: bytes, iv: bytes, data: bytes) -> bytes:
    """Decrypt ``data`` with AES in the named chaining mode."""
    if cipher_algorithm.upper() != "AES":
        raise UnsupportedEncryptionMechanismError(f"unsupported cipher algorithm {cipher_algorithm}")
    mode = _CHAINING_MODES.get(cipher_chaining.lower())
    if mode is None:
        raise UnsupportedEncryptionMechanismError(f"unsupported chaining mode {cipher_chaining}")
    options = {"segment_size": 8} if mode == AES.MODE_CFB else {}
    try:
        cipher = AES.new(key, mode, iv=iv, **options)
        return cipher.decrypt(data)
    except ValueError as e:
        raise CipherInitializationError(f"cannot initialize AES cipher: {e}") from e


def create_iv(index: int, key_data: KeyData) -> bytes:
    """Per-chunk IV: H(keyData salt + LE32(index)) fitted to the block size."""
    iv = hashing(key_data.hash_algorithm, _b64(key_data.salt_value), uint32_le(index))
    return _fit(iv, key_data.block_size)


def crypt_package(package_key: bytes, encrypted_package: bytes, key_data: KeyData) -> bytes:
    """Decrypt the package in 4096-byte chunks, each with its own IV."""
    if len(encrypted_package) < PACKAGE_OFFSET:
        raise MalformedContainerError("encrypted package is truncated")
    declared_size = struct.unpack_from("<Q", encrypted_package, 0)[0]
    payload = encrypted_package[PACKAGE_OFFSET:]

    chunks = []
    for index, start in enumerate(range(0, len(payload), PACKAGE_CHUNK_SIZE)):
        chunk = payload[start : start + PACKAGE_CHUNK_SIZE]
        remainder = len(chunk) % key_data.block_size
        if remainder:
            chunk += b"\x00" * (key_data.block_size - remainder)
        iv = create_iv(index, key_data)
        chunks.append(
            crypt(key_data.cipher_algorithm, key_data.cipher_chaining, package_key, iv, chunk)
        )
    decrypted = b"".join(chunks)

    if settings.truncate_to_declared_size:
        decrypted = decrypted[:declared_size]
    return decrypted


def _verify_password(base_hash: bytes, encrypted_key: EncryptedKey) -> None:
    salt = _b64(encrypted_key.salt_value)
    input_key = _block_key(base_hash, VERIFIER_HASH_INPUT_BLOCK_KEY, encrypted_key)
    value_key = _block_key(base_hash, VERIFIER_HASH_VALUE_BLOCK_KEY, encrypted_key)
    verifier_input = crypt(
        encrypted_key.cipher_algorithm,
        encrypted_key.cipher_chaining,
        input_key,
        salt,
        _b64(encrypted_key.encrypted_verifier_hash_input),
    )
    verifier_hash = crypt(
        encrypted_key.cipher_algorithm,
        encrypted_key.cipher_chaining,
        value_key,
        salt,
        _b64(encrypted_key.encrypted_verifier_hash_value),
    )
    expected = hashing(encrypted_key.hash_algorithm, verifier_input[: encrypted_key.salt_size])
    if verifier_hash[: len(expected)] != expected:
        raise InvalidPasswordError("password verifier does not match")


def agile_decrypt(encryption_info: bytes, encrypted_package: bytes, password: str) -> bytes:
    """
    Decrypt a package protected with agile encryption.

    Args:
        encryption_info: The EncryptionInfo stream
        encrypted_package: The EncryptedPackage stream (size prefix included)
        password: Workbook password

    Returns:
        The plaintext package
    """
    encryption = parse_encryption_info(encryption_info[PACKAGE_OFFSET:])
    if not encryption.key_encryptors:
        raise MalformedEncryptionDescriptorError("encryption info has no password key encryptor")
    encrypted_key = encryption.key_encryptors[0].encrypted_key

    base_hash = _password_hash(password, encrypted_key)
    if settings.verify_password:
        _verify_password(base_hash, encrypted_key)

    key = _block_key(base_hash, ENCRYPTED_KEY_BLOCK_KEY, encrypted_key)
    package_key = crypt(
        encrypted_key.cipher_algorithm,
        encrypted_key.cipher_chaining,
        key,
        _b64(encrypted_key.salt_value),
        _b64(encrypted_key.encrypted_key_value),
    )
    package_key = package_key[: encryption.key_data.key_bits // 8]
    decrypted = crypt_package(package_key, encrypted_package, encryption.key_data)
    logger.debug(
        f"Decrypted {len(decrypted)} bytes with {encryption.key_data.cipher_algorithm}"
        f"-{encryption.key_data.key_bits} (agile)"
    )
    return decrypted
