"""Decryption of ECMA-376 encrypted workbooks."""

from .agile import agile_decrypt, parse_encryption_info
from .container import (
    OLE_IDENTIFIER,
    encryption_mechanism,
    extract_parts,
    is_encrypted,
)
from .decryptor import decrypt
from .hashing import hashing
from .models import (
    DataIntegrity,
    EncryptedKey,
    Encryption,
    KeyData,
    KeyEncryptor,
    StandardEncryptionHeader,
    StandardEncryptionVerifier,
)
from .standard import standard_decrypt

__all__ = [
    "agile_decrypt",
    "parse_encryption_info",
    "OLE_IDENTIFIER",
    "encryption_mechanism",
    "extract_parts",
    "is_encrypted",
    "decrypt",
    "hashing",
    "DataIntegrity",
    "EncryptedKey",
    "Encryption",
    "KeyData",
    "KeyEncryptor",
    "StandardEncryptionHeader",
    "StandardEncryptionVerifier",
    "standard_decrypt",
]
