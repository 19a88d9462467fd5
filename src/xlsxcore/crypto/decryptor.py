"""Entry point for decrypting password-protected workbooks."""

import logging

from .agile import agile_decrypt
from .container import encryption_mechanism, extract_parts
from .standard import standard_decrypt

logger = logging.getLogger(__name__)


def decrypt(raw: bytes, password: str = "") -> bytes:
    """
    Decrypt an encrypted workbook container into the plaintext package.

    Args:
        raw: Compound file bytes holding EncryptionInfo and EncryptedPackage
        password: Workbook password

    Returns:
        The zip package bytes, or ``b""`` for extensible encryption
    """
    encryption_info, encrypted_package = extract_parts(raw)
    mechanism = encryption_mechanism(encryption_info)
    logger.info(f"Decrypting package with {mechanism} encryption")

    if mechanism == "extensible":
        logger.warning("Extensible encryption is not supported, returning empty package")
        return b""
    if mechanism == "agile":
        return agile_decrypt(encryption_info, encrypted_package, password)
    return standard_decrypt(encryption_info, encrypted_package, password)
