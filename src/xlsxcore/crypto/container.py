"""Compound file (OLE/CFB) access for encrypted workbooks."""

import io
import logging
import struct

import olefile

from ..errors import MalformedContainerError, UnsupportedEncryptionMechanismError

logger = logging.getLogger(__name__)

OLE_IDENTIFIER = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
ENCRYPTION_INFO_STREAM = "EncryptionInfo"
ENCRYPTED_PACKAGE_STREAM = "EncryptedPackage"


def is_encrypted(raw: bytes) -> bool:
    """True when ``raw`` starts with the compound file signature."""
    return raw[: len(OLE_IDENTIFIER)] == OLE_IDENTIFIER


def _read_stream(ole: olefile.OleFileIO, name: str) -> bytes:
    if not ole.exists(name):
        logger.debug(f"Stream {name} not found in container")
        return b""
    return ole.openstream(name).read()


def extract_parts(raw: bytes) -> tuple[bytes, bytes]:
    """
    Read the EncryptionInfo and EncryptedPackage streams.

    A missing stream comes back as ``b""``; the next step reports it.

    Raises:
        MalformedContainerError: if ``raw`` is not a readable compound file
    """
    try:
        ole = olefile.OleFileIO(io.BytesIO(raw))
    except (OSError, ValueError) as e:
        raise MalformedContainerError(f"not a readable compound file: {e}") from e
    try:
        encryption_info = _read_stream(ole, ENCRYPTION_INFO_STREAM)
        encrypted_package = _read_stream(ole, ENCRYPTED_PACKAGE_STREAM)
    except (OSError, ValueError) as e:
        raise MalformedContainerError(f"truncated stream: {e}") from e
    finally:
        ole.close()
    return encryption_info, encrypted_package


def encryption_mechanism(encryption_info: bytes) -> str:
    """
    Detect the mechanism from the EncryptionInfo version field.

    Returns:
        "agile" (4.4), "standard" (2..4.2) or "extensible" (3..4.3)

    Raises:
        UnsupportedEncryptionMechanismError: for any other version pair
    """
    if len(encryption_info) < 4:
        raise UnsupportedEncryptionMechanismError("unknown encryption mechanism")
    major, minor = struct.unpack_from("<HH", encryption_info, 0)
    if major == 4 and minor == 4:
        return "agile"
    if 2 <= major <= 4 and minor == 2:
        return "standard"
    if major in (3, 4) and minor == 3:
        return "extensible"
    raise UnsupportedEncryptionMechanismError(
        f"unsupported encryption mechanism version {major}.{minor}"
    )
