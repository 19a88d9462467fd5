"""Pytest configuration and shared fixtures."""

import base64
import hashlib
import io
import struct
import zipfile

import pytest
from Crypto.Cipher import AES

from xlsxcore.sheets import CellFormula, Workbook

ENCRYPTION_NS = "http://schemas.microsoft.com/office/2006/encryption"
PASSWORD_NS = "http://schemas.microsoft.com/office/2006/keyEncryptor/password"

KEY_DATA_SALT = bytes(range(16))
ENCRYPTED_KEY_SALT = bytes(range(16, 32))
PACKAGE_KEY = bytes(range(100, 132))
VERIFIER_INPUT = bytes(range(200, 216))


@pytest.fixture
def workbook() -> Workbook:
    """Workbook with two empty sheets, Sheet1 (id 1) and Sheet2 (id 2)."""
    wb = Workbook()
    wb.add_sheet("Sheet1")
    wb.add_sheet("Sheet2")
    return wb


@pytest.fixture
def set_formula():
    """Return a helper that stores a formula in a cell."""

    def _set_formula(ws, cell_ref: str, content: str, /, **kwargs):
        ws.set_cell_str(cell_ref, "")
        cell = ws.find_cell(cell_ref)
        cell.value = None
        cell.data_type = None
        cell.formula = CellFormula(content=content, **kwargs)
        return cell

    return _set_formula


@pytest.fixture
def plain_package() -> bytes:
    """A small zip package larger than one 4096-byte chunk."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_STORED) as zf:
        zf.writestr("[Content_Types].xml", '<?xml version="1.0"?><Types/>')
        zf.writestr("xl/worksheets/sheet1.xml", "<worksheet>" + "x" * 9000 + "</worksheet>")
    return buf.getvalue()


def _hash(algorithm: str, *buffers: bytes) -> bytes:
    h = hashlib.new(algorithm.lower().replace("-", ""))
    for buf in buffers:
        h.update(buf)
    return h.digest()


def _fit(data: bytes, size: int) -> bytes:
    if len(data) < size:
        return data + b"\x36" * (size - len(data))
    return data[:size]


def _pad(data: bytes, size: int = 16) -> bytes:
    remainder = len(data) % size
    if remainder:
        data += b"\x00" * (size - remainder)
    return data


def _aes(key: bytes, chaining: str, iv: bytes):
    if chaining == "ChainingModeCFB":
        return AES.new(key, AES.MODE_CFB, iv=iv, segment_size=8)
    return AES.new(key, AES.MODE_CBC, iv=iv)


@pytest.fixture
def agile_encrypt():
    """Return a function that builds agile (EncryptionInfo, EncryptedPackage) streams."""

    def _encrypt(
        plaintext: bytes,
        password: str,
        hash_algorithm: str = "SHA512",
        chaining: str = "ChainingModeCBC",
        key_bits: int = 256,
        spin_count: int = 100,
    ) -> tuple[bytes, bytes]:
        key_len = key_bits // 8
        hash_size = len(_hash(hash_algorithm, b""))

        pw_hash = _hash(hash_algorithm, ENCRYPTED_KEY_SALT, password.encode("utf-16-le"))
        for i in range(spin_count):
            pw_hash = _hash(hash_algorithm, struct.pack("<I", i), pw_hash)

        def block_key(block: bytes) -> bytes:
            return _fit(_hash(hash_algorithm, pw_hash, block), key_len)

        key_value_key = block_key(bytes.fromhex("146e0be7abacd0d6"))
        input_key = block_key(bytes.fromhex("fea7d2763b4b9e79"))
        value_key = block_key(bytes.fromhex("d7aa0f6d3061344e"))

        package_key = PACKAGE_KEY[:key_len]
        encrypted_key_value = _aes(key_value_key, chaining, ENCRYPTED_KEY_SALT).encrypt(
            _pad(package_key)
        )
        encrypted_input = _aes(input_key, chaining, ENCRYPTED_KEY_SALT).encrypt(VERIFIER_INPUT)
        encrypted_value = _aes(value_key, chaining, ENCRYPTED_KEY_SALT).encrypt(
            _pad(_hash(hash_algorithm, VERIFIER_INPUT))
        )

        chunks = []
        for index, start in enumerate(range(0, len(plaintext), 4096)):
            iv = _fit(_hash(hash_algorithm, KEY_DATA_SALT, struct.pack("<I", index)), 16)
            chunk = _pad(plaintext[start : start + 4096])
            chunks.append(_aes(package_key, chaining, iv).encrypt(chunk))
        package = struct.pack("<Q", len(plaintext)) + b"".join(chunks)

        def b64(data: bytes) -> str:
            return base64.b64encode(data).decode()

        common = (
            f'saltSize="16" blockSize="16" keyBits="{key_bits}" hashSize="{hash_size}" '
            f'cipherAlgorithm="AES" cipherChaining="{chaining}" hashAlgorithm="{hash_algorithm}"'
        )
        xml = (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\r\n'
            f'<encryption xmlns="{ENCRYPTION_NS}" xmlns:p="{PASSWORD_NS}">'
            f'<keyData {common} saltValue="{b64(KEY_DATA_SALT)}"/>'
            '<dataIntegrity encryptedHmacKey="AAAA" encryptedHmacValue="AAAA"/>'
            "<keyEncryptors>"
            f'<keyEncryptor uri="{PASSWORD_NS}">'
            f'<p:encryptedKey spinCount="{spin_count}" {common} '
            f'saltValue="{b64(ENCRYPTED_KEY_SALT)}" '
            f'encryptedVerifierHashInput="{b64(encrypted_input)}" '
            f'encryptedVerifierHashValue="{b64(encrypted_value)}" '
            f'encryptedKeyValue="{b64(encrypted_key_value)}"/>'
            "</keyEncryptor>"
            "</keyEncryptors>"
            "</encryption>"
        )
        info = b"\x04\x00\x04\x00\x40\x00\x00\x00" + xml.encode("utf-8")
        return info, package

    return _encrypt


@pytest.fixture
def standard_encrypt():
    """Return a function that builds standard (EncryptionInfo, EncryptedPackage) streams."""

    def _encrypt(plaintext: bytes, password: str, alg_id: int = 0x660E, key_size: int = 128):
        salt = bytes(range(48, 64))
        key = _hash("sha1", salt, password.encode("utf-16-le"))
        for i in range(50000):
            key = _hash("sha1", struct.pack("<I", i), key)
        hfinal = _hash("sha1", key, struct.pack("<I", 0))
        x1 = bytes(b ^ 0x36 for b in hfinal) + b"\x36" * 44
        x2 = bytes(b ^ 0x5C for b in hfinal) + b"\x5c" * 44
        aes_key = (_hash("sha1", x1) + _hash("sha1", x2))[: key_size // 8]
        cipher = AES.new(aes_key, AES.MODE_ECB)

        csp_name = "Microsoft Enhanced RSA and AES Cryptographic Provider\x00".encode("utf-16-le")
        header = struct.pack("<8I", 0x24, 0, alg_id, 0x8004, key_size, 0x18, 0, 0) + csp_name
        verifier = (
            struct.pack("<I", 16)
            + salt
            + cipher.encrypt(VERIFIER_INPUT)
            + struct.pack("<I", 20)
            + cipher.encrypt(_pad(_hash("sha1", VERIFIER_INPUT)))
        )
        info = b"\x03\x00\x02\x00" + struct.pack("<II", 0x24, len(header)) + header + verifier
        package = struct.pack("<Q", len(plaintext)) + cipher.encrypt(_pad(plaintext))
        return info, package

    return _encrypt
