"""Data models for ECMA-376 encryption descriptors."""

from typing import Optional

from pydantic import BaseModel, Field


class KeyData(BaseModel):
    """Cryptographic attributes used to encrypt the package (``<keyData>``)."""

    salt_size: int
    block_size: int
    key_bits: int
    hash_size: int
    cipher_algorithm: str  # "AES"
    cipher_chaining: str  # "ChainingModeCBC" or "ChainingModeCFB"
    hash_algorithm: str  # "SHA512", "SHA1", ...
    salt_value: str  # base64


class DataIntegrity(BaseModel):
    """Encrypted HMAC key and value guarding the package (``<dataIntegrity>``)."""

    encrypted_hmac_key: str
    encrypted_hmac_value: str


class EncryptedKey(KeyData):
    """Password key encryptor (``<p:encryptedKey>``)."""

    spin_count: int
    encrypted_verifier_hash_input: str
    encrypted_verifier_hash_value: str
    encrypted_key_value: str


class KeyEncryptor(BaseModel):
    """A ``<keyEncryptor>`` entry; only password encryptors are supported."""

    uri: str
    encrypted_key: EncryptedKey


class Encryption(BaseModel):
    """Agile encryption descriptor parsed from the EncryptionInfo stream."""

    key_data: KeyData
    data_integrity: Optional[DataIntegrity] = None
    key_encryptors: list[KeyEncryptor] = Field(default_factory=list)


class StandardEncryptionHeader(BaseModel):
    """Fixed binary header of ECMA-376 standard encryption."""

    flags: int
    size_extra: int
    alg_id: int
    alg_id_hash: int
    key_size: int  # In bits
    provider_type: int
    reserved1: int
    reserved2: int
    csp_name: str


class StandardEncryptionVerifier(BaseModel):
    """Password verifier following the standard encryption header."""

    salt_size: int
    salt: bytes
    encrypted_verifier: bytes
    verifier_hash_size: int
    encrypted_verifier_hash: bytes
