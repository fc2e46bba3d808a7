"""
AES-256-GCM encryption for stored third-party credentials.

Each value is stored as three hex strings: ciphertext, IV and auth tag.
The key comes from the ENCRYPTION_KEY setting (64 hex characters).
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from app.config import settings

logger = logging.getLogger(__name__)

ALGORITHM = "aes-256-gcm"
IV_LENGTH = 16
KEY_LENGTH = 32
TAG_LENGTH = 16


class EncryptionError(Exception):
    pass


class EncryptionNotConfiguredError(EncryptionError):
    """ENCRYPTION_KEY is missing; callers answer 503 with setup instructions."""


def _get_encryption_key(key_hex: Optional[str] = None) -> bytes:
    key_hex = key_hex or settings.encryption_key
    if not key_hex:
        raise EncryptionNotConfiguredError("ENCRYPTION_KEY environment variable is required")
    try:
        key = bytes.fromhex(key_hex)
    except ValueError:
        raise EncryptionError("ENCRYPTION_KEY must be hex encoded")
    if len(key) != KEY_LENGTH:
        raise EncryptionError(
            f"Encryption key must be {KEY_LENGTH} bytes ({KEY_LENGTH * 2} hex characters)"
        )
    return key


def is_encryption_configured() -> bool:
    return bool(settings.encryption_key)


def generate_encryption_key() -> str:
    return os.urandom(KEY_LENGTH).hex()


def encrypt_credential(plaintext: str, key_hex: Optional[str] = None) -> Dict[str, str]:
    """Encrypt one string. Returns {"encrypted", "iv", "auth_tag"} as hex."""
    if not plaintext or not isinstance(plaintext, str):
        raise EncryptionError("Plaintext must be a non-empty string")
    key = _get_encryption_key(key_hex)
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    ciphertext, auth_tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return {
        "encrypted": ciphertext.hex(),
        "iv": iv.hex(),
        "auth_tag": auth_tag.hex(),
    }


def decrypt_credential(encrypted: str, iv_hex: str, auth_tag_hex: str, key_hex: Optional[str] = None) -> str:
    if not encrypted or not iv_hex or not auth_tag_hex:
        raise EncryptionError("Encrypted data, IV, and auth tag are all required")
    key = _get_encryption_key(key_hex)
    try:
        sealed = bytes.fromhex(encrypted) + bytes.fromhex(auth_tag_hex)
        plaintext = AESGCM(key).decrypt(bytes.fromhex(iv_hex), sealed, None)
    except Exception as e:
        raise EncryptionError(f"Decryption failed: {e.__class__.__name__}")
    return plaintext.decode("utf-8")


def encrypt_credentials_map(credentials: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Encrypt every non-empty string field of a credentials dict.

    Returns {"encrypted": {field: ciphertext}, "metadata": {field_iv, field_auth_tag, algorithm, encrypted_at}}.
    """
    encrypted: Dict[str, str] = {}
    metadata: Dict[str, Any] = {}
    for field, value in credentials.items():
        if not value or not isinstance(value, str):
            continue
        sealed = encrypt_credential(value)
        encrypted[field] = sealed["encrypted"]
        metadata[f"{field}_iv"] = sealed["iv"]
        metadata[f"{field}_auth_tag"] = sealed["auth_tag"]
    metadata["algorithm"] = ALGORITHM
    metadata["encrypted_at"] = datetime.now(timezone.utc).isoformat()
    logger.info(f"Encrypted {len(encrypted)} credential field(s)")
    return {"encrypted": encrypted, "metadata": metadata}


def decrypt_stored_credentials(credentials_encrypted: Any, metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Decrypt a stored credential blob.

    Two layouts exist: a field map ({field: ciphertext} with field_iv/field_auth_tag
    metadata) and a single ciphertext string holding a JSON object (iv/auth_tag metadata).
    """
    metadata = metadata or {}
    if isinstance(credentials_encrypted, str):
        auth_tag = metadata.get("auth_tag") or metadata.get("authTag")
        plaintext = decrypt_credential(credentials_encrypted, metadata.get("iv"), auth_tag)
        try:
            return json.loads(plaintext)
        except json.JSONDecodeError:
            raise EncryptionError("Stored credential is not a JSON object")

    decrypted: Dict[str, Any] = {}
    for field, value in (credentials_encrypted or {}).items():
        iv = metadata.get(f"{field}_iv")
        auth_tag = metadata.get(f"{field}_auth_tag")
        if isinstance(value, str) and iv and auth_tag:
            try:
                decrypted[field] = decrypt_credential(value, iv, auth_tag)
            except EncryptionError:
                raise EncryptionError(f"Failed to decrypt credential: {field}")
    return decrypted


def validate_encryption_setup() -> bool:
    """Round-trip a sample value with the configured key."""
    try:
        sample = "test-credential-data"
        sealed = encrypt_credential(sample)
        return decrypt_credential(sealed["encrypted"], sealed["iv"], sealed["auth_tag"]) == sample
    except EncryptionError as e:
        logger.error(f"Encryption setup validation failed: {e}")
        return False
