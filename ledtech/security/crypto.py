"""
Cryptographic primitives for protecting credentials and sensitive data
"""

import hmac
import json
import logging
import os
import secrets
from typing import Optional

import bcrypt
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ledtech.config import Config

logger = logging.getLogger(__name__)

KEY_LENGTH = 32  # AES-256
NONCE_LENGTH = 12
TAG_LENGTH = 16
SALT_LENGTH = 16
BCRYPT_MAX_BYTES = 72
ASSOCIATED_DATA = b"ledtech:data-encryption:v1"


def generate_key() -> str:
    """Generate a random 256-bit key, hex encoded (64 characters)"""
    return secrets.token_hex(KEY_LENGTH)


def _password_bytes(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes; newer releases refuse longer input
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password with bcrypt

    Args:
        password: Plain text password
        rounds: Cost factor, defaults to Config.BCRYPT_ROUNDS

    Returns:
        bcrypt hash string with the salt embedded
    """
    salt = bcrypt.gensalt(rounds or Config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a bcrypt hash; malformed hashes verify as False"""
    if not isinstance(password, str) or not isinstance(hashed, str):
        return False
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
    except ValueError:
        logger.warning("Password verification against malformed hash")
        return False


def _load_key(key: str) -> Optional[bytes]:
    try:
        key_bytes = bytes.fromhex(key)
    except (TypeError, ValueError):
        return None
    if len(key_bytes) != KEY_LENGTH:
        return None
    return key_bytes


def encrypt(plaintext: str, key: str) -> Optional[str]:
    """
    Encrypt text with AES-256-GCM

    Args:
        plaintext: Text to encrypt
        key: Hex encoded 256-bit key from generate_key()

    Returns:
        JSON document with hex encoded iv, ciphertext and auth tag,
        or None when the key is malformed
    """
    key_bytes = _load_key(key)
    if key_bytes is None or not isinstance(plaintext, str):
        logger.warning("Encryption requested with malformed key or input")
        return None

    nonce = os.urandom(NONCE_LENGTH)
    sealed = AESGCM(key_bytes).encrypt(nonce, plaintext.encode("utf-8"), ASSOCIATED_DATA)

    return json.dumps(
        {
            "iv": nonce.hex(),
            "encrypted": sealed[:-TAG_LENGTH].hex(),
            "authTag": sealed[-TAG_LENGTH:].hex(),
        }
    )


def decrypt(ciphertext: str, key: str) -> Optional[str]:
    """
    Decrypt a document produced by encrypt()

    Returns:
        The plaintext, or None if the key, document or tag is invalid
    """
    key_bytes = _load_key(key)
    if key_bytes is None:
        return None

    try:
        data = json.loads(ciphertext)
        nonce = bytes.fromhex(data["iv"])
        sealed = bytes.fromhex(data["encrypted"]) + bytes.fromhex(data["authTag"])
        plaintext = AESGCM(key_bytes).decrypt(nonce, sealed, ASSOCIATED_DATA)
        return plaintext.decode("utf-8")
    except (InvalidTag, ValueError, KeyError, TypeError) as e:
        logger.warning(f"Decryption failed: {type(e).__name__}")
        return None


def _sha256_hex(data: str) -> str:
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data.encode("utf-8"))
    return digest.finalize().hex()


def hash_sensitive_data(value: str, salt: Optional[str] = None) -> str:
    """
    One-way salted hash for sensitive values

    Returns:
        ``salt:hash`` so the salt travels with the digest
    """
    salt = salt or secrets.token_hex(SALT_LENGTH)
    return f"{salt}:{_sha256_hex(value + salt)}"


def verify_hashed_data(value: str, stored: str) -> bool:
    """Re-derive the hash of value with the stored salt and compare"""
    if not isinstance(value, str) or not isinstance(stored, str):
        return False

    # The digest is hex, so the last separator splits even a salt containing ':'
    salt, sep, expected = stored.rpartition(":")
    if not sep or not salt or not expected:
        return False

    actual = _sha256_hex(value + salt)
    return hmac.compare_digest(actual.encode(), expected.encode())
