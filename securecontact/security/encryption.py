"""AES-256-GCM encryption of stored message bodies.

Each encryption derives a fresh key from the configured password and a new
random salt (PBKDF2-HMAC-SHA512), then encrypts under a new random nonce.
The stored blob is base64(salt || nonce || tag || ciphertext).
"""

import base64
import binascii
import logging
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import BaseModel

ALGORITHM = "aes-256-gcm"
SALT_LENGTH = 64
NONCE_LENGTH = 16
TAG_LENGTH = 16
KEY_LENGTH = 32
PBKDF2_ITERATIONS = 100_000
HEADER_LENGTH = SALT_LENGTH + NONCE_LENGTH + TAG_LENGTH

DECRYPTION_FAILED = "[ENCRYPTED MESSAGE - DECRYPTION FAILED]"


class CodecFailure(ValueError):
    """Encryption or decryption could not be completed."""


class EncodedMessage(BaseModel):
    """A message body as it is stored."""
    message: str
    encrypted: bool
    algorithm: Optional[str] = None


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 256-bit key from password and salt."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def encrypt(text: str, password: str) -> str:
    """
    Encrypt text under password.

    Returns:
        Base64 string of salt || nonce || tag || ciphertext

    Raises:
        CodecFailure: If the inputs cannot be encrypted
    """
    if not password:
        raise CodecFailure("Encryption password is required")
    try:
        salt = os.urandom(SALT_LENGTH)
        nonce = os.urandom(NONCE_LENGTH)
        key = derive_key(password, salt)
        # AESGCM returns ciphertext with the tag appended
        sealed = AESGCM(key).encrypt(nonce, text.encode("utf-8"), salt)
    except (TypeError, ValueError, AttributeError) as e:
        raise CodecFailure(f"Encryption failed: {e}") from e
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return base64.b64encode(salt + nonce + tag + ciphertext).decode("ascii")


def decrypt(blob: str, password: str) -> str:
    """
    Decrypt a blob produced by encrypt().

    Raises:
        CodecFailure: On a wrong password, a truncated or corrupted blob, or a tag mismatch
    """
    if not password:
        raise CodecFailure("Decryption password is required")
    try:
        combined = base64.b64decode(blob.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError, AttributeError) as e:
        raise CodecFailure(f"Malformed encrypted message: {e}") from e
    if len(combined) < HEADER_LENGTH:
        raise CodecFailure("Malformed encrypted message: too short")

    salt = combined[:SALT_LENGTH]
    nonce = combined[SALT_LENGTH:SALT_LENGTH + NONCE_LENGTH]
    tag = combined[SALT_LENGTH + NONCE_LENGTH:HEADER_LENGTH]
    ciphertext = combined[HEADER_LENGTH:]

    key = derive_key(password, salt)
    try:
        plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, salt)
        return plaintext.decode("utf-8")
    except (InvalidTag, UnicodeDecodeError) as e:
        raise CodecFailure("Decryption failed: authentication tag mismatch") from e


def encode_message(message: str, encryption_key: Optional[str]) -> EncodedMessage:
    """Encrypt message if an encryption key is configured."""
    if not encryption_key or not message:
        return EncodedMessage(message=message, encrypted=False)
    return EncodedMessage(message=encrypt(message, encryption_key), encrypted=True, algorithm=ALGORITHM)


def decode_message(blob: str, encryption_key: Optional[str]) -> str:
    """Decrypt a stored message body, returning DECRYPTION_FAILED instead of raising."""
    if not encryption_key:
        return DECRYPTION_FAILED
    try:
        return decrypt(blob, encryption_key)
    except CodecFailure as e:
        logging.error(f"Message decryption failed: {str(e)}")
        return DECRYPTION_FAILED
