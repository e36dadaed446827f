from __future__ import annotations

import base64
import os

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from registry_api.core.config import get_settings

NONCE_BYTES = 12


class EncryptionKeyError(RuntimeError):
    pass


def _load_key() -> bytes:
    settings = get_settings()
    raw = settings.ENCRYPTION_KEY_BASE64
    try:
        key = base64.b64decode(raw, validate=True)
    except Exception as e:  # noqa: BLE001
        raise EncryptionKeyError("ENCRYPTION_KEY_BASE64 must be valid base64") from e

    if len(key) != 32:
        raise EncryptionKeyError("ENCRYPTION_KEY_BASE64 must decode to 32 bytes (AES-256)")

    return key


def encrypt_bytes(*, plaintext: bytes, aad: bytes) -> bytes:
    nonce = os.urandom(NONCE_BYTES)
    ciphertext = AESGCM(_load_key()).encrypt(nonce, plaintext, aad)
    return nonce + ciphertext


def decrypt_bytes(*, blob: bytes, aad: bytes) -> bytes:
    if len(blob) <= NONCE_BYTES:
        raise ValueError("Encrypted blob is too short")

    nonce, ciphertext = blob[:NONCE_BYTES], blob[NONCE_BYTES:]
    return AESGCM(_load_key()).decrypt(nonce, ciphertext, aad)


def encrypt_text(value: str, *, aad: bytes) -> bytes:
    return encrypt_bytes(plaintext=value.encode("utf-8"), aad=aad)


def decrypt_text(blob: bytes, *, aad: bytes) -> str:
    return decrypt_bytes(blob=blob, aad=aad).decode("utf-8")
