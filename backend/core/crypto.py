"""
OAuth tokens are stored Fernet-encrypted; the key is derived from SECRET_KEY,
so rotating SECRET_KEY orphans every stored calendar connection.
"""
from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from core.config import settings
from core.errors import StorageError


def _build_fernet(secret: str) -> Fernet:
    key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode()).digest())
    return Fernet(key)


fernet = _build_fernet(settings.SECRET_KEY)


def encrypt_token(value: str | None) -> str | None:
    if value is None:
        return None
    return fernet.encrypt(value.encode()).decode()


def decrypt_token(ciphertext: str | None) -> str | None:
    if ciphertext is None:
        return None
    try:
        return fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken as exc:
        raise StorageError("Stored token cannot be decrypted with the current SECRET_KEY") from exc
