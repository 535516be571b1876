"""Fernet encryption for secrets stored at rest (OAuth tokens, TOTP secrets)"""

import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from ..config import SECRET_KEY

logger = logging.getLogger(__name__)


# Generate encryption key from SECRET_KEY
def get_fernet_key() -> bytes:
    key = hashlib.sha256(SECRET_KEY.encode()).digest()
    return base64.urlsafe_b64encode(key)


cipher = Fernet(get_fernet_key())


def encrypt_value(value: str) -> str:
    return cipher.encrypt(value.encode()).decode()


def decrypt_value(value: Optional[str]) -> Optional[str]:
    """Decrypt a stored secret, returning None if it cannot be decrypted"""
    if not value:
        return None
    try:
        return cipher.decrypt(value.encode()).decode()
    except InvalidToken:
        logger.error("❌ Failed to decrypt stored secret - key mismatch or corrupted value")
        return None


def hash_value(value: str) -> str:
    """One-way SHA-256 hex digest"""
    return hashlib.sha256(value.encode()).hexdigest()
