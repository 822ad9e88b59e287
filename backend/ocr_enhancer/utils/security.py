"""
Admin password gate.
"""

import hashlib
import hmac
from typing import Optional

from fastapi import Header, HTTPException

from ocr_enhancer.config import settings

# scrypt cost parameters for ADMIN_PASSWORD_HASH
SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1
SCRYPT_DKLEN = 32


def hash_admin_password(password: str, salt: str) -> str:
    """Salted scrypt hex digest, the format expected in ADMIN_PASSWORD_HASH."""
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt.encode("utf-8"),
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        dklen=SCRYPT_DKLEN,
    ).hex()


def verify_admin_password(password: Optional[str]) -> bool:
    """Constant-time check against the configured hash. No hash, no access."""
    if not password or not settings.ADMIN_PASSWORD_HASH:
        return False
    candidate = hash_admin_password(password, settings.ADMIN_PASSWORD_SALT)
    return hmac.compare_digest(candidate, settings.ADMIN_PASSWORD_HASH.lower())


def require_admin(x_admin_password: Optional[str] = Header(None)) -> None:
    """FastAPI dependency guarding admin endpoints."""
    if not verify_admin_password(x_admin_password):
        raise HTTPException(status_code=401, detail="Admin password required")
