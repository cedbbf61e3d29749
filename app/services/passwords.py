from __future__ import annotations

import logging
import secrets

import bcrypt

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


# =========================
# PASSWORD (bcrypt direto, sem passlib)
# - passlib quebra com bcrypt 5.x
# =========================
def _normalize_password_for_bcrypt(password: str) -> bytes:
    """bcrypt só considera até 72 bytes; acima disso truncamos."""
    pw = (password or "").encode("utf-8")
    return pw[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(_normalize_password_for_bcrypt(password), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_normalize_password_for_bcrypt(plain_password), password_hash.encode("utf-8"))
    except ValueError:
        # hash corrompido ou em outro formato
        logger.warning("Stored password hash is not a valid bcrypt hash")
        return False


def unusable_password_hash() -> str:
    """Hash para contas OAuth, que nunca fazem login por senha."""
    return hash_password(secrets.token_urlsafe(32))
