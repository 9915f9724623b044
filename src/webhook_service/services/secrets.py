"""Endpoint secret generation and verification."""
from __future__ import annotations

import asyncio
import secrets

import bcrypt
import structlog

from webhook_service.settings import settings

logger = structlog.get_logger(__name__)

SECRET_HEADER = "x-webhook-secret"
SECRET_BYTES = 32


def generate_secret() -> str:
    """Return a new 256-bit secret, hex encoded."""
    return secrets.token_hex(SECRET_BYTES)


def hash_secret(secret: str, *, rounds: int | None = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or settings.secret_bcrypt_rounds)
    return bcrypt.hashpw(secret.encode("utf-8"), salt).decode("utf-8")


def verify_secret(secret: str, secret_hash: str) -> bool:
    """Check ``secret`` against a stored bcrypt hash.

    Returns False for empty secrets, malformed hashes or encoding errors.
    """
    if not secret or not secret_hash:
        return False
    try:
        return bcrypt.checkpw(secret.encode("utf-8"), secret_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False
    except Exception:
        logger.warning("Unexpected error during webhook secret verification", exc_info=True)
        return False


async def verify_secret_async(secret: str, secret_hash: str) -> bool:
    """Run :func:`verify_secret` in the default executor; bcrypt is CPU bound."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, verify_secret, secret, secret_hash)
