"""Security utilities.

Session tokens are issued by the external identity provider; this module
only validates them. Anonymous voter tokens and private-post access codes
are generated here.
"""

import secrets
from typing import Any

from jose import JWTError, jwt

from validtot.core.config import settings

ANON_TOKEN_PREFIX = "anon_"

# Matches the width of the stored account id columns
MAX_ACCOUNT_ID_LENGTH = 64


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decode and validate a session JWT.

    Returns:
        The decoded payload or None if invalid
    """
    options = {"verify_aud": settings.JWT_AUDIENCE is not None}
    kwargs: dict[str, Any] = {}
    if settings.JWT_AUDIENCE is not None:
        kwargs["audience"] = settings.JWT_AUDIENCE
    if settings.JWT_ISSUER is not None:
        kwargs["issuer"] = settings.JWT_ISSUER

    try:
        return jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            options=options,
            **kwargs,
        )
    except JWTError:
        return None


def account_id_from_token(token: str) -> str | None:
    """
    Return the stable account identifier (``sub``) of a valid token.

    A subject too long to store is treated like an invalid token.
    """
    payload = decode_token(token)
    if payload is None:
        return None
    sub = payload.get("sub")
    if not sub or len(str(sub)) > MAX_ACCOUNT_ID_LENGTH:
        return None
    return str(sub)


def generate_anonymous_token() -> str:
    """Generate an opaque per-device voter token."""
    return ANON_TOKEN_PREFIX + secrets.token_urlsafe(settings.ANON_TOKEN_BYTES)


def generate_access_code(length: int | None = None) -> str:
    """
    Generate a private-post access code.

    Uses an alphabet without easily confused characters (no I, O, 0, 1).
    """
    size = length or settings.ACCESS_CODE_LENGTH
    alphabet = settings.ACCESS_CODE_ALPHABET
    return "".join(secrets.choice(alphabet) for _ in range(size))


def normalize_access_code(code: str | None) -> str:
    """Access codes compare case-insensitively and ignore surrounding spaces."""
    return (code or "").strip().upper()
