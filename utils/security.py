"""
security helpers:
- Argon2 password hashing via argon2-cffi
- JWT access token creation/verification via PyJWT
- random identifiers for token ids and opaque secrets
"""
from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timezone
from typing import Dict, Any

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from flask import current_app

ph = PasswordHasher()


class TokenError(Exception):
    """Raised when an access token fails verification."""


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2 (random salt per call)."""
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a plaintext password against an Argon2 hash.
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID)."""
    return str(uuid.uuid4())


def generate_opaque_token(nbytes: int) -> str:
    """Cryptographically random hex string (2 * nbytes characters)."""
    return secrets.token_hex(nbytes)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def access_token_lifetime() -> int:
    """Access-token lifetime in seconds."""
    return int(current_app.config["ACCESS_TOKEN_EXPIRES"].total_seconds())


def create_access_token(user) -> str:
    """
    Sign a short-lived access token for ``user``.
    Carries identity plus the roles used for authorization checks.
    """
    config = current_app.config
    issued = _now()
    payload = {
        "iss": config["JWT_ISSUER"],
        "aud": config["JWT_AUDIENCE"],
        "sub": str(user.id),
        "email": user.email,
        "roles": list(user.roles or []),
        "iat": issued,
        "exp": issued + config["ACCESS_TOKEN_EXPIRES"],
        "type": "access",
        "jti": generate_jti(),
    }
    return jwt.encode(payload, config["JWT_SECRET"], algorithm=config["JWT_ALGORITHM"])


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate an access token (signature, expiry, issuer, audience).
    Raises TokenError on any failure.
    """
    config = current_app.config
    try:
        decoded = jwt.decode(
            token,
            config["JWT_SECRET"],
            algorithms=[config["JWT_ALGORITHM"]],
            issuer=config["JWT_ISSUER"],
            audience=config["JWT_AUDIENCE"],
            options={"require": ["exp", "sub", "iss", "aud"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError:
        raise TokenError("Invalid token")

    if decoded.get("type") != "access":
        raise TokenError("Wrong token type")
    return decoded
