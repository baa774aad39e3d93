"""
Authentication utilities - password hashing and locally issued JWT tokens.

Only the offline fallback path uses these; when the remote API is reachable
it hashes passwords and issues tokens itself.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
from jose import JWTError, jwt

from ..config import settings


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a bcrypt hash."""
    try:
        return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))
    except ValueError:
        # Not a bcrypt hash (e.g. a record written by an older client)
        return False


def get_password_hash(password: str) -> str:
    """Hash a password with a fresh salt."""
    hashed = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt())
    return hashed.decode('utf-8')


def create_access_token(
    data: dict,
    expires_delta: Optional[timedelta] = None,
    config: Any = settings,
) -> str:
    """
    Create a signed JWT.

    Args:
        data: Claims to encode; `sub` should hold the user id
        expires_delta: Optional lifetime, defaults to the configured one
        config: Settings providing secret_key, algorithm and default lifetime

    Returns:
        str: Encoded JWT token
    """
    to_encode = data.copy()
    lifetime = expires_delta or timedelta(minutes=config.access_token_expire_minutes)
    to_encode.update({"exp": datetime.now(timezone.utc) + lifetime})
    return jwt.encode(to_encode, config.secret_key, algorithm=config.algorithm)


def decode_access_token(token: str, config: Any = settings) -> Optional[str]:
    """
    Decode and verify a locally issued token.

    Returns:
        Optional[str]: the user id in `sub`, or None if the token is invalid
    """
    try:
        payload = jwt.decode(token, config.secret_key, algorithms=[config.algorithm])
    except JWTError:
        return None
    return payload.get("sub")
