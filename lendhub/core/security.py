"""
Security: password hashing and JWT bearer tokens.
Challenge: The lending core never sees credentials; it receives a resolved user.
Design: Tokens carry the user id as ``sub`` and the role as a hint for clients only;
authorization always re-reads the user row.
"""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from lendhub.config import get_settings

settings = get_settings()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

TOKEN_ISSUER = "lendhub"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def create_access_token(subject: str | int, role: str | None = None, expires_minutes: int | None = None) -> str:
    """Signed token for a user id. ``role`` is informational."""
    minutes = settings.jwt_expire_minutes if expires_minutes is None else expires_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    claims: dict[str, Any] = {"sub": str(subject), "exp": expire, "iss": TOKEN_ISSUER}
    if role:
        claims["role"] = role
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and validate JWT (signature, expiry, issuer). None if invalid."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm], issuer=TOKEN_ISSUER)
    except JWTError:
        return None
