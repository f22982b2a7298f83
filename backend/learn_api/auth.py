"""Credential hashing and session token helpers.

Passwords are stored as salted one-way hashes through passlib and are
only ever verified against the stored hash. Session tokens are HS256
JWTs carrying the user id (as `userId` and `user_id`) and email with
a fixed expiry.
"""

from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from .config import Settings
from .errors import UnauthorizedError

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return PWD_CTX.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Check `password` against a stored hash; malformed hashes never match."""
    try:
        return PWD_CTX.verify(password, password_hash)
    except ValueError:
        return False


def issue_token(settings: Settings, user_id: str, email: str) -> str:
    """Sign a token for `user_id`/`email` that expires after the configured hours."""
    expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
    # `userId` is what existing frontends read; `user_id` matches the rest of the API
    payload = {"userId": user_id, "user_id": user_id, "email": email, "exp": int(expire.timestamp())}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(settings: Settings, token: str) -> dict:
    """Decode and verify a token.

    Returns the decoded claims on success or raises `UnauthorizedError`
    when the signature is wrong or the token has expired.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("token expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("invalid token")
