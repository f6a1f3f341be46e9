"""
Credentials for the API user collaborator: password hashes and bearer tokens.

Ledger endpoints only need to know *which* user is calling, so a token here
carries nothing but the user's UUID ("sub") and its issue/expiry times.
Anything wrong with a presented token (bad signature, expired, no subject,
subject not a UUID) surfaces as a single InvalidTokenError, and the jose
exception types never leave this module.
"""

import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from ledger.config import settings
from ledger.exceptions import InvalidTokenError

# deprecated="auto" rehashes on verify if the scheme list ever changes
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user_id: uuid.UUID, expires_delta: timedelta | None = None) -> str:
    """
    Sign a bearer token for one API user.

    Args:
        user_id: The user the token authenticates as.
        expires_delta: Lifetime; defaults to ACCESS_TOKEN_EXPIRE_MINUTES.
            A negative delta yields an already-expired token.
    """
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    claims = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verify a bearer token and return the user id it was issued for.

    Raises:
        InvalidTokenError: The signature or expiry check fails, or the
            subject claim is missing or not a UUID.
    """
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        raise InvalidTokenError() from exc

    subject = claims.get("sub")
    if not isinstance(subject, str):
        raise InvalidTokenError()
    try:
        return uuid.UUID(subject)
    except ValueError as exc:
        raise InvalidTokenError() from exc
