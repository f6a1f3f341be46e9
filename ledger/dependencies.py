"""
FastAPI dependencies for authentication and the ledger engine.

  get_current_user (bearer JWT -> User)
      Every ledger endpoint declares this. If the token is missing the
      request is rejected with 401; if it is invalid or expired, 403. The
      route handler never runs for an unauthenticated caller.

  get_ledger_engine (-> LedgerEngine)
      Returns the process-wide engine. There must be exactly one: the
      engine owns the per-account lock registry, and two registries would
      not serialize against each other. Tests override this dependency to
      point the engine at their own database.
"""

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.config import settings
from ledger.database import AsyncSessionLocal, get_db
from ledger.exceptions import AuthenticationRequiredError, InvalidTokenError
from ledger.models.user import User
from ledger.security import decode_access_token
from ledger.services.ledger_engine import LedgerEngine
from ledger.services.ledger_store import SqlAlchemyLedgerStore


# OAuth2PasswordBearer tells FastAPI where to look for the token:
# the "Authorization: Bearer <token>" header. auto_error=False lets us answer
# a missing token with our own error body instead of FastAPI's default.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

ledger_engine = LedgerEngine(
    SqlAlchemyLedgerStore(AsyncSessionLocal),
    timeout_seconds=settings.POSTING_TIMEOUT_SECONDS,
)


async def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Extract and validate the JWT token, then return the corresponding User.

    Raises:
        AuthenticationRequiredError (401): No bearer token was sent.
        InvalidTokenError (403): The token is invalid, expired, or names a
            user that no longer exists or is deactivated.
    """
    if not token:
        raise AuthenticationRequiredError()

    user_id = decode_access_token(token)

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise InvalidTokenError()

    return user


def get_ledger_engine() -> LedgerEngine:
    return ledger_engine
