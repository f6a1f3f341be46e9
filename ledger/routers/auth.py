"""
Authentication router — register, login and current-user endpoints.

POST /auth/register and POST /auth/login are the only public
(unauthenticated) endpoints besides /health. Everything else requires a
valid JWT token.

Endpoints:
  POST /auth/register  — Create a user and get a token
  POST /auth/login     — Authenticate and get a token
  GET  /auth/me        — The authenticated user

Security audit notes:
  - Plaintext passwords exist only in memory during request processing;
    they are hashed before any database operation and never logged.
  - JWT tokens appear only in response bodies, which are not logged.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ledger.database import get_db
from ledger.dependencies import get_current_user
from ledger.models.user import User
from ledger.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from ledger.services import auth_service

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Register a new API user and log them in.

    - **email**: Must be a valid email format and not already registered
    - **password**: Minimum 8 characters
    - **name**: Required, 1-100 characters
    """
    user, token = await auth_service.register(
        db=db,
        email=request.email,
        password=request.password,
        name=request.name,
    )
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="Authenticate and get a token",
)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Authenticate with email and password.

    Returns a JWT bearer token that must be included in the Authorization
    header for all subsequent requests:

        Authorization: Bearer <token>
    """
    user, token = await auth_service.login(
        db=db,
        email=request.email,
        password=request.password,
    )
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Get the authenticated user",
)
async def me(user: User = Depends(get_current_user)):
    return user
