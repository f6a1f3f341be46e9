"""
Pydantic schemas for authentication endpoints (register, login, me).

Pydantic validates incoming data automatically — if a required field is
missing or malformed, the request is answered with 400 before our code
even runs.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from ledger.schemas.common import CamelModel


class RegisterRequest(BaseModel):
    """Request body for POST /auth/register."""
    email: EmailStr                                # Validates email format
    password: str = Field(min_length=8)            # Minimum 8 characters
    name: str = Field(min_length=1, max_length=100)


class LoginRequest(BaseModel):
    """Request body for POST /auth/login."""
    email: EmailStr
    password: str


class UserResponse(CamelModel):
    """Public user data. hashed_password is never part of any response."""
    id: uuid.UUID
    email: str
    name: str
    created_at: datetime


class AuthResponse(CamelModel):
    """Response body for register and login."""
    user: UserResponse
    token: str
    token_type: str = "bearer"
