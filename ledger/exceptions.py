"""
Custom exception classes and FastAPI exception handlers.

Why custom exceptions?
  The ledger engine raises domain-specific errors (like InsufficientFundsError)
  without importing HTTP concepts. The handler layer then translates these
  into proper HTTP responses.

  This separation means:
    - Engine code is testable without HTTP
    - Error responses are consistent across all endpoints
    - Adding new error types is straightforward

Exception hierarchy:
    LedgerError (base)
    ├── ValidationError             — 400, bad input shape or range
    │   ├── InvalidTypeError
    │   ├── InvalidAmountError
    │   ├── InvalidDescriptionError
    │   └── MissingTargetError
    ├── NotFoundError               — 404
    │   ├── AccountNotFoundError
    │   └── TargetAccountNotFoundError
    ├── BusinessRuleViolation       — 400, valid request the ledger refuses
    │   ├── InsufficientFundsError
    │   └── SelfTransferError
    ├── StorageError                — 500, detail is always generic
    │   └── PostingTimeoutError
    └── AuthError
        ├── DuplicateEmailError          — 409
        ├── InvalidCredentialsError      — 401
        ├── AuthenticationRequiredError  — 401
        └── InvalidTokenError            — 403

Every error response has the shape {"error": "...", "errorType": "..."},
including unexpected exceptions (500 "Internal server error").
"""

import logging
from decimal import Decimal

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class LedgerError(Exception):
    """Base exception for all Ledger API domain errors."""

    status_code = 400
    error_type = "ledger_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Validation errors (detected before any storage interaction)
# ---------------------------------------------------------------------------

class ValidationError(LedgerError):
    """The request is malformed or out of range; the caller can fix it."""

    error_type = "validation_error"


class InvalidTypeError(ValidationError):
    error_type = "invalid_type"

    def __init__(self):
        super().__init__(
            "Invalid transaction type. Must be 'DEPOSIT', 'WITHDRAWAL', or 'TRANSFER'"
        )


class InvalidAmountError(ValidationError):
    """Raised with one of several messages: non-positive, over limit, sub-cent."""

    error_type = "invalid_amount"


class InvalidDescriptionError(ValidationError):
    error_type = "invalid_description"


class MissingTargetError(ValidationError):
    error_type = "missing_target"

    def __init__(self):
        super().__init__("Target account ID is required for transfers")


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------

class NotFoundError(LedgerError):
    status_code = 404
    error_type = "not_found"


class AccountNotFoundError(NotFoundError):
    """Raised when the source (or requested) account does not exist."""

    error_type = "account_not_found"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__("Account not found")


class TargetAccountNotFoundError(NotFoundError):
    """Raised when a transfer names a destination that does not exist."""

    error_type = "target_not_found"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__("Target account not found")


# ---------------------------------------------------------------------------
# Business rule violations (detected inside the unit of work)
# ---------------------------------------------------------------------------

class BusinessRuleViolation(LedgerError):
    error_type = "business_rule_violation"


class InsufficientFundsError(BusinessRuleViolation):
    """
    Raised when a withdrawal or transfer would cause a negative balance.

    Attributes:
        account_id: The account that lacks sufficient funds.
        requested: The amount the caller tried to move out.
        available: The balance at the time of the attempt.
    """

    error_type = "insufficient_funds"

    def __init__(self, account_id: str, requested: Decimal, available: Decimal):
        self.account_id = account_id
        self.requested = requested
        self.available = available
        super().__init__("Insufficient funds")


class SelfTransferError(BusinessRuleViolation):
    error_type = "self_transfer"

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__("Cannot transfer to the same account")


# ---------------------------------------------------------------------------
# Storage errors
# ---------------------------------------------------------------------------

class StorageError(LedgerError):
    """
    Transient I/O or transaction failure.

    The underlying driver error is logged where it happens and chained as
    __cause__; it is never put into the response.
    """

    status_code = 500
    error_type = "storage_error"

    def __init__(self, detail: str = "Failed to create transaction"):
        super().__init__(detail)


class PostingTimeoutError(StorageError):
    error_type = "posting_timeout"


# ---------------------------------------------------------------------------
# Authentication collaborator
# ---------------------------------------------------------------------------

class AuthError(LedgerError):
    status_code = 401
    error_type = "auth_error"


class DuplicateEmailError(AuthError):
    """Raised when attempting to register with an email that's already in use."""

    status_code = 409
    error_type = "duplicate_email"

    def __init__(self, email: str):
        self.email = email
        super().__init__("Email already registered")


class InvalidCredentialsError(AuthError):
    """Raised when login credentials are incorrect."""

    error_type = "invalid_credentials"

    def __init__(self):
        super().__init__("Invalid email or password")


class AuthenticationRequiredError(AuthError):
    error_type = "authentication_required"

    def __init__(self):
        super().__init__("Access token required")


class InvalidTokenError(AuthError):
    status_code = 403
    error_type = "invalid_token"

    def __init__(self):
        super().__init__("Invalid or expired token")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _error_response(exc: LedgerError, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "errorType": exc.error_type, **extra},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Each branch of the hierarchy gets one handler; the concrete subclass
    supplies the status code and error_type. This is called once during
    app creation in main.py.
    """

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        return _error_response(exc)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(
        request: Request, exc: NotFoundError
    ) -> JSONResponse:
        return _error_response(exc)

    @app.exception_handler(InsufficientFundsError)
    async def insufficient_funds_handler(
        request: Request, exc: InsufficientFundsError
    ) -> JSONResponse:
        return _error_response(
            exc,
            requested=float(exc.requested),
            available=float(exc.available),
        )

    @app.exception_handler(BusinessRuleViolation)
    async def business_rule_handler(
        request: Request, exc: BusinessRuleViolation
    ) -> JSONResponse:
        return _error_response(exc)

    @app.exception_handler(StorageError)
    async def storage_error_handler(
        request: Request, exc: StorageError
    ) -> JSONResponse:
        # The cause was already logged with its traceback by the store
        logger.warning(
            "Request failed with storage error",
            extra={"path": request.url.path, "error_type": exc.error_type},
        )
        return _error_response(exc)

    @app.exception_handler(AuthError)
    async def auth_error_handler(
        request: Request, exc: AuthError
    ) -> JSONResponse:
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Body could not be parsed into the request schema at all
        errors = [
            {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]}
            for err in exc.errors()
        ]
        message = errors[0]["msg"] if errors else "Validation failed"
        return JSONResponse(
            status_code=400,
            content={"error": message, "errorType": "validation_error", "errors": errors},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail, "errorType": "http_error"},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        # Anything that reaches here is a bug; keep the details in the log
        logger.error(
            "Unhandled error",
            exc_info=exc,
            extra={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "errorType": "internal_error"},
        )
