"""Application error taxonomy and the FastAPI handlers that render it.

Every error a route can raise on purpose is an ``AppError``; it carries its
HTTP status and a caller-safe message. Anything else is an internal failure
and is rendered as a generic 500 after being logged.
"""

import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_body(self) -> dict:
        return {"error": self.message}


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"

    def __init__(self, errors: list[dict], message: str | None = None):
        self.errors = errors
        super().__init__(message)

    def to_body(self) -> dict:
        return {"error": self.message, "errors": self.errors}


class MalformedBodyError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid or empty JSON body"


# --- Authentication ---

class AuthError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class MalformedTokenError(AuthError):
    message = "Authorization token missing or malformed"


class InvalidOrExpiredTokenError(AuthError):
    message = "Invalid token"


class MissingSubjectError(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "User ID not found in token"


class InvalidCredentialsError(AuthError):
    message = "Invalid email or password"


class DuplicateEmailError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Email already exists"


# --- Resources ---

class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class InvalidRangeError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid range parameter"


# --- Handlers ---

def _field_name(loc: tuple) -> str:
    # Drop the leading "body"/"query"/"path" segment FastAPI prepends.
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts)


def field_errors(raw: list[dict], strip_source: bool = True) -> list[dict]:
    """Flatten Pydantic error dicts into ``{"field", "message"}`` pairs.

    ``strip_source`` drops FastAPI's leading location segment; errors from a
    direct ``model_validate`` call have none.
    """
    errors = []
    for err in raw:
        loc = tuple(err.get("loc", ()))
        field = _field_name(loc) if strip_source else ".".join(str(p) for p in loc)
        errors.append({"field": field, "message": err.get("msg", "")})
    return errors


def validation_error_from(exc: RequestValidationError) -> AppError:
    raw = exc.errors()
    if any(err.get("type") == "json_invalid" for err in raw):
        return MalformedBodyError()
    errors = field_errors(raw)
    # A missing body shows up as a single required error at loc ("body",).
    if len(raw) == 1 and tuple(raw[0].get("loc", ())) == ("body",) and raw[0].get("type") == "missing":
        return MalformedBodyError()
    return ValidationError(errors)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await app_error_handler(request, validation_error_from(exc))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
