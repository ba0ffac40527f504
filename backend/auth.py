import logging
from datetime import datetime, timedelta, timezone
from fastapi import Depends, Header, Request
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from config import get_settings
from errors import (
    InvalidOrExpiredTokenError,
    MalformedBodyError,
    MalformedTokenError,
    MissingSubjectError,
    ValidationError,
    field_errors,
)

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=get_settings().BCRYPT_ROUNDS,
)

BEARER_PREFIX = "Bearer "

# Claims that may carry the user id, in lookup order. Tokens minted before the
# switch to "sub" carried the id under "id".
SUBJECT_CLAIMS = ("sub", "user", "id")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


class TokenService:
    """Issues and verifies signed identity tokens.

    The signing secret is passed in by the caller; nothing here reads
    process-wide configuration.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(days=7)):
        if not secret:
            raise ValueError("TokenService requires a non-empty signing secret")
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, user_id: str, now: datetime | None = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "sub": str(user_id),
            "iat": issued_at,
            "exp": issued_at + self.ttl,
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> str:
        """Decode ``token`` and return the user id it names."""
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as e:
            logger.info(f"Rejected token: {e}")
            raise InvalidOrExpiredTokenError()

        for claim in SUBJECT_CLAIMS:
            user_id = payload.get(claim)
            if user_id:
                return str(user_id)
        raise MissingSubjectError()

    def verify_bearer(self, authorization: str | None) -> str:
        """Verify an ``Authorization: Bearer <token>`` header value."""
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise MalformedTokenError()
        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            raise MalformedTokenError()
        return self.verify(token)


def get_token_service() -> TokenService:
    settings = get_settings()
    return TokenService(
        secret=settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        ttl=timedelta(days=settings.JWT_EXPIRE_DAYS),
    )


def get_current_user_id(
    authorization: str | None = Header(default=None),
    tokens: TokenService = Depends(get_token_service),
) -> str:
    """Resolve the caller's user id from the bearer header. Raises AuthError on failure."""
    return tokens.verify_bearer(authorization)


def authenticated_body(model: type[BaseModel]):
    """Dependency that parses a JSON body into ``model`` only after the caller is authenticated.

    FastAPI reads declared body parameters before resolving dependencies, so a
    route that takes its payload through this dependency rejects a bad token
    with 401 even when the body is also malformed.
    """

    async def dependency(
        request: Request,
        user_id: str = Depends(get_current_user_id),
    ) -> BaseModel:
        try:
            raw = await request.json()
        except ValueError:
            raise MalformedBodyError()
        try:
            return model.model_validate(raw)
        except SchemaError as e:
            raise ValidationError(field_errors(e.errors(), strip_source=False))

    return dependency


def json_body_schema(model: type[BaseModel]) -> dict:
    """``openapi_extra`` entry documenting a body parsed by ``authenticated_body``."""
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": model.model_json_schema()}},
        }
    }
