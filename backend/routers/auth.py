import logging
from fastapi import APIRouter, Depends, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr, Field, field_validator
from datetime import datetime

from database import get_db
from config import get_settings
from errors import DuplicateEmailError, InvalidCredentialsError, NotFoundError
from models.user import User
from rate_limit import limiter
from auth import (
    TokenService,
    get_current_user_id,
    get_token_service,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_auth_limit = get_settings().AUTH_RATE_LIMIT


# --- Schemas ---

class _Credentials(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class RegisterRequest(_Credentials):
    name: str = Field(..., min_length=1, max_length=100)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class LoginRequest(_Credentials):
    pass


class MessageResponse(BaseModel):
    message: str


class LoginResponse(BaseModel):
    message: str = "Login successful"
    accessToken: str


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}


# --- Routes ---

def find_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()


@router.post("/register", response_model=MessageResponse, status_code=201)
@limiter.limit(_auth_limit)
def register(request: Request, payload: RegisterRequest, db: Session = Depends(get_db)):
    if find_user_by_email(db, payload.email):
        raise DuplicateEmailError()

    user = User(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email.
        db.rollback()
        raise DuplicateEmailError()
    logger.info(f"Registered user {user.id}")
    return MessageResponse(message="User registered")


@router.post("/login", response_model=LoginResponse)
@limiter.limit(_auth_limit)
def login(
    request: Request,
    payload: LoginRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    user = find_user_by_email(db, payload.email)
    if not user or not verify_password(payload.password, user.password_hash):
        raise InvalidCredentialsError()
    return LoginResponse(accessToken=tokens.issue(user.id))


@router.get("/me", response_model=UserResponse)
def get_me(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    return user
