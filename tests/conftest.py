import os

# Settings are read once and cached; configure before any app module is imported.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from auth import get_token_service, hash_password
from database import Base, get_db
from main import app
from models.todo import Todo
from models.user import User


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def token_service():
    return get_token_service()


@pytest.fixture
def make_user(db):
    def _make_user(email="alice@example.com", name="Alice", password="secret123"):
        user = User(name=name, email=email, password_hash=hash_password(password))
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def auth_headers(user, token_service):
    return {"Authorization": f"Bearer {token_service.issue(user.id)}"}


@pytest.fixture
def add_todo(db):
    def _add_todo(user, title="task", completed_at: datetime | None = None):
        todo = Todo(
            title=title,
            user_id=user.id,
            completed=completed_at is not None,
            completed_at=completed_at,
        )
        db.add(todo)
        db.commit()
        db.refresh(todo)
        return todo

    return _add_todo
