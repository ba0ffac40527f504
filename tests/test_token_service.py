from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth import TokenService, hash_password, verify_password
from errors import InvalidOrExpiredTokenError, MalformedTokenError, MissingSubjectError

SECRET = "unit-test-secret"


@pytest.fixture
def tokens():
    return TokenService(secret=SECRET)


def test_round_trip(tokens):
    assert tokens.verify(tokens.issue("user-123")) == "user-123"


def test_expires_after_seven_days(tokens):
    issued_at = datetime.now(timezone.utc) - timedelta(days=7, seconds=5)
    token = tokens.issue("user-123", now=issued_at)

    with pytest.raises(InvalidOrExpiredTokenError):
        tokens.verify(token)


def test_still_valid_just_before_expiry(tokens):
    issued_at = datetime.now(timezone.utc) - timedelta(days=6, hours=23)
    assert tokens.verify(tokens.issue("user-123", now=issued_at)) == "user-123"


def test_embeds_expiry_claim(tokens):
    issued_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
    claims = jwt.get_unverified_claims(tokens.issue("u", now=issued_at))

    assert claims["sub"] == "u"
    assert claims["exp"] - claims["iat"] == int(timedelta(days=7).total_seconds())


def test_rejects_token_signed_with_other_secret(tokens):
    forged = TokenService(secret="someone-else").issue("user-123")

    with pytest.raises(InvalidOrExpiredTokenError):
        tokens.verify(forged)


def test_rejects_garbage(tokens):
    with pytest.raises(InvalidOrExpiredTokenError):
        tokens.verify("not-a-jwt")


def test_missing_subject(tokens):
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode({"exp": exp, "email": "a@example.com"}, SECRET, algorithm="HS256")

    with pytest.raises(MissingSubjectError):
        tokens.verify(token)


def test_accepts_user_claim(tokens):
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode({"user": "user-claim", "exp": exp}, SECRET, algorithm="HS256")

    assert tokens.verify(token) == "user-claim"


def test_sub_wins_over_legacy_claims(tokens):
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode({"sub": "a", "user": "b", "id": "c", "exp": exp}, SECRET, algorithm="HS256")

    assert tokens.verify(token) == "a"


def test_accepts_legacy_id_claim(tokens):
    exp = datetime.now(timezone.utc) + timedelta(hours=1)
    token = jwt.encode({"id": "legacy-user", "exp": exp}, SECRET, algorithm="HS256")

    assert tokens.verify(token) == "legacy-user"


@pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer ", "Token abc", "bearer abc"])
def test_bearer_header_must_be_well_formed(tokens, header):
    with pytest.raises(MalformedTokenError):
        tokens.verify_bearer(header)


def test_bearer_header(tokens):
    token = tokens.issue("user-9")
    assert tokens.verify_bearer(f"Bearer {token}") == "user-9"


def test_requires_secret():
    with pytest.raises(ValueError):
        TokenService(secret="")


def test_password_hashing():
    digest = hash_password("secret123")

    assert digest != "secret123"
    assert verify_password("secret123", digest)
    assert not verify_password("secret124", digest)
