import uuid
from datetime import timedelta
from types import SimpleNamespace

from jose import jwt

from app.clock import utcnow
from app.config import settings
from app.security.sessions import (
    SessionStatus,
    issue_reset_token,
    issue_session,
    parse_reset_token,
    parse_session,
    reset_token_matches,
)


def make_user(**overrides):
    fields = dict(
        id=uuid.uuid4(),
        email="a@x.com",
        name="Alice",
        role="user",
        hashed_password="$argon2id$placeholder",
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_issued_session_parses_back():
    user = make_user()
    session, token = issue_session(user)

    result = parse_session(token)

    assert result.status is SessionStatus.VALID
    assert result.session.user_id == user.id
    assert result.session.email == "a@x.com"
    assert result.session.expires_at - session.created_at == timedelta(days=settings.SESSION_EXPIRE_DAYS)


def test_missing_token_is_absent():
    assert parse_session(None).status is SessionStatus.ABSENT
    assert parse_session("").status is SessionStatus.ABSENT


def test_tampered_token_is_malformed():
    _, token = issue_session(make_user())
    head, payload, signature = token.split(".")
    tampered = ".".join([head, payload, signature[::-1]])

    assert parse_session(tampered).status is SessionStatus.MALFORMED
    assert parse_session("garbage").status is SessionStatus.MALFORMED


def test_token_signed_with_other_key_is_malformed():
    token = jwt.encode(
        {"sub": str(uuid.uuid4()), "email": "a@x.com", "name": "A", "role": "user",
         "iat": 0, "exp": 32503680000},
        "another-key",
        algorithm=settings.ALGORITHM,
    )
    assert parse_session(token).status is SessionStatus.MALFORMED


def test_expired_session():
    _, token = issue_session(make_user(), issued_at=utcnow() - timedelta(days=31))
    result = parse_session(token)
    assert result.status is SessionStatus.EXPIRED
    assert result.session is None


def test_reissue_keeps_created_at():
    user = make_user()
    first, _ = issue_session(user, issued_at=utcnow() - timedelta(days=2))
    second, _ = issue_session(user, created_at=first.created_at)

    assert second.created_at == first.created_at
    assert second.expires_at > first.expires_at


def test_reset_token_does_not_open_a_session():
    token = issue_reset_token(make_user())
    assert parse_session(token).status is SessionStatus.MALFORMED


def test_session_token_is_not_a_reset_token():
    _, token = issue_session(make_user())
    assert parse_reset_token(token) is None


def test_reset_token_bound_to_current_password():
    user = make_user()
    claims = parse_reset_token(issue_reset_token(user))

    assert claims["sub"] == str(user.id)
    assert reset_token_matches(claims, user)

    user.hashed_password = "$argon2id$changed"
    assert not reset_token_matches(claims, user)
