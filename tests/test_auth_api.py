from datetime import timedelta

import pytest

from app.audit.models import AccessLog
from app.clock import today, utcnow
from app.config import settings
from app.security.sessions import issue_reset_token, issue_session
from app.users import crud as user_crud
from tests.conftest import DEFAULT_PASSWORD, register


COOKIE = settings.SESSION_COOKIE_NAME


def test_register_sets_session_cookie(make_client):
    client = make_client()
    response = client.post(
        "/auth/register",
        json={"email": "A@X.com", "password": DEFAULT_PASSWORD, "name": "Alice"},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["user"]["email"] == "a@x.com"
    assert body["data"]["session"]["user_id"] == body["data"]["user"]["id"]
    assert "hashed_password" not in body["data"]["user"]

    set_cookie = response.headers["set-cookie"]
    assert f"{COOKIE}=" in set_cookie
    assert "HttpOnly" in set_cookie
    assert f"Max-Age={settings.SESSION_EXPIRE_DAYS * 86400}" in set_cookie


@pytest.mark.parametrize(
    "password, error",
    [
        ("short1", "Password must be at least 8 characters"),
        ("abcdefgh", "Password must contain at least one digit"),
        ("12345678", "Password must contain at least one letter"),
    ],
)
def test_register_rejects_weak_password(make_client, db, password, error):
    client = make_client()
    response = client.post("/auth/register", json={"email": "a@x.com", "password": password, "name": "Alice"})

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"] == error
    assert COOKIE not in response.cookies
    assert user_crud.get_user_by_email(db, "a@x.com") is None


def test_register_rejects_bad_email_and_name(make_client, db):
    client = make_client()
    bad_email = client.post("/auth/register", json={"email": "nope", "password": DEFAULT_PASSWORD, "name": "Al"})
    bad_name = client.post("/auth/register", json={"email": "a@x.com", "password": DEFAULT_PASSWORD, "name": "A"})

    assert bad_email.status_code == 400
    assert bad_name.status_code == 400
    assert user_crud.get_user_by_email(db, "a@x.com") is None


def test_duplicate_email_is_conflict(make_client):
    register(make_client(), "a@x.com")
    response = make_client().post(
        "/auth/register",
        json={"email": "A@x.com", "password": DEFAULT_PASSWORD, "name": "Other"},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "CONFLICT"


def test_login_and_bad_credentials(make_client):
    register(make_client(), "a@x.com")
    client = make_client()

    wrong = client.post("/auth/login", json={"email": "a@x.com", "password": "wrong1234"})
    unknown = client.post("/auth/login", json={"email": "nobody@x.com", "password": DEFAULT_PASSWORD})
    assert wrong.status_code == 401
    assert unknown.status_code == 401
    assert wrong.json()["error"] == unknown.json()["error"] == "Invalid email or password"

    ok = client.post("/auth/login", json={"email": "a@x.com", "password": DEFAULT_PASSWORD})
    assert ok.status_code == 200
    assert client.get("/auth/session").status_code == 200


def test_login_requires_both_fields(make_client):
    response = make_client().post("/auth/login", json={"email": "a@x.com", "password": ""})
    assert response.status_code == 400


def test_protected_route_without_session(make_client):
    response = make_client().get("/expenses/")

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Not logged in", "code": "UNAUTHORIZED"}
    # nothing to clear when no cookie was sent
    assert "set-cookie" not in response.headers


def test_tampered_cookie_is_rejected_and_cleared(make_client, db):
    register(make_client(), "a@x.com")
    _, token = issue_session(user_crud.get_user_by_email(db, "a@x.com"))
    client = make_client(cookies={COOKIE: token + "x"})

    response = client.get("/categories/")

    assert response.status_code == 401
    assert "Max-Age=0" in response.headers["set-cookie"]


def test_expired_session_is_rejected_and_cleared(make_client, db):
    register(make_client(), "a@x.com")
    user = user_crud.get_user_by_email(db, "a@x.com")
    _, token = issue_session(user, issued_at=utcnow() - timedelta(days=31))
    client = make_client(cookies={COOKIE: token})

    response = client.get("/auth/session")

    assert response.status_code == 401
    assert "Max-Age=0" in response.headers["set-cookie"]


def test_logout_clears_cookie_and_always_succeeds(alice, make_client):
    response = alice.post("/auth/logout")
    assert response.status_code == 200
    assert "Max-Age=0" in response.headers["set-cookie"]
    assert alice.get("/auth/session").status_code == 401

    assert make_client().post("/auth/logout").status_code == 200


def test_me_and_profile_update_reissues_session(alice):
    before = alice.get("/auth/session").json()["data"]

    response = alice.put("/auth/me", json={"name": "Alice Cooper", "email": "alice@x.com"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["name"] == "Alice Cooper"
    assert data["session"]["email"] == "alice@x.com"
    assert data["session"]["created_at"] == before["created_at"]

    me = alice.get("/auth/me").json()["data"]
    assert me["user"]["email"] == "alice@x.com"
    assert me["session"]["name"] == "Alice Cooper"


def test_profile_update_rejects_taken_email(alice, bob):
    response = alice.put("/auth/me", json={"email": "b@x.com"})
    assert response.status_code == 400
    assert response.json()["code"] == "CONFLICT"


def test_forgot_password_does_not_reveal_accounts(alice, make_client):
    client = make_client()
    known = client.post("/auth/forgot-password", json={"email": "a@x.com"})
    unknown = client.post("/auth/forgot-password", json={"email": "ghost@x.com"})

    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json()


def test_reset_password_flow(alice, db, make_client):
    user = user_crud.get_user_by_email(db, "a@x.com")
    token = issue_reset_token(user)
    client = make_client()

    mismatch = client.post(
        "/auth/reset-password",
        json={"token": token, "new_password": "newpass123", "confirm_password": "newpass124"},
    )
    assert mismatch.status_code == 400

    ok = client.post(
        "/auth/reset-password",
        json={"token": token, "new_password": "newpass123", "confirm_password": "newpass123"},
    )
    assert ok.status_code == 200

    # the token is bound to the old password hash, so it works only once
    reused = client.post(
        "/auth/reset-password",
        json={"token": token, "new_password": "other1234", "confirm_password": "other1234"},
    )
    assert reused.status_code == 400

    assert client.post("/auth/login", json={"email": "a@x.com", "password": DEFAULT_PASSWORD}).status_code == 401
    assert client.post("/auth/login", json={"email": "a@x.com", "password": "newpass123"}).status_code == 200


def test_list_users_requires_admin(alice, admin):
    assert alice.get("/users/").status_code == 403

    response = admin.get("/users/")
    assert response.status_code == 200
    emails = {u["email"] for u in response.json()["data"]}
    assert emails == {"a@x.com", "admin@x.com"}
    assert response.json()["pagination"]["total"] == 2


def test_auth_events_are_audited(make_client, db):
    client = make_client()
    register(client, "a@x.com")
    client.post("/auth/login", json={"email": "a@x.com", "password": "wrong1234"})

    actions = {(log.action, log.success) for log in db.query(AccessLog).all()}
    assert ("REGISTER", True) in actions
    assert ("LOGIN", False) in actions


def test_full_scenario(make_client):
    u1 = make_client()
    registered = register(u1, "a@x.com", "abc12345", "Alice")
    user_id = registered["session"]["user_id"]

    login = u1.post("/auth/login", json={"email": "a@x.com", "password": "abc12345"})
    assert login.json()["data"]["session"]["user_id"] == user_id

    category = u1.post("/categories/", json={"name": "Food", "slug": "food", "color": "#ff0000"})
    assert category.status_code == 200
    category_id = category.json()["data"]["id"]

    expense = u1.post(
        "/expenses/",
        json={
            "amount": 12.50,
            "category_id": category_id,
            "description": "lunch",
            "date": (today() - timedelta(days=1)).isoformat(),
        },
    )
    assert expense.status_code == 200
    expense_id = expense.json()["data"]["id"]

    u2 = make_client()
    register(u2, "b@x.com", "abc12345", "Bob")
    assert u2.get(f"/expenses/{expense_id}").status_code == 404
    assert u1.get(f"/expenses/{expense_id}").status_code == 200
