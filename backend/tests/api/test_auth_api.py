from saysense.models import User
from saysense.services import auth_service


def test_register_returns_token_pair(client, make_user) -> None:
    user = make_user("Alice")

    assert user["accessToken"]
    assert user["refreshToken"]
    assert user["tokenType"] == "bearer"
    assert user["user"]["name"] == "Alice"
    assert user["user"]["role"] == "user"
    assert user["user"]["isGuest"] is False
    assert "passwordHash" not in user["user"]


def test_register_duplicate_email_conflicts(client, make_user) -> None:
    user = make_user("Alice")
    resp = client.post(
        "/auth/register",
        json={"email": user["email"].upper(), "password": "another-pass", "name": "Alice Again"},
    )
    assert resp.status_code == 409
    assert resp.json() == {"detail": "Email already registered"}


def test_register_validates_payload(client) -> None:
    resp = client.post("/auth/register", json={"email": "not-an-email", "password": "x", "name": ""})
    assert resp.status_code == 422


def test_login_with_valid_and_invalid_credentials(client, make_user) -> None:
    user = make_user("Bob")

    ok = client.post("/auth/login", json={"email": user["email"], "password": user["password"]})
    assert ok.status_code == 200
    assert ok.json()["user"]["id"] == user["user"]["id"]

    bad = client.post("/auth/login", json={"email": user["email"], "password": "wrong-password"})
    assert bad.status_code == 401
    assert bad.json() == {"detail": "Invalid credentials"}

    unknown = client.post("/auth/login", json={"email": "nobody@example.com", "password": "whatever"})
    assert unknown.status_code == 401


def test_guest_account_cannot_log_in(client) -> None:
    resp = client.post("/auth/guest")
    assert resp.status_code == 201
    guest = resp.json()["user"]
    assert guest["isGuest"] is True
    assert guest["name"] == "Guest User"
    assert guest["email"].startswith("guest-")
    assert guest["email"].endswith("@saysense.app")

    login = client.post("/auth/login", json={"email": guest["email"], "password": "anything"})
    assert login.status_code == 401


def test_guest_can_use_protected_endpoints(client) -> None:
    token = client.post("/auth/guest").json()["accessToken"]
    resp = client.get("/sessions", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 200
    assert resp.json() == []


def test_refresh_issues_new_tokens(client, make_user) -> None:
    user = make_user("Carol")

    resp = client.post("/auth/refresh", json={"refreshToken": user["refreshToken"]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["user"]["id"] == user["user"]["id"]
    assert client.get("/sessions", headers={"Authorization": f"Bearer {body['accessToken']}"}).status_code == 200


def test_refresh_rejects_access_token(client, make_user) -> None:
    user = make_user("Dave")
    resp = client.post("/auth/refresh", json={"refreshToken": user["accessToken"]})
    assert resp.status_code == 401


def test_protected_endpoint_requires_bearer(client) -> None:
    assert client.get("/sessions").status_code == 401
    resp = client.get("/sessions", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json() == {"detail": "Invalid token"}


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_register_unique_violation_maps_to_conflict(client, db_factory, make_user, monkeypatch) -> None:
    existing = make_user("Alice")
    # skip the pre-insert lookup so the unique constraint is what rejects the row
    monkeypatch.setattr(auth_service, "_active_user_by_email", lambda db, email: None)

    resp = client.post(
        "/auth/register",
        json={"email": existing["email"], "password": "another-pass", "name": "Alice Again"},
    )

    assert resp.status_code == 409
    assert resp.json() == {"detail": "Email already registered"}
    db = db_factory()
    try:
        assert db.query(User).filter(User.email == existing["email"]).count() == 1
    finally:
        db.close()
