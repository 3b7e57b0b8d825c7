"""Auth and profile endpoint tests."""
import warnings
from datetime import datetime, timedelta, timezone

import jwt
from conftest import register

import config
from auth import create_access_token


def test_register_and_login_happy_path(client):
    """Register -> login -> profile works."""
    reg = client.post(
        "/api/auth/register",
        json={"name": "Alice", "email": "Alice@Test.com", "password": "secret123"},
    )
    assert reg.status_code == 200
    data = reg.json()
    assert data["token"]
    assert data["user"]["email"] == "alice@test.com"
    assert "password" not in data["user"]

    login = client.post("/api/auth/login", json={"email": "alice@test.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["token"]

    me = client.get("/api/user/profile", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["user"]["name"] == "Alice"


def test_duplicate_email(client):
    register(client, "Alice", "alice@test.com")
    r = client.post(
        "/api/auth/register",
        json={"name": "Other", "email": "ALICE@test.com", "password": "secret123"},
    )
    assert r.status_code == 400
    assert r.json()["detail"] == "Email already registered"


def test_register_validation(client):
    r = client.post("/api/auth/register", json={"name": "A", "email": "a@test.com", "password": "123"})
    assert r.status_code == 400
    assert "Password" in r.json()["detail"]

    r = client.post("/api/auth/register", json={"name": "  ", "email": "a@test.com", "password": "secret123"})
    assert r.status_code == 400

    r = client.post("/api/auth/register", json={"name": "A", "email": "not-an-email", "password": "secret123"})
    assert r.status_code == 400


def test_wrong_password_fails(client):
    register(client, "Alice")
    r = client.post("/api/auth/login", json={"email": "alice@test.com", "password": "wrong-one"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid credentials"


def test_session_cookie(client):
    register(client, "Alice")
    r = client.get("/api/user/profile")
    assert r.status_code == 200
    assert r.json()["user"]["name"] == "Alice"


def test_missing_or_bad_session(client):
    client.cookies.clear()
    assert client.get("/api/user/profile").status_code == 401

    r = client.get("/api/user/profile", headers={"Authorization": "Bearer garbage"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid session"


def test_expired_session(client, alice):
    _, user_id = alice
    token = jwt.encode(
        {"sub": user_id, "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        config.JWT_SECRET,
        algorithm=config.JWT_ALGORITHM,
    )
    r = client.get("/api/user/profile", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Session expired"


def test_update_profile(client, alice, bob):
    headers, _ = alice
    r = client.patch("/api/user/profile", json={"name": "Ally", "gender": "female"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["user"]["name"] == "Ally"
    assert r.json()["user"]["gender"] == "female"

    r = client.patch("/api/user/profile", json={"email": "bob@test.com"}, headers=headers)
    assert r.status_code == 400
    assert r.json()["detail"] == "This email is already used by another account"


def test_logout(client):
    assert client.post("/api/auth/logout").json() == {"success": True}


def test_default_signing_key_is_long_enough():
    """HS256 keys shorter than 32 bytes make PyJWT warn on every token."""
    assert len(config.JWT_SECRET.encode()) >= 32
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        token = create_access_token("user-1")
        payload = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    assert payload["sub"] == "user-1"
