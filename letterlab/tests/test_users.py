"""
Tests for registration, login and the profile endpoint.

Validates:
1. Registration returns a usable token and stores a bcrypt hash
2. Duplicate emails are rejected without creating a second user
3. Login failures do not reveal which part was wrong
4. /me requires a valid token and never returns the password
"""

import pytest
from jose import jwt

from conftest import auth_header, register
from letterlab import config
from letterlab.auth import create_access_token, decode_token, hash_password, verify_password
from letterlab.models_db import User


class TestPasswords:

    def test_hash_roundtrip(self):
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("wrong", hashed)

    def test_overlong_password_never_verifies(self):
        hashed = hash_password("x" * 72)
        assert verify_password("x" * 72, hashed)
        assert not verify_password("x" * 100, hashed)
        assert not verify_password("\u00e9" * 50, hashed)

    def test_overlong_password_is_not_hashed(self):
        with pytest.raises(ValueError):
            hash_password("\u00e9" * 37)


class TestTokens:

    def test_token_carries_user_id(self):
        assert decode_token(create_access_token("user-1")) == "user-1"

    def test_tampered_token_is_rejected(self):
        forged = jwt.encode({"sub": "user-1"}, "not-the-secret", algorithm=config.JWT_ALGORITHM)
        assert decode_token(forged) is None

    def test_expired_token_is_rejected(self):
        expired = jwt.encode({"sub": "user-1", "exp": 1}, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)
        assert decode_token(expired) is None


class TestRegister:

    def test_register_returns_token(self, client):
        data = register(client, name="Ada", email="ada@example.com")
        assert set(data) == {"_id", "name", "email", "token"}
        assert data["name"] == "Ada"
        assert decode_token(data["token"]) == data["_id"]

    def test_email_is_lowercased(self, client):
        data = register(client, email="  Ada@Example.COM ")
        assert data["email"] == "ada@example.com"

    def test_password_is_hashed(self, client, session):
        data = register(client)
        user = session.get(User, data["_id"])
        assert user.password_hash != "secret123"
        assert verify_password("secret123", user.password_hash)
        assert user.plan == "free"
        assert user.tokens_remaining == 1000

    def test_duplicate_email_rejected(self, client, session):
        register(client, email="ada@example.com")
        resp = client.post(
            "/api/users/register",
            json={"name": "Other", "email": "ADA@example.com", "password": "another1"},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Email already in use."}
        assert session.query(User).filter(User.email == "ada@example.com").count() == 1

    def test_missing_fields(self, client):
        resp = client.post("/api/users/register", json={"email": "ada@example.com"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "All fields are required."

    def test_short_password(self, client):
        resp = client.post(
            "/api/users/register",
            json={"name": "Ada", "email": "ada@example.com", "password": "123"},
        )
        assert resp.status_code == 400

    @pytest.mark.parametrize("password", ["x" * 100, "\u00e9" * 50])
    def test_password_over_72_bytes(self, client, session, password):
        resp = client.post(
            "/api/users/register",
            json={"name": "Ada", "email": "ada@example.com", "password": password},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Password must be at most 72 bytes."}
        assert session.query(User).count() == 0


class TestLogin:

    def test_login_success(self, client):
        created = register(client)
        resp = client.post("/api/users/login", json={"email": "ADA@example.com", "password": "secret123"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["_id"] == created["_id"]
        assert decode_token(data["token"]) == created["_id"]

    def test_wrong_password_and_unknown_email_look_the_same(self, client):
        register(client)
        wrong = client.post("/api/users/login", json={"email": "ada@example.com", "password": "nope"})
        unknown = client.post("/api/users/login", json={"email": "who@example.com", "password": "nope"})
        assert wrong.status_code == unknown.status_code == 400
        assert wrong.json() == unknown.json() == {"error": "Invalid credentials."}

    def test_overlong_password_is_invalid_credentials(self, client):
        register(client)
        resp = client.post("/api/users/login", json={"email": "ada@example.com", "password": "x" * 100})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid credentials."}


class TestMe:

    def test_profile_without_password(self, client):
        created = register(client)
        resp = client.get("/api/users/me", headers=auth_header(created["token"]))
        assert resp.status_code == 200
        data = resp.json()
        assert data["_id"] == created["_id"]
        assert data["plan"] == "free"
        assert data["tokensRemaining"] == 1000
        assert "password" not in data and "passwordHash" not in data

    def test_missing_token(self, client):
        resp = client.get("/api/users/me")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Missing token"}

    def test_invalid_token(self, client):
        resp = client.get("/api/users/me", headers=auth_header("garbage"))
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid or expired token"}

    def test_token_for_unknown_user(self, client):
        token = create_access_token("00000000-0000-0000-0000-000000000000")
        resp = client.get("/api/users/me", headers=auth_header(token))
        assert resp.status_code == 404

    def test_ping(self, client):
        assert client.get("/api/users/ping").json() == {"ok": True, "where": "users router"}
