from utils import create_access_token
from tests.helpers import register


def test_register_returns_token_and_profile(client):
    response = client.post("/api/auth/register", json={
        "username": "dana",
        "email": "Dana@Example.com",
        "password": "secret123",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["token"]
    assert data["user"]["username"] == "dana"
    assert data["user"]["email"] == "dana@example.com"
    assert "password" not in data["user"]


def test_register_duplicate_email(client, alice):
    response = client.post("/api/auth/register", json={
        "username": "alice2",
        "email": "alice@example.com",
        "password": "secret123",
    })
    assert response.status_code == 400
    assert response.json()["message"] == "User already exists"


def test_register_invalid_payload(client):
    response = client.post("/api/auth/register", json={"username": "x", "email": "not-an-email"})
    assert response.status_code == 400
    params = {error["param"] for error in response.json()["errors"]}
    assert {"username", "email", "password"} <= params


def test_login(client, alice):
    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert response.status_code == 200
    assert response.json()["user"]["id"] == alice["id"]

    response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "wrong-pass"})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid credentials"


def test_me(client, alice):
    response = client.get("/api/auth/me", headers=alice["headers"])
    assert response.status_code == 200
    assert response.json()["username"] == "alice"


def test_missing_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"message": "No token, authorization denied"}


def test_bad_token(client):
    response = client.get("/api/books/user/my-books", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json() == {"message": "Token is not valid"}


def test_token_for_unknown_user(client):
    token = create_access_token({"user_id": "64b7f0c2a1b2c3d4e5f60718"})
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 404


def test_register_helper_users_are_distinct(client):
    first = register(client, "erin")
    second = register(client, "frank")
    assert first["id"] != second["id"]
