from fastapi.testclient import TestClient
from salon_api.main import app
from salon_api.models.db_models import RefreshToken, User, Role
from salon_api.services.auth_service import seed_admins, parse_seed_admins

client = TestClient(app)


def test_login_returns_token_and_cookie(admin_user):
    response = client.post("/api/auth/login", json={"email": "admin@salon.test", "password": "secret123"})
    assert response.status_code == 200
    data = response.json()
    assert data["accessToken"]
    assert data["user"] == {"id": admin_user.id, "name": "Rachell", "email": "admin@salon.test", "role": "ADMIN"}
    assert "token" in response.cookies


def test_login_wrong_password(admin_user):
    response = client.post("/api/auth/login", json={"email": "admin@salon.test", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"status": "error", "message": "Credenciales inválidas"}


def test_register_and_duplicate_email():
    payload = {"name": "Ana", "email": "Ana@Mail.com", "password": "123456"}
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201
    assert response.json()["user"]["email"] == "ana@mail.com"
    assert response.json()["user"]["role"] == "USER"

    again = client.post("/api/auth/register", json=payload)
    assert again.status_code == 400
    assert again.json()["message"] == "El email ya está registrado"


def test_register_short_password_is_validation_error():
    response = client.post("/api/auth/register", json={"name": "Ana", "email": "a@b.com", "password": "123"})
    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "error"
    assert any(e["field"] == "password" for e in body["errors"])


def test_refresh_rotates_token(admin_user, db):
    login = client.post("/api/auth/login", json={"email": "admin@salon.test", "password": "secret123"})
    old_token = login.cookies["token"]

    response = client.post("/api/auth/refresh", json={"refreshToken": old_token})
    assert response.status_code == 200
    assert response.json()["accessToken"]

    db.expire_all()
    tokens = db.query(RefreshToken).filter(RefreshToken.user_id == admin_user.id).all()
    assert len(tokens) == 1
    assert tokens[0].token != old_token

    client.cookies.clear()
    reused = client.post("/api/auth/refresh", json={"refreshToken": old_token})
    assert reused.status_code == 401


def test_refresh_without_token():
    client.cookies.clear()
    response = client.post("/api/auth/refresh")
    assert response.status_code == 401


def test_logout_revokes_token(admin_user, db):
    client.post("/api/auth/login", json={"email": "admin@salon.test", "password": "secret123"})
    response = client.post("/api/auth/logout")
    assert response.status_code == 200
    db.expire_all()
    assert db.query(RefreshToken).count() == 0
    client.cookies.clear()


def test_me_requires_token(admin_headers):
    assert client.get("/api/auth/me").status_code == 401
    response = client.get("/api/auth/me", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["email"] == "admin@salon.test"


def test_invalid_token_rejected():
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["message"] == "Token inválido o expirado"


def test_admin_route_forbidden_for_user(user_headers):
    response = client.get("/api/appointments", headers=user_headers)
    assert response.status_code == 403


def test_seed_admins_is_idempotent(db):
    raw = "Rachell:rachell@salon.test:pass1234;broken-entry"
    assert parse_seed_admins(raw) == [("Rachell", "rachell@salon.test", "pass1234")]
    assert seed_admins(db, raw) == 1
    assert seed_admins(db, raw) == 0
    user = db.query(User).filter(User.email == "rachell@salon.test").one()
    assert user.role == Role.ADMIN
