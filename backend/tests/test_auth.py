from app.core.security import create_access_token
from app.models.user import UserRole


def test_principal_login_and_me(client, principal_headers):
    response = client.get("/api/auth/me", headers=principal_headers)

    assert response.status_code == 200
    assert response.json() == {"role": "PRINCIPAL", "can_edit_base_schedule": True}


def test_management_cannot_edit_base_schedule(client, management_headers):
    assert client.get("/api/auth/me", headers=management_headers).json()["can_edit_base_schedule"] is False


def test_wrong_password_is_rejected(client):
    response = client.post("/api/auth/login", json={"role": "PRINCIPAL", "password": "ssc123"})

    assert response.status_code == 401
    assert response.json() == {"message": "Invalid password", "details": {}}


def test_unknown_role_is_a_validation_error(client):
    response = client.post("/api/auth/login", json={"role": "JANITOR", "password": "x"})

    assert response.status_code == 422


def test_expired_or_garbled_token_is_rejected(client):
    expired = create_access_token(UserRole.principal, expires_minutes=-1)

    for token in (expired, "not-a-token"):
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["message"] == "Could not validate credentials"
