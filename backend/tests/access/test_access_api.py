from datetime import datetime, timedelta, timezone

from jose import jwt

from clinica_dental.core.settings import settings


def test_me_includes_permissions(api_client, staff_headers):
    response = api_client.get("/me", headers=staff_headers)
    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["role"] == "staff"
    assert payload["permissions"]["can_manage_patients"] is True
    assert payload["permissions"]["can_manage_users"] is False


def test_access_check_uses_role_from_database(api_client, staff_headers):
    response = api_client.get("/access/check", params={"path": "/odontogram/4"}, headers=staff_headers)
    assert response.status_code == 200, response.text
    assert response.json() == {
        "path": "/odontogram/4",
        "allowed": False,
        "redirect_to": "/menu-navegacion",
        "matched_route": "/odontogram",
    }


def test_unknown_identity_is_rejected(api_client):
    token = jwt.encode(
        {"sub": "someone-else", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        settings.jwt_secret,
        algorithm=settings.jwt_alg,
    )
    response = api_client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401, response.text


def test_expired_token_is_rejected(api_client):
    token = jwt.encode(
        {"sub": "admin-sub", "exp": datetime.now(timezone.utc) - timedelta(minutes=5)},
        settings.jwt_secret,
        algorithm=settings.jwt_alg,
    )
    response = api_client.get("/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401, response.text


def test_admin_manages_users(api_client, auth_headers, staff_headers):
    created = api_client.post(
        "/users",
        json={
            "external_id": "user_2abc",
            "email": "Nueva@ClinicaDiamond.hn",
            "full_name": "Dra. Nueva",
            "role": "doctor",
        },
        headers=auth_headers,
    )
    assert created.status_code == 201, created.text
    user = created.json()
    assert user["email"] == "nueva@clinicadiamond.hn"

    duplicate = api_client.post(
        "/users",
        json={"external_id": "user_2abc", "email": "otra@clinicadiamond.hn"},
        headers=auth_headers,
    )
    assert duplicate.status_code == 409, duplicate.text

    promoted = api_client.patch(f"/users/{user['id']}", json={"role": "admin"}, headers=auth_headers)
    assert promoted.status_code == 200, promoted.text
    assert promoted.json()["role"] == "admin"

    audit = api_client.get("/audit", params={"action": "user.role_changed"}, headers=auth_headers)
    assert audit.status_code == 200, audit.text
    assert audit.json()[0]["after_json"] == {"role": "admin"}

    denied = api_client.get("/users", headers=staff_headers)
    assert denied.status_code == 403, denied.text


def test_deactivated_user_loses_access(api_client, auth_headers, staff_headers, seeded_users):
    staff_id = seeded_users["staff"].id
    response = api_client.patch(f"/users/{staff_id}", json={"is_active": False}, headers=auth_headers)
    assert response.status_code == 200, response.text
    assert api_client.get("/me", headers=staff_headers).status_code == 401


def test_health(api_client):
    assert api_client.get("/health").json() == {"status": "ok"}
