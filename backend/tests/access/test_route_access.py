import pytest

from clinica_dental.models.user import Role
from clinica_dental.services.access import (
    ROUTE_PERMISSIONS,
    check_route_access,
    match_route,
    normalize_path,
    permissions_for,
)


@pytest.mark.parametrize("path", list(ROUTE_PERMISSIONS) + ["/admin/users/7", "/no-existe"])
def test_admin_reaches_every_path(path):
    assert check_route_access(Role.admin, path).allowed is True


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/pacientes", True),
        ("/pacientes/12/editar", True),
        ("/patient-preview/5", True),
        ("/odontogram/5", False),
        ("/tratamientos", False),
        ("/tratamientos-completados", True),
        ("/admin/users", False),
        ("/dashboard", False),
    ],
)
def test_staff_table(path, expected):
    decision = check_route_access(Role.staff, path)
    assert decision.allowed is expected
    if not expected:
        assert decision.redirect_to == "/menu-navegacion"


def test_doctor_cannot_manage_users():
    assert check_route_access(Role.doctor, "/odontogram/3").allowed is True
    denied = check_route_access(Role.doctor, "/admin/users")
    assert denied.allowed is False
    assert denied.matched_route == "/admin/users"


def test_prefix_match_requires_path_boundary():
    assert match_route("/tratamientos-completados/4") == "/tratamientos-completados"
    assert match_route("/pacientesx") is None
    assert check_route_access(Role.staff, "/pacientesx").allowed is False


def test_unauthenticated_goes_to_sign_in():
    decision = check_route_access(Role.admin, "/pacientes", authenticated=False)
    assert decision.allowed is False
    assert decision.redirect_to == "/sign-in"
    assert check_route_access(None, "/sign-in", authenticated=False).allowed is True


def test_unknown_path_is_denied_for_staff():
    decision = check_route_access(Role.staff, "/reportes")
    assert decision.allowed is False
    assert decision.matched_route is None


def test_normalize_path():
    assert normalize_path("pacientes/") == "/pacientes"
    assert normalize_path("/pacientes?q=ana#top") == "/pacientes"
    assert normalize_path("") == "/"


def test_unknown_role_falls_back_to_staff_permissions():
    assert permissions_for("recepcionista") == permissions_for(Role.staff)
    assert all(permissions_for(Role.admin).values())
    assert not any(permissions_for(None).values())
