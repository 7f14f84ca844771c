"""Route-level navigation rules per staff role.

Admins reach every route. Doctors and staff are checked against an explicit
permission table: a route is allowed when the path equals it or lives below
it (``route + "/"``). The longest matching route wins so that ``/admin/users``
is judged on its own permission rather than on ``/admin``.
"""
from __future__ import annotations

from dataclasses import dataclass

from clinica_dental.models.user import Role

PUBLIC_ROUTES: frozenset[str] = frozenset({"/", "/sign-in", "/sign-up"})

ROUTE_PERMISSIONS: dict[str, str] = {
    "/dashboard": "can_access_dashboard",
    "/pacientes": "can_manage_patients",
    "/patient-form": "can_create_patients",
    "/patient-preview": "can_view_patient_preview",
    "/odontogram": "can_access_odontogram",
    "/tratamientos": "can_access_treatments",
    "/tratamientos-completados": "can_view_completed_treatments",
    "/consentimientos": "can_access_consents",
    "/calendario": "can_access_calendar",
    "/menu-navegacion": "can_access_navigation_menu",
    "/doctores": "can_manage_doctors",
    "/admin": "can_manage_users",
    "/admin/users": "can_manage_users",
}

ALL_PERMISSIONS: tuple[str, ...] = (
    "can_access_dashboard",
    "can_manage_patients",
    "can_create_patients",
    "can_view_patient_preview",
    "can_access_odontogram",
    "can_access_treatments",
    "can_view_completed_treatments",
    "can_access_consents",
    "can_access_calendar",
    "can_access_navigation_menu",
    "can_manage_doctors",
    "can_manage_users",
)

ROLE_PERMISSIONS: dict[Role, dict[str, bool]] = {
    Role.doctor: {name: name != "can_manage_users" for name in ALL_PERMISSIONS},
    Role.staff: {
        "can_access_dashboard": False,
        "can_manage_patients": True,
        "can_create_patients": False,
        "can_view_patient_preview": True,
        "can_access_odontogram": False,
        "can_access_treatments": False,
        "can_view_completed_treatments": True,
        "can_access_consents": False,
        "can_access_calendar": True,
        "can_access_navigation_menu": True,
        "can_manage_doctors": True,
        "can_manage_users": False,
    },
}


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    redirect_to: str | None = None
    matched_route: str | None = None


def coerce_role(role: Role | str) -> Role:
    try:
        return Role(role)
    except ValueError:
        return Role.staff


def permissions_for(role: Role | str | None) -> dict[str, bool]:
    if role is None:
        return {name: False for name in ALL_PERMISSIONS}
    role = coerce_role(role)
    if role == Role.admin:
        return {name: True for name in ALL_PERMISSIONS}
    return dict(ROLE_PERMISSIONS[role])


def normalize_path(path: str) -> str:
    path = (path or "/").split("?", 1)[0].split("#", 1)[0]
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/") or "/"
    return path


def match_route(path: str) -> str | None:
    if path in ROUTE_PERMISSIONS:
        return path
    candidates = [route for route in ROUTE_PERMISSIONS if path.startswith(route + "/")]
    if not candidates:
        return None
    return max(candidates, key=len)


def check_route_access(
    role: Role | str | None,
    path: str,
    *,
    authenticated: bool = True,
    sign_in_route: str = "/sign-in",
    fallback_route: str = "/menu-navegacion",
) -> AccessDecision:
    path = normalize_path(path)
    if path in PUBLIC_ROUTES:
        return AccessDecision(allowed=True)
    if not authenticated or role is None:
        return AccessDecision(allowed=False, redirect_to=sign_in_route)

    route = match_route(path)
    if coerce_role(role) == Role.admin:
        return AccessDecision(allowed=True, matched_route=route)
    permissions = permissions_for(role)
    if route is not None and permissions.get(ROUTE_PERMISSIONS[route], False):
        return AccessDecision(allowed=True, matched_route=route)
    return AccessDecision(allowed=False, redirect_to=fallback_route, matched_route=route)
