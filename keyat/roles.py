"""Role tags and the rules for deriving a user's role.

A role decides which navigation table and dashboard a user gets. It is read
from the profile row when one exists; without a profile row (anonymous
visitor, or a session whose profile lookup came back empty) the navigation
table is inferred from the path prefix the client is on. The path never
grants permissions: a signed-in user without a profile row is authorized
with the role recorded at signup, and never as admin.
"""
from __future__ import annotations

from typing import Literal, Optional

Role = Literal["consumer", "landlord", "agent", "service_provider", "admin"]

ROLES: tuple[str, ...] = ("consumer", "landlord", "agent", "service_provider", "admin")
DEFAULT_ROLE: Role = "consumer"

# Tags written by older clients and the registration form
ROLE_ALIASES = {
    "tenant": "consumer",
    "service": "service_provider",
    "service-provider": "service_provider",
}

# Checked in order; anything else is a consumer path
_PATH_PREFIXES: tuple[tuple[str, Role], ...] = (
    ("/landlord", "landlord"),
    ("/agent", "agent"),
    ("/service-provider", "service_provider"),
    ("/admin", "admin"),
)

_DASHBOARD_PATHS = {
    "consumer": "/consumer/home",
    "landlord": "/landlord/dashboard",
    "agent": "/agent/dashboard",
    "service_provider": "/service-provider/dashboard",
    "admin": "/admin/dashboard",
}


def normalize_role(value: Optional[str]) -> Role:
    """Map a stored role tag onto one of the five roles; empty or unknown tags become consumer."""
    if not value:
        return DEFAULT_ROLE
    tag = value.strip().lower()
    tag = ROLE_ALIASES.get(tag, tag)
    if tag in ROLES:
        return tag  # type: ignore[return-value]
    return DEFAULT_ROLE


def role_from_path(path: Optional[str]) -> Role:
    if not path:
        return DEFAULT_ROLE
    for prefix, role in _PATH_PREFIXES:
        if path == prefix or path.startswith(prefix + "/"):
            return role
    return DEFAULT_ROLE


def resolve_role(profile_role: Optional[str], profile_found: bool, path: Optional[str] = None) -> Role:
    """
    Derive the role for a request.

    - Profile row found: use its role column (empty -> consumer).
    - No profile row (no session, or the lookup failed): fall back to the path prefix.
    """
    if profile_found:
        return normalize_role(profile_role)
    return role_from_path(path)


def dashboard_path(role: Optional[str]) -> str:
    return _DASHBOARD_PATHS[normalize_role(role)]


def email_prefix(email: Optional[str]) -> str:
    if not email:
        return "User"
    return email.split("@", 1)[0] or "User"


def signup_role(value: Optional[str]) -> Role:
    """Role a signed-in user holds while their profile row is missing. Admin is never granted this way."""
    role = normalize_role(value)
    if role == "admin":
        return DEFAULT_ROLE
    return role
