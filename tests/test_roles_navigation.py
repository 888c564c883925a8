# Role resolution and navigation selection: pure rules plus the /navigation and /auth/session endpoints.
from __future__ import annotations

from typing import Tuple

import pytest
from fastapi.testclient import TestClient

from keyat import models
from keyat.db import SessionLocal
from keyat.navigation import NAVIGATION_BY_ROLE, select_navigation
from keyat.roles import ROLES, dashboard_path, normalize_role, resolve_role, role_from_path, signup_role


def signup(client: TestClient, email: str, role: str | None = None) -> Tuple[str, dict]:
    payload = {"email": email, "password": "Changeme123"}
    if role:
        payload["role"] = role
    r = client.post("/auth/signup", json=payload)
    assert r.status_code == 201, r.text
    data = r.json()
    return data["access_token"], data["user"]


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# Each of the five roles maps to its own table and to no other
@pytest.mark.parametrize("role", ROLES)
def test_select_navigation_returns_table_for_role(role: str):
    nav = select_navigation(role)
    assert nav.role == role
    assert nav is NAVIGATION_BY_ROLE[role]
    others = [n for r, n in NAVIGATION_BY_ROLE.items() if r != role]
    assert all(nav is not o for o in others)


# Unknown, empty and missing roles fall back to the consumer table
@pytest.mark.parametrize("value", [None, "", "superuser", "LANDLORDS"])
def test_select_navigation_defaults_to_consumer(value):
    nav = select_navigation(value)
    assert nav.name == "ConsumerNavigation"


# Legacy tags and odd casing are normalised
def test_normalize_role_aliases():
    assert normalize_role("tenant") == "consumer"
    assert normalize_role("service") == "service_provider"
    assert normalize_role(" Agent ") == "agent"


# Path prefixes match whole segments only
def test_role_from_path():
    assert role_from_path("/landlord/properties") == "landlord"
    assert role_from_path("/agent") == "agent"
    assert role_from_path("/service-provider/dashboard") == "service_provider"
    assert role_from_path("/admin/users") == "admin"
    assert role_from_path("/agents-directory") == "consumer"
    assert role_from_path("/consumer/search") == "consumer"
    assert role_from_path(None) == "consumer"


# Profile column wins when the row exists; the path is only a fallback
def test_resolve_role_prefers_profile_row():
    assert resolve_role("landlord", True, "/admin/users") == "landlord"
    assert resolve_role(None, True, "/admin/users") == "consumer"
    assert resolve_role(None, False, "/admin/users") == "admin"
    assert resolve_role(None, False) == "consumer"


def test_dashboard_paths():
    assert dashboard_path("consumer") == "/consumer/home"
    assert dashboard_path("service_provider") == "/service-provider/dashboard"
    assert dashboard_path("nonsense") == "/consumer/home"


# Anonymous callers get navigation from the path they are on
def test_navigation_endpoint_anonymous_uses_path(client: TestClient):
    r = client.get("/navigation", params={"path": "/agent/listings"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["name"] == "AgentNavigation"
    assert body["dashboard_path"] == "/agent/dashboard"
    assert {"label": "Listings", "href": "/agent/listings"} in body["items"]

    r = client.get("/navigation")
    assert r.json()["name"] == "ConsumerNavigation"


# Signed-in callers get navigation from their profile role, not the path
def test_navigation_endpoint_signed_in_uses_profile(client: TestClient):
    token, _ = signup(client, "landlord@keyat.co.bw", "landlord")
    r = client.get("/navigation", params={"path": "/admin/users"}, headers=auth_headers(token))
    assert r.status_code == 200, r.text
    assert r.json()["name"] == "LandlordNavigation"


# Session summary bundles user, profile, role and navigation
def test_session_endpoint(client: TestClient):
    token, user = signup(client, "provider@keyat.co.bw", "service-provider")
    r = client.get("/auth/session", headers=auth_headers(token))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["user"]["id"] == user["id"]
    assert body["profile_found"] is True
    assert body["role"] == "service_provider"
    assert body["dashboard_path"] == "/service-provider/dashboard"
    assert body["navigation"]["name"] == "ServiceProviderNavigation"


# Missing profile row: placeholder profile, navigation taken from the path, role from signup
def test_session_without_profile_row_uses_placeholder(client: TestClient):
    token, user = signup(client, "orphan@keyat.co.bw", "landlord")
    with SessionLocal() as db:
        db.delete(db.get(models.Profile, user["id"]))
        db.commit()

    r = client.get("/auth/session", params={"path": "/agent/dashboard"}, headers=auth_headers(token))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["profile_found"] is False
    assert body["role"] == "landlord"
    assert body["navigation"]["name"] == "AgentNavigation"
    assert body["dashboard_path"] == "/agent/dashboard"
    assert body["profile"]["first_name"] == "orphan"
    assert body["profile"]["id_verified"] is False


# A path prefix never grants admin to a session without a profile row
def test_missing_profile_row_cannot_escalate_via_path(client: TestClient):
    token, user = signup(client, "orphan@keyat.co.bw")
    with SessionLocal() as db:
        db.delete(db.get(models.Profile, user["id"]))
        db.commit()

    r = client.get("/api/v1/admin/users", params={"path": "/admin"}, headers=auth_headers(token))
    assert r.status_code == 403, r.text
    r = client.get("/api/v1/dashboard", params={"path": "/admin/dashboard"}, headers=auth_headers(token))
    assert r.json()["role"] == "consumer"

    # Saving the placeholder stores the signup role, not the path role
    r = client.patch("/api/v1/profiles/me", params={"path": "/admin"}, headers=auth_headers(token), json={"bio": "x"})
    assert r.status_code == 200, r.text
    assert r.json()["role"] == "consumer"
    assert client.get("/api/v1/admin/users", headers=auth_headers(token)).status_code == 403


# Signup-recorded roles are kept, except admin which is never implied
def test_signup_role_never_admin():
    assert signup_role("landlord") == "landlord"
    assert signup_role("tenant") == "consumer"
    assert signup_role(None) == "consumer"
    assert signup_role("admin") == "consumer"


# Session endpoint requires a bearer token
def test_session_requires_auth(client: TestClient):
    r = client.get("/auth/session")
    assert r.status_code == 401
