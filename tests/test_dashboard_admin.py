# Role dashboards and the admin console (verification and listing moderation).
from __future__ import annotations

from datetime import date, timedelta
from typing import Tuple

from fastapi.testclient import TestClient

from keyat import models
from keyat.db import SessionLocal


def signup(client: TestClient, email: str, role: str | None = None, **extra) -> Tuple[str, dict]:
    payload = {"email": email, "password": "Changeme123", **extra}
    if role:
        payload["role"] = role
    r = client.post("/auth/signup", json=payload)
    assert r.status_code == 201, r.text
    data = r.json()
    return data["access_token"], data["user"]


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# Admins are provisioned directly in the database
def make_admin(client: TestClient, email: str) -> Tuple[str, dict]:
    token, user = signup(client, email)
    with SessionLocal() as db:
        db.get(models.Profile, user["id"]).role = "admin"
        db.commit()
    return token, user


def create_property(client: TestClient, token: str, **overrides) -> dict:
    payload = {"title": "Test Place", "location": "Gaborone", "price": 8000}
    payload.update(overrides)
    r = client.post("/api/v1/properties", headers=auth_headers(token), json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def book(client: TestClient, token: str, property_id: int) -> dict:
    r = client.post(
        "/api/v1/tours",
        headers=auth_headers(token),
        json={"property_id": property_id, "preferred_date": (date.today() + timedelta(days=5)).isoformat(), "viewing_time": "10:00"},
    )
    assert r.status_code == 201, r.text
    return r.json()


def test_consumer_dashboard(client: TestClient):
    landlord_token, _ = signup(client, "host@keyat.co.bw", "landlord")
    prop = create_property(client, landlord_token)
    tenant_token, _ = signup(client, "renter@keyat.co.bw")
    book(client, tenant_token, prop["id"])
    cancelled = book(client, tenant_token, prop["id"])
    client.delete(f"/api/v1/tours/{cancelled['id']}", headers=auth_headers(tenant_token))

    r = client.get("/api/v1/dashboard", headers=auth_headers(tenant_token))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["role"] == "consumer"
    assert body["stats"] == {"total_tours": 2, "upcoming_tours": 1, "past_tours": 1}


# Occupancy and income come from rented listings
def test_landlord_dashboard(client: TestClient):
    token, _ = signup(client, "host@keyat.co.bw", "landlord")
    free = create_property(client, token, price=5000)
    create_property(client, token, price=14500, status="rented")
    create_property(client, token, price=25000, status="rented")
    create_property(client, token, price=4000, status="maintenance")
    tenant_token, _ = signup(client, "renter@keyat.co.bw")
    book(client, tenant_token, free["id"])

    stats = client.get("/api/v1/dashboard", headers=auth_headers(token)).json()["stats"]
    assert stats["total_properties"] == 4
    assert stats["occupied_properties"] == 2
    assert stats["vacant_properties"] == 1
    assert stats["maintenance_properties"] == 1
    assert stats["occupancy_rate"] == 50.0
    assert stats["monthly_income"] == 39500
    assert stats["pending_tours"] == 1


def test_agent_and_provider_dashboards(client: TestClient):
    agent_token, _ = signup(client, "agent@keyat.co.bw", "agent")
    prop = create_property(client, agent_token)
    create_property(client, agent_token, status="rented")
    tenant_token, _ = signup(client, "renter@keyat.co.bw")
    book(client, tenant_token, prop["id"])

    stats = client.get("/api/v1/dashboard", headers=auth_headers(agent_token)).json()["stats"]
    assert stats["assigned_listings"] == 2
    assert stats["active_listings"] == 1
    assert stats["tours_scheduled"] == 1
    assert stats["tours_completed"] == 0

    pro_token, _ = signup(client, "pro@keyat.co.bw", "service_provider")
    r = client.get("/api/v1/dashboard", headers=auth_headers(pro_token))
    assert r.json() == {"role": "service_provider", "stats": {"listings": 0, "average_rating": 0.0, "total_reviews": 0}}


def test_admin_dashboard(client: TestClient):
    admin_token, _ = make_admin(client, "admin@keyat.co.bw")
    landlord_token, _ = signup(client, "host@keyat.co.bw", "landlord")
    signup(client, "renter@keyat.co.bw")
    create_property(client, landlord_token)

    r = client.get("/api/v1/dashboard", headers=auth_headers(admin_token))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["role"] == "admin"
    stats = body["stats"]
    assert stats["total_users"] == 3
    assert stats["users_admin"] == 1
    assert stats["users_landlord"] == 1
    assert stats["users_consumer"] == 1
    assert stats["unverified_users"] == 3
    assert stats["pending_approvals"] == 1
    assert stats["new_users_7d"] == 3
    assert stats["properties_available"] == 1
    assert stats["tours_scheduled"] == 0


# Legacy alias tags are counted under their canonical role
def test_admin_dashboard_counts_alias_roles(client: TestClient):
    admin_token, _ = make_admin(client, "admin@keyat.co.bw")
    _, renter = signup(client, "renter@keyat.co.bw")
    _, pro = signup(client, "pro@keyat.co.bw", "service_provider")
    with SessionLocal() as db:
        db.get(models.Profile, renter["id"]).role = "tenant"
        db.get(models.Profile, pro["id"]).role = "service"
        db.commit()

    stats = client.get("/api/v1/dashboard", headers=auth_headers(admin_token)).json()["stats"]
    assert stats["users_consumer"] == 1
    assert stats["users_service_provider"] == 1
    assert stats["users_admin"] == 1


# Admin console is admin-only
def test_admin_routes_require_admin(client: TestClient):
    token, _ = signup(client, "host@keyat.co.bw", "landlord")
    assert client.get("/api/v1/admin/users", headers=auth_headers(token)).status_code == 403
    assert client.get("/api/v1/admin/properties", headers=auth_headers(token)).status_code == 403
    assert client.get("/api/v1/admin/users").status_code == 401


def test_admin_user_listing_and_verification(client: TestClient):
    admin_token, _ = make_admin(client, "admin@keyat.co.bw")
    _, landlord = signup(client, "neo@keyat.co.bw", "landlord", first_name="Neo")
    pro_token, pro = signup(client, "pro@keyat.co.bw", "service_provider")
    r = client.post("/api/v1/services", headers=auth_headers(pro_token), json={"name": "Shine", "category": "cleaning"})
    service_id = r.json()["id"]

    r = client.get("/api/v1/admin/users", params={"role": "landlord"}, headers=auth_headers(admin_token))
    assert r.status_code == 200, r.text
    assert [u["id"] for u in r.json()] == [landlord["id"]]

    r = client.get("/api/v1/admin/users", params={"q": "NEO"}, headers=auth_headers(admin_token))
    assert [u["id"] for u in r.json()] == [landlord["id"]]

    r = client.post(f"/api/v1/admin/users/{landlord['id']}/verify", headers=auth_headers(admin_token))
    assert r.status_code == 200, r.text
    assert r.json()["id_verified"] is True

    # Verifying a provider also badges their listings
    r = client.post(f"/api/v1/admin/users/{pro['id']}/verify", headers=auth_headers(admin_token))
    assert r.status_code == 200, r.text
    assert client.get(f"/api/v1/services/{service_id}").json()["verified"] is True

    assert client.post("/api/v1/admin/users/9999/verify", headers=auth_headers(admin_token)).status_code == 404


# Moderation sees every listing and can take one off the market
def test_admin_property_moderation(client: TestClient):
    admin_token, _ = make_admin(client, "admin@keyat.co.bw")
    landlord_token, _ = signup(client, "host@keyat.co.bw", "landlord")
    villa = create_property(client, landlord_token, title="Phakalane Villa")
    create_property(client, landlord_token, title="Rented Flat", status="rented")

    r = client.get("/api/v1/admin/properties", headers=auth_headers(admin_token))
    assert r.status_code == 200, r.text
    assert len(r.json()) == 2

    r = client.get("/api/v1/admin/properties", params={"status": "rented"}, headers=auth_headers(admin_token))
    assert [p["title"] for p in r.json()] == ["Rented Flat"]

    r = client.get("/api/v1/admin/properties", params={"q": "villa"}, headers=auth_headers(admin_token))
    assert [p["id"] for p in r.json()] == [villa["id"]]

    r = client.patch(
        f"/api/v1/admin/properties/{villa['id']}/status",
        headers=auth_headers(admin_token),
        json={"status": "unavailable"},
    )
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "unavailable"
    assert client.get("/api/v1/properties").json()["total"] == 0

    r = client.patch(
        f"/api/v1/admin/properties/{villa['id']}/status",
        headers=auth_headers(admin_token),
        json={"status": "demolished"},
    )
    assert r.status_code == 422
