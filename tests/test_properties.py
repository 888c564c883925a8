# Property API test suite: listing CRUD, search/sort, detail view counting, and image uploads.
from __future__ import annotations

from typing import Tuple

from fastapi.testclient import TestClient

from keyat import models
from keyat.db import SessionLocal


# Helper: create a user and return (access_token, user JSON)
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


# Helper: create a listing owned by the authenticated landlord/agent
def create_property(client: TestClient, token: str, **overrides) -> dict:
    payload = {"title": "Test Place", "location": "Gaborone", "price": 8000, "bedrooms": 2}
    payload.update(overrides)
    r = client.post("/api/v1/properties", headers=auth_headers(token), json=payload)
    assert r.status_code == 201, r.text
    return r.json()


def test_create_property_as_landlord(client: TestClient):
    token, landlord = signup(client, "host@keyat.co.bw", "landlord")
    prop = create_property(client, token, features=["Parking", " wifi ", "parking", ""], property_type="house")
    assert prop["owner_id"] == landlord["id"]
    assert prop["agent_id"] is None
    assert prop["status"] == "available"
    assert prop["currency"] == "BWP"
    assert prop["images"] == []
    assert prop["features"] == ["parking", "wifi"]
    assert prop["views"] == 0


# Agents listing on their own become the listing's agent
def test_agent_listing_assigns_self(client: TestClient):
    token, agent = signup(client, "agent@keyat.co.bw", "agent")
    prop = create_property(client, token)
    assert prop["agent_id"] == agent["id"]


# agent_id must point at an agent account
def test_create_property_rejects_non_agent_assignment(client: TestClient):
    token, _ = signup(client, "host@keyat.co.bw", "landlord")
    _, consumer = signup(client, "renter@keyat.co.bw")
    r = client.post(
        "/api/v1/properties",
        headers=auth_headers(token),
        json={"title": "X", "location": "Gaborone", "price": 5000, "agent_id": consumer["id"]},
    )
    assert r.status_code == 400


def test_create_property_requires_lister_role(client: TestClient):
    token, _ = signup(client, "renter@keyat.co.bw")
    r = client.post(
        "/api/v1/properties",
        headers=auth_headers(token),
        json={"title": "X", "location": "Gaborone", "price": 5000},
    )
    assert r.status_code == 403
    r = client.post("/api/v1/properties", json={"title": "X", "location": "Gaborone", "price": 5000})
    assert r.status_code == 401


def test_create_property_validation(client: TestClient):
    token, _ = signup(client, "host@keyat.co.bw", "landlord")
    for bad in ({"price": 0}, {"price": 2_000_000}, {"property_type": "castle"}, {"title": "   "}):
        payload = {"title": "Ok", "location": "Gaborone", "price": 5000, **bad}
        r = client.post("/api/v1/properties", headers=auth_headers(token), json=payload)
        assert r.status_code == 422, bad


# Search narrows available listings and orders them
def test_search_filters_and_sorts(client: TestClient):
    token, _ = signup(client, "host@keyat.co.bw", "landlord")
    a = create_property(client, token, title="The Residences", price=14500, bedrooms=2, location="Block 8")
    b = create_property(client, token, title="Phakalane Villa", price=25000, bedrooms=3, location="Phakalane")
    hidden = create_property(client, token, title="Rented Flat", price=6000, bedrooms=2)
    r = client.patch(f"/api/v1/properties/{hidden['id']}", headers=auth_headers(token), json={"status": "rented"})
    assert r.status_code == 200, r.text

    r = client.get("/api/v1/properties", params={"sort": "price-high"})
    assert r.status_code == 200, r.text
    body = r.json()
    assert [p["price"] for p in body["items"]] == [25000, 14500]
    assert body["total"] == 2
    assert body["active_filters"] == 0

    r = client.get("/api/v1/properties", params={"bedrooms": "2"})
    assert [p["id"] for p in r.json()["items"]] == [a["id"]]
    assert r.json()["active_filters"] == 1

    r = client.get("/api/v1/properties", params={"q": "villa", "locations": ["phakalane", "Block 8"]})
    assert [p["id"] for p in r.json()["items"]] == [b["id"]]

    r = client.get("/api/v1/properties", params={"min_price": 15000})
    assert [p["id"] for p in r.json()["items"]] == [b["id"]]


# Bedroom floors arrive as %2B, as a raw "+" decoded to a space, or spelt "plus"
def test_search_bedroom_floor_forms(client: TestClient):
    token, _ = signup(client, "host@keyat.co.bw", "landlord")
    two = create_property(client, token, bedrooms=2)
    three = create_property(client, token, bedrooms=3)

    r = client.get("/api/v1/properties", params={"bedrooms": "3+"})
    assert r.status_code == 200, r.text
    assert [p["id"] for p in r.json()["items"]] == [three["id"]]

    r = client.get("/api/v1/properties?bedrooms=2+")
    assert r.status_code == 200, r.text
    assert {p["id"] for p in r.json()["items"]} == {two["id"], three["id"]}

    r = client.get("/api/v1/properties", params={"bedrooms": "3plus"})
    assert [p["id"] for p in r.json()["items"]] == [three["id"]]


def test_search_rejects_bad_bedrooms(client: TestClient):
    r = client.get("/api/v1/properties", params={"bedrooms": "lots"})
    assert r.status_code == 422


# Lookup lists reflect available listings only
def test_locations_types_and_featured(client: TestClient):
    token, _ = signup(client, "host@keyat.co.bw", "landlord")
    create_property(client, token, location="Gaborone", property_type="apartment")
    featured = create_property(client, token, location="Maun", property_type="house")
    with SessionLocal() as db:
        db.get(models.Property, featured["id"]).is_featured = True
        db.commit()

    assert client.get("/api/v1/properties/locations").json() == ["Gaborone", "Maun"]
    assert client.get("/api/v1/properties/types").json() == ["apartment", "house"]
    r = client.get("/api/v1/properties/featured", params={"limit": 3})
    assert [p["id"] for p in r.json()] == [featured["id"]]


# Detail bumps the view counter and carries contact names
def test_property_detail(client: TestClient):
    token, _ = signup(client, "host@keyat.co.bw", "landlord", first_name="Neo", last_name="Molefe", phone="71234567")
    _, agent = signup(client, "agent@keyat.co.bw", "agent", first_name="Tumi")
    prop = create_property(client, token, agent_id=agent["id"])

    r = client.get(f"/api/v1/properties/{prop['id']}")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["views"] == 1
    assert body["landlord_name"] == "Neo Molefe"
    assert body["landlord_phone"] == "71234567"
    assert body["agent_name"] == "Tumi"

    assert client.get(f"/api/v1/properties/{prop['id']}").json()["views"] == 2
    assert client.get("/api/v1/properties/9999").status_code == 404


# Only the owner (or assigned agent) may edit
def test_update_property_authorization(client: TestClient):
    owner_token, _ = signup(client, "host@keyat.co.bw", "landlord")
    other_token, _ = signup(client, "other@keyat.co.bw", "landlord")
    prop = create_property(client, owner_token)

    r = client.patch(f"/api/v1/properties/{prop['id']}", headers=auth_headers(other_token), json={"price": 1})
    assert r.status_code == 403

    r = client.patch(
        f"/api/v1/properties/{prop['id']}",
        headers=auth_headers(owner_token),
        json={"price": 9500, "features": ["Pool", "pool"]},
    )
    assert r.status_code == 200, r.text
    assert r.json()["price"] == 9500
    assert r.json()["features"] == ["pool"]
    assert r.json()["title"] == "Test Place"

    r = client.patch("/api/v1/properties/9999", headers=auth_headers(owner_token), json={"price": 1000})
    assert r.status_code == 404


# Required columns cannot be cleared with an explicit null; optional ones can
def test_update_property_rejects_null_for_required_fields(client: TestClient):
    token, _ = signup(client, "host@keyat.co.bw", "landlord")
    prop = create_property(client, token, description="Sunny")

    for field in ("status", "title", "location", "price", "features", "property_type"):
        r = client.patch(f"/api/v1/properties/{prop['id']}", headers=auth_headers(token), json={field: None})
        assert r.status_code == 422, field

    r = client.patch(
        f"/api/v1/properties/{prop['id']}",
        headers=auth_headers(token),
        json={"description": None, "bedrooms": None},
    )
    assert r.status_code == 200, r.text
    assert r.json()["description"] is None
    assert r.json()["status"] == "available"
    assert client.get("/api/v1/properties").json()["total"] == 1


def test_my_properties(client: TestClient):
    landlord_token, _ = signup(client, "host@keyat.co.bw", "landlord")
    agent_token, agent = signup(client, "agent@keyat.co.bw", "agent")
    owned = create_property(client, landlord_token, title="Owned")
    assigned = create_property(client, landlord_token, title="Assigned", agent_id=agent["id"])
    agent_own = create_property(client, agent_token, title="Agent Own")

    r = client.get("/api/v1/properties/mine", headers=auth_headers(landlord_token))
    assert r.status_code == 200, r.text
    assert {p["id"] for p in r.json()} == {owned["id"], assigned["id"]}

    r = client.get("/api/v1/properties/mine", headers=auth_headers(agent_token))
    assert {p["id"] for p in r.json()} == {assigned["id"], agent_own["id"]}

    r = client.get("/api/v1/properties/mine", params={"status": "rented"}, headers=auth_headers(landlord_token))
    assert r.json() == []


# Mixed batch: valid images are stored, the rest are counted as failures
def test_upload_images_partial_success(client: TestClient):
    token, _ = signup(client, "host@keyat.co.bw", "landlord")
    prop = create_property(client, token)

    r = client.post(
        f"/api/v1/properties/{prop['id']}/images",
        headers=auth_headers(token),
        files=[
            ("files", ("front.jpg", b"jpeg-bytes", "image/jpeg")),
            ("files", ("notes.txt", b"not an image", "text/plain")),
        ],
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["uploaded"] == 1
    assert body["failed"] == 1
    assert len(body["images"]) == 1
    assert body["images"][0].startswith(f"/storage/property-images/{prop['id']}/")

    # New uploads are appended
    r = client.post(
        f"/api/v1/properties/{prop['id']}/images",
        headers=auth_headers(token),
        files=[("files", ("back.png", b"png-bytes", "image/png"))],
    )
    assert r.status_code == 200, r.text
    assert len(r.json()["images"]) == 2
    assert client.get(f"/api/v1/properties/{prop['id']}").json()["images"] == r.json()["images"]


def test_upload_images_all_invalid(client: TestClient):
    token, _ = signup(client, "host@keyat.co.bw", "landlord")
    prop = create_property(client, token)
    r = client.post(
        f"/api/v1/properties/{prop['id']}/images",
        headers=auth_headers(token),
        files=[("files", ("doc.pdf", b"%PDF", "application/pdf"))],
    )
    assert r.status_code == 400


def test_upload_images_requires_owner(client: TestClient):
    token, _ = signup(client, "host@keyat.co.bw", "landlord")
    other, _ = signup(client, "other@keyat.co.bw", "agent")
    prop = create_property(client, token)
    r = client.post(
        f"/api/v1/properties/{prop['id']}/images",
        headers=auth_headers(other),
        files=[("files", ("a.png", b"png", "image/png"))],
    )
    assert r.status_code == 403
