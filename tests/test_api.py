"""HTTP surface: identification, journal and preferences endpoints."""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeEnricher, FakeIdentifier
from fastapi_server import create_app
from routers.dependencies import get_enricher, get_identifier
from services.errors import NetworkError
from services.models import Candidate

USER = {"X-User-Id": "user-1"}


@pytest.fixture()
def identifier():
    return FakeIdentifier([Candidate(scientific_name="Rosa gallica", common_names=["French rose"])])


@pytest.fixture()
def client(settings, identifier):
    app = create_app(settings)
    app.dependency_overrides[get_identifier] = lambda: identifier
    app.dependency_overrides[get_enricher] = lambda: FakeEnricher({"Rosa gallica": "The Gallic rose."})
    with TestClient(app) as c:
        yield c


def _upload(client, data, headers=USER):
    return client.post("/identify_plant", files={"file": ("photo.jpg", data, "image/jpeg")}, headers=headers)


def test_health(client):
    assert client.get("/health").json() == {"ok": True}


def test_identify_and_browse_journal(client, jpeg_bytes):
    r = _upload(client, jpeg_bytes)
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    discovery_id = body["record"]["id"]
    assert body["image_url"] == f"/discoveries/{discovery_id}/image"

    assert client.get("/discoveries/count", headers=USER).json()["count"] == 1
    assert [d["plant_name"] for d in client.get("/discoveries", headers=USER).json()] == ["Rosa gallica"]
    assert [d["id"] for d in client.get("/discoveries?q=GALL", headers=USER).json()] == [discovery_id]
    assert client.get("/discoveries?q=quercus", headers=USER).json() == []
    assert client.get(f"/discoveries/{discovery_id}", headers=USER).json()["ai_fact"] == "The Gallic rose."

    image = client.get(f"/discoveries/{discovery_id}/image", headers=USER)
    assert image.status_code == 200
    assert image.headers["content-type"] == "image/jpeg"

    assert client.delete(f"/discoveries/{discovery_id}", headers=USER).json()["success"] is True
    assert client.get(f"/discoveries/{discovery_id}", headers=USER).status_code == 404
    assert client.get("/discoveries/count", headers=USER).json()["count"] == 0


def test_journal_is_per_user(client, jpeg_bytes):
    discovery_id = _upload(client, jpeg_bytes).json()["record"]["id"]
    other = {"X-User-Id": "user-2"}

    assert client.get(f"/discoveries/{discovery_id}", headers=other).status_code == 404
    assert client.delete(f"/discoveries/{discovery_id}", headers=other).status_code == 404
    assert client.get("/discoveries", headers=other).json() == []


def test_identify_without_user_is_401(client, jpeg_bytes, identifier):
    r = _upload(client, jpeg_bytes, headers={})
    assert r.status_code == 401
    assert r.json()["error_kind"] == "not_authenticated"
    assert identifier.calls == []


def test_journal_without_user_is_401(client):
    assert client.get("/discoveries").status_code == 401


def test_empty_upload_is_400(client, identifier):
    r = _upload(client, b"")
    assert r.status_code == 400
    assert identifier.calls == []


def test_not_a_plant_is_422(client, jpeg_bytes, identifier):
    identifier.candidates = []
    r = _upload(client, jpeg_bytes)
    assert r.status_code == 422
    assert r.json()["error_kind"] == "not_a_plant"


def test_network_error_is_502(client, jpeg_bytes, identifier):
    identifier.error = NetworkError("Pl@ntNet request timed out.")
    r = _upload(client, jpeg_bytes)
    assert r.status_code == 502
    assert r.json()["error"] == "Pl@ntNet request timed out."


def test_theme_preference(client):
    assert client.get("/preferences/theme").json()["theme"] == "system"
    assert client.put("/preferences/theme", json={"theme": "dark"}).json()["theme"] == "dark"
    assert client.get("/preferences/theme").json()["theme"] == "dark"
    assert client.put("/preferences/theme", json={"theme": "sepia"}).status_code == 400
