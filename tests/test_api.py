"""Integration tests for randommac.web.api (FastAPI endpoints)."""
from __future__ import annotations

import random
from unittest.mock import patch

import pytest

import randommac.web.api as api_module
from randommac.engine import MacEngine
from randommac.storage import OuiStore

REGISTRY = (
    b"Registry,Assignment,Organization Name,Organization Address\n"
    b"MA-L,ACDE48,Intel Corporate,Kulim MY\n"
    b"MA-L,001B21,Intel Corp,Santa Clara US\n"
    b"MA-M,70B3D51,Acme Widgets GmbH,DE\n"
)


@pytest.fixture(autouse=True)
def _temp_engine(tmp_path):
    """Give the API an engine backed by a temp database."""
    engine = MacEngine(OuiStore(tmp_path / "api.sqlite"), rng=random.Random(7))
    with patch.object(api_module, "engine", engine), patch.object(api_module, "_api_key", None):
        yield engine


@pytest.fixture
def loaded(_temp_engine):
    _temp_engine.update(REGISTRY)
    return _temp_engine


@pytest.fixture
def client():
    """Provide a Starlette TestClient wired to the FastAPI app."""
    from starlette.testclient import TestClient
    return TestClient(api_module.app)


class TestHealthAndStats:
    def test_health_without_database(self, client):
        resp = client.get("/api/v1/health")
        assert resp.status_code == 200
        assert resp.json()["database"] is False

    def test_stats_without_database(self, client):
        assert client.get("/api/v1/stats").status_code == 404

    def test_stats(self, client, loaded):
        data = client.get("/api/v1/stats").json()
        assert data["records"] == 3
        assert data["blocks"] == {"MA-L": 2, "MA-M": 1}


class TestVendors:
    def test_search(self, client, loaded):
        resp = client.get("/api/v1/vendors", params={"q": "intel corp"})
        assert resp.status_code == 200
        assert {item["prefix"] for item in resp.json()} == {"AC:DE:48", "00:1B:21"}

    def test_search_limit(self, client, loaded):
        resp = client.get("/api/v1/vendors", params={"q": "intel", "limit": 1})
        assert len(resp.json()) == 1

    def test_search_no_match(self, client, loaded):
        resp = client.get("/api/v1/vendors", params={"q": "juniper"})
        assert resp.status_code == 404
        assert "juniper" in resp.json()["detail"]

    def test_lookup(self, client, loaded):
        resp = client.get("/api/v1/lookup/70:b3:d5:1a:bc:de")
        assert resp.status_code == 200
        assert resp.json() == {
            "prefix": "70:B3:D5:1",
            "prefix_length": 28,
            "block_type": "MA-M",
            "vendor": "Acme Widgets GmbH",
        }

    def test_lookup_unknown(self, client, loaded):
        assert client.get("/api/v1/lookup/52:54:00:12:34:56").status_code == 404

    def test_lookup_invalid(self, client, loaded):
        assert client.get("/api/v1/lookup/nonsense").status_code == 400


class TestGenerate:
    def test_generate_vendor(self, client, loaded):
        resp = client.post("/api/v1/generate", json={"vendor": "intel corp"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["candidates"] == 2
        assert data["mac"].startswith(data["record"]["prefix"])
        assert int(data["mac"][:2], 16) & 1 == 0

    def test_generate_prefix(self, client, loaded):
        data = client.post("/api/v1/generate", json={"prefix": "00-1b-21"}).json()
        assert data["record"]["vendor"] == "Intel Corp"
        assert data["mac"].startswith("00:1B:21:")

    def test_generate_current_mac(self, client, loaded):
        data = client.post("/api/v1/generate", json={"current_mac": "ac:de:48:00:00:01"}).json()
        assert data["record"]["vendor"] == "Intel Corporate"

    def test_generate_needs_one_selector(self, client, loaded):
        assert client.post("/api/v1/generate", json={}).status_code == 400

    def test_generate_without_database(self, client):
        assert client.post("/api/v1/generate", json={"vendor": "intel"}).status_code == 404


class TestUpdate:
    def test_upload_registry(self, client):
        resp = client.post(
            "/api/v1/update",
            content=REGISTRY,
            headers={"Content-Type": "text/csv"},
        )
        assert resp.status_code == 200
        assert resp.json() == {"records": 3, "rejected": 0, "format": "ieee-csv"}
        assert client.get("/api/v1/vendors", params={"q": "acme"}).status_code == 200

    def test_upload_empty_keeps_database(self, client, loaded):
        resp = client.post("/api/v1/update", content=b"", headers={"Content-Type": "text/csv"})
        assert resp.status_code == 400
        assert client.get("/api/v1/stats").json()["records"] == 3

    def test_unknown_format(self, client):
        resp = client.post("/api/v1/update", params={"format": "yaml"}, content=REGISTRY)
        assert resp.status_code == 400

    def test_upload_runs_in_threadpool(self, client, _temp_engine):
        real = api_module.run_in_threadpool
        with patch.object(api_module, "run_in_threadpool", wraps=real) as pool:
            resp = client.post("/api/v1/update", content=REGISTRY)
        assert resp.status_code == 200
        assert pool.call_args[0][0] == _temp_engine.update

    def test_serves_snapshot_replaced_by_cli(self, client, loaded):
        assert client.get("/api/v1/vendors", params={"q": "cisco"}).status_code == 404
        MacEngine(OuiStore(loaded.store.db_path)).update(
            b"Registry,Assignment,Organization Name,Organization Address\n"
            b"MA-L,00000C,\"Cisco Systems, Inc\",San Jose US\n"
        )
        resp = client.get("/api/v1/vendors", params={"q": "cisco"})
        assert resp.status_code == 200
        assert resp.json()[0]["vendor"] == "Cisco Systems, Inc"
        assert client.get("/api/v1/stats").json()["records"] == 1


class TestAuth:
    def test_api_key_required(self, client, loaded):
        with patch.object(api_module, "_api_key", "secret"):
            assert client.get("/api/v1/stats").status_code == 401
            ok = client.get("/api/v1/stats", headers={"Authorization": "Bearer secret"})
            assert ok.status_code == 200
            assert client.get("/api/v1/stats", params={"token": "secret"}).status_code == 200
