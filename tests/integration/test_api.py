"""
Integration tests for the read-only HTTP API.
"""

import pytest
from fastapi.testclient import TestClient

from supplier_quality import __version__
from supplier_quality.api.app import create_app


@pytest.fixture
def client(provider):
    return TestClient(create_app(provider))


@pytest.fixture
def degraded_client(missing_provider):
    return TestClient(create_app(missing_provider))


def test_list_skus(client):
    response = client.get("/api/skus")

    assert response.status_code == 200
    skus = response.json()["skus"]
    assert [s["productID"] for s in skus] == ["P2", "P3", "P1"]
    assert skus[0]["isCritical"] is True
    assert skus[0]["photoVolume"] == len(skus[0]["evidence"])


def test_get_sku(client):
    response = client.get("/api/skus/P2")

    assert response.status_code == 200
    sku = response.json()["sku"]
    assert sku["wayfairSKU"] == "WF-2002"
    assert sku["aiInsight"] == "High Priority • 6 incidents • $23,250.00 impact"
    assert sku["evidence"][0]["id"] == "ev-P2-0"
    assert "defectType" in sku["evidence"][0]


def test_get_unknown_sku(client):
    response = client.get("/api/skus/NOPE")
    assert response.status_code == 404
    assert response.json() == {"detail": "SKU not found"}


def test_get_sku_evidence_filtered(client):
    response = client.get("/api/skus/P2/evidence", params={"severity": "Critical"})

    assert response.status_code == 200
    body = response.json()
    assert [e["id"] for e in body["evidence"]] == ["ev-P2-0"]
    assert body["total"] == 2
    assert sum(body["programs"].values()) == 2


def test_get_unknown_sku_evidence(client):
    assert client.get("/api/skus/NOPE/evidence").status_code == 404


def test_get_kpis(client):
    kpis = client.get("/api/kpis").json()["kpis"]
    assert kpis["criticalSKUs"] == 2
    assert kpis["photosAnalyzed"] == 4
    assert kpis["gieOpportunity"] == 113250.0
    assert kpis["avgIncidentRate"] == 2.4


def test_top_issues(client):
    issues = client.get("/api/top-issues", params={"limit": 2}).json()["issues"]

    assert len(issues) == 2
    assert issues[0]["productID"] == "P2"
    assert issues[0]["issueCount"] == 2
    assert issues[0]["severity"] == "Critical"
    assert len(issues[0]["topDefectTypes"]) <= 3


def test_top_issues_rejects_bad_limit(client):
    assert client.get("/api/top-issues", params={"limit": 0}).status_code == 422


def test_high_risk(client):
    skus = client.get("/api/high-risk").json()["skus"]
    assert [s["productID"] for s in skus] == ["P2", "P3"]


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert body["version"] == __version__
    assert body["products"] == 3
    assert body["ingestion"]["rows_parsed"] == 6


def test_health_degraded(degraded_client):
    body = degraded_client.get("/health").json()
    assert body["status"] == "degraded"
    assert body["products"] == 0


def test_degraded_catalog_serves_empty_lists(degraded_client):
    assert degraded_client.get("/api/skus").json() == {"skus": []}
    assert degraded_client.get("/api/kpis").json()["kpis"]["criticalSKUs"] == 0
