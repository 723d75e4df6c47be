"""Tests for the planning API."""

import pytest
from fastapi.testclient import TestClient

from src.main import app


@pytest.fixture
def client():
    return TestClient(app)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_plan_example(client, example_manifest):
    response = client.post("/plan", json={"manifest": example_manifest})

    assert response.status_code == 200
    body = response.json()
    assert body["package_name"] == "@twind/core"
    assert body["dev_plan"] is None
    assert "./core.global.js" in body["outputs"]
    assert "./web.global.js" not in body["outputs"]
    assert body["manifest"]["exports"]["./web"]["default"] == "./web.js"
    assert [batch["target"]["kind"] for batch in body["plan"]["batches"]] == [
        "esnext",
        "module",
        "node",
        "browser",
    ]


def test_plan_with_development(client, example_manifest):
    response = client.post("/plan", json={"manifest": example_manifest, "development": True})

    body = response.json()
    assert "./core.dev.js" in body["outputs"]
    assert body["manifest"]["exports"]["."]["development"]["default"] == "./core.dev.js"


def test_manifest_config_applies(client, example_manifest):
    manifest = {**example_manifest, "pkgforge": {"targets": {"script": None}}}

    response = client.post("/plan", json={"manifest": manifest})

    assert response.status_code == 200
    assert response.json()["plan"]["per_entry"] == []


def test_missing_name(client):
    response = client.post("/plan", json={"manifest": {"exports": {".": "./src/index.ts"}}})

    assert response.status_code == 422
    assert response.json()["detail"] == "manifest.name is required"


def test_colliding_outputs(client):
    manifest = {"name": "web", "exports": {".": "./src/index.ts", "./web": "./src/web.ts"}}

    response = client.post("/plan", json={"manifest": manifest})

    assert response.status_code == 422
    assert "written by both" in response.json()["detail"]


def test_invalid_config(client, example_manifest):
    manifest = {**example_manifest, "pkgforge": {"devMode": "sometimes"}}

    response = client.post("/plan", json={"manifest": manifest})

    assert response.status_code == 422
