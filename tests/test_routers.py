"""
HTTP surface tests — routers served through the FastAPI app.

Repo DBs are written into a temporary DATA_DIR; each test hits the routes
the way the frontend would.
"""
import sqlite3

import pytest
from fastapi.testclient import TestClient

from graph_fixtures import layered_app

from layergraph import db
from layergraph.main import app


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "DATA_DIR", tmp_path)
    return tmp_path


@pytest.fixture
def client(data_dir):
    layered_app().write_db(data_dir / "shop.db")

    broken = layered_app()
    broken.implements("Service1Impl", "IMissing")
    broken.write_db(data_dir / "broken.db")

    return TestClient(app)


def write_raw_attributes(path, raw):
    """A clean repo plus one INVOKES row whose attributes column holds `raw`."""
    layered_app().write_db(path)
    conn = sqlite3.connect(str(path))
    conn.execute(
        "INSERT INTO edges (source_id, target_id, kind, attributes) VALUES (?,?,?,?)",
        ("Controller1#handle", "IService1#serve", "INVOKES", raw),
    )
    conn.commit()
    conn.close()


class TestRepos:
    def test_list(self, client):
        body = client.get("/api/repos").json()
        assert {r["id"] for r in body["repos"]} == {"shop", "broken"}
        assert body["total"] == 2

    def test_overview(self, client):
        resp = client.get("/api/repos/shop/overview")
        assert resp.status_code == 200
        body = resp.json()
        assert body["repo_id"] == "shop"
        assert body["node_counts"] == {"Method": 7, "Package": 3, "Type": 6}

    def test_unknown_repo_404(self, client):
        assert client.get("/api/repos/nope/overview").status_code == 404
        assert client.get("/api/repos/nope/uses").status_code == 404


class TestArchitecture:
    def test_uses(self, client):
        resp = client.get("/api/repos/shop/uses")
        assert resp.status_code == 200
        body = resp.json()
        assert body["total"] == 4
        assert body["edges"][0]["source"] == "Controller1"
        assert body["edges"][0]["via"] == ["IService1"]

    def test_violations_clean(self, client):
        body = client.get("/api/repos/shop/violations").json()
        assert [r["constraint"] for r in body["reports"]] == [
            "no-implementation-coupling", "controller-layer", "service-layer", "repository-layer",
        ]
        assert body["violation_count"] == 0

    def test_violations_subset(self, client):
        body = client.get(
            "/api/repos/shop/violations",
            params=[("constraint", "service-layer"), ("constraint", "controller-layer")],
        ).json()
        assert [r["constraint"] for r in body["reports"]] == ["service-layer", "controller-layer"]

    def test_unknown_constraint_400(self, client):
        resp = client.get("/api/repos/shop/violations", params={"constraint": "nope"})
        assert resp.status_code == 400
        assert "Unknown constraint" in resp.json()["detail"]

    def test_check(self, client):
        resp = client.post("/api/repos/shop/check", json={"workers": 2})
        assert resp.status_code == 200
        body = resp.json()
        assert body["repo_id"] == "shop"
        assert body["summary"]["passed"] is True
        assert body["summary"]["uses_count"] == 4
        assert body["layer_view"]["view"] == "layers"
        assert body["package_view"]["view"] == "packages"

    def test_check_unknown_constraint_400(self, client):
        resp = client.post("/api/repos/shop/check", json={"constraints": ["nope"]})
        assert resp.status_code == 400

    def test_check_rejects_bad_workers(self, client):
        assert client.post("/api/repos/shop/check", json={"workers": 0}).status_code == 422

    @pytest.mark.parametrize("route", ["uses", "violations", "export/layers", "export/packages"])
    def test_dangling_reference_422(self, client, route):
        resp = client.get(f"/api/repos/broken/{route}")
        assert resp.status_code == 422
        assert "IMissing" in resp.json()["detail"]

    @pytest.mark.parametrize("raw", ["{not json", "[1, 2]", "5"])
    def test_malformed_attributes_422(self, client, data_dir, raw):
        write_raw_attributes(data_dir / "attrs.db", raw)
        resp = client.post("/api/repos/attrs/check", json={})
        assert resp.status_code == 422
        assert "attributes" in resp.json()["detail"]


class TestExport:
    def test_layers(self, client):
        body = client.get("/api/repos/shop/export/layers").json()
        assert len(body["edges"]) == 4
        assert all(e["kind"] == "USES" for e in body["edges"])

    def test_packages(self, client):
        body = client.get("/api/repos/shop/export/packages").json()
        groups = {n["id"]: n["children"] for n in body["nodes"] if n["kind"] == "Package"}
        assert groups["app.repository"] == ["IRepository", "Repository1Impl", "Repository2Impl"]
