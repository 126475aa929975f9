from fastapi import FastAPI
from fastapi.testclient import TestClient

from gta_python_backend import grounded_theory_api
from tests.fixtures.synthetic_interview_clusters import REPEATED_TERMS_CLUSTER


def _client():
    app = FastAPI()
    app.include_router(grounded_theory_api.router)
    app.dependency_overrides[grounded_theory_api.get_extraction_port] = lambda: None
    return TestClient(app)


def test_health_route():
    response = _client().get("/api/grounded-theory/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "healthy"
    assert payload["service"] == "grounded_theory_api"


def test_open_coding_accepts_camel_case_body():
    response = _client().post(
        "/api/grounded-theory/open-coding",
        json={"clusters": [REPEATED_TERMS_CLUSTER], "settings": {"useExternalAi": False}},
    )

    assert response.status_code == 200
    results = response.json()
    assert len(results) == 1
    assert results[0]["clusterId"] == "cluster-repeated"
    assert [c["concept"] for c in results[0]["extractedConcepts"]] == ["risk", "cost"]


def test_open_coding_rejects_invalid_settings():
    response = _client().post(
        "/api/grounded-theory/open-coding",
        json={"clusters": [REPEATED_TERMS_CLUSTER], "settings": {"threshold": 1.5}},
    )

    assert response.status_code == 422


def test_phase_endpoints_chain_together():
    client = _client()

    open_results = client.post(
        "/api/grounded-theory/open-coding", json={"clusters": [REPEATED_TERMS_CLUSTER]}
    ).json()
    axial = client.post(
        "/api/grounded-theory/axial-coding",
        json={"openCodingResults": open_results, "settings": {"deterministicCategoryStrength": True}},
    )
    assert axial.status_code == 200

    selective = client.post(
        "/api/grounded-theory/selective-coding", json={"axialCodingResult": axial.json()}
    )
    assert selective.status_code == 200
    payload = selective.json()
    assert payload["coreCategory"]["name"] == axial.json()["paradigmModel"]["phenomenon"]
    assert payload["storyline"].startswith("## Integrated theory of")


def test_analyze_returns_summary_and_metrics():
    response = _client().post("/api/grounded-theory/analyze", json={"clusters": [REPEATED_TERMS_CLUSTER]})

    assert response.status_code == 200
    payload = response.json()
    assert payload["result"]["openCoding"]["clusterCount"] == 1
    assert payload["result"]["openCoding"]["conceptCount"] == 2
    assert 0.0 <= payload["qualityMetrics"]["overallQuality"] <= 1.0
    assert payload["executionTime"] >= 0


def test_analyze_maps_value_error_to_400(monkeypatch):
    async def _bad_input(*args, **kwargs):
        raise ValueError("clusters must not be None")

    monkeypatch.setattr(grounded_theory_api, "run_grounded_theory_analysis", _bad_input)

    response = _client().post("/api/grounded-theory/analyze", json={"clusters": []})

    assert response.status_code == 400
    assert response.json()["detail"] == "clusters must not be None"


def test_analyze_maps_unexpected_error_to_500(monkeypatch):
    async def _boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(grounded_theory_api, "run_grounded_theory_analysis", _boom)

    response = _client().post("/api/grounded-theory/analyze", json={"clusters": []})

    assert response.status_code == 500
    assert response.json()["detail"] == "Analysis failed: boom"


def test_app_mounts_router_and_root_health():
    from gta_python_backend.backend import gta_app

    client = TestClient(gta_app)

    assert client.get("/health").json() == {"status": "healthy", "service": "gta_python_backend"}
    assert client.get("/api/grounded-theory/health").status_code == 200
