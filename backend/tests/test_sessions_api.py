"""
Tests for the session and assembly endpoints.

These tests use FastAPI's TestClient to simulate requests against the
application without running a real server.  They cover the session
lifecycle, batch ingestion with rejected segments, JSON and CSV
retrieval of assembled paths and the stateless one-shot endpoint.
"""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add the backend directory to sys.path so we can import the app
sys.path.append(str(Path(__file__).resolve().parents[1]))

from polystitch.main import app  # type: ignore


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def _segment(a: tuple[float, float, float], b: tuple[float, float, float]) -> dict:
    return {
        "p1": {"x": a[0], "y": a[1], "z": a[2]},
        "p2": {"x": b[0], "y": b[1], "z": b[2]},
    }


CHAIN = [
    _segment((0, 0, 0), (1, 1, 1)),
    _segment((1, 1, 1), (2, 2, 2)),
    _segment((3, 3, 3), (4, 4, 4)),
    _segment((2, 2, 2), (3, 3, 3)),
]


def test_health(client: TestClient) -> None:
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_session_lifecycle(client: TestClient) -> None:
    """Create, ingest, read back and delete a session."""
    resp = client.post("/api/sessions", json={"scale": 500.0})
    assert resp.status_code == 201
    info = resp.json()
    session_id = info["sessionId"]
    assert info["scale"] == 500.0
    assert info["pathCount"] == 0

    resp = client.post(f"/api/sessions/{session_id}/lines", json={"segments": CHAIN})
    assert resp.status_code == 200
    report = resp.json()
    assert report["accepted"] == 4
    assert report["rejected"] == []
    assert report["pathCount"] == 1

    resp = client.get(f"/api/sessions/{session_id}/paths")
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["paths"]) == 1
    xs = [p["x"] for p in data["paths"][0]["points"]]
    assert xs in ([0, 1, 2, 3, 4], [4, 3, 2, 1, 0])
    assert data["paths"][0]["length"] == pytest.approx(4 * 3 ** 0.5)
    assert data["paths"][0]["bbox"] == {"min": [0, 0, 0], "max": [4, 4, 4]}
    assert data["metadata"]["merged"] == 1
    assert data["metadata"]["vertices"] == 5

    listed = client.get("/api/sessions").json()
    assert session_id in [s["sessionId"] for s in listed]
    assert client.get(f"/api/sessions/{session_id}").json()["vertexCount"] == 5

    resp = client.delete(f"/api/sessions/{session_id}")
    assert resp.status_code == 204
    assert client.get(f"/api/sessions/{session_id}/paths").status_code == 404


def test_session_default_scale(client: TestClient) -> None:
    resp = client.post("/api/sessions")
    assert resp.status_code == 201
    assert resp.json()["scale"] > 0
    client.delete(f"/api/sessions/{resp.json()['sessionId']}")


def test_branching_segment_reported(client: TestClient) -> None:
    session_id = client.post("/api/sessions", json={}).json()["sessionId"]
    segments = CHAIN + [_segment((2, 2, 2), (9, 9, 9)), _segment((4, 4, 4), (0, 0, 0))]
    resp = client.post(f"/api/sessions/{session_id}/lines", json={"segments": segments})
    assert resp.status_code == 200
    report = resp.json()
    assert report["rejected"] == [4]
    assert report["ignored"] == 1
    assert report["pathCount"] == 1
    client.delete(f"/api/sessions/{session_id}")


def test_export_csv(client: TestClient) -> None:
    session_id = client.post("/api/sessions", json={}).json()["sessionId"]
    client.post(f"/api/sessions/{session_id}/lines", json={"segments": CHAIN})
    resp = client.get(f"/api/sessions/{session_id}/paths/export")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    lines = resp.text.strip().split("\n")
    assert lines[0] == "path,index,x,y,z"
    assert len(lines) == 6
    assert all(line.startswith("0,") for line in lines[1:])
    client.delete(f"/api/sessions/{session_id}")


def test_unknown_session_returns_404(client: TestClient) -> None:
    assert client.get("/api/sessions/nope").status_code == 404
    assert client.delete("/api/sessions/nope").status_code == 404
    resp = client.post("/api/sessions/nope/lines", json={"segments": CHAIN})
    assert resp.status_code == 404


def test_invalid_payloads_rejected(client: TestClient) -> None:
    assert client.post("/api/sessions", json={"scale": -1.0}).status_code == 422
    bad = {"segments": [{"p1": {"x": 0, "y": 0, "z": 0}}]}
    assert client.post("/api/assemble", json=bad).status_code == 422


@pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_coordinates_rejected(client: TestClient, literal: str) -> None:
    """Non-finite JSON literals in a coordinate are refused with 422."""
    raw = (
        '{"segments": [{"p1": {"x": %s, "y": 0, "z": 0}, '
        '"p2": {"x": 1, "y": 1, "z": 1}}]}' % literal
    )
    headers = {"content-type": "application/json"}
    assert client.post("/api/assemble", content=raw, headers=headers).status_code == 422

    session_id = client.post("/api/sessions", json={}).json()["sessionId"]
    resp = client.post(f"/api/sessions/{session_id}/lines", content=raw, headers=headers)
    assert resp.status_code == 422
    assert client.get(f"/api/sessions/{session_id}").json()["vertexCount"] == 0
    client.delete(f"/api/sessions/{session_id}")


def test_non_finite_scale_rejected(client: TestClient) -> None:
    headers = {"content-type": "application/json"}
    resp = client.post("/api/sessions", content='{"scale": Infinity}', headers=headers)
    assert resp.status_code == 422


def test_one_shot_assembly_with_tolerance(client: TestClient) -> None:
    """Near-duplicate endpoints join under the requested scale."""
    body = {
        "scale": 500.0,
        "segments": [
            _segment((0, 0, 0), (1, 1, 1)),
            _segment((1.0001, 1, 1), (2, 2, 2)),
        ],
    }
    resp = client.post("/api/assemble", json=body)
    assert resp.status_code == 200
    data = resp.json()
    assert len(data["paths"]) == 1
    assert len(data["paths"][0]["points"]) == 3
    assert data["metadata"]["scale"] == 500.0
    assert data["metadata"]["extended"] == 1
