"""
Tests for the health check endpoints and startup configuration.
"""
from main import API_VERSION, cors_origins


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {
        "message": f"Mood Reports API v{API_VERSION} is running",
        "status": "healthy",
    }


def test_health_reports_disabled_scheduler(client):
    # lifespan only runs when the client is used as a context manager
    with client:
        response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["scheduler"] == {"state": "idle", "nextRunAt": None}


def test_cors_origins_extends_from_env(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://app.example.com, http://localhost:3000,")

    assert cors_origins() == [
        "http://localhost:3000",
        "http://localhost:5173",
        "https://app.example.com",
    ]
