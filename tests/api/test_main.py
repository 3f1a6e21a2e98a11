from fastapi.testclient import TestClient

from src.api.main import app


def test_health() -> None:
    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "api"}


def test_publicize_routes_mounted() -> None:
    paths = app.openapi()["paths"]

    assert set(paths["/api/posts/{post_id}/publicize-connections"]) == {"get", "post"}
    assert "get" in paths["/api/publicize/schema"]


def test_update_body_documented_as_item_list() -> None:
    operation = app.openapi()["paths"]["/api/posts/{post_id}/publicize-connections"]["post"]
    body_schema = operation["requestBody"]["content"]["application/json"]["schema"]

    assert body_schema["type"] == "array"
