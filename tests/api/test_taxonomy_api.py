"""
Integration tests for Taxonomy API endpoints.

Tests cover all HTTP endpoints including success cases and error handling.
"""

from fastapi.testclient import TestClient

from plantdoc.api.main import app

client = TestClient(app)


def test_list_taxonomy():
    response = client.get("/api/v1/taxonomy")
    assert response.status_code == 200
    data = response.json()
    assert [entry["display_label"] for entry in data] == [
        "Apple Scab",
        "Apple Black Rot",
        "Cedar Apple Rust",
        "Healthy",
    ]


def test_get_taxonomy_by_index_success():
    response = client.get("/api/v1/taxonomy/1")
    assert response.status_code == 200
    data = response.json()
    assert data["index"] == 1
    assert data["class_identity"] == "Apple___Black_rot"
    assert data["is_healthy"] is False


def test_get_healthy_entry():
    response = client.get("/api/v1/taxonomy/3")
    assert response.status_code == 200
    assert response.json()["is_healthy"] is True


def test_get_taxonomy_by_index_not_found():
    response = client.get("/api/v1/taxonomy/999")
    assert response.status_code == 404
    assert "not found" in response.json()["detail"].lower()


def test_invalid_index_parameter():
    response = client.get("/api/v1/taxonomy/abc")
    assert response.status_code == 422


def test_index_out_of_range():
    response = client.get("/api/v1/taxonomy/1001")
    assert response.status_code == 422


def test_search_by_display_label():
    response = client.get("/api/v1/taxonomy/search", params={"q": "cedar apple rust"})
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["class_identity"] == "Apple___Cedar_apple_rust"


def test_search_by_class_identity():
    response = client.get("/api/v1/taxonomy/search", params={"q": "Apple___Apple_scab"})
    assert response.status_code == 200
    assert response.json()[0]["display_label"] == "Apple Scab"


def test_search_not_found():
    response = client.get("/api/v1/taxonomy/search", params={"q": "Powdery Mildew"})
    assert response.status_code == 404


def test_search_empty_query():
    response = client.get("/api/v1/taxonomy/search?q=")
    assert response.status_code == 422
