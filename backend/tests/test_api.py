"""Tests for API endpoints."""
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from docuquery.main import Settings, create_app
from docuquery.models.document import DocumentStatus

GUIDE_TEXT = "Deploy using Docker. Set OPENAI_API_KEY. Restart the service."


@pytest.fixture
def settings():
    """Settings with in-memory storage and no remote provider."""
    return Settings(
        storage_backend="memory",
        openai_api_key="",
        use_local_embeddings=False,
        tracing_enabled=False,
    )


@pytest.fixture
def client(settings):
    """Create test client with the lifespan running."""
    with TestClient(create_app(settings)) as test_client:
        yield test_client


@pytest.fixture
def guide(client):
    """Upload guide.txt and return its representation."""
    response = client.post("/api/documents", files={"file": ("guide.txt", GUIDE_TEXT.encode("utf-8"), "text/plain")})
    assert response.status_code == 201
    return response.json()


def delete_document(client, payload=None):
    return client.request("DELETE", "/api/documents", json=payload)


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestMetricsEndpoint:
    """Tests for metrics endpoint."""

    def test_metrics_endpoint(self, client):
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "docuquery_queries_total" in response.text


class TestUploadEndpoint:
    """Tests for document upload."""

    def test_upload_multipart(self, guide):
        assert guide["title"] == "guide.txt"
        assert guide["fileType"] == "txt"
        assert guide["status"] == "indexed"
        assert guide["chunkCount"] == 1
        assert guide["fileSize"] == len(GUIDE_TEXT)
        assert guide["error"] is None

    def test_upload_json(self, client):
        response = client.post(
            "/api/documents",
            json={"title": "notes.md", "content": GUIDE_TEXT, "fileType": "md"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["fileType"] == "md"
        assert data["status"] == "indexed"
        assert data["content"] == GUIDE_TEXT

    def test_upload_json_with_existing_id_reindexes(self, client, guide):
        response = client.post(
            "/api/documents",
            json={"id": guide["id"], "title": "guide.txt", "content": "Use Kubernetes."},
        )
        assert response.status_code == 201
        assert response.json()["uploadedAt"] == guide["uploadedAt"]
        assert len(client.get("/api/documents").json()["documents"]) == 1

    def test_upload_invalid_file_type(self, client):
        files = {"file": ("image.png", b"\x89PNG", "image/png")}
        response = client.post("/api/documents", files=files)
        assert response.status_code == 400
        assert client.get("/api/documents").json()["documents"] == []

    def test_upload_json_missing_title(self, client):
        response = client.post("/api/documents", json={"content": "text"})
        assert response.status_code == 400

    def test_upload_invalid_json(self, client):
        response = client.post(
            "/api/documents", content=b"not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400

    def test_upload_multipart_without_file(self, client):
        response = client.post("/api/documents", data={"id": "x"}, files={"other": ("a.txt", b"a", "text/plain")})
        assert response.status_code == 400

    def test_extraction_failure_is_reported_on_document(self, client):
        files = {"file": ("broken.txt", b"\xff\xfe\xfa", "text/plain")}
        response = client.post("/api/documents", files=files)
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "error"
        assert data["error"]


class TestDocumentEndpoints:
    """Tests for listing, reading and updating documents."""

    def test_list_documents(self, client, guide):
        response = client.get("/api/documents")
        assert response.status_code == 200
        assert [d["id"] for d in response.json()["documents"]] == [guide["id"]]

    def test_get_document(self, client, guide):
        response = client.get(f"/api/documents/{guide['id']}")
        assert response.status_code == 200
        assert response.json()["title"] == "guide.txt"

    def test_get_unknown_document(self, client):
        assert client.get("/api/documents/missing").status_code == 404

    def test_update_document(self, client, guide):
        response = client.put(f"/api/documents/{guide['id']}", json={"content": "Use Kubernetes."})
        assert response.status_code == 200
        assert response.json()["content"] == "Use Kubernetes."
        assert response.json()["status"] == "indexed"

    def test_update_while_processing_conflicts(self, client, guide):
        client.app.state.agent.documents.get_document(guide["id"]).status = DocumentStatus.PROCESSING
        response = client.put(f"/api/documents/{guide['id']}", json={"content": "Use Kubernetes."})
        assert response.status_code == 409

    def test_update_unknown_document(self, client):
        response = client.put("/api/documents/missing", json={"content": "text"})
        assert response.status_code == 404

    def test_stats(self, client, guide):
        response = client.get("/api/documents/stats")
        assert response.status_code == 200
        data = response.json()
        assert data["totalDocuments"] == 1
        assert data["indexedDocuments"] == 1
        assert data["fileTypes"] == {"txt": 1}
        assert data["documentsInIndex"] == 1


class TestDeleteEndpoints:
    """Tests for document deletion."""

    def test_delete_document(self, client, guide):
        response = delete_document(client, {"id": guide["id"]})
        assert response.status_code == 200
        assert response.json() == {"success": True, "deleted": True}
        assert client.get("/api/documents").json()["documents"] == []

    def test_delete_unknown_document_is_idempotent(self, client):
        response = delete_document(client, {"id": "missing"})
        assert response.status_code == 200
        assert response.json() == {"success": True, "deleted": False}

    def test_delete_requires_id(self, client):
        assert delete_document(client, {}).status_code == 400
        assert delete_document(client).status_code == 400

    def test_clear(self, client, guide):
        response = client.post("/api/documents/clear")
        assert response.status_code == 200
        assert client.get("/api/documents").json()["documents"] == []
        assert client.get("/api/documents/stats").json()["documentsInIndex"] == 0


class TestQueryEndpoint:
    """Tests for question answering."""

    def test_query(self, client, guide):
        response = client.post("/api/query", json={"query": "How do I deploy?"})
        assert response.status_code == 200
        data = response.json()
        assert [s["title"] for s in data["sources"]] == ["guide.txt"]
        assert data["sources"][0]["id"] == guide["id"]
        assert data["confidence"] == data["sources"][0]["relevanceScore"]
        assert "guide.txt" in data["answer"]
        assert data["processingTime"] >= 0
        assert data["recordId"]

    @pytest.mark.parametrize("payload", [{"query": ""}, {"query": "   "}, {}])
    def test_empty_query(self, client, payload):
        response = client.post("/api/query", json=payload)
        assert response.status_code == 400

    def test_unexpected_error(self, client):
        client.app.state.agent.ask = AsyncMock(side_effect=RuntimeError("boom"))
        response = client.post("/api/query", json={"query": "How do I deploy?"})
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to process query"


class TestHistoryEndpoints:
    """Tests for query history."""

    @pytest.fixture
    def record_id(self, client, guide):
        return client.post("/api/query", json={"query": "How do I deploy?"}).json()["recordId"]

    def test_list_history(self, client, record_id):
        records = client.get("/api/history").json()["records"]
        assert [r["id"] for r in records] == [record_id]
        assert records[0]["sourceDocuments"] == "guide.txt"
        assert records[0]["feedbackRating"] == 0

    def test_rate(self, client, record_id):
        response = client.patch(f"/api/history/{record_id}", json={"rating": 4})
        assert response.status_code == 200
        assert response.json()["feedbackRating"] == 4

    def test_rate_out_of_range(self, client, record_id):
        assert client.patch(f"/api/history/{record_id}", json={"rating": 9}).status_code == 400

    def test_rate_unknown_record(self, client):
        assert client.patch("/api/history/missing", json={"rating": 3}).status_code == 404

    def test_delete_record(self, client, record_id):
        assert client.delete(f"/api/history/{record_id}").status_code == 200
        assert client.get("/api/history").json()["records"] == []
        assert client.delete(f"/api/history/{record_id}").status_code == 404


class TestAgentNotStarted:
    """Routes without a running lifespan."""

    def test_returns_503(self, settings):
        client = TestClient(create_app(settings))
        assert client.get("/api/documents").status_code == 503
