"""
Tests for the reports HTTP API
"""
import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_report_service
from d1_design import DesignStore
from d2_query import EngineContext
from d4_jobs import ReportService
from main import app

pytestmark = [pytest.mark.unit]


@pytest.fixture
def service(tmp_path):
    service = ReportService(
        store=DesignStore(tmp_path / "designs"),
        context=EngineContext(),
        output_dir=tmp_path / "output",
        max_workers=2,
    )
    yield service
    service.close()


@pytest.fixture
def client(service):
    app.dependency_overrides[get_report_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def design_payload(database_url):
    return {
        "name": "Receptions",
        "data_sources": [{"name": "FirebirdDS", "driver": "sqlite", "properties": {"url": database_url}}],
        "data_sets": [
            {
                "name": "Recepcao",
                "data_source": "FirebirdDS",
                "query_text": "SELECT A, B, C FROM MOV_RECEPCAO WHERE A <= :upto ORDER BY A",
                "parameters": {"upto": "R-003"},
            }
        ],
        "body": [
            {"kind": "label", "text": "Pending receptions"},
            {"kind": "table", "name": "RecepcaoTable", "data_set": "Recepcao", "column_count": 8},
        ],
    }


class TestDesignEndpoints:
    def test_create_design(self, client, design_payload):
        response = client.post("/api/v1/reports/designs", json=design_payload)
        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "Receptions"
        assert body["design_ref"].startswith("receptions-")

    def test_list_designs(self, client, design_payload):
        design_ref = client.post("/api/v1/reports/designs", json=design_payload).json()["design_ref"]
        response = client.get("/api/v1/reports/designs")
        assert response.status_code == 200
        assert [item["design_ref"] for item in response.json()] == [design_ref]

    def test_list_skips_corrupt_files(self, client, design_payload, tmp_path):
        design_ref = client.post("/api/v1/reports/designs", json=design_payload).json()["design_ref"]
        (tmp_path / "designs" / "corrupt.json").write_bytes(b"\xff\xfe\x00garbage")

        response = client.get("/api/v1/reports/designs")
        assert response.status_code == 200
        assert [item["design_ref"] for item in response.json()] == [design_ref]

    def test_unknown_data_source(self, client, design_payload):
        design_payload["data_sets"][0]["data_source"] = "MissingDS"
        response = client.post("/api/v1/reports/designs", json=design_payload)

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["entity"] == "MissingDS"
        assert body["details"]["reason"] == "unknown_data_source"

    def test_duplicate_name(self, client, design_payload):
        design_payload["data_sources"].append(dict(design_payload["data_sources"][0]))
        response = client.post("/api/v1/reports/designs", json=design_payload)
        assert response.status_code == 409
        assert response.json()["error"] == "VALIDATION_ERROR"


class TestGenerate:
    def test_generate_pdf(self, client, design_payload):
        design_ref = client.post("/api/v1/reports/designs", json=design_payload).json()["design_ref"]
        response = client.post("/api/v1/reports/generate", json={"design_ref": design_ref})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["x-page-count"] == "1"
        assert response.content.startswith(b"%PDF-")

    def test_generate_html_with_parameters(self, client, design_payload):
        design_ref = client.post("/api/v1/reports/designs", json=design_payload).json()["design_ref"]
        response = client.post(
            "/api/v1/reports/generate",
            json={"design_ref": design_ref, "options": {"output_format": "html"}, "parameters": {"upto": "R-002"}},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "R-002" in response.text
        assert "R-003" not in response.text

    def test_generate_missing_design(self, client):
        response = client.post("/api/v1/reports/generate", json={"design_ref": "missing-design"})
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_generate_query_error(self, client, design_payload):
        design_payload["data_sets"][0]["query_text"] = "SELECT * FROM NOWHERE"
        design_ref = client.post("/api/v1/reports/designs", json=design_payload).json()["design_ref"]

        response = client.post("/api/v1/reports/generate", json={"design_ref": design_ref})
        assert response.status_code == 502
        body = response.json()
        assert body["error"] == "QUERY_ERROR"
        assert body["entity"] == "Recepcao"

    def test_generate_rejects_unknown_format(self, client, design_payload):
        design_ref = client.post("/api/v1/reports/designs", json=design_payload).json()["design_ref"]
        response = client.post(
            "/api/v1/reports/generate", json={"design_ref": design_ref, "options": {"output_format": "docx"}}
        )
        assert response.status_code == 422


class TestOperational:
    def test_health(self, client):
        response = client.get("/api/v1/reports/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_metrics(self, client):
        client.get("/api/v1/reports/health")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "reportrunner_http_requests_total" in response.text

    def test_error_metrics_use_domain(self, client):
        client.post("/api/v1/reports/generate", json={"design_ref": "missing-design"})
        response = client.get("/metrics")

        error_lines = [line for line in response.text.splitlines() if line.startswith("reportrunner_errors_total{")]
        assert any('error_type="NOT_FOUND",domain="d1_design"' in line for line in error_lines)
        assert not any("/api/v1" in line for line in error_lines)
