"""
Tests for the FastAPI facade.

Requests go through fastapi.testclient.TestClient; the backend behind
the service is the MockTransport-based fake from conftest.
"""
import pytest
from fastapi.testclient import TestClient

from status_matrix.api import create_app
from status_matrix.config import Settings
from tests.fixtures.mock_data import build_workbook_bytes

XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@pytest.fixture
def api(settings, client):
    return TestClient(create_app(settings, client))


@pytest.fixture
def workbook():
    return build_workbook_bytes([
        ["Team", "Employee", "Question", "5-May"],
        ["Alpha", "Bob", "Q1", "On track"],
        [None, "Bob", "Q2", "Leave"],
    ])


class TestHealth:
    """Test the readiness probe."""

    def test_healthz(self, api):
        assert api.get("/healthz").json() == {"status": "ok"}


class TestApiKey:
    """Test the optional X-API-Key guard."""

    def test_key_required_when_configured(self, client):
        settings = Settings(api_url="http://backend.test", api_token="t", api_key="secret")
        api = TestClient(create_app(settings, client))

        assert api.get("/api/preview").status_code == 401
        assert api.get("/api/preview", headers={"X-API-Key": "secret"}).status_code == 200

    def test_missing_token_rejected(self, client):
        api = TestClient(create_app(Settings(api_url="http://backend.test"), client))
        response = api.get("/api/preview")
        assert response.status_code == 401
        assert response.json()["detail"] == "No authentication token found"


class TestImportEndpoints:
    """Test spreadsheet preview and upload endpoints."""

    def test_preview_groups_rows(self, api, workbook):
        response = api.post("/api/import/preview", files={"file": ("may.xlsx", workbook, XLSX)})

        assert response.status_code == 200
        assert response.json() == {
            "count": 1,
            "entries": [{
                "teamName": "Alpha",
                "userName": "Bob",
                "date": "5-May",
                "responses": [],
                "isLeave": True,
                "leaveReason": "Leave",
            }],
        }

    def test_preview_rejects_non_workbook(self, api):
        response = api.post("/api/import/preview", files={"file": ("notes.txt", b"hello", "text/plain")})
        assert response.status_code == 400

    def test_upload_as_json(self, api, backend, workbook):
        backend.add("POST", "/api/import/upload-status-json", {
            "success": True, "message": "ok", "data": {"insertedCount": 1, "modifiedCount": 0},
        })

        response = api.post(
            "/api/import/upload",
            files={"file": ("may.xlsx", workbook, XLSX)},
            data={"mode": "json"},
            headers={"Authorization": "Bearer caller-token"},
        )

        assert response.status_code == 200
        assert response.json()["insertedCount"] == 1
        assert response.json()["count"] == 1
        sent = backend.last("/api/import/upload-status-json")
        assert sent.headers["authorization"] == "Bearer caller-token"

    def test_upload_raw_file_uses_service_token(self, api, backend, workbook):
        backend.add("POST", "/api/import/upload-status", {
            "success": True, "message": "ok", "data": {"insertedCount": 2, "modifiedCount": 1},
        })

        response = api.post("/api/import/upload", files={"file": ("may.xlsx", workbook, XLSX)})

        assert response.json() == {"success": True, "message": "ok", "insertedCount": 2, "modifiedCount": 1}
        assert backend.last("/api/import/upload-status").headers["authorization"] == "Bearer service-token"

    def test_upload_as_json_rejects_non_workbook(self, api, backend):
        response = api.post(
            "/api/import/upload",
            files={"file": ("may.xlsx", b"not a workbook", XLSX)},
            data={"mode": "json"},
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Error processing file"
        assert not any(r.url.path.startswith("/api/import") for r in backend.requests)

    def test_unknown_mode(self, api, workbook):
        response = api.post(
            "/api/import/upload",
            files={"file": ("may.xlsx", workbook, XLSX)},
            data={"mode": "fax"},
        )
        assert response.status_code == 400


class TestPreviewEndpoint:
    """Test the pivot preview endpoint."""

    def test_preview_table(self, api, backend):
        response = api.get("/api/preview", params={"team": "t1", "month": "2025-05"})

        assert response.status_code == 200
        body = response.json()
        assert body["table"]["dates"] == ["2025-05-07", "2025-05-06", "2025-05-05"]
        assert body["table"]["teams"]["Alpha"]["Carol"]["q1"]["answers"] == {"2025-05-05": "N/A (On Leave)"}
        params = backend.last("/api/status").url.params
        assert (params["startDate"], params["endDate"]) == ("2025-05-01", "2025-05-31")

    def test_bad_month(self, api):
        assert api.get("/api/preview", params={"month": "May"}).status_code == 400

    def test_backend_auth_failure(self, api, backend):
        backend.add("GET", "/api/teams", {"message": "jwt expired"}, status_code=401)

        response = api.get("/api/preview")

        assert response.status_code == 401
        assert response.json()["detail"] == "Session expired, please login again"


class TestExportEndpoint:
    """Test the report download endpoint."""

    def test_download(self, api, backend):
        backend.add("GET", "/api/reports/excel", content=b"xlsx")

        response = api.get("/api/export", params={"month": "2025-04"})

        assert response.status_code == 200
        assert response.content == b"xlsx"
        assert response.headers["content-type"] == XLSX
        assert 'filename="status-report-all-teams-all-users-2025-04.xlsx"' in response.headers["content-disposition"]

    def test_forbidden(self, api, backend):
        backend.add("GET", "/api/reports/excel", {"message": "nope"}, status_code=403)

        response = api.get("/api/export")

        assert response.status_code == 403
        assert response.json()["detail"] == "You do not have permission to export this report"
