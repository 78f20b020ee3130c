import base64
import io

import pytest
from docx import Document
from fastapi.testclient import TestClient

from invoicer.app.api.invoices import get_pipeline
from invoicer.app.config import get_settings
from invoicer.app.coordinator.pipeline import InvoicePipeline
from invoicer.app.main import create_app
from invoicer.tests.helpers import FIXED_TODAY, jane_doe_fields, make_settings


@pytest.fixture
def client(tmp_path):
    settings = make_settings(tmp_path)
    pipeline = InvoicePipeline(settings=settings, clock=lambda: FIXED_TODAY)

    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_pipeline] = lambda: pipeline

    return TestClient(app)


def test_generate_returns_document_and_preview(client):
    response = client.post("/invoices", json=jane_doe_fields())

    assert response.status_code == 200
    body = response.json()

    assert body["invoice_id"] == "2024-42"
    assert body["download_filename"] == "AKT-42.docx"
    assert "Jane Doe" in body["preview"]["html"]
    assert body["preview"]["error"] is None
    assert body["warnings"] == []

    assert response.headers["X-Invoice-Id"] == "2024-42"
    assert response.headers["X-Document-Hash"] == body["document_hash"]

    document = Document(io.BytesIO(base64.b64decode(body["document"])))
    assert any("Jane Doe" in p.text for p in document.paragraphs)


def test_validation_failure_is_422_with_kind(client):
    response = client.post(
        "/invoices",
        json={**jane_doe_fields(), "eventDate": "not-a-date"},
    )

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["kind"] == "ValidationError"
    assert "eventDate" in error["details"]["fields"]


def test_early_year_date_is_accepted_not_a_server_error(client):
    response = client.post(
        "/invoices",
        json={**jane_doe_fields(), "eventDate": "01-01-0999"},
    )

    assert response.status_code == 200
    assert "01-01-0999" in response.json()["preview"]["html"]


@pytest.mark.parametrize("payload", [[1, 2], "Jane Doe", 42])
def test_non_object_body_is_422_with_kind(client, payload):
    response = client.post("/invoices", json=payload)

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["kind"] == "ValidationError"
    assert "__root__" in error["details"]["fields"]


def test_malformed_json_is_422_with_kind(client):
    response = client.post(
        "/invoices",
        content=b'{"personName": ',
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["kind"] == "ValidationError"
    assert "__root__" in error["details"]["fields"]


def test_template_mismatch_is_500_with_kind(client):
    fields = jane_doe_fields()
    del fields["eventName"]

    response = client.post("/invoices", json=fields)

    assert response.status_code == 500
    assert response.json()["error"]["kind"] == "TemplateMismatchError"


def test_latest_is_404_before_any_generation(client):
    response = client.get("/invoices/latest")

    assert response.status_code == 404
    assert response.json()["error"]["kind"] == "NotFound"


def test_latest_serves_last_document_under_requested_name(client):
    generated = client.post("/invoices", json=jane_doe_fields()).json()

    response = client.get("/invoices/latest", params={"filename": "AKT-42.docx"})

    assert response.status_code == 200
    assert response.content == base64.b64decode(generated["document"])
    assert (
        response.headers["content-disposition"]
        == 'attachment; filename="AKT-42.docx"'
    )
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument"
    )


def test_latest_defaults_to_storage_name(client):
    client.post("/invoices", json=jane_doe_fields())

    response = client.get("/invoices/latest")

    assert 'filename="latest-invoice.docx"' in response.headers["content-disposition"]


def test_health_reports_template_presence(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["template_present"] is True
