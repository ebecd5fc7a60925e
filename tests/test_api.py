from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from py_odoo_shipments.api import NO_CACHE_HEADERS, create_app
from py_odoo_shipments.exceptions import (
    ConfigurationError,
    NoWebsitesFoundError,
    RemoteCallError,
)


@pytest.fixture
def fetch(mocker, sample_rows):
    return mocker.patch(
        "py_odoo_shipments.api.fetch_pending_orders",
        new_callable=AsyncMock,
        return_value=sample_rows,
    )


@pytest.fixture
def client(settings):
    return TestClient(create_app(settings))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_sales_orders(client, fetch, settings):
    response = client.get("/api/odoo")

    assert response.status_code == 200
    body = response.json()
    assert [row["id"] for row in body["salesOrders"]] == ["S00042", "S00043", "S00044"]
    assert body["salesOrders"][0]["delivery_type"] == "Envío local"
    for name, value in NO_CACHE_HEADERS.items():
        assert response.headers[name] == value
    fetch.assert_awaited_once_with(settings)


def test_no_websites_is_not_found(client, fetch):
    fetch.side_effect = NoWebsitesFoundError("No websites found.")

    response = client.get("/api/odoo")

    assert response.status_code == 404
    assert response.json() == {"error": "No websites found."}
    assert response.headers["Cache-Control"] == NO_CACHE_HEADERS["Cache-Control"]


def test_remote_failure_is_server_error(client, fetch):
    fetch.side_effect = RemoteCallError("Too many requests", status_code=429, retryable=True)

    response = client.get("/api/odoo")

    assert response.status_code == 500
    assert response.json() == {"error": "Too many requests"}


def test_unexpected_failure_is_hidden(settings, fetch):
    fetch.side_effect = KeyError("result")
    client = TestClient(create_app(settings), raise_server_exceptions=False)

    response = client.get("/api/odoo")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_dashboard(client, fetch):
    response = client.get("/api/dashboard")

    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == {"pending": 3, "local": 2, "exterior": 1}
    page = body["page"]
    assert (page["page"], page["per_page"], page["total"], page["total_pages"]) == (1, 4, 3, 1)
    first = page["items"][0]
    # Orders from 2024 are far past every threshold.
    assert first["status"] == "delayed"
    assert first["status_label"] == "Retrasado"
    assert first["link"] == "https://odoo.test/web#id=42&model=sale.order&view_type=form"
    assert page["items"][2]["elapsed"] == "N/D"
    assert page["items"][2]["status"] is None


def test_dashboard_filters(client, fetch):
    response = client.get("/api/dashboard", params={"status": "Retrasado", "website": "APX Energy"})

    body = response.json()
    assert [row["id"] for row in body["page"]["items"]] == ["S00043"]
    # Counters always describe the unfiltered set.
    assert body["summary"]["pending"] == 3


def test_dashboard_page_past_the_end(client, fetch):
    body = client.get("/api/dashboard", params={"page": 2}).json()
    assert body["page"]["items"] == []
    assert body["page"]["page"] == 2


def test_dashboard_rejects_unknown_status(client, fetch):
    response = client.get("/api/dashboard", params={"status": "soon"})

    assert response.status_code == 400
    assert "Unknown status" in response.json()["error"]


def test_dashboard_rejects_page_zero(client, fetch):
    assert client.get("/api/dashboard", params={"page": 0}).status_code == 422


def test_create_app_requires_configuration(clean_env, tmp_path):
    clean_env.chdir(tmp_path)
    with pytest.raises(ConfigurationError, match="ODOO_URL"):
        create_app()
