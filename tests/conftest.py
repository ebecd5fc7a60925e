"""
Pytest configuration and shared fixtures.
"""

import pytest

from py_odoo_shipments.config import Settings
from py_odoo_shipments.models import SalesOrderRow

ODOO_URL = "https://odoo.test"


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at a fake ERP, with no dependency on the environment."""
    return Settings(
        url=ODOO_URL,
        db="zuma",
        username="bot@example.com",
        password="secret",
    )


@pytest.fixture
def clean_env(monkeypatch):
    """Remove any ODOO_* variables the developer's shell may carry."""
    for name in ("URL", "DB", "USERNAME", "PASSWORD"):
        monkeypatch.delenv(f"ODOO_{name}", raising=False)
    return monkeypatch


@pytest.fixture
def sample_row() -> SalesOrderRow:
    return SalesOrderRow(
        id="S00042",
        id_link=42,
        partner_name="Ana López",
        subtotal=100.0,
        total=116.0,
        date_order="14/10/2024, 09:00:00 a.m.",
        website_name="Pure Form",
        delivery_type="Envío local",
        city="Tijuana",
    )


@pytest.fixture
def sample_rows(sample_row):
    return [
        sample_row,
        sample_row.model_copy(
            update={
                "id": "S00043",
                "id_link": 43,
                "date_order": "18/10/2024, 02:59:00 p.m.",
                "website_name": "APX Energy",
                "delivery_type": "Envío exterior",
                "city": "Ensenada",
            }
        ),
        sample_row.model_copy(
            update={"id": "S00044", "id_link": 44, "date_order": "Invalid date"}
        ),
    ]
