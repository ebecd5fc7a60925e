# Copyright 2025 Gowtham Rao <rao@ohdsi.org>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Command-line entry point: serve the API or print the dashboard."""

import asyncio
import logging
from typing import Any

import typer
import yaml

from .config import Settings, load_settings
from .dashboard import annotate, filter_rows, paginate, summarize
from .exceptions import ConfigurationError, OdooDashboardError
from .extractor import fetch_pending_orders
from .models import OrderPage

# Basic structured logging setup
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = typer.Typer(help="Pending shipments dashboard for an Odoo ERP.")

COLUMNS = [
    ("# Orden", "id", 10),
    ("Cliente", "partner_name", 24),
    ("Fecha de creación", "date_order", 24),
    ("Tipo de envío", "delivery_type", 15),
    ("Sitio web", "website_name", 18),
    ("Tiempo", "elapsed", 9),
    ("Estado", "status_label", 10),
]


def load_config(config_file: str | None) -> dict[str, Any]:
    """Loads configuration overrides from a YAML file."""
    if config_file:
        try:
            with open(config_file, "r") as f:
                return yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning("Config file not found: %s", config_file)
    return {}


def _settings(config_file: str | None) -> Settings:
    try:
        return load_settings(**load_config(config_file))
    except ConfigurationError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=2)


def render_page(page: OrderPage) -> str:
    """Render a page of rows as a fixed-width text table."""
    lines = [" ".join(title.ljust(width) for title, _, width in COLUMNS)]
    for row in page.items:
        values = row.model_dump()
        lines.append(
            " ".join(
                str(values.get(attr) or "").ljust(width)[:width]
                for _, attr, width in COLUMNS
            )
        )
    lines.append(f"Página {page.page} de {max(page.total_pages, 1)} ({page.total} pedidos)")
    return "\n".join(lines)


@app.command()
def report(
    status: str = typer.Option(None, help="Filter by status: on-time, moderate, delayed."),
    website: str = typer.Option(None, help="Filter by website name."),
    page: int = typer.Option(1, min=1, help="1-based page number."),
    config_file: str = typer.Option(None, help="Path to a YAML config file."),
):
    """Print the pending-shipment summary and one page of orders."""
    settings = _settings(config_file)
    try:
        rows = asyncio.run(fetch_pending_orders(settings))
    except OdooDashboardError as e:
        logger.error("Fetching orders failed: %s", e)
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    annotated = annotate(
        rows, link_template=settings.order_link_template, base_url=settings.url,
    )
    try:
        selected = filter_rows(annotated, status=status, website=website)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="--status")

    summary = summarize(rows)
    typer.echo(
        f"Envíos pendientes: {summary.pending}  "
        f"Envíos locales: {summary.local}  "
        f"Envíos exterior: {summary.exterior}"
    )
    typer.echo(render_page(paginate(selected, page=page, per_page=settings.records_per_page)))


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", help="Interface to bind."),
    port: int = typer.Option(8000, help="Port to listen on."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    # Fail before binding the port if the configuration is incomplete.
    _settings(None)
    uvicorn.run(
        "py_odoo_shipments.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


def main():
    app()


if __name__ == "__main__":
    main()
