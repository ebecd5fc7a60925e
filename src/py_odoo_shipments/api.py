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
"""FastAPI application serving the shipment dashboard data."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import __version__
from .config import Settings, load_settings
from .dashboard import annotate, filter_rows, paginate, summarize
from .exceptions import NoWebsitesFoundError, OdooDashboardError
from .extractor import fetch_pending_orders
from .models import DashboardSummary, OrderPage, SalesOrderRow

logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str  # ISO 8601 UTC


class SalesOrdersResponse(BaseModel):
    salesOrders: list[SalesOrderRow]


class DashboardResponse(BaseModel):
    summary: DashboardSummary
    page: OrderPage


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application. Settings are loaded here so a bad config fails at startup."""
    settings = settings or load_settings()

    app = FastAPI(
        title="Odoo Shipments Dashboard API",
        description="Pending sales-order shipments with a business-hours SLA clock",
        version=__version__,
    )
    app.state.settings = settings

    @app.exception_handler(OdooDashboardError)
    async def dashboard_error_handler(request: Request, exc: OdooDashboardError):
        status_code = 404 if isinstance(exc, NoWebsitesFoundError) else 500
        logger.error("Error processing %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code, content={"error": str(exc)}, headers=NO_CACHE_HEADERS,
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("Unexpected error processing %s: %s", request.url.path, exc, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
            headers=NO_CACHE_HEADERS,
        )

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        return HealthResponse(
            status="healthy",
            version=__version__,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    @app.get("/api/odoo", response_model=SalesOrdersResponse)
    async def sales_orders(request: Request):
        """Pending sales orders, projected for display."""
        rows = await fetch_pending_orders(request.app.state.settings)
        return JSONResponse(
            content={"salesOrders": [row.model_dump(mode="json") for row in rows]},
            headers=NO_CACHE_HEADERS,
        )

    @app.get("/api/dashboard", response_model=DashboardResponse)
    async def dashboard(
        request: Request,
        status: str | None = None,
        website: str | None = None,
        page: int = Query(1, ge=1),
    ):
        """Summary counters and one filtered page of annotated rows."""
        current = request.app.state.settings
        rows = await fetch_pending_orders(current)
        annotated = annotate(
            rows, link_template=current.order_link_template, base_url=current.url,
        )
        try:
            selected = filter_rows(annotated, status=status, website=website)
        except ValueError as e:
            return JSONResponse(
                status_code=400, content={"error": str(e)}, headers=NO_CACHE_HEADERS,
            )
        body = DashboardResponse(
            summary=summarize(rows),
            page=paginate(selected, page=page, per_page=current.records_per_page),
        )
        return JSONResponse(content=body.model_dump(mode="json"), headers=NO_CACHE_HEADERS)

    return app
