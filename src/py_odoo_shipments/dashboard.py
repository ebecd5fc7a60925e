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
"""Dashboard operations over projected sales-order rows.

Counters, SLA annotation, filtering and page slicing. Everything here is a
pure function of the rows and "now"; nothing is cached between requests.
"""

import logging
import math
from collections.abc import Iterable
from datetime import datetime

from .business_hours import business_minutes_elapsed, calendar_elapsed, classify
from .exceptions import InvalidTimestampError
from .models import (
    EXTERIOR_DELIVERY,
    LOCAL_DELIVERY,
    DashboardRow,
    DashboardSummary,
    OrderPage,
    SalesOrderRow,
    WorkScheduleStatus,
)
from .timeutils import LOCAL_TZ, parse_local_timestamp

logger = logging.getLogger(__name__)

ELAPSED_PLACEHOLDER = "N/D"


def summarize(rows: Iterable[SalesOrderRow]) -> DashboardSummary:
    """Count pending, local and exterior shipments."""
    summary = DashboardSummary()
    for row in rows:
        summary.pending += 1
        if row.delivery_type == LOCAL_DELIVERY:
            summary.local += 1
        elif row.delivery_type == EXTERIOR_DELIVERY:
            summary.exterior += 1
    return summary


def order_link(template: str, base_url: str, order_id: int) -> str:
    """Build the ERP form URL for a sales order."""
    return template.format(base_url=base_url.rstrip("/"), id=order_id)


def annotate(
    rows: Iterable[SalesOrderRow],
    now: datetime | None = None,
    link_template: str | None = None,
    base_url: str = "",
) -> list[DashboardRow]:
    """Attach elapsed time, business minutes and status to every row.

    A row whose timestamp cannot be parsed keeps a placeholder in
    ``elapsed`` and has no status; the other rows are unaffected.
    """
    now = now or datetime.now(LOCAL_TZ)
    annotated = []
    for row in rows:
        extra = {"elapsed": ELAPSED_PLACEHOLDER}
        try:
            created = parse_local_timestamp(row.date_order)
        except InvalidTimestampError as e:
            logger.warning("Cannot compute elapsed time for order %s: %s", row.id, e)
        else:
            minutes = business_minutes_elapsed(created, now)
            status = classify(minutes)
            extra.update(
                elapsed=calendar_elapsed(created, now),
                business_minutes=minutes,
                status=status,
                status_label=status.label,
            )
        if link_template:
            extra["link"] = order_link(link_template, base_url, row.id_link)
        annotated.append(DashboardRow(**row.model_dump(), **extra))
    return annotated


def filter_rows(
    rows: Iterable[DashboardRow],
    status: WorkScheduleStatus | str | None = None,
    website: str | None = None,
) -> list[DashboardRow]:
    """Keep rows matching both filters. Empty filters match everything.

    ``status`` may be a WorkScheduleStatus, its value or its display label.
    """
    if isinstance(status, str):
        status = WorkScheduleStatus.from_text(status) if status.strip() else None
    return [
        row
        for row in rows
        if (status is None or row.status == status)
        and (not website or row.website_name == website)
    ]


def paginate(rows: list[DashboardRow], page: int = 1, per_page: int = 4) -> OrderPage:
    """Slice one 1-based page out of ``rows``.

    Pages past the end are empty rather than an error.
    """
    if per_page < 1:
        raise ValueError("per_page must be at least 1")
    page = max(page, 1)
    start = (page - 1) * per_page
    return OrderPage(
        page=page,
        per_page=per_page,
        total=len(rows),
        total_pages=math.ceil(len(rows) / per_page),
        items=rows[start:start + per_page],
    )
