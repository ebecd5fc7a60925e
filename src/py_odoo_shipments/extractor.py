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
"""Provides a class to extract pending sales orders from the ERP."""

import asyncio
import logging
from typing import Any

from .client import OdooClient
from .config import Settings
from .exceptions import InvalidTimestampError, NoWebsitesFoundError
from .models import EXTERIOR_DELIVERY, LOCAL_DELIVERY, SalesOrderRow
from .timeutils import INVALID_DATE, utc_to_local_display

logger = logging.getLogger(__name__)

ORDER_STATES = ["sale", "done"]
CLOSED_PICKING_STATES = ["done", "cancel", "draft"]

ORDER_FIELDS = [
    "id",
    "name",
    "amount_untaxed",
    "amount_total",
    "date_order",
    "partner_id",
    "picking_ids",
    "website_id",
]


class SalesOrderExtractor:
    """Extractor for sales orders whose shipments are still pending."""

    def __init__(self, settings: Settings, client: OdooClient) -> None:
        self.settings = settings
        self.client = client

    async def fetch_sales_orders(self) -> list[SalesOrderRow]:
        """Fetch confirmed orders of the configured websites with pending pickings.

        Partners and pickings are fetched concurrently once the orders are
        known. Orders without a pending picking are dropped.

        Raises:
            NoWebsitesFoundError: If none of the configured websites exist.
        """
        await self.client.authenticate()

        website_ids = await self._get_website_ids()
        orders = await self.client.search_read(
            "sale.order",
            [["website_id", "in", website_ids], ["state", "in", ORDER_STATES]],
            ORDER_FIELDS,
        )
        logger.info("Fetched %d confirmed sales orders.", len(orders))
        if not orders:
            return []

        partner_ids = list(
            dict.fromkeys(
                pid
                for pid in (_many2one_id(order.get("partner_id")) for order in orders)
                if pid is not None
            )
        )
        order_names = [order["name"] for order in orders]
        partners, pickings = await _gather_or_cancel(
            self.client.search_read(
                "res.partner", [["id", "in", partner_ids]], ["id", "city"],
            ),
            self.client.search_read(
                "stock.picking",
                [["origin", "in", order_names], ["state", "not in", CLOSED_PICKING_STATES]],
                ["origin", "state"],
            ),
        )

        cities = {partner["id"]: partner.get("city") for partner in partners}
        pending: dict[str, list[dict[str, Any]]] = {}
        for picking in pickings:
            pending.setdefault(picking.get("origin"), []).append(picking)

        rows = [
            project_order(order, cities, self.settings.local_city)
            for order in orders
            if order["name"] in pending
        ]
        logger.info("%d of %d orders have pending shipments.", len(rows), len(orders))
        return rows

    async def _get_website_ids(self) -> list[int]:
        websites = await self.client.search_read(
            "website",
            [["name", "in", self.settings.website_names]],
            ["id", "name"],
            timeout=self.settings.lookup_timeout,
        )
        if not websites:
            raise NoWebsitesFoundError("No websites found.")
        return [website["id"] for website in websites]


def project_order(
    order: dict[str, Any], cities: dict[int, Any], local_city: str,
) -> SalesOrderRow:
    """Map a raw ``sale.order`` record to a display row.

    Delivery is local when the partner's city equals ``local_city``.
    """
    partner_id = _many2one_id(order.get("partner_id"))
    city = cities.get(partner_id) or None
    try:
        date_order = utc_to_local_display(order.get("date_order"))
    except InvalidTimestampError:
        logger.warning("Order %s has an invalid date_order: %r", order.get("name"), order.get("date_order"))
        date_order = INVALID_DATE

    return SalesOrderRow(
        id=order["name"],
        id_link=order["id"],
        partner_name=_many2one_name(order.get("partner_id")),
        subtotal=order.get("amount_untaxed") or 0.0,
        total=order.get("amount_total") or 0.0,
        date_order=date_order,
        website_name=_many2one_name(order.get("website_id")),
        delivery_type=LOCAL_DELIVERY if city == local_city else EXTERIOR_DELIVERY,
        city=city or "N/A",
    )


async def _gather_or_cancel(*coros):
    """Await all of ``coros`` concurrently.

    If any of them fails, the others are cancelled and awaited before the
    error propagates, so none outlives the HTTP client it shares.
    """
    tasks = [asyncio.ensure_future(coro) for coro in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def _many2one_id(value: Any) -> int | None:
    """Return the id of an ERP many2one value ``[id, display_name]``."""
    if isinstance(value, (list, tuple)) and value:
        return value[0]
    return None


def _many2one_name(value: Any) -> str:
    if isinstance(value, (list, tuple)) and len(value) > 1:
        return str(value[1])
    return ""


async def fetch_pending_orders(settings: Settings) -> list[SalesOrderRow]:
    """Run one logical fetch with its own HTTP client and session."""
    async with OdooClient(settings) as client:
        extractor = SalesOrderExtractor(settings, client)
        return await extractor.fetch_sales_orders()
