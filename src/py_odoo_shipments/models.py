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
"""Defines the Pydantic data models for the application."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

LOCAL_DELIVERY = "Envío local"
EXTERIOR_DELIVERY = "Envío exterior"


class RemoteCallRequest(BaseModel):
    """A single JSON-RPC ``call_kw`` request against the ERP.

    Immutable once constructed, so the client can safely replay it after a
    session refresh or a backoff.
    """

    model_config = ConfigDict(frozen=True)

    model: str = Field(..., description="Remote resource kind, e.g. 'sale.order'.")
    method: str = Field(
        default="search_read", description="Remote verb, e.g. 'read' or 'search_read'."
    )
    domain: list[Any] = Field(
        default_factory=list, description="Filter criteria as a list of predicates."
    )
    fields: list[str] = Field(default_factory=list, description="Requested field names.")
    kwargs: dict[str, Any] = Field(
        default_factory=dict, description="Extra options merged into the call kwargs."
    )
    timeout: float | None = Field(
        default=None, description="Per-call timeout in seconds; None uses the default."
    )

    def to_params(self) -> dict[str, Any]:
        """Render the JSON-RPC ``params`` object."""
        return {
            "model": self.model,
            "method": self.method,
            "args": [self.domain],
            "kwargs": {"fields": list(self.fields), **self.kwargs},
        }


class WorkScheduleStatus(str, Enum):
    """SLA status derived from elapsed business minutes."""

    ON_TIME = "on-time"
    MODERATE = "moderate"
    DELAYED = "delayed"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    @classmethod
    def from_text(cls, text: str) -> "WorkScheduleStatus":
        """Look a status up by value or by its display label."""
        needle = text.strip().lower()
        for status in cls:
            if needle in (status.value, status.label.lower()):
                return status
        raise ValueError(f"Unknown status: {text!r}")


_STATUS_LABELS = {
    WorkScheduleStatus.ON_TIME: "En tiempo",
    WorkScheduleStatus.MODERATE: "Moderado",
    WorkScheduleStatus.DELAYED: "Retrasado",
}


class SalesOrderRow(BaseModel):
    """A sales order with a pending shipment, projected for display."""

    id: str
    id_link: int
    partner_name: str
    subtotal: float
    total: float
    date_order: str  # local display text, see timeutils.format_local_timestamp
    website_name: str
    delivery_type: str
    city: str


class DashboardRow(SalesOrderRow):
    """A display row enriched with the SLA clock columns."""

    elapsed: str
    business_minutes: int | None = None
    status: WorkScheduleStatus | None = None
    status_label: str | None = None
    link: str | None = None


class DashboardSummary(BaseModel):
    pending: int = 0
    local: int = 0
    exterior: int = 0


class OrderPage(BaseModel):
    """One page of dashboard rows. Pages are 1-based."""

    page: int
    per_page: int
    total: int
    total_pages: int
    items: list[DashboardRow] = Field(default_factory=list)
