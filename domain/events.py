"""
Domain: Sale lifecycle events.

Events are plain immutable records describing something that happened to a
sale. Aggregate mutators return them to the caller alongside their result; the
aggregate keeps no pending-event queue. Dispatching them (once, after the sale
is saved) is the application service's job.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict
from uuid import UUID, uuid4

from .time import require_utc_timestamp, utc_now


@dataclass(frozen=True, slots=True, kw_only=True)
class SaleEvent:
    sale_id: UUID
    sale_number: str
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        require_utc_timestamp("occurred_at", self.occurred_at)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_record(self) -> Dict[str, Any]:
        """Flatten the event into JSON-friendly primitives."""

        record: Dict[str, Any] = {"event_type": self.event_type}
        for key, value in asdict(self).items():
            if isinstance(value, (UUID, Decimal)):
                value = str(value)
            elif isinstance(value, datetime):
                value = value.isoformat()
            record[key] = value
        return record


@dataclass(frozen=True, slots=True, kw_only=True)
class SaleCreated(SaleEvent):
    customer_id: UUID
    branch_id: UUID
    total_amount: Decimal
    currency: str
    item_count: int


@dataclass(frozen=True, slots=True, kw_only=True)
class SaleModified(SaleEvent):
    total_amount: Decimal
    currency: str
    total_quantity: int
    modification_type: str  # ItemAdded, ItemQuantityUpdated, ItemRemoved


@dataclass(frozen=True, slots=True, kw_only=True)
class SaleCancelled(SaleEvent):
    cancellation_reason: str
    refund_amount: Decimal
    currency: str


__all__ = ["SaleEvent", "SaleCreated", "SaleModified", "SaleCancelled"]
