"""
Output shapes produced by the query functions. Immutable, built fresh per call.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class OrderDto:
    order_number: str
    status: str
    formatted_amount: str
    days_ago: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class OrderGroupResult:
    """Aggregates of the orders sharing one category."""
    category: str
    total_amount: Decimal
    count: int
    average_amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CustomerOrderSummary:
    customer_name: str
    total_orders: int
    total_spent: Decimal

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
