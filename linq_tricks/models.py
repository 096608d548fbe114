"""
Plain records the query functions operate on.

Nothing is validated here: non-negative amounts and unique emails are
conventions of the callers, not rules of the model.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any


def to_decimal(value: Any) -> Decimal:
    """Normalise ints, floats and strings to Decimal through their str() form."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class Order:
    """
    An order placed by a customer.

    Attributes:
        id: Order identity
        customer_id: Id of the owning Customer (lookup only)
        category: Category label, e.g. "Electronics"
        status: "Pending" or "Completed"
        amount: Order amount (normalised to Decimal)
        order_date: When the order was placed
    """

    id: int = 0
    customer_id: int = 0
    category: str = ""
    status: str = ""
    amount: Decimal = Decimal(0)
    order_date: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        self.amount = to_decimal(self.amount)


@dataclass
class Customer:
    id: int = 0
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    birth_date: date | None = None
    orders: list[Order] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class Product:
    id: int = 0
    name: str = ""
    category: str = ""
    price: Decimal = Decimal(0)
    in_stock: bool = False

    def __post_init__(self) -> None:
        self.price = to_decimal(self.price)
