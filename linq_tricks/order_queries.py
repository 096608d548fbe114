"""
Query recipes over customers, orders and products.

Each function is a pure, synchronous transformation written as a Queryable
pipeline: inputs are never mutated and every call allocates fresh results.
Only `get_large_orders` stays lazy; everything else is materialised.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, TypeVar

from .common import QueryPlan
from .dtos import CustomerOrderSummary, OrderDto, OrderGroupResult
from .linq import F, Grouping, Policy, Queryable, from_collection
from .models import Customer, Order, Product

_logger = logging.getLogger(__name__)

T = TypeVar('T')

PENDING_STATUS = "Pending"
LARGE_ORDER_THRESHOLD = 1000
ORDER_NUMBER_PREFIX = "ORD-"
CENT = Decimal("0.01")


def get_all_orders(customers: Iterable[Customer], policy: Optional[Policy] = None) -> list[Order]:
    """Flatten the orders of every customer, keeping customer and order order."""
    orders = from_collection(customers, policy).select_many(F.orders).to_list()
    _logger.debug("get_all_orders: %d orders", len(orders))
    return orders


def get_customers_with_pending_orders(customers: Iterable[Customer],
                                      policy: Optional[Policy] = None) -> list[Customer]:
    """Customers owning at least one order whose status is exactly "Pending"."""
    result = (from_collection(customers, policy)
              .where(lambda c: from_collection(c.orders).any(F.status == PENDING_STATUS))
              .to_list())
    _logger.debug("get_customers_with_pending_orders: %d customers", len(result))
    return result


def get_large_orders(orders: Queryable[Order] | QueryPlan | Iterable[Order],
                     policy: Optional[Policy] = None) -> Queryable[Order]:
    """
    Orders above 1000, highest amount first.

    The result is lazy: nothing runs until it is iterated, and over a
    QueryPlan source the amount filter is pushed down as a WherePlan. Orders
    with equal amounts keep their input order.
    """
    return (from_collection(orders, policy)
            .where(F.amount > LARGE_ORDER_THRESHOLD)
            .order_by(F.amount, ascending=False))


def _summarize_category(group: Grouping) -> OrderGroupResult:
    amounts = from_collection(group).select(F.amount)
    return OrderGroupResult(
        category=group.key,
        total_amount=amounts.sum(),
        count=len(group),
        average_amount=amounts.average(),
    )


def get_order_summary_by_category(orders: Iterable[Order],
                                  policy: Optional[Policy] = None) -> list[OrderGroupResult]:
    """One summary per category, in order of first appearance."""
    result = (from_collection(orders, policy)
              .group_by(F.category)
              .select(_summarize_category)
              .to_list())
    _logger.debug("get_order_summary_by_category: %d groups", len(result))
    return result


def get_available_products(products: Iterable[Product], policy: Optional[Policy] = None) -> list[Product]:
    """In-stock products with a positive price and a category, cheapest first."""
    return (from_collection(products, policy)
            .where(F.in_stock.is_true())
            .where(F.price > 0)
            .where(F.category.is_true())
            .order_by(F.price)
            .to_list())


def get_unique_customers(customers: Iterable[Customer], policy: Optional[Policy] = None) -> list[Customer]:
    """Drop customers whose email was already seen; the first occurrence wins."""
    result = from_collection(customers, policy).distinct(F.email).to_list()
    _logger.debug("get_unique_customers: %d unique customers", len(result))
    return result


def get_total_amount(orders: Iterable[Optional[Order]], policy: Optional[Policy] = None) -> Decimal:
    """Sum of the amounts of the non-None orders; 0 when there are none.

    A None order has no amount, so the filter drops it as well.
    """
    return (from_collection(orders, policy)
            .where(F.amount.is_not_none())
            .default_if_empty(Order(amount=Decimal(0)))
            .sum(F.amount))


def _customer_summary(customer: Customer, customer_orders: list[Order]) -> CustomerOrderSummary:
    return CustomerOrderSummary(
        customer_name=f"{customer.first_name} {customer.last_name}",
        total_orders=len(customer_orders),
        total_spent=sum((o.amount for o in customer_orders), Decimal(0)),
    )


def get_customer_summaries(customers: Iterable[Customer], orders: Iterable[Order],
                           policy: Optional[Policy] = None) -> list[CustomerOrderSummary]:
    """
    Left outer join of customers with orders on customer id.

    Every customer yields exactly one summary, zero-valued when it has no orders.
    """
    result = (from_collection(customers, policy)
              .group_join(orders, F.id, F.customer_id, _customer_summary)
              .to_list())
    _logger.debug("get_customer_summaries: %d summaries", len(result))
    return result


def get_page(items: Iterable[T], page_number: int, page_size: int,
             policy: Optional[Policy] = None) -> list[T]:
    """
    The 1-based page `page_number` of `page_size` items.

    A non-positive page size gives an empty page. A page number below 1 gives
    a negative offset, which skips nothing.
    """
    if page_size <= 0:
        return []
    return (from_collection(items, policy)
            .skip((page_number - 1) * page_size)
            .take(page_size)
            .to_list())


def days_between(now: datetime, then: datetime) -> int:
    """Whole days from `then` to `now`, truncated toward zero (negative for future dates)."""
    return int((now - then) / timedelta(days=1))


def format_amount(amount: Decimal) -> str:
    """Currency text with thousands separators; cents round half away from zero."""
    return f"${amount.quantize(CENT, rounding=ROUND_HALF_UP):,.2f}"


def order_number(order_id: int) -> str:
    """Order id zero-padded to six digits after the sign, e.g. ORD-000042 or ORD--000001."""
    sign = "-" if order_id < 0 else ""
    return f"{ORDER_NUMBER_PREFIX}{sign}{abs(order_id):06d}"


def transform_orders(orders: Iterable[Order], now: Optional[datetime] = None,
                     policy: Optional[Policy] = None) -> list[OrderDto]:
    """
    Project orders into display DTOs.

    `now` defaults to the current time, taken in the timezone of each order
    date so that naive and aware dates both work.
    """
    def to_dto(o: Order) -> OrderDto:
        reference = now if now is not None else datetime.now(o.order_date.tzinfo)
        return OrderDto(
            order_number=order_number(o.id),
            status=o.status.upper(),
            formatted_amount=format_amount(o.amount),
            days_ago=days_between(reference, o.order_date),
        )

    return from_collection(orders, policy).select(to_dto).to_list()
