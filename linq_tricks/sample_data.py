"""
Fixture data for tests, examples and benchmarks.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from .models import Customer, Order, Product


def sample_customers(now: Optional[datetime] = None) -> List[Customer]:
    """John Doe with two orders and Jane Smith with one; dates are a few days before `now`."""
    now = now or datetime.now()
    return [
        Customer(
            id=1, first_name="John", last_name="Doe", email="john@example.com",
            birth_date=datetime(1990, 1, 1),
            orders=[
                Order(id=1, customer_id=1, amount=Decimal(1500), status="Pending",
                      category="Electronics", order_date=now - timedelta(days=5)),
                Order(id=2, customer_id=1, amount=Decimal(200), status="Completed",
                      category="Books", order_date=now - timedelta(days=3)),
            ],
        ),
        Customer(
            id=2, first_name="Jane", last_name="Smith", email="jane@example.com",
            birth_date=datetime(1995, 5, 5),
            orders=[
                Order(id=3, customer_id=2, amount=Decimal(2000), status="Pending",
                      category="Electronics", order_date=now - timedelta(days=2)),
            ],
        ),
    ]


def sample_orders(customers: Optional[List[Customer]] = None) -> List[Order]:
    customers = customers if customers is not None else sample_customers()
    return [o for c in customers for o in c.orders]


def sample_products() -> List[Product]:
    return [
        Product(id=1, name="Laptop", category="Electronics", price=Decimal(1200), in_stock=True),
        Product(id=2, name="Book", category="Books", price=Decimal(20), in_stock=True),
        Product(id=3, name="Phone", category="Electronics", price=Decimal(800), in_stock=False),
        Product(id=4, name="Tablet", category="Electronics", price=Decimal(500), in_stock=True),
    ]


def generate_customers(count: int, seed: int = 123, now: Optional[datetime] = None) -> List[Customer]:
    """
    Deterministic customers with 1 to 4 random orders each.

    Amounts are whole numbers in [100, 2000), status and category are picked
    at random, and dates fall 1 to 29 days before `now`.
    """
    rnd = random.Random(seed)
    now = now or datetime.now()
    customers: List[Customer] = []
    for i in range(count):
        customer = Customer(
            id=i,
            first_name=f"FirstName{i}",
            last_name=f"LastName{i}",
            email=f"email{i}@example.com",
            birth_date=now - timedelta(days=365 * rnd.randint(20, 59)),
        )
        for j in range(rnd.randint(1, 4)):
            customer.orders.append(Order(
                id=i * 10 + j,
                customer_id=i,
                amount=Decimal(rnd.randrange(100, 2000)),
                status="Pending" if rnd.randrange(2) == 0 else "Completed",
                category="Electronics" if rnd.randrange(2) == 0 else "Books",
                order_date=now - timedelta(days=rnd.randint(1, 29)),
            ))
        customers.append(customer)
    return customers
