import unittest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from linq_tricks.dtos import OrderDto
from linq_tricks.models import Order
from linq_tricks.order_queries import transform_orders, days_between, format_amount, order_number


class TestTransformOrders(unittest.TestCase):
    def setUp(self):
        self.now = datetime(2024, 6, 15, 12, 0, 0)

    def test_fields(self):
        order = Order(id=1, status="Pending", amount=Decimal(1500), order_date=self.now - timedelta(days=5))
        dto, = transform_orders([order], now=self.now)
        self.assertEqual(dto, OrderDto(order_number="ORD-000001", status="PENDING",
                                       formatted_amount="$1,500.00", days_ago=5))

    def test_preserves_order(self):
        orders = [Order(id=i, status="Completed", order_date=self.now) for i in (3, 1, 2)]
        result = transform_orders(orders, now=self.now)
        self.assertEqual([d.order_number for d in result], ["ORD-000003", "ORD-000001", "ORD-000002"])
        self.assertTrue(all(d.status == "COMPLETED" for d in result))

    def test_large_ids_are_not_truncated(self):
        dto, = transform_orders([Order(id=12345678, order_date=self.now)], now=self.now)
        self.assertEqual(dto.order_number, "ORD-12345678")

    def test_format_amount(self):
        self.assertEqual(format_amount(Decimal("0")), "$0.00")
        self.assertEqual(format_amount(Decimal("200")), "$200.00")
        self.assertEqual(format_amount(Decimal("1234567.891")), "$1,234,567.89")

    def test_format_amount_rounds_midpoints_away_from_zero(self):
        self.assertEqual(format_amount(Decimal("2.665")), "$2.67")
        self.assertEqual(format_amount(Decimal("2.675")), "$2.68")
        self.assertEqual(format_amount(Decimal("0.005")), "$0.01")
        self.assertEqual(format_amount(Decimal("-2.665")), "$-2.67")

    def test_negative_ids_are_padded_after_the_sign(self):
        self.assertEqual(order_number(-1), "ORD--000001")
        self.assertEqual(order_number(42), "ORD-000042")
        dto, = transform_orders([Order(id=-1, order_date=self.now)], now=self.now)
        self.assertEqual(dto.order_number, "ORD--000001")

    def test_days_are_truncated_toward_zero(self):
        self.assertEqual(days_between(self.now, self.now - timedelta(days=2, hours=23)), 2)
        self.assertEqual(days_between(self.now, self.now + timedelta(hours=12)), 0)
        self.assertEqual(days_between(self.now, self.now + timedelta(days=1, hours=12)), -1)

    def test_future_dates_are_not_clamped(self):
        order = Order(id=1, order_date=self.now + timedelta(days=3, hours=1))
        dto, = transform_orders([order], now=self.now)
        self.assertEqual(dto.days_ago, -3)

    def test_timezone_aware_dates_use_current_time(self):
        order = Order(id=1, order_date=datetime.now(timezone.utc) - timedelta(days=2, hours=1))
        dto, = transform_orders([order])
        self.assertEqual(dto.days_ago, 2)


if __name__ == '__main__':
    unittest.main()
