import re
import unittest
import warnings
from decimal import Decimal

from linq_tricks.exceptions import LinqLimitExceededException, LinqNotSupportedException
from linq_tricks.linq import Policy, from_collection
from linq_tricks.models import Customer, Order, Product
from linq_tricks.queries import ListPlan
from linq_tricks.order_queries import (
    get_all_orders, get_customers_with_pending_orders, get_large_orders, get_order_summary_by_category,
    get_available_products, get_unique_customers, get_total_amount, get_customer_summaries, get_page,
    transform_orders,
)
from linq_tricks.sample_data import sample_customers, sample_orders, sample_products, generate_customers


class TestOrderQueries(unittest.TestCase):
    """
    Expected outputs of every query recipe over the reference dataset:
    John Doe (1500 Pending Electronics, 200 Completed Books) and
    Jane Smith (2000 Pending Electronics).
    """

    def setUp(self):
        self.customers = sample_customers()
        self.products = sample_products()
        self.orders = sample_orders(self.customers)

    def test_get_all_orders_flattens_customer_orders(self):
        result = get_all_orders(self.customers)
        self.assertEqual(len(result), 3)
        self.assertEqual([o.id for o in result], [1, 2, 3])

    def test_get_customers_with_pending_orders(self):
        result = get_customers_with_pending_orders(self.customers)
        self.assertEqual(len(result), 2)

    def test_pending_status_match_is_case_sensitive(self):
        customer = Customer(id=9, first_name="Lower", last_name="Case", email="lc@example.com",
                            orders=[Order(id=9, customer_id=9, status="pending", amount=10)])
        result = get_customers_with_pending_orders(self.customers + [customer])
        self.assertNotIn(customer, result)
        self.assertEqual(len(result), 2)

    def test_get_large_orders_returns_orders_over_1000(self):
        result = list(get_large_orders(self.orders))
        self.assertEqual(len(result), 2)
        self.assertTrue(all(o.amount > 1000 for o in result))
        self.assertEqual([o.amount for o in result], [Decimal(2000), Decimal(1500)])

    def test_get_large_orders_is_deferred(self):
        consumed = []

        def source():
            for o in self.orders:
                consumed.append(o.id)
                yield o

        query = get_large_orders(source())
        self.assertEqual(consumed, [])
        result = query.to_list()
        self.assertEqual(consumed, [1, 2, 3])
        self.assertEqual(len(result), 2)

    def test_get_large_orders_ties_keep_input_order(self):
        orders = [
            Order(id=1, amount=1500),
            Order(id=2, amount=2000),
            Order(id=3, amount=1500),
            Order(id=4, amount=1000),
        ]
        result = get_large_orders(orders).to_list()
        self.assertEqual([o.id for o in result], [2, 1, 3])

    def test_get_order_summary_by_category(self):
        result = get_order_summary_by_category(self.orders)
        self.assertEqual(len(result), 2)
        self.assertEqual([r.category for r in result], ["Electronics", "Books"])

        electronics = next(r for r in result if r.category == "Electronics")
        self.assertEqual(electronics.total_amount, Decimal(3500))
        self.assertEqual(electronics.count, 2)
        self.assertEqual(electronics.average_amount, Decimal(1750))

        books = next(r for r in result if r.category == "Books")
        self.assertEqual(books.total_amount, Decimal(200))
        self.assertEqual(books.average_amount, Decimal(200))

    def test_missing_category_groups_under_empty_key(self):
        result = get_order_summary_by_category([Order(id=1, amount=5), Order(id=2, amount=7)])
        self.assertEqual(len(result), 1)
        self.assertEqual(result[0].category, "")
        self.assertEqual(result[0].total_amount, Decimal(12))

    def test_get_available_products(self):
        result = get_available_products(self.products)
        self.assertEqual(len(result), 3)
        self.assertTrue(all(p.in_stock for p in result))
        self.assertTrue(all(p.price > 0 for p in result))
        self.assertEqual([p.name for p in result], ["Book", "Tablet", "Laptop"])

    def test_get_available_products_filters_and_keeps_ties_stable(self):
        products = [
            Product(id=1, name="Free", category="Books", price=0, in_stock=True),
            Product(id=2, name="Uncategorised", category="", price=10, in_stock=True),
            Product(id=3, name="Pen", category="Office", price=5, in_stock=True),
            Product(id=4, name="Pencil", category="Office", price=5, in_stock=True),
        ]
        result = get_available_products(products)
        self.assertEqual([p.name for p in result], ["Pen", "Pencil"])

    def test_get_unique_customers_removes_duplicates(self):
        duplicated = self.customers + [self.customers[0]]
        result = get_unique_customers(duplicated)
        self.assertEqual(len(result), 2)

    def test_get_unique_customers_first_occurrence_wins(self):
        impostor = Customer(id=7, first_name="Other", last_name="John", email="john@example.com")
        result = get_unique_customers([self.customers[1], self.customers[0], impostor])
        self.assertEqual([c.id for c in result], [2, 1])
        self.assertIs(result[1], self.customers[0])

    def test_get_total_amount_skips_none(self):
        orders_with_none = [self.orders[0], None, self.orders[1]]
        self.assertEqual(get_total_amount(orders_with_none), Decimal(1700))

    def test_get_total_amount_of_nothing_is_zero(self):
        for orders in ([], [None], [None, None]):
            with self.subTest(orders=orders):
                total = get_total_amount(orders)
                self.assertEqual(total, Decimal(0))
                self.assertIsInstance(total, Decimal)

    def test_get_customer_summaries(self):
        result = get_customer_summaries(self.customers, self.orders)
        self.assertEqual(len(result), 2)
        john = next(s for s in result if s.customer_name == "John Doe")
        self.assertEqual(john.total_orders, 2)
        self.assertEqual(john.total_spent, Decimal(1700))

    def test_get_customer_summaries_keeps_customers_without_orders(self):
        lonely = Customer(id=3, first_name="Ann", last_name="Lee", email="ann@example.com")
        stray = Order(id=99, customer_id=42, amount=10)
        result = get_customer_summaries(self.customers + [lonely], self.orders + [stray])
        self.assertEqual([s.customer_name for s in result], ["John Doe", "Jane Smith", "Ann Lee"])
        ann = result[2]
        self.assertEqual(ann.total_orders, 0)
        self.assertEqual(ann.total_spent, Decimal(0))

    def test_transform_orders(self):
        result = transform_orders(self.orders)
        self.assertEqual(len(result), 3)
        first = result[0]
        self.assertRegex(first.order_number, r"^ORD-\d{6}$")
        self.assertIn("$", first.formatted_amount)
        self.assertEqual(first.status, "PENDING")
        self.assertGreaterEqual(first.days_ago, 0)

    def test_functions_are_idempotent(self):
        self.assertEqual(get_all_orders(self.customers), get_all_orders(self.customers))
        self.assertEqual(get_order_summary_by_category(self.orders), get_order_summary_by_category(self.orders))
        self.assertEqual(get_customer_summaries(self.customers, self.orders),
                         get_customer_summaries(self.customers, self.orders))
        large = get_large_orders(from_collection(self.orders))
        self.assertEqual(large.to_list(), large.to_list())

    def test_inputs_are_not_mutated(self):
        before = list(self.orders)
        get_large_orders(self.orders).to_list()
        get_order_summary_by_category(self.orders)
        self.assertEqual(self.orders, before)
        self.assertEqual([o.id for o in self.orders], [1, 2, 3])

    def test_policy_modes_do_not_affect_recipes_over_collections(self):
        for mode in ("error", "warn", "fallback"):
            policy = Policy(on_unsupported=mode)
            with self.subTest(mode=mode), warnings.catch_warnings():
                warnings.simplefilter("error")
                self.assertEqual(len(get_customers_with_pending_orders(self.customers, policy=policy)), 2)
                self.assertEqual(get_total_amount([self.orders[0], None], policy=policy), Decimal(1500))
                self.assertEqual(len(get_available_products(self.products, policy=policy)), 3)
                self.assertEqual(len(get_large_orders(self.orders, policy=policy).to_list()), 2)

    def test_explicit_row_limit_applies_to_recipes(self):
        with self.assertRaises(LinqLimitExceededException):
            get_all_orders(self.customers, policy=Policy(max_rows_local=2))

    def test_dsl_recipes_run_over_query_plans_under_error_policy(self):
        policy = Policy(on_unsupported="error")
        products = get_available_products(ListPlan(self.products), policy=policy)
        self.assertEqual([p.name for p in products], ["Book", "Tablet", "Laptop"])
        self.assertEqual(get_total_amount(ListPlan([self.orders[1], None]), policy=policy), Decimal(200))
        with self.assertRaises(LinqNotSupportedException):
            get_customers_with_pending_orders(ListPlan(self.customers), policy=policy)


class TestLargeInputs(unittest.TestCase):
    """The default policy puts no cap on the number of rows."""

    size = 100_001

    def test_get_all_orders(self):
        customers = [Customer(id=i, orders=[Order(id=i, customer_id=i, amount=1)]) for i in range(self.size)]
        self.assertEqual(len(get_all_orders(customers)), self.size)

    def test_get_total_amount(self):
        self.assertEqual(get_total_amount([Order(amount=1)] * self.size), Decimal(self.size))

    def test_get_page(self):
        self.assertEqual(get_page(range(self.size), 1001, 100), [100_000])


class TestForEachVsLinq(unittest.TestCase):
    def test_flatten_matches_nested_loops(self):
        customers = generate_customers(1000)

        orders_loop = []
        for customer in customers:
            for order in customer.orders:
                orders_loop.append(order)

        orders_linq = get_all_orders(customers)
        self.assertEqual(len(orders_loop), len(orders_linq))
        self.assertEqual(orders_loop, orders_linq)

    def test_generated_data_is_deterministic(self):
        a = generate_customers(50, seed=7)
        b = generate_customers(50, seed=7)
        self.assertEqual([len(c.orders) for c in a], [len(c.orders) for c in b])
        self.assertEqual([o.amount for o in get_all_orders(a)], [o.amount for o in get_all_orders(b)])
        self.assertTrue(all(1 <= len(c.orders) <= 4 for c in a))
        self.assertTrue(all(re.match(r"email\d+@example\.com", c.email) for c in a))


if __name__ == '__main__':
    unittest.main()
