"""
Run every order query recipe over the reference dataset.
Run: python examples/order_queries_demo.py
"""

import logging
import os
import sys
# Ensure project root is on sys.path for direct execution
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from linq_tricks import order_queries as oq
from linq_tricks.queries import ListPlan
from linq_tricks.sample_data import sample_customers, sample_orders, sample_products


def main():
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    customers = sample_customers()
    orders = sample_orders(customers)
    products = sample_products()

    print("All orders:", [o.id for o in oq.get_all_orders(customers)])
    print("Customers with pending orders:", [c.full_name for c in oq.get_customers_with_pending_orders(customers)])

    large = oq.get_large_orders(ListPlan(orders))
    print("Large orders plan:", large.explain())
    print("Large orders:", [(o.id, o.amount) for o in large])

    for group in oq.get_order_summary_by_category(orders):
        print("Category:", group)

    print("Available products:", [p.name for p in oq.get_available_products(products)])
    print("Unique customers:", [c.email for c in oq.get_unique_customers(customers + customers[:1])])
    print("Total amount:", oq.get_total_amount([orders[0], None, orders[1]]))

    for summary in oq.get_customer_summaries(customers, orders):
        print("Summary:", summary)

    print("Page 2 of products (size 3):", [p.name for p in oq.get_page(products, 2, 3)])

    for dto in oq.transform_orders(orders):
        print("DTO:", dto)


if __name__ == "__main__":
    main()
