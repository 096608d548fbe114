"""
Nested loops vs. Queryable flattening.

Run:
  python examples/foreach_vs_linq.py --size 1000 --runs 5 --out examples/foreach_vs_linq.json

Times the hand-written double loop that collects every order of every
customer against get_all_orders() over the same generated dataset, and checks
both produce the same number of orders.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import statistics
import sys
import time
from typing import Callable, Dict, List

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from linq_tricks.models import Customer, Order
from linq_tricks.order_queries import get_all_orders
from linq_tricks.sample_data import generate_customers

_logger = logging.getLogger("foreach_vs_linq")


def flatten_with_loops(customers: List[Customer]) -> List[Order]:
    orders: List[Order] = []
    for customer in customers:
        for order in customer.orders:
            orders.append(order)
    return orders


def time_query(fn: Callable[[], object], runs: int) -> Dict[str, float]:
    durations: List[float] = []
    for _ in range(runs):
        t0 = time.perf_counter()
        fn()
        t1 = time.perf_counter()
        durations.append((t1 - t0) * 1000.0)  # ms
    avg = sum(durations) / len(durations)
    return {
        "avg_ms": avg,
        "p50_ms": statistics.median(durations),
        "std_ms": statistics.pstdev(durations) if len(durations) > 1 else 0.0,
    }


def main():
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--size", type=int, default=1000, help="number of generated customers")
    parser.add_argument("--runs", type=int, default=5)
    parser.add_argument("--seed", type=int, default=123)
    parser.add_argument("--out", default=None, help="optional JSON results path")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    customers = generate_customers(args.size, seed=args.seed)
    loop_count = len(flatten_with_loops(customers))
    linq_count = len(get_all_orders(customers))
    if loop_count != linq_count:
        raise SystemExit(f"Mismatch: loops={loop_count} linq={linq_count}")

    results = {
        "size": args.size,
        "orders": loop_count,
        "foreach": time_query(lambda: flatten_with_loops(customers), args.runs),
        "linq": time_query(lambda: get_all_orders(customers), args.runs),
    }
    _logger.info("ForEach: %.3f ms avg", results["foreach"]["avg_ms"])
    _logger.info("LINQ:    %.3f ms avg", results["linq"]["avg_ms"])

    if args.out:
        with open(args.out, "w") as f:
            json.dump(results, f, indent=2)
        _logger.info("Results written to %s", args.out)


if __name__ == "__main__":
    main()
