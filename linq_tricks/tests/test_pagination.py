import math
import unittest

from linq_tricks.order_queries import get_page
from linq_tricks.sample_data import sample_products


class TestGetPage(unittest.TestCase):
    def setUp(self):
        self.products = sample_products()

    def test_page_counts(self):
        cases = [
            (1, 2, 2),  # first page
            (2, 2, 2),  # second page
            (3, 2, 0),  # past the end
            (1, 0, 0),  # invalid page size
            (2, 3, 1),  # partial last page
        ]
        for page_number, page_size, expected in cases:
            with self.subTest(page_number=page_number, page_size=page_size):
                self.assertEqual(len(get_page(self.products, page_number, page_size)), expected)

    def test_pages_hold_the_right_items(self):
        self.assertEqual([p.name for p in get_page(self.products, 1, 2)], ["Laptop", "Book"])
        self.assertEqual([p.name for p in get_page(self.products, 2, 2)], ["Phone", "Tablet"])

    def test_non_positive_page_size_is_always_empty(self):
        for page_number in (-3, 0, 1, 2, 100):
            for page_size in (0, -1, -10):
                with self.subTest(page_number=page_number, page_size=page_size):
                    self.assertEqual(get_page(self.products, page_number, page_size), [])

    def test_pages_reconstruct_the_sequence(self):
        for n in range(0, 13):
            items = list(range(n))
            for page_size in range(1, 6):
                with self.subTest(n=n, page_size=page_size):
                    pages = [get_page(items, page, page_size)
                             for page in range(1, math.ceil(n / page_size) + 1)]
                    self.assertTrue(all(len(p) <= page_size for p in pages))
                    self.assertEqual([x for p in pages for x in p], items)

    def test_page_number_below_one_skips_nothing(self):
        items = list(range(10))
        self.assertEqual(get_page(items, 0, 3), [0, 1, 2])
        self.assertEqual(get_page(items, -4, 3), [0, 1, 2])

    def test_works_over_one_shot_iterables(self):
        self.assertEqual(get_page(iter(range(10)), 2, 4), [4, 5, 6, 7])


if __name__ == '__main__':
    unittest.main()
