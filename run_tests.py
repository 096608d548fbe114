"""Run the linq_tricks test suite: python run_tests.py [-q]"""
import os
import sys
import unittest


def main(argv):
    root = os.path.dirname(os.path.abspath(__file__))
    sys.path.insert(0, root)
    suite = unittest.defaultTestLoader.discover(os.path.join(root, 'linq_tricks', 'tests'), top_level_dir=root)
    verbosity = 1 if '-q' in argv else 2
    return 0 if unittest.TextTestRunner(verbosity=verbosity).run(suite).wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(main(sys.argv[1:]))
