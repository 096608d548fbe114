# Make tests a package so `python -m unittest linq_tricks.tests` discovers every test module.
import os
import unittest

def load_tests(loader, tests, pattern):
    start_dir = os.path.dirname(__file__)
    pattern = pattern or 'test_*.py'
    return loader.discover(start_dir=start_dir, pattern=pattern, top_level_dir=os.path.dirname(os.path.dirname(start_dir)))
