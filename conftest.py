# Test discovery helper when pytest is run from the repository root.
# Ensure the project root is on sys.path so that 'linq_tricks' is importable
# without an editable install.
import os
import sys

ROOT = os.path.dirname(os.path.abspath(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
