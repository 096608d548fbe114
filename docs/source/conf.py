# Sphinx configuration for the LinqTricks API reference.

import os
import sys

sys.path.insert(0, os.path.abspath('../..'))

import linq_tricks  # noqa: E402

project = 'LinqTricks'
author = 'LinqTricks Team'
release = linq_tricks.__version__

extensions = ['sphinx.ext.autodoc', 'sphinx.ext.napoleon']
html_theme = 'sphinx_rtd_theme'

# pyarrow is an optional extra; the docs build must not need it
autodoc_mock_imports = ['pyarrow']
autodoc_member_order = 'bysource'
