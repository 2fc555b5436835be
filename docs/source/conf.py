import os
import sys

sys.path.insert(0, os.path.abspath("../.."))

project = "SchoolHub Room Bookings"
copyright = "2025, SchoolHub"
author = "SchoolHub maintainers"
release = "1.0.0"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
]

napoleon_numpy_docstring = True

templates_path = ["_templates"]
exclude_patterns: list[str] = []

html_theme = "sphinx_rtd_theme"
html_static_path = ["_static"]
