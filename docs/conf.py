# Configuration file for the Sphinx documentation builder.

import os
import sys

# Add source directory to path for autodoc
sys.path.insert(0, os.path.abspath("../src"))

# -- Project information -----------------------------------------------------
project = "Crate Licenses"
copyright = "2025, Crate Licenses Contributors"
author = "Crate Licenses Contributors"
release = "0.1.0"

# -- General configuration ---------------------------------------------------
extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "myst_parser",
    "sphinxcontrib.mermaid",
]

# Google-style docstrings, with __init__ arguments documented on the class
napoleon_numpy_docstring = False
napoleon_include_init_with_doc = True

exclude_patterns = ["_build"]

# -- Options for HTML output -------------------------------------------------
html_theme = "sphinx_rtd_theme"

# -- Autodoc settings --------------------------------------------------------
autodoc_default_options = {
    "members": True,
    "member-order": "bysource",
}

autodoc_typehints = "description"
