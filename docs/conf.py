# Sphinx configuration for the EICSpin documentation.
# https://www.sphinx-doc.org/en/master/usage/configuration.html

import sys
from pathlib import Path

SRC = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC))

import eicspin  # noqa: E402

# -- Project information -----------------------------------------------------
project = "EICSpin"
copyright = "2025, EICSpin Team"
author = "EICSpin Team"
release = eicspin.__version__
version = ".".join(release.split(".")[:2])

# -- General configuration ---------------------------------------------------
extensions = [
    "myst_parser",
    "autodoc2",
    "sphinx.ext.viewcode",
    "sphinx.ext.intersphinx",
    "sphinx.ext.mathjax",
    "sphinx_copybutton",
]

# $...$ for the precession and resonance formulas
myst_enable_extensions = ["dollarmath", "colon_fence"]
myst_heading_anchors = 2

# one API page per subpackage, models and elements documented by their fields
autodoc2_packages = [
    {
        "path": str(SRC / "eicspin"),
        "exclude_dirs": ["__pycache__"],
    }
]
autodoc2_render_plugin = "myst"
autodoc2_hidden_objects = ["private", "inherited"]

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "numpy": ("https://numpy.org/doc/stable/", None),
    "scipy": ("https://docs.scipy.org/doc/scipy/", None),
    "pandas": ("https://pandas.pydata.org/docs/", None),
    "pydantic": ("https://docs.pydantic.dev/latest/", None),
}

# -- HTML output -------------------------------------------------------------
html_theme = "furo"
html_title = f"EICSpin {release}"

source_suffix = {".md": "markdown"}
root_doc = "index"
exclude_patterns = ["_build"]
