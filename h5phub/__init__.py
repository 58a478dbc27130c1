"""
h5phub keeps the content types of an H5P installation in sync with a
content type hub of the operator's choosing.
"""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = ["__version__"]
