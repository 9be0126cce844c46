"""
PATH: catalog/models/__init__.py

Catalog models export surface.
"""

from .item import CatalogItem
from .size_variant import SizeVariant
from .stock_commit import StockCommit

__all__ = [
    "CatalogItem",
    "SizeVariant",
    "StockCommit",
]
