"""Catalog sources for the supported source registries.

Each ecosystem has one CatalogSource implementation that turns the registry's
listing endpoints into an in-memory Catalog.
"""

from .base import (
    Catalog,
    CatalogError,
    CatalogSource,
    Ecosystem,
    Package,
    Version,
)

__all__ = [
    "Catalog",
    "CatalogError",
    "CatalogSource",
    "Ecosystem",
    "Package",
    "Version",
]
