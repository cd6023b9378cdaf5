"""Compiled-in baseline mapping, option sets and lookup configuration."""

from formbridge.catalog.catalog import FieldCatalog

__all__ = ["FieldCatalog"]
