"""Storefront backend for the Cicada Cove vintage-clothing shop."""

__version__ = "0.1.0"
