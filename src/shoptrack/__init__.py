"""
Shoptrack shopping-list tracker package.

The package exposes the unit ledger that tracks per-unit fulfillment of shopping
items, the SQLAlchemy-backed store it runs against, and the HTTP API on top.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
