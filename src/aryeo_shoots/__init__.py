"""Aryeo shoots proxy: cached, normalized orders for the portfolio site and a webhook lead log."""

__version__ = "0.1.0"
