"""Aryeo REST API connector."""

from .connector import AryeoConnector

__all__ = ["AryeoConnector"]
