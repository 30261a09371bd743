"""HTTP API for the portfolio site and Aryeo webhooks."""

from aryeo_shoots.api.app import create_app

__all__ = ["create_app"]
