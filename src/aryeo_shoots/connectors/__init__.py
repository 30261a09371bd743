"""Provider connectors for order/shoot sources."""

from aryeo_shoots.connectors.aryeo import AryeoConnector
from aryeo_shoots.connectors.base import BaseConnector

__all__ = ["AryeoConnector", "BaseConnector"]
