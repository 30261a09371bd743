"""Data models for raw orders, normalized shoots and pipeline events."""

from aryeo_shoots.models.pipeline import PipelineEvent
from aryeo_shoots.models.raw import RawOrder, RawOrderPage
from aryeo_shoots.models.shoot import MAX_PHOTOS, Shoot, ShootsCache

__all__ = ["MAX_PHOTOS", "PipelineEvent", "RawOrder", "RawOrderPage", "Shoot", "ShootsCache"]
