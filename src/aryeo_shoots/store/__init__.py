"""Local persistence: shoots cache snapshot and lead pipeline log."""

from aryeo_shoots.store.cache_store import ShootsCacheStore
from aryeo_shoots.store.pipeline_log import PipelineLog

__all__ = ["PipelineLog", "ShootsCacheStore"]
