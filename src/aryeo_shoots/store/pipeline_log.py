"""Append-only NDJSON log of lead pipeline events."""

import asyncio
import json
from pathlib import Path
from typing import Any

from aryeo_shoots.models.pipeline import PipelineEvent

DEFAULT_READ_LIMIT = 200
MAX_READ_LIMIT = 1000


class PipelineLog:
    """
    One JSON record per line, appended per inbound webhook. Reads return the
    newest records first; lines that fail to parse come back flagged instead
    of failing the read.
    """

    def __init__(self, path: str | Path = "data/lead-pipeline.jsonl"):
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: PipelineEvent) -> None:
        """Append one event as a single complete line."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        line = event.model_dump_json() + "\n"
        with self._path.open("a", encoding="utf-8") as f:
            f.write(line)

    async def append_async(self, event: PipelineEvent) -> None:
        """Append off the event loop; concurrent deliveries are serialized."""
        async with self._lock:
            await asyncio.to_thread(self.append, event)

    def read_recent(self, limit: int = DEFAULT_READ_LIMIT) -> list[dict[str, Any]]:
        """Last `limit` records (clamped to 1..1000), newest first."""
        limit = max(1, min(int(limit), MAX_READ_LIMIT))
        if not self._path.exists():
            return []

        # Records are split on "\n" only; U+2028 and friends may occur inside a record.
        lines = [
            line.rstrip(b"\r")
            for line in self._path.read_bytes().split(b"\n")
            if line.strip()
        ]
        records: list[dict[str, Any]] = []
        for line in lines[-limit:]:
            try:
                record = json.loads(line.decode("utf-8"))
            except ValueError:
                record = None
            if not isinstance(record, dict):
                record = {"parse_error": True, "raw": line.decode("utf-8", "replace")}
            records.append(record)
        records.reverse()
        return records
