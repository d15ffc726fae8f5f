import json
import time
from pathlib import Path
from typing import Any, List, Optional

from loguru import logger


class SnapshotCache:
    """
    On-disk copy of the last fetched catalog: {"timestamp": epoch_s, "data": [...]}.
    Writes go through a temp file so readers never see half a snapshot.
    """
    def __init__(self, path: str, ttl_s: float):
        self.path = Path(path)
        self.ttl_s = ttl_s
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read catalog cache {self.path}: {e}")
            return {}

    def _write(self, data: dict) -> None:
        tmp = self.path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(data, f)
        tmp.replace(self.path)

    def get(self, stale_ok: bool = False) -> Optional[List[Any]]:
        """Cached rows if present and younger than the TTL (any age with stale_ok), else None."""
        cached = self._read()
        ts, rows = cached.get("timestamp"), cached.get("data")
        if not isinstance(ts, (int, float)) or not isinstance(rows, list):
            return None
        if not stale_ok and (time.time() - ts) >= self.ttl_s:
            logger.debug(f"Catalog cache expired: {self.path}")
            return None
        return rows

    def set(self, rows: List[Any]) -> None:
        self._write({"timestamp": time.time(), "data": rows})
        logger.debug(f"Catalog cache updated with {len(rows)} rows at {self.path}")
