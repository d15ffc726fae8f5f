from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from tickerlens.core.errors import CatalogUnavailable
from tickerlens.models.records import StockRecord
from tickerlens.services.catalog_index import DEFAULT_MIN_SIMILARITY, CatalogIndex, snapshot_fingerprint
from tickerlens.services.catalog_provider import CatalogProvider


class IndexHolder:
    """
    Owns the published CatalogIndex.

    get() hands back the current index while it is fresh. When it is missing
    or older than ttl_s, callers start (or join) one shared rebuild task:
    provider.fetch() on the loop, index build on a worker thread. A failed
    rebuild leaves the previous index in place, and get() keeps serving it
    without calling the provider again for retry_after_s.
    """

    def __init__(
        self,
        provider: CatalogProvider,
        *,
        ttl_s: float = 3600.0,
        retry_after_s: float = 30.0,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.ttl_s = ttl_s
        self.retry_after_s = retry_after_s
        self.min_similarity = min_similarity
        self._clock = clock
        self._index: Optional[CatalogIndex] = None
        self._loaded_at: Optional[float] = None
        self._failed_at: Optional[float] = None
        self._inflight: Optional[asyncio.Task] = None
        self.last_error: Optional[str] = None
        self.builds = 0

    @property
    def index(self) -> Optional[CatalogIndex]:
        return self._index

    def is_stale(self) -> bool:
        if self._index is None or self._loaded_at is None:
            return True
        return (self._clock() - self._loaded_at) >= self.ttl_s

    def is_refreshing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def retry_in_s(self) -> float:
        """Seconds until get() may call the provider again after a failed rebuild."""
        if self._failed_at is None:
            return 0.0
        return max(0.0, self.retry_after_s - (self._clock() - self._failed_at))

    async def get(self) -> CatalogIndex:
        if self._index is not None and (not self.is_stale() or self.retry_in_s() > 0):
            return self._index
        try:
            return await self._join(force=False)
        except CatalogUnavailable as e:
            if self._index is None:
                raise
            logger.warning(f"Catalog refresh failed; serving previous index: {e}")
            return self._index

    async def refresh(self, force: bool = True) -> CatalogIndex:
        """Rebuild now (joining a rebuild already in flight). Errors propagate."""
        return await self._join(force=force)

    async def _join(self, force: bool) -> CatalogIndex:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.create_task(self._rebuild(force))
        # shield: a cancelled waiter must not cancel the shared rebuild
        return await asyncio.shield(self._inflight)

    def _build(self, records: List[StockRecord]) -> CatalogIndex:
        return CatalogIndex(records, min_similarity=self.min_similarity)

    async def _rebuild(self, force: bool) -> CatalogIndex:
        t0 = time.time()
        try:
            records = await self.provider.fetch(force=force)
            current = self._index
            if (
                current is not None
                and records
                and all(isinstance(r, StockRecord) for r in records)
                and snapshot_fingerprint(records) == current.fingerprint
            ):
                logger.info("Catalog snapshot unchanged; keeping current index")
                self._loaded_at = self._clock()
                self.last_error = None
                self._failed_at = None
                return current

            index = await asyncio.to_thread(self._build, records)
        except CatalogUnavailable as e:
            self.last_error = str(e)
            self._failed_at = self._clock()
            logger.warning(f"Catalog rebuild failed: {e}")
            raise

        self._index = index
        self._loaded_at = self._clock()
        self.last_error = None
        self._failed_at = None
        self.builds += 1
        logger.info(f"Catalog index published ({len(index)} records) in {int((time.time() - t0) * 1000)} ms")
        return index

    def status(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "ready": self._index is not None,
            "stale": self.is_stale(),
            "refreshing": self.is_refreshing(),
            "ttl_s": self.ttl_s,
            "age_s": None if self._loaded_at is None else round(self._clock() - self._loaded_at, 3),
            "builds": self.builds,
            "last_error": self.last_error,
            "retry_in_s": round(self.retry_in_s(), 3),
        }
        if self._index is not None:
            out.update(self._index.stats())
        return out
