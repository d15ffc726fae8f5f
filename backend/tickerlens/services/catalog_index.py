# backend/tickerlens/services/catalog_index.py
from __future__ import annotations

import hashlib
import json
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
from loguru import logger
from rapidfuzz import fuzz, process

from tickerlens.core.errors import CatalogUnavailable
from tickerlens.models.market import MarketScope, scope_accepts
from tickerlens.models.records import StockRecord
from tickerlens.services.normalize import simplify_name

# Field weights (sum to 1): name carries most of the signal, symbol catches near-tickers.
NAME_WEIGHT = 0.7
SYMBOL_WEIGHT = 0.3
MIN_MATCH_CHARS = 2
DEFAULT_MIN_SIMILARITY = 0.65


@dataclass(frozen=True)
class FuzzyHit:
    stock: StockRecord
    distance: float  # 0.0 = perfect, 1.0 = unrelated


class PartitionIndex:
    """Fuzzy index over one scope's slice of the catalog."""

    def __init__(self, scope: MarketScope, records: Sequence[StockRecord], min_similarity: float):
        self.scope = scope
        self.records = tuple(records)
        self.min_similarity = min_similarity
        self._names = [simplify_name(r.name) for r in self.records]
        self._symbols = [r.symbol for r in self.records]

    def __len__(self) -> int:
        return len(self.records)

    def search(self, query: str, limit: int = 5) -> List[FuzzyHit]:
        q = (query or "").strip()
        if len(q) < MIN_MATCH_CHARS or not self.records or limit <= 0:
            return []

        name_sim = process.cdist(
            [simplify_name(q)], self._names, scorer=fuzz.WRatio, dtype=np.float64
        )[0] / 100.0
        sym_sim = process.cdist(
            [q.upper()], self._symbols, scorer=fuzz.ratio, dtype=np.float64
        )[0] / 100.0

        # a hit needs at least one field to be genuinely close
        idx = np.nonzero(np.maximum(name_sim, sym_sim) >= self.min_similarity)[0]
        if idx.size == 0:
            return []

        distance = np.power(1.0 - name_sim[idx], NAME_WEIGHT) * np.power(1.0 - sym_sim[idx], SYMBOL_WEIGHT)
        distance = np.round(np.clip(distance, 0.0, 1.0), 4)

        ranked = sorted(zip(distance.tolist(), idx.tolist()), key=lambda t: (t[0], self._symbols[t[1]]))
        return [FuzzyHit(self.records[i], d) for d, i in ranked[:limit]]


def snapshot_fingerprint(records: Iterable[StockRecord]) -> str:
    rows = sorted((r.symbol, r.name, r.exchange.value) for r in records)
    blob = json.dumps(rows, ensure_ascii=False)
    return hashlib.sha1(blob.encode("utf-8")).hexdigest()


class CatalogIndex:
    """
    Read-only view over one catalog snapshot:
      - exact table: uppercase symbol -> record
      - one fuzzy PartitionIndex per MarketScope (GLOBAL = everything)
    Construction either completes or raises CatalogUnavailable.
    """

    def __init__(self, records: Sequence[StockRecord], *, min_similarity: float = DEFAULT_MIN_SIMILARITY):
        records = _validate(records)
        exact: Dict[str, StockRecord] = {r.symbol.upper(): r for r in records}
        self.exact: Mapping[str, StockRecord] = MappingProxyType(exact)
        self.partitions: Mapping[MarketScope, PartitionIndex] = MappingProxyType({
            scope: PartitionIndex(scope, [r for r in records if scope_accepts(scope, r.exchange)], min_similarity)
            for scope in MarketScope
        })
        self.fingerprint = snapshot_fingerprint(records)
        self.built_at = time.time()
        logger.info(
            "Built catalog index: "
            + ", ".join(f"{s.value}={len(p)}" for s, p in self.partitions.items())
        )

    def __len__(self) -> int:
        return len(self.exact)

    def lookup(self, symbol: str) -> Optional[StockRecord]:
        return self.exact.get((symbol or "").strip().upper())

    def search(self, query: str, scope: MarketScope, limit: int = 5) -> List[FuzzyHit]:
        return self.partitions[scope].search(query, limit=limit)

    def stats(self) -> Dict[str, object]:
        return {
            "records": len(self),
            "partitions": {s.value: len(p) for s, p in self.partitions.items()},
            "fingerprint": self.fingerprint,
            "built_at": self.built_at,
        }


def _validate(records: Sequence[StockRecord]) -> List[StockRecord]:
    if records is None:
        raise CatalogUnavailable("catalog snapshot is missing")
    rows = list(records)
    if not rows:
        raise CatalogUnavailable("catalog snapshot is empty")
    seen: Dict[str, StockRecord] = {}
    for i, r in enumerate(rows):
        if not isinstance(r, StockRecord):
            raise CatalogUnavailable(f"catalog row {i} is not a StockRecord: {type(r).__name__}")
        if not r.symbol or not r.name:
            raise CatalogUnavailable(f"catalog row {i} has an empty symbol or name")
        if r.symbol in seen:
            raise CatalogUnavailable(f"duplicate symbol in catalog snapshot: {r.symbol}")
        seen[r.symbol] = r
    return rows
