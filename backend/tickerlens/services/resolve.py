from __future__ import annotations

import os
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from loguru import logger

from tickerlens.models.market import MarketScope
from tickerlens.models.records import ScoredMatch, StockRecord
from tickerlens.services.candidates import derive_candidates
from tickerlens.services.catalog_index import CatalogIndex
from tickerlens.services.disambiguate import disambiguate
from tickerlens.services.hints import build_context
from tickerlens.services.matcher import WHOLE_TEXT_DISCOUNT, match_candidates
from tickerlens.services.ranker import rank

# Public constants (used by routers)
RESOLVER_VERSION = os.getenv("RESOLVER_VERSION", "2025.11.03")
DEFAULT_CONFIDENCE_THRESHOLD = 0.3
DEFAULT_MAX_RESULTS = 5

ScopeLike = Union[MarketScope, str]


class ResolutionEngine:
    """
    entities + original text + scope -> ranked, de-duplicated StockRecords.

    Holds a reference to one published CatalogIndex and nothing else; every
    call is a pure function of (index, inputs), so instances are safe to share
    across threads and requests.
    """

    def __init__(self, index: CatalogIndex, *, whole_text_discount: float = WHOLE_TEXT_DISCOUNT):
        self.index = index
        self.whole_text_discount = whole_text_discount

    def _run(self, candidates, ctx, scope: MarketScope, confidence_threshold: float, max_results: int) -> List[ScoredMatch]:
        if not candidates or max_results <= 0:
            return []
        matches = match_candidates(
            self.index, candidates, ctx, scope,
            limit=max_results, whole_text_discount=self.whole_text_discount,
        )
        chosen = disambiguate(matches, ctx, scope)
        return rank(chosen, ctx, scope, confidence_threshold=confidence_threshold, max_results=max_results)

    def resolve_scored(
        self,
        entities: Sequence[str],
        original_text: str,
        scope: ScopeLike = MarketScope.GLOBAL,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        max_results: int = DEFAULT_MAX_RESULTS,
        *,
        translated_text: Optional[str] = None,
    ) -> List[ScoredMatch]:
        """
        `original_text` is the query as the user wrote it. When entities came
        from a translation, pass it as `translated_text` so its market words
        and tickers are read alongside the original's.
        """
        scope = scope if isinstance(scope, MarketScope) else MarketScope.parse(scope)
        ctx = build_context(original_text, translated_text or "")
        return self._run(derive_candidates(entities or []), ctx, scope, confidence_threshold, max_results)

    def resolve(
        self,
        entities: Sequence[str],
        original_text: str,
        scope: ScopeLike = MarketScope.GLOBAL,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        max_results: int = DEFAULT_MAX_RESULTS,
        *,
        translated_text: Optional[str] = None,
    ) -> List[StockRecord]:
        scored = self.resolve_scored(
            entities, original_text, scope, confidence_threshold, max_results, translated_text=translated_text
        )
        return [m.stock for m in scored]

    def resolve_with_meta(
        self,
        entities: Sequence[str],
        original_text: str,
        scope: ScopeLike = MarketScope.GLOBAL,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        max_results: int = DEFAULT_MAX_RESULTS,
        *,
        translated_text: Optional[str] = None,
    ) -> Tuple[List[ScoredMatch], Dict[str, Any]]:
        """Like resolve_scored, but returns audit meta: candidates, hints, latency."""
        scope = scope if isinstance(scope, MarketScope) else MarketScope.parse(scope)
        t0 = time.time()
        candidates = derive_candidates(entities or [])
        ctx = build_context(original_text, translated_text or "")
        scored = self._run(candidates, ctx, scope, confidence_threshold, max_results)
        latency_ms = int((time.time() - t0) * 1000)
        meta = {
            "candidates": [
                {"text": c.text, "entity": c.entity, "ticker_shaped": c.ticker_shaped} for c in candidates
            ],
            "market_hints": [h.value for h in ctx.hints],
            "latency_ms": latency_ms,
            "resolver_version": RESOLVER_VERSION,
            "catalog_fingerprint": self.index.fingerprint,
        }
        logger.info(
            f"resolve entities={list(entities or [])} scope={scope.value} -> "
            f"{[m.symbol for m in scored]} ({latency_ms} ms)"
        )
        return scored, meta


def resolve(
    index: CatalogIndex,
    entities: Sequence[str],
    original_text: str,
    scope: ScopeLike = MarketScope.GLOBAL,
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
    max_results: int = DEFAULT_MAX_RESULTS,
) -> List[StockRecord]:
    return ResolutionEngine(index).resolve(entities, original_text, scope, confidence_threshold, max_results)
