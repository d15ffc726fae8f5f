# backend/tickerlens/services/matcher.py
from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from loguru import logger

from tickerlens.models.market import MarketScope, scope_accepts
from tickerlens.models.records import Candidate, ScoredMatch
from tickerlens.services.catalog_index import CatalogIndex
from tickerlens.services.hints import QueryContext

WHOLE_TEXT_DISCOUNT = 0.9
WHOLE_TEXT_TAG = "<query>"


def _confidence(distance: float) -> float:
    return round(max(0.0, min(1.0, 1.0 - distance)), 4)


def match_candidates(
    index: CatalogIndex,
    candidates: Sequence[Candidate],
    ctx: QueryContext,
    scope: MarketScope,
    *,
    limit: int = 5,
    whole_text_discount: float = WHOLE_TEXT_DISCOUNT,
) -> List[ScoredMatch]:
    """
    Exact symbol first, fuzzy otherwise, then one pass over the whole query text.
    Output is unique per (candidate, symbol), in discovery order.
    """
    found: Dict[Tuple[str, str], ScoredMatch] = {}

    def _keep(m: ScoredMatch) -> None:
        key = (m.candidate, m.symbol)
        prev = found.get(key)
        if prev is None or m.confidence > prev.confidence:
            found[key] = m

    fuzzy_queue: List[Candidate] = []
    for cand in candidates:
        rec = index.lookup(cand.text)
        if rec is not None and (scope_accepts(scope, rec.exchange) or ctx.mentions(rec)):
            _keep(ScoredMatch(stock=rec, confidence=1.0, kind="exact", candidate=cand.text))
            continue
        if rec is not None:
            logger.debug(f"exact_out_of_scope cand={cand.text} symbol={rec.symbol} scope={scope.value}")
        fuzzy_queue.append(cand)

    for cand in fuzzy_queue:
        for hit in index.search(cand.text, scope, limit=limit):
            _keep(ScoredMatch(stock=hit.stock, confidence=_confidence(hit.distance),
                              kind="fuzzy", candidate=cand.text))

    if candidates and ctx.text.strip():
        for hit in index.search(ctx.text, scope, limit=limit):
            conf = _confidence(hit.distance) * whole_text_discount
            _keep(ScoredMatch(stock=hit.stock, confidence=round(conf, 4),
                              kind="fuzzy", candidate=WHOLE_TEXT_TAG))

    return list(found.values())
