# backend/tickerlens/services/ranker.py
from __future__ import annotations

from typing import Iterable, List

from tickerlens.models.market import MarketScope, exchange_priority, primary_rank, scope_accepts
from tickerlens.models.records import ScoredMatch
from tickerlens.services.disambiguate import collapse_by_symbol, group_by_company
from tickerlens.services.hints import QueryContext


def _order(scope: MarketScope):
    return lambda m: (
        exchange_priority(scope, m.stock.exchange),
        -m.confidence,
        primary_rank(m.stock.exchange),
        m.symbol,
    )


def _top(matches: List[ScoredMatch]) -> ScoredMatch:
    # stable: equal confidences keep the ranked order
    return sorted(matches, key=lambda m: -m.confidence)[0]


def _pick(group: List[ScoredMatch], ctx: QueryContext, scope: MarketScope) -> ScoredMatch:
    explicit = [m for m in group if ctx.mentions(m.stock)]
    if explicit:
        return _top(explicit)
    if scope is not MarketScope.GLOBAL:
        local = [m for m in group if scope_accepts(scope, m.stock.exchange)]
        if local:
            return _top(local)
    for hint in ctx.hints:
        hinted = [m for m in group if ctx.hinted(m.stock, hint)]
        if hinted:
            return _top(hinted)
    return _top(group)


def rank(
    matches: Iterable[ScoredMatch],
    ctx: QueryContext,
    scope: MarketScope,
    *,
    confidence_threshold: float = 0.3,
    max_results: int = 5,
) -> List[ScoredMatch]:
    if max_results <= 0:
        return []

    kept = [m for m in collapse_by_symbol(matches) if m.confidence >= confidence_threshold]
    kept = [m for m in kept if scope_accepts(scope, m.stock.exchange) or ctx.mentions(m.stock)]
    kept.sort(key=_order(scope))

    picked = [_pick(group, ctx, scope) for group in group_by_company(kept).values()]
    # a pick may come from lower in its group than the group's first member
    picked.sort(key=_order(scope))
    return picked[:max_results]
