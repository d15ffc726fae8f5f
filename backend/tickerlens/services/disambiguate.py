# backend/tickerlens/services/disambiguate.py
from __future__ import annotations

from typing import Dict, Iterable, List

from loguru import logger

from tickerlens.models.market import (
    ANCHOR_EXCHANGES,
    PRIMARY_EXCHANGES,
    SCOPE_EXCHANGES,
    MarketScope,
    scope_accepts,
)
from tickerlens.models.records import ScoredMatch
from tickerlens.services.hints import QueryContext
from tickerlens.services.normalize import company_key

# (multiplier, cap)
HINT_BOOST = (1.2, 0.98)
SCOPE_BOOST = (1.2, 0.99)
LIQUID_BOOST = (1.05, 0.95)


def boost(m: ScoredMatch, factor: float, cap: float) -> ScoredMatch:
    """Raise confidence toward cap; never lowers it, never touches exact matches."""
    return m.with_confidence(max(m.confidence, min(cap, m.confidence * factor)))


def _strength(m: ScoredMatch):
    return (m.kind == "exact", m.confidence)


def collapse_by_symbol(matches: Iterable[ScoredMatch]) -> List[ScoredMatch]:
    best: Dict[str, ScoredMatch] = {}
    for m in matches:
        prev = best.get(m.symbol)
        if prev is None or _strength(m) > _strength(prev):
            best[m.symbol] = m
    return list(best.values())


def group_by_company(matches: Iterable[ScoredMatch]) -> Dict[str, List[ScoredMatch]]:
    groups: Dict[str, List[ScoredMatch]] = {}
    for m in matches:
        groups.setdefault(company_key(m.stock.name), []).append(m)
    return groups


def select_listings(group: List[ScoredMatch], ctx: QueryContext, scope: MarketScope) -> List[ScoredMatch]:
    """
    Exchange-selection policy for one cross-listed company. First rule with a
    non-empty answer wins:
      1. symbol typed in the query
      2. market named in the query ("Hong Kong stocks")
      3. requested scope
      4. GLOBAL: liquid venues, else everything with a home-market nudge
    """
    listings = sorted(group, key=lambda m: (-m.confidence, m.symbol))

    explicit = [m for m in listings if ctx.mentions(m.stock)]
    if explicit:
        return explicit

    for hint in ctx.hints:
        hinted = [m for m in listings if m.stock.exchange in SCOPE_EXCHANGES[hint]]
        if hinted:
            logger.debug(f"cross_listing hint={hint.value} keep={[m.symbol for m in hinted]}")
            return [boost(m, *HINT_BOOST) for m in hinted]

    if scope is not MarketScope.GLOBAL:
        local = [m for m in listings if scope_accepts(scope, m.stock.exchange)]
        if local:
            return [boost(m, *SCOPE_BOOST) for m in local]
        return listings

    primary = [m for m in listings if m.stock.exchange in PRIMARY_EXCHANGES]
    if primary:
        return [boost(m, *LIQUID_BOOST) for m in primary]
    return [boost(m, *LIQUID_BOOST) if m.stock.exchange in ANCHOR_EXCHANGES else m for m in listings]


def disambiguate(matches: Iterable[ScoredMatch], ctx: QueryContext, scope: MarketScope) -> List[ScoredMatch]:
    out: List[ScoredMatch] = []
    for key, group in group_by_company(collapse_by_symbol(matches)).items():
        if len(group) == 1:
            out.extend(group)
            continue
        kept = select_listings(group, ctx, scope)
        logger.debug(f"cross_listing company={key!r} listings={[m.symbol for m in group]} kept={[m.symbol for m in kept]}")
        out.extend(kept)
    return out
