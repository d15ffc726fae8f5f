"""Signals read from the user's original query text.

Two things are derived here and consumed by both the disambiguator and the
ranker: which symbols the user typed literally, and which markets the text
names ("Hong Kong stocks", "on nasdaq", "A股").
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import FrozenSet, Tuple

from tickerlens.models.market import MarketScope, SCOPE_EXCHANGES
from tickerlens.models.records import StockRecord
from tickerlens.services.normalize import company_key

# Checked in this order; HK first mirrors how ambiguous China/HK phrasing is read.
_HINT_KEYWORDS: Tuple[Tuple[MarketScope, Tuple[str, ...]], ...] = (
    (MarketScope.HK, (
        "hong kong", "hk stock", "hk market", "hk share", "hkse", "hkex", "港股",
    )),
    (MarketScope.CN, (
        "shanghai", "shenzhen", "a-share", "a share", "china stock", "chinese stock",
        "china market", "chinese market", "中国股", "a股",
    )),
    (MarketScope.US, (
        "nasdaq", "nyse", "us stock", "us market", "us share", "american stock",
        "wall street",
    )),
)

_SUFFIX_HINTS = {".HK": MarketScope.HK, ".SS": MarketScope.CN, ".SZ": MarketScope.CN}


def _keyword_re(word: str) -> re.Pattern:
    if word.isascii():
        # whole words, optional plural: "us stocks" yes, "famous stock" no
        return re.compile(r"(?<![a-z0-9])" + re.escape(word) + r"s?(?![a-z0-9])")
    return re.compile(re.escape(word))


_HINT_PATTERNS = tuple(
    (scope, tuple(_keyword_re(w) for w in words)) for scope, words in _HINT_KEYWORDS
)

# keep dots (0005.HK, BRK.A); everything else non-word splits
_TOKEN_SPLIT_RE = re.compile(r"[^\w.$]+")


@dataclass(frozen=True)
class QueryContext:
    text: str
    tokens: FrozenSet[str]
    hints: Tuple[MarketScope, ...]

    def mentions(self, stock: StockRecord) -> bool:
        """True when the user typed this listing's symbol.

        A symbol that is also its company's plain name (HSBC, NIO) is read
        as the name, so it does not pin the listing.
        """
        sym = stock.symbol.upper()
        if sym not in self.tokens:
            return False
        return company_key(stock.name) != sym.lower()

    def hinted(self, stock: StockRecord, scope: MarketScope) -> bool:
        return scope in self.hints and stock.exchange in SCOPE_EXCHANGES[scope]


def query_tokens(text: str) -> FrozenSet[str]:
    out = set()
    for raw in _TOKEN_SPLIT_RE.split((text or "").upper()):
        tok = raw.strip(".").lstrip("$")
        if tok:
            out.add(tok)
    return frozenset(out)


def detect_market_hints(text: str) -> Tuple[MarketScope, ...]:
    low = (text or "").lower()
    found = []
    for scope, patterns in _HINT_PATTERNS:
        if any(p.search(low) for p in patterns):
            found.append(scope)
    for tok in query_tokens(text):
        for suffix, scope in _SUFFIX_HINTS.items():
            if tok.endswith(suffix) and scope not in found:
                found.append(scope)
    order = [s for s, _ in _HINT_KEYWORDS]
    return tuple(sorted(found, key=order.index))


def build_context(text: str, *also: str) -> QueryContext:
    """
    Context for one query. `text` is what the user typed; `also` carries
    derived forms (a translation) whose tokens and market words count too.
    """
    texts = [text or ""] + [t for t in also if t and t != text]
    tokens = frozenset().union(*(query_tokens(t) for t in texts))
    hints = detect_market_hints("\n".join(texts))
    return QueryContext(text=text or "", tokens=tokens, hints=hints)
