# backend/tickerlens/services/entities.py
"""
Pulls likely company/ticker mentions out of a free-form query.

Regex heuristics only: $TICKER tokens, all-caps tokens, quoted phrases,
"<x> stock/shares/price" and "thoughts on <x>" phrasing, then whatever words
survive the stop-word and market-term filters.
"""
from __future__ import annotations

import re
from typing import Iterable, List

from tickerlens.services.normalize import trim_quotes

_DOLLAR_TICK_RE = re.compile(r"\$([A-Za-z]{1,5}(?:\.[A-Za-z]{1,2})?)\b")
_CAPS_TICK_RE = re.compile(r"(?<![\w.$])[A-Z]{2,5}(?![\w.])")
_QUOTED_RE = re.compile(r"\"([^\"]+)\"|“([^”]+)”")
_WORD_SPLIT_RE = re.compile(r"[\s,;:!?()]+")
_EDGE_PUNCT = ".,'\"$!?;:()[]{}“”‘’"

_PHRASE_PATTERNS = (
    re.compile(r"(\w+)\s+stock", re.I),
    re.compile(r"(\w+)\s+shares", re.I),
    re.compile(r"(\w+)\s+price", re.I),
    re.compile(r"find\s+(?:me\s+)?(\w+)", re.I),
    re.compile(r"thoughts\s+on\s+(\w+)", re.I),
)

STOP_WORDS = frozenset("""
a an and the or of in on at to for from by with into during about between vs versus
me my i it its is are was be do does should can could would what how which who why when
find show get give tell compare comparison look looking thought thoughts think
stock stocks share shares price prices quote quotes ticker tickers chart market markets
company companies today now news buy sell hold trade trading invest investing performance
trend uptrend downtrend upward downward up down this that these those
hong kong hk us chinese china american
""".split())

MARKET_TERMS = (
    "hong kong stocks", "hong kong", "hk stocks", "hk stock", "hk market", "hkse", "hkex",
    "shanghai", "shenzhen", "china stocks", "china stock", "chinese stocks", "chinese stock",
    "china market", "a-shares", "a-share", "a shares", "a share",
    "us stocks", "us stock", "us market", "us shares", "american stocks", "american stock",
    "nasdaq", "nyse", "wall street",
)
_MARKET_TERMS_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(t) for t in MARKET_TERMS) + r")\b", re.I
)


def _clean(entity: str) -> str:
    return trim_quotes(entity).strip(_EDGE_PUNCT).strip()


def _keep(entity: str) -> bool:
    low = entity.lower()
    return (
        len(entity) > 1
        and not entity.isdigit()
        and low not in STOP_WORDS
        and low not in MARKET_TERMS
    )


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for it in items:
        if it not in seen:
            seen.add(it)
            out.append(it)
    return out


def extract_entities(text: str) -> List[str]:
    if not text or not text.strip():
        return []

    raw: List[str] = []
    raw += [m.group(1).upper() for m in _DOLLAR_TICK_RE.finditer(text)]
    raw += [m.group(1) or m.group(2) for m in _QUOTED_RE.finditer(text)]
    raw += _CAPS_TICK_RE.findall(text)
    for pat in _PHRASE_PATTERNS:
        m = pat.search(text)
        if m and m.group(1).lower() not in STOP_WORDS:
            raw.append(m.group(1))

    # market phrases name a venue, not a company
    words_text = _MARKET_TERMS_RE.sub(" ", text)
    raw += [w for w in _WORD_SPLIT_RE.split(words_text) if w]

    entities = _unique(e for e in (_clean(r) for r in raw) if _keep(e))
    single = [e for e in entities if " " not in e]
    return single or entities
