from __future__ import annotations

import re
from typing import Iterable, List, Set, Tuple

from tickerlens.models.records import Candidate
from tickerlens.services.normalize import trim_quotes

# --- ticker shapes (checked against the uppercased token) ---
_PLAIN_TICK_RE = re.compile(r"^[A-Z]{1,5}$")             # NVDA
_CODED_TICK_RE = re.compile(r"^\d+\.[A-Z]{2}$")          # 0005.HK, 600519.SS
_CLASS_TICK_RE = re.compile(r"^[A-Z]{1,4}\.[A-Z]$")      # BRK.A

_TICKER_SHAPES = (_PLAIN_TICK_RE, _CODED_TICK_RE, _CLASS_TICK_RE)


def is_ticker_shaped(token: str) -> bool:
    return any(p.fullmatch(token) for p in _TICKER_SHAPES)


def _clean(entity: str) -> str:
    s = trim_quotes(entity or "")
    if s.startswith("$"):
        s = s[1:].strip()
    return s


def derive_candidates(entities: Iterable[str]) -> List[Candidate]:
    """
    One entity -> up to two candidates:
      - the uppercased token, when it looks like a ticker
      - the phrase as typed, for name search
    Order follows the entities; duplicates across entities are dropped.
    """
    out: List[Candidate] = []
    seen: Set[Tuple[str, bool]] = set()

    def _add(c: Candidate) -> None:
        key = (c.text, c.ticker_shaped)
        if key not in seen:
            seen.add(key)
            out.append(c)

    for entity in entities:
        phrase = _clean(entity)
        if not phrase:
            continue
        token = phrase.upper()
        if " " not in token and is_ticker_shaped(token):
            _add(Candidate(text=token, ticker_shaped=True, entity=entity))
            if phrase == token:
                continue
        _add(Candidate(text=phrase, ticker_shaped=False, entity=entity))
    return out
