# backend/tickerlens/models/market.py
from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple


class Exchange(str, Enum):
    NYSE = "NYSE"        # New York Stock Exchange
    NASDAQ = "NASDAQ"
    AMEX = "AMEX"        # NYSE American
    CBOE = "CBOE"
    OTC = "OTC"
    HKSE = "HKSE"        # Hong Kong
    SHH = "SHH"          # Shanghai
    SHZ = "SHZ"          # Shenzhen
    LSE = "LSE"          # London


class MarketScope(str, Enum):
    GLOBAL = "GLOBAL"
    US = "US"
    CN = "CN"
    HK = "HK"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "MarketScope":
        """Lenient parse: 'global', 'us', ' HK ' all work; blank means GLOBAL."""
        s = (raw or "").strip().upper()
        if not s:
            return cls.GLOBAL
        return cls(s)


# Ordered: position is the sort priority inside the scope.
SCOPE_EXCHANGES: Dict[MarketScope, Tuple[Exchange, ...]] = {
    MarketScope.US: (Exchange.NYSE, Exchange.NASDAQ, Exchange.AMEX, Exchange.CBOE, Exchange.OTC),
    MarketScope.CN: (Exchange.SHH, Exchange.SHZ),
    MarketScope.HK: (Exchange.HKSE,),
}

# Scopes whose exchange order is meaningful for ranking.
ORDERED_SCOPES = frozenset({MarketScope.US, MarketScope.CN})

# GLOBAL tie-break only: more recognizable / liquid venues first.
PRIMARY_EXCHANGES: Tuple[Exchange, ...] = (Exchange.NYSE, Exchange.NASDAQ, Exchange.HKSE, Exchange.LSE)

# Home-market convention for the last GLOBAL nudge.
ANCHOR_EXCHANGES = frozenset(SCOPE_EXCHANGES[MarketScope.US])

_EXCHANGE_ALIASES: Dict[str, Exchange] = {
    "NYSE": Exchange.NYSE,
    "NEW YORK STOCK EXCHANGE": Exchange.NYSE,
    "NYSEARCA": Exchange.NYSE,
    "NYSE ARCA": Exchange.NYSE,
    "NASDAQ": Exchange.NASDAQ,
    "NASDAQ GLOBAL SELECT": Exchange.NASDAQ,
    "NASDAQ GLOBAL MARKET": Exchange.NASDAQ,
    "NASDAQ CAPITAL MARKET": Exchange.NASDAQ,
    "AMEX": Exchange.AMEX,
    "NYSE AMERICAN": Exchange.AMEX,
    "CBOE": Exchange.CBOE,
    "BATS": Exchange.CBOE,
    "OTC": Exchange.OTC,
    "PNK": Exchange.OTC,
    "OTCQX": Exchange.OTC,
    "OTCQB": Exchange.OTC,
    "HKSE": Exchange.HKSE,
    "HKG": Exchange.HKSE,
    "HKEX": Exchange.HKSE,
    "HONG KONG STOCK EXCHANGE": Exchange.HKSE,
    "SHH": Exchange.SHH,
    "SHANGHAI": Exchange.SHH,
    "SHZ": Exchange.SHZ,
    "SHENZHEN": Exchange.SHZ,
    "LSE": Exchange.LSE,
    "LONDON STOCK EXCHANGE": Exchange.LSE,
}


def parse_exchange(raw: Optional[str]) -> Optional[Exchange]:
    """Map a provider exchange code/name onto the closed Exchange set (None if unknown)."""
    if not raw:
        return None
    return _EXCHANGE_ALIASES.get(" ".join(str(raw).upper().split()))


def scope_accepts(scope: MarketScope, exchange: Exchange) -> bool:
    if scope is MarketScope.GLOBAL:
        return True
    return exchange in SCOPE_EXCHANGES[scope]


def exchange_priority(scope: MarketScope, exchange: Exchange) -> int:
    """Sort key inside an ordered scope; everything else ranks equal (0)."""
    if scope not in ORDERED_SCOPES:
        return 0
    order = SCOPE_EXCHANGES[scope]
    return order.index(exchange) if exchange in order else len(order)


def primary_rank(exchange: Exchange) -> int:
    return PRIMARY_EXCHANGES.index(exchange) if exchange in PRIMARY_EXCHANGES else len(PRIMARY_EXCHANGES)
