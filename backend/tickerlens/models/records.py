from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tickerlens.models.market import Exchange, parse_exchange

MatchKind = Literal["exact", "fuzzy"]


class StockRecord(BaseModel):
    # catalog rows are immutable once loaded; accept provider aliases on input
    symbol: str
    name: str
    exchange: Exchange = Field(alias="exchangeShortName")
    kind: Literal["equity"] = "equity"
    price: Optional[float] = None

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    @field_validator("symbol")
    @classmethod
    def _symbol_upper(cls, v: str) -> str:
        return (v or "").strip().upper()

    @field_validator("name")
    @classmethod
    def _name_strip(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("exchange", mode="before")
    @classmethod
    def _exchange_alias(cls, v):
        if isinstance(v, Exchange):
            return v
        ex = parse_exchange(v)
        if ex is None:
            raise ValueError(f"unknown exchange: {v!r}")
        return ex


@dataclass(frozen=True)
class Candidate:
    text: str
    ticker_shaped: bool
    entity: str


@dataclass(frozen=True)
class ScoredMatch:
    """A catalog record plus how well it matched; the record itself is never tagged."""
    stock: StockRecord
    confidence: float
    kind: MatchKind
    candidate: str = ""

    def __post_init__(self):
        if self.kind == "exact" and self.confidence != 1.0:
            raise ValueError("exact matches carry confidence 1.0")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence out of range: {self.confidence}")

    @property
    def symbol(self) -> str:
        return self.stock.symbol

    def with_confidence(self, confidence: float) -> "ScoredMatch":
        if self.kind == "exact":
            return self
        return replace(self, confidence=round(max(0.0, min(1.0, confidence)), 4))
