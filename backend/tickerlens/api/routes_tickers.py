from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger
from pydantic import BaseModel, Field

from tickerlens.api.deps import get_index_holder, get_translator, parse_scope
from tickerlens.core.errors import CatalogUnavailable, TranslationError
from tickerlens.core.settings import settings
from tickerlens.models.records import ScoredMatch
from tickerlens.services.entities import extract_entities
from tickerlens.services.index_holder import IndexHolder
from tickerlens.services.resolve import ResolutionEngine
from tickerlens.services.translation import Translator

router = APIRouter()


class ExtractInput(BaseModel):
    text: str
    location: str = "GLOBAL"
    confidence_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    max_results: Optional[int] = Field(default=None, ge=0, le=50)


class ResolveInput(BaseModel):
    entities: List[str]
    text: str = ""
    location: str = "GLOBAL"
    confidence_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    max_results: Optional[int] = Field(default=None, ge=0, le=50)


class StockOut(BaseModel):
    symbol: str
    name: str
    exchange: str
    price: Optional[float] = None
    confidence: float
    match_kind: str


class ResolveOutput(BaseModel):
    stocks: List[StockOut]
    entities: List[str]
    meta: Dict[str, Any]


class ExtractOutput(ResolveOutput):
    original_query: str
    translated_query: str


def _stock_out(m: ScoredMatch) -> StockOut:
    return StockOut(
        symbol=m.stock.symbol,
        name=m.stock.name,
        exchange=m.stock.exchange.value,
        price=m.stock.price,
        confidence=m.confidence,
        match_kind=m.kind,
    )


async def _engine(holder: IndexHolder) -> ResolutionEngine:
    try:
        index = await holder.get()
    except CatalogUnavailable as e:
        logger.exception(f"Catalog unavailable: {e}")
        raise HTTPException(status_code=503, detail=f"Stock catalog unavailable: {e}")
    return ResolutionEngine(index, whole_text_discount=settings.whole_text_discount)


def _knobs(threshold: Optional[float], max_results: Optional[int]):
    return (
        settings.confidence_threshold if threshold is None else threshold,
        settings.max_results if max_results is None else max_results,
    )


@router.post("/extract", response_model=ExtractOutput)
async def extract(
    payload: ExtractInput,
    holder: IndexHolder = Depends(get_index_holder),
    translator: Translator = Depends(get_translator),
):
    text = (payload.text or "").strip()
    if not text:
        raise HTTPException(status_code=400, detail="text is required")
    scope = parse_scope(payload.location)

    try:
        translated = (await translator.translate(text, settings.translate_target_language)).translated_text
    except TranslationError as e:
        logger.warning(f"Translation failed, using original text: {e}")
        translated = text

    entities = extract_entities(translated)
    engine = await _engine(holder)
    threshold, max_results = _knobs(payload.confidence_threshold, payload.max_results)
    scored, meta = engine.resolve_with_meta(
        entities, text, scope, threshold, max_results, translated_text=translated
    )
    return ExtractOutput(
        stocks=[_stock_out(m) for m in scored],
        entities=entities,
        meta=meta,
        original_query=text,
        translated_query=translated,
    )


@router.post("/resolve", response_model=ResolveOutput)
async def resolve(payload: ResolveInput, holder: IndexHolder = Depends(get_index_holder)):
    scope = parse_scope(payload.location)
    engine = await _engine(holder)
    threshold, max_results = _knobs(payload.confidence_threshold, payload.max_results)
    scored, meta = engine.resolve_with_meta(payload.entities, payload.text, scope, threshold, max_results)
    return ResolveOutput(stocks=[_stock_out(m) for m in scored], entities=payload.entities, meta=meta)
