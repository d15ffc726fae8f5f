# backend/tickerlens/api/deps.py
from functools import lru_cache

from fastapi import HTTPException
from loguru import logger

from tickerlens.core.settings import settings
from tickerlens.models.market import MarketScope
from tickerlens.services.catalog_provider import build_provider
from tickerlens.services.index_holder import IndexHolder
from tickerlens.services.translation import GoogleTranslator, PassthroughTranslator, Translator


@lru_cache(maxsize=1)
def get_index_holder() -> IndexHolder:
    provider = build_provider(settings)
    logger.info(f"Catalog source: {settings.catalog_source} (ttl {settings.catalog_ttl_s:.0f}s)")
    return IndexHolder(
        provider,
        ttl_s=settings.catalog_ttl_s,
        retry_after_s=settings.catalog_retry_after_s,
        min_similarity=settings.fuzzy_min_similarity,
    )


@lru_cache(maxsize=1)
def get_translator() -> Translator:
    if not settings.google_translate_api_key:
        logger.info("GOOGLE_TRANSLATE_API_KEY not set; queries are not translated")
        return PassthroughTranslator()
    return GoogleTranslator(settings.google_translate_api_key, timeout_s=settings.http_timeout_s)


def parse_scope(location: str) -> MarketScope:
    try:
        return MarketScope.parse(location)
    except ValueError:
        valid = ", ".join(s.value for s in MarketScope)
        raise HTTPException(status_code=400, detail=f"Unknown location {location!r}; expected one of {valid}")
