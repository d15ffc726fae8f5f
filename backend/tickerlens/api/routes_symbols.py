from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from tickerlens.api.deps import get_index_holder, parse_scope
from tickerlens.core.errors import CatalogUnavailable
from tickerlens.services.index_holder import IndexHolder

router = APIRouter()


@router.get("/search")
async def search_symbols(
    query: str = Query(..., min_length=1, description="Company name or ticker"),
    location: str = Query("GLOBAL", description="GLOBAL, US, CN or HK"),
    limit: int = Query(10, ge=1, le=50),
    holder: IndexHolder = Depends(get_index_holder),
):
    scope = parse_scope(location)
    try:
        index = await holder.get()
    except CatalogUnavailable as e:
        logger.exception(f"Search error for '{query}': {e}")
        raise HTTPException(status_code=503, detail=str(e))

    exact = index.lookup(query)
    hits = index.search(query, scope, limit=limit)
    candidates = [
        {
            "symbol": h.stock.symbol,
            "name": h.stock.name,
            "exchange": h.stock.exchange.value,
            "score": round(1.0 - h.distance, 4),
        }
        for h in hits
    ]
    logger.info(f"Search '{query}' [{scope.value}] -> {len(candidates)} candidates")
    return {
        "query": query,
        "location": scope.value,
        "exact": exact.symbol if exact is not None else None,
        "candidates": candidates,
        "total": len(candidates),
    }
