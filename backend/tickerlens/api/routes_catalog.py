from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from tickerlens.api.deps import get_index_holder
from tickerlens.core.errors import TickerLensError
from tickerlens.core.settings import settings
from tickerlens.services.index_holder import IndexHolder

router = APIRouter()


@router.get("/status")
def catalog_status(holder: IndexHolder = Depends(get_index_holder)):
    return holder.status()


@router.get("/refresh")
async def refresh_catalog(
    token: Optional[str] = Query(None, description="Must equal CRON_SECRET_TOKEN when one is configured"),
    holder: IndexHolder = Depends(get_index_holder),
):
    """Forced snapshot refresh; meant for a scheduled cron call."""
    secret = settings.cron_secret_token
    if secret and token != secret:
        logger.warning("Catalog refresh rejected: bad token")
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        index = await holder.refresh(force=True)
    except TickerLensError as e:
        logger.exception(f"Failed to refresh stock catalog: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to refresh stock data: {e}")

    return {
        "success": True,
        "message": "Stock catalog refreshed",
        "records": len(index),
        "fingerprint": index.fingerprint,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
