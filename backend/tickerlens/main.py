# backend/tickerlens/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from tickerlens.api.deps import get_index_holder
from tickerlens.api.routes_catalog import router as catalog_router
from tickerlens.api.routes_symbols import router as symbols_router
from tickerlens.api.routes_tickers import router as tickers_router
from tickerlens.core.errors import TickerLensError
from tickerlens.core.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.warm_index_on_start:
        try:
            await get_index_holder().refresh(force=False)
        except TickerLensError as e:
            # first request retries the build
            logger.warning(f"Catalog warm-up failed: {e}")
    yield


app = FastAPI(title="TickerLens Symbol Resolution API", version="0.1.0", lifespan=lifespan)

# CORS for local dev frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tickers_router, prefix="/tickers", tags=["tickers"])
app.include_router(symbols_router, prefix="/symbols", tags=["symbols"])
app.include_router(catalog_router, prefix="/catalog", tags=["catalog"])


@app.get("/healthz")
def healthz():
    return {"ok": True}


@app.get("/health")
def health():
    logger.info("Health check ok")
    return {
        "status": "ok",
        "env": settings.env,
        "catalog_source": settings.catalog_source,
        "translation": bool(settings.google_translate_api_key),
    }
