from __future__ import annotations

import asyncio
import random
import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Union

import httpx
import pandas as pd
from loguru import logger

from tickerlens.core.errors import CatalogFetchError
from tickerlens.core.settings import Settings
from tickerlens.models.market import parse_exchange
from tickerlens.models.records import StockRecord
from tickerlens.services.cache import SnapshotCache


class CatalogProvider(Protocol):
    async def fetch(self, force: bool = False) -> List[StockRecord]: ...


def _safe_float(x: Any) -> Optional[float]:
    try:
        return float(x)
    except (TypeError, ValueError):
        return None


def records_from_rows(rows: Iterable[Any], *, source: str = "rows") -> List[StockRecord]:
    """
    Provider rows -> StockRecords. Keeps equities on known exchanges only;
    first occurrence of a symbol wins.
    """
    out: List[StockRecord] = []
    seen = set()
    skipped = 0
    for row in rows:
        if not isinstance(row, dict):
            skipped += 1
            continue
        kind = str(row.get("type") or "stock").strip().lower()
        sym = str(row.get("symbol") or "").strip().upper()
        name = str(row.get("name") or "").strip()
        exch = parse_exchange(row.get("exchangeShortName") or row.get("exchange"))
        if kind != "stock" or not sym or not name or exch is None or sym in seen:
            skipped += 1
            continue
        seen.add(sym)
        out.append(StockRecord(symbol=sym, name=name, exchange=exch, price=_safe_float(row.get("price"))))
    logger.info(f"Catalog {source}: kept {len(out)} rows, skipped {skipped}")
    return out


# =============================================================================
# Financial Modeling Prep stock list
# =============================================================================
class FmpCatalogProvider:
    def __init__(
        self,
        api_key: str,
        url: str,
        cache: Optional[SnapshotCache] = None,
        timeout_s: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
        max_attempts: int = 4,
        backoff_s: float = 0.5,
    ):
        self.api_key = api_key
        self.url = url
        self.cache = cache
        self.timeout_s = timeout_s
        self.client = client
        self.max_attempts = max(1, max_attempts)
        self.backoff_s = backoff_s

    async def _get_json(self, client: httpx.AsyncClient) -> Any:
        delay = self.backoff_s
        for attempt in range(self.max_attempts):
            try:
                resp = await client.get(self.url, params={"apikey": self.api_key})
                status = resp.status_code
                # retry only on 429 and 5xx
                if status == 429 or (500 <= status < 600):
                    raise httpx.HTTPStatusError(f"{status}", request=resp.request, response=resp)
                if 400 <= status < 500:
                    raise CatalogFetchError(f"stock list request rejected with HTTP {status}")
                return resp.json()
            except httpx.HTTPError as e:
                if attempt == self.max_attempts - 1:
                    logger.error(f"Stock list fetch failed after {self.max_attempts} attempts: {e}")
                    raise CatalogFetchError(f"Failed to fetch stock list: {e}") from e
                sleep_s = delay * (1 + random.random() * 0.5)
                logger.warning(f"Stock list HTTP error ({e}); retrying in {sleep_s:.2f}s...")
                await asyncio.sleep(sleep_s)
                delay = min(delay * 2, 8.0)
            except ValueError as e:
                raise CatalogFetchError(f"stock list is not valid JSON: {e}") from e

    async def _download(self) -> List[Dict[str, Any]]:
        if self.client is not None:
            data = await self._get_json(self.client)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                data = await self._get_json(client)
        if not isinstance(data, list):
            raise CatalogFetchError(f"unexpected stock list payload: {type(data).__name__}")
        rows = [r for r in data if isinstance(r, dict) and r.get("type") == "stock"]
        logger.debug(f"Fetched {len(rows)} stocks from {self.url}")
        return rows

    async def fetch(self, force: bool = False) -> List[StockRecord]:
        if not force and self.cache is not None:
            cached = self.cache.get()
            if cached:
                logger.debug("Using cached stock list")
                return records_from_rows(cached, source="fmp-cache")

        if not self.api_key:
            raise CatalogFetchError("FMP_API_KEY missing")

        try:
            rows = await self._download()
        except CatalogFetchError:
            stale = self.cache.get(stale_ok=True) if self.cache is not None else None
            if stale and not force:
                logger.warning("Stock list fetch failed; serving expired cache")
                return records_from_rows(stale, source="fmp-stale-cache")
            raise

        if self.cache is not None:
            self.cache.set(rows)
        return records_from_rows(rows, source="fmp")


# =============================================================================
# Local securities master (CSV)
# =============================================================================
_CSV_HEADER_ALIASES: Dict[str, str] = {
    "symbol": "symbol", "ticker": "symbol", "code": "symbol",
    "name": "name", "company": "name", "companyname": "name", "description": "name",
    "securityname": "name",
    "exchange": "exchange", "exchangeshortname": "exchange", "market": "exchange",
    "price": "price", "lastprice": "price", "close": "price",
    "type": "type",
}


def _norm_header(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).strip().lower())


class CsvCatalogProvider:
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def _load(self) -> List[StockRecord]:
        if not self.path.exists():
            raise CatalogFetchError(f"securities master not found at {self.path}")
        try:
            df = pd.read_csv(self.path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
        except (OSError, ValueError) as e:
            raise CatalogFetchError(f"failed to read securities master {self.path}: {e}") from e
        df = df.rename(columns={c: _CSV_HEADER_ALIASES.get(_norm_header(c), c) for c in df.columns})
        missing = {"symbol", "name", "exchange"} - set(df.columns)
        if missing:
            raise CatalogFetchError(f"securities master {self.path} lacks columns: {sorted(missing)}")
        return records_from_rows(df.to_dict(orient="records"), source=f"csv:{self.path.name}")

    async def fetch(self, force: bool = False) -> List[StockRecord]:
        return await asyncio.to_thread(self._load)


class StaticCatalogProvider:
    """Fixed in-memory snapshot (fixtures, tests, embedding callers)."""

    def __init__(self, records: Sequence[Union[StockRecord, Dict[str, Any]]]):
        self._records = [r for r in records if isinstance(r, StockRecord)]
        rows = [r for r in records if isinstance(r, dict)]
        if rows:
            self._records += records_from_rows(rows, source="static")
        self.calls = 0

    async def fetch(self, force: bool = False) -> List[StockRecord]:
        self.calls += 1
        return list(self._records)


def build_provider(cfg: Settings) -> CatalogProvider:
    if cfg.catalog_source == "csv":
        return CsvCatalogProvider(cfg.catalog_csv_path)
    cache = SnapshotCache(cfg.catalog_cache_path, ttl_s=cfg.catalog_ttl_s)
    return FmpCatalogProvider(
        api_key=cfg.fmp_api_key,
        url=cfg.fmp_stock_list_url,
        cache=cache,
        timeout_s=cfg.http_timeout_s,
    )
