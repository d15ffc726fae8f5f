# backend/tickerlens/core/settings.py
import os
from pathlib import Path
from pydantic import BaseModel
from dotenv import load_dotenv

# Resolve backend directory and load .env explicitly
BACKEND_DIR = Path(__file__).resolve().parents[2]  # .../backend
load_dotenv(BACKEND_DIR / ".env")  # do NOT set override=True; shell exports still win

def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() not in {"0", "false", "no", ""}

class Settings(BaseModel):
    env: str = os.getenv("APP_ENV", "dev")
    port: int = int(os.getenv("PORT", "8000"))
    http_timeout_s: float = float(os.getenv("HTTP_TIMEOUT_S", "10"))

    # catalog source: "fmp" (remote stock list) or "csv" (local securities master)
    catalog_source: str = os.getenv("CATALOG_SOURCE", "fmp").lower()
    fmp_api_key: str = os.getenv("FMP_API_KEY", "")
    fmp_stock_list_url: str = os.getenv(
        "FMP_STOCK_LIST_URL", "https://financialmodelingprep.com/api/v3/stock/list"
    )
    catalog_cache_path: str = os.getenv("CATALOG_CACHE_PATH", str(BACKEND_DIR / ".cache" / "stock_list.json"))
    catalog_csv_path: str = os.getenv("CATALOG_CSV_PATH", str(BACKEND_DIR / "assets" / "securities_master.csv"))
    catalog_ttl_s: float = float(os.getenv("CATALOG_TTL_S", "3600"))
    catalog_retry_after_s: float = float(os.getenv("CATALOG_RETRY_AFTER_S", "30"))
    cron_secret_token: str = os.getenv("CRON_SECRET_TOKEN", "")
    warm_index_on_start: bool = _flag("WARM_INDEX_ON_START", "1")

    # resolution knobs
    fuzzy_min_similarity: float = float(os.getenv("FUZZY_MIN_SIMILARITY", "0.65"))
    whole_text_discount: float = float(os.getenv("WHOLE_TEXT_DISCOUNT", "0.9"))
    confidence_threshold: float = float(os.getenv("CONFIDENCE_THRESHOLD", "0.3"))
    max_results: int = int(os.getenv("MAX_RESULTS", "5"))

    # translation (optional; pass-through when no key)
    google_translate_api_key: str = os.getenv("GOOGLE_TRANSLATE_API_KEY", "")
    translate_target_language: str = os.getenv("TRANSLATE_TARGET_LANGUAGE", "en")

settings = Settings()
