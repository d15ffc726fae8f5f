import pytest
from fastapi.testclient import TestClient

from tickerlens.api.deps import get_index_holder, get_translator
from tickerlens.core.errors import CatalogFetchError, TranslationError
from tickerlens.core.settings import settings
from tickerlens.main import app
from tickerlens.services.catalog_provider import StaticCatalogProvider
from tickerlens.services.index_holder import IndexHolder
from tickerlens.services.translation import PassthroughTranslator, Translation

from conftest import make_records


class DownProvider:
    async def fetch(self, force: bool = False):
        raise CatalogFetchError("stock list unreachable")


class BrokenTranslator:
    async def translate(self, text, target="en"):
        raise TranslationError("quota exceeded")


class CannedTranslator:
    async def translate(self, text, target="en"):
        return Translation(translated_text={"阿里巴巴港股": "Alibaba shares"}.get(text, text), original_text=text)


@pytest.fixture
def holder():
    return IndexHolder(StaticCatalogProvider(make_records()), ttl_s=3600)


@pytest.fixture
def client(holder):
    app.dependency_overrides[get_index_holder] = lambda: holder
    app.dependency_overrides[get_translator] = PassthroughTranslator
    yield TestClient(app)
    app.dependency_overrides.clear()


def _syms(body):
    return [s["symbol"] for s in body["stocks"]]


def test_health(client):
    assert client.get("/healthz").json() == {"ok": True}
    body = client.get("/health").json()
    assert body["status"] == "ok"
    assert "catalog_source" in body


def test_extract_resolves_query(client):
    r = client.post("/tickers/extract", json={"text": "compare Alibaba Hong Kong stocks and NVDA"})
    assert r.status_code == 200
    body = r.json()
    syms = _syms(body)
    assert {"NVDA", "9988.HK"} <= set(syms)
    assert "BABA" not in syms
    nvda = next(s for s in body["stocks"] if s["symbol"] == "NVDA")
    assert nvda["match_kind"] == "exact"
    assert nvda["confidence"] == 1.0
    assert nvda["exchange"] == "NASDAQ"
    assert body["original_query"] == body["translated_query"]
    assert body["entities"] == ["NVDA", "Alibaba"]
    assert body["meta"]["market_hints"] == ["HK"]


def test_extract_location_and_limit(client):
    r = client.post("/tickers/extract", json={"text": "Tencent", "location": "hk"})
    assert _syms(r.json()) == ["0700.HK"]

    r = client.post("/tickers/extract", json={"text": "compare BABA and NVDA", "max_results": 1})
    assert len(r.json()["stocks"]) == 1


@pytest.mark.parametrize("payload,status", [
    ({"text": "   "}, 400),
    ({"text": "Apple", "location": "MARS"}, 400),
    ({"text": "Apple", "confidence_threshold": 1.5}, 422),
    ({}, 422),
])
def test_extract_rejects_bad_input(client, payload, status):
    assert client.post("/tickers/extract", json=payload).status_code == status


def test_extract_keeps_market_words_of_untranslated_query(client):
    app.dependency_overrides[get_translator] = CannedTranslator
    body = client.post("/tickers/extract", json={"text": "阿里巴巴港股"}).json()
    assert body["translated_query"] == "Alibaba shares"
    assert body["entities"] == ["Alibaba"]
    assert _syms(body) == ["9988.HK"]
    assert body["meta"]["market_hints"] == ["HK"]


def test_extract_survives_translation_failure(client):
    app.dependency_overrides[get_translator] = BrokenTranslator
    r = client.post("/tickers/extract", json={"text": "Thoughts on HSBC", "location": "US"})
    assert r.status_code == 200
    assert _syms(r.json()) == ["HSBC"]
    assert r.json()["translated_query"] == "Thoughts on HSBC"


def test_catalog_down_is_503(client):
    app.dependency_overrides[get_index_holder] = lambda: IndexHolder(DownProvider())
    r = client.post("/tickers/extract", json={"text": "Apple"})
    assert r.status_code == 503
    assert client.get("/symbols/search", params={"query": "apple"}).status_code == 503


def test_resolve_endpoint(client):
    r = client.post("/tickers/resolve", json={"entities": ["Alibaba"], "text": "Alibaba", "location": "US"})
    assert r.status_code == 200
    assert _syms(r.json()) == ["BABA"]
    assert r.json()["stocks"][0]["price"] == 86.55

    r = client.post("/tickers/resolve", json={"entities": [], "text": "Alibaba"})
    assert r.json()["stocks"] == []


def test_symbol_search(client):
    body = client.get("/symbols/search", params={"query": "alibaba", "location": "HK"}).json()
    assert body["location"] == "HK"
    assert body["exact"] is None
    assert body["candidates"][0]["symbol"] == "9988.HK"
    assert body["candidates"][0]["score"] == 1.0

    body = client.get("/symbols/search", params={"query": "baba"}).json()
    assert body["exact"] == "BABA"


def test_catalog_status(client):
    assert client.get("/catalog/status").json()["ready"] is False
    client.post("/tickers/extract", json={"text": "Apple"})
    status = client.get("/catalog/status").json()
    assert status["ready"] is True
    assert status["records"] == 16
    assert status["partitions"]["GLOBAL"] == 16


def test_catalog_refresh_checks_token(client, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret_token", "s3cret")
    assert client.get("/catalog/refresh").status_code == 401
    assert client.get("/catalog/refresh", params={"token": "nope"}).status_code == 401

    r = client.get("/catalog/refresh", params={"token": "s3cret"})
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert r.json()["records"] == 16


def test_catalog_refresh_open_without_secret(client, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret_token", "")
    assert client.get("/catalog/refresh").status_code == 200


def test_catalog_refresh_failure_is_500(client, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret_token", "")
    app.dependency_overrides[get_index_holder] = lambda: IndexHolder(DownProvider())
    r = client.get("/catalog/refresh")
    assert r.status_code == 500
    assert "stock list unreachable" in r.json()["detail"]
