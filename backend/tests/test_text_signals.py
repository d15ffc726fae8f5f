import pytest

from tickerlens.models.market import Exchange, MarketScope
from tickerlens.models.records import Candidate, StockRecord
from tickerlens.services.candidates import derive_candidates, is_ticker_shaped
from tickerlens.services.hints import build_context, detect_market_hints, query_tokens
from tickerlens.services.normalize import company_key, simplify_name, trim_quotes


# --- normalize ---------------------------------------------------------------

def test_simplify_name_drops_corporate_suffixes():
    assert simplify_name("Alibaba Group Holding Limited") == "alibaba"
    assert simplify_name("Société Générale S.A.") == "societe generale s a"
    assert simplify_name("Berkshire Hathaway Inc. Class A") == "berkshire hathaway classa"


def test_company_key_ignores_listing_form_and_class():
    assert company_key("Berkshire Hathaway Inc. Class A") == company_key("Berkshire Hathaway Inc. Class B")
    assert company_key("Tencent Holdings Ltd Sponsored ADR") == company_key("Tencent Holdings Limited")
    assert company_key("HSBC Holdings plc") == "hsbc"


def test_company_key_falls_back_to_raw_name():
    assert company_key("The Group") == "the group"


@pytest.mark.parametrize("raw,expected", [
    ('"Apple"', "Apple"),
    ("  'NVDA'  ", "NVDA"),
    ('"Apple\'', '"Apple\''),
    ('Say "hi" now', 'Say "hi" now'),
    ("", ""),
])
def test_trim_quotes(raw, expected):
    assert trim_quotes(raw) == expected


# --- candidates --------------------------------------------------------------

@pytest.mark.parametrize("token,shaped", [
    ("NVDA", True),
    ("A", True),
    ("0005.HK", True),
    ("600519.SS", True),
    ("BRK.A", True),
    ("ALIBABA", False),
    ("BRK.AB", False),
    ("0005.H", False),
])
def test_ticker_shapes(token, shaped):
    assert is_ticker_shaped(token) is shaped


def test_lowercase_ticker_yields_ticker_and_phrase():
    assert derive_candidates(["nvda"]) == [
        Candidate(text="NVDA", ticker_shaped=True, entity="nvda"),
        Candidate(text="nvda", ticker_shaped=False, entity="nvda"),
    ]


def test_dollar_prefix_and_quotes_are_stripped():
    assert [c.text for c in derive_candidates(['"$AAPL"'])] == ["AAPL"]


def test_coded_ticker_is_uppercased():
    cands = derive_candidates(["0005.hk"])
    assert cands[0] == Candidate(text="0005.HK", ticker_shaped=True, entity="0005.hk")
    assert cands[1].text == "0005.hk"


def test_phrases_are_name_only():
    assert derive_candidates(["Apple Inc"]) == [Candidate(text="Apple Inc", ticker_shaped=False, entity="Apple Inc")]


def test_blank_and_duplicate_entities():
    assert derive_candidates(["", "  ", "$", '""']) == []
    assert [c.text for c in derive_candidates(["BABA", "baba", "BABA"])] == ["BABA", "baba"]


# --- hints -------------------------------------------------------------------

def test_query_tokens_keep_dotted_symbols():
    toks = query_tokens("Compare $baba, 0700.hk and BRK.B.")
    assert {"BABA", "0700.HK", "BRK.B", "COMPARE", "AND"} <= toks


@pytest.mark.parametrize("text,hints", [
    ("Alibaba Hong Kong stocks", (MarketScope.HK,)),
    ("tencent on HKEX", (MarketScope.HK,)),
    ("阿里巴巴港股", (MarketScope.HK,)),
    ("Moutai A-shares", (MarketScope.CN,)),
    ("NIO in US market", (MarketScope.US,)),
    ("best wall street banks", (MarketScope.US,)),
    ("0700.HK vs 600519.SS", (MarketScope.HK, MarketScope.CN)),
    ("nasdaq or hong kong", (MarketScope.HK, MarketScope.US)),
    ("a famous stock", ()),
    ("", ()),
])
def test_detect_market_hints(text, hints):
    assert detect_market_hints(text) == hints


def test_mentions_ignores_symbol_equal_to_company_name():
    ctx = build_context("HSBC and BABA")
    hsbc = StockRecord(symbol="HSBC", name="HSBC Holdings plc", exchange=Exchange.NYSE)
    baba = StockRecord(symbol="BABA", name="Alibaba Group Holding Limited", exchange=Exchange.NYSE)
    hk = StockRecord(symbol="9988.HK", name="Alibaba Group Holding Limited", exchange=Exchange.HKSE)
    assert not ctx.mentions(hsbc)
    assert ctx.mentions(baba)
    assert not ctx.mentions(hk)


def test_hinted_requires_exchange_in_hinted_scope():
    ctx = build_context("Tencent Hong Kong shares")
    hk = StockRecord(symbol="0700.HK", name="Tencent Holdings Limited", exchange=Exchange.HKSE)
    otc = StockRecord(symbol="TCEHY", name="Tencent Holdings Limited", exchange=Exchange.OTC)
    assert ctx.hinted(hk, MarketScope.HK)
    assert not ctx.hinted(otc, MarketScope.HK)
    assert not ctx.hinted(hk, MarketScope.US)


def test_context_reads_translation_alongside_original():
    ctx = build_context("腾讯港股", "Tencent HK shares vs $BABA")
    assert ctx.text == "腾讯港股"
    assert ctx.hints == (MarketScope.HK,)
    assert {"TENCENT", "BABA"} <= ctx.tokens
    assert build_context("Tencent", "Tencent").tokens == build_context("Tencent").tokens
