from __future__ import annotations

import os
from typing import List

import pytest

os.environ.setdefault("WARM_INDEX_ON_START", "0")
os.environ.setdefault("GOOGLE_TRANSLATE_API_KEY", "")

from tickerlens.models.market import Exchange  # noqa: E402
from tickerlens.models.records import StockRecord  # noqa: E402
from tickerlens.services.catalog_index import CatalogIndex  # noqa: E402
from tickerlens.services.resolve import ResolutionEngine  # noqa: E402

CATALOG_ROWS = [
    ("AAPL", "Apple Inc.", Exchange.NASDAQ, 227.52),
    ("MSFT", "Microsoft Corporation", Exchange.NASDAQ, 415.10),
    ("NVDA", "NVIDIA Corporation", Exchange.NASDAQ, 121.40),
    ("BABA", "Alibaba Group Holding Limited", Exchange.NYSE, 86.55),
    ("9988.HK", "Alibaba Group Holding Limited", Exchange.HKSE, 84.20),
    ("HSBC", "HSBC Holdings plc", Exchange.NYSE, 43.10),
    ("0005.HK", "HSBC Holdings plc", Exchange.HKSE, 67.35),
    ("BRK.A", "Berkshire Hathaway Inc. Class A", Exchange.NYSE, None),
    ("BRK.B", "Berkshire Hathaway Inc. Class B", Exchange.NYSE, None),
    ("TCEHY", "Tencent Holdings Limited", Exchange.OTC, 48.35),
    ("0700.HK", "Tencent Holdings Limited", Exchange.HKSE, 376.80),
    ("NIO", "NIO Inc.", Exchange.NYSE, 4.95),
    ("9866.HK", "NIO Inc.", Exchange.HKSE, 38.60),
    ("600519.SS", "Kweichow Moutai Co., Ltd.", Exchange.SHH, 1460.0),
    ("601398.SS", "Industrial and Commercial Bank of China Limited", Exchange.SHH, 5.02),
    ("000858.SZ", "Wuliangye Yibin Co., Ltd.", Exchange.SHZ, 132.50),
]


def make_records() -> List[StockRecord]:
    return [
        StockRecord(symbol=sym, name=name, exchange=ex, price=price)
        for sym, name, ex, price in CATALOG_ROWS
    ]


@pytest.fixture
def records() -> List[StockRecord]:
    return make_records()


@pytest.fixture(scope="session")
def index() -> CatalogIndex:
    return CatalogIndex(make_records())


@pytest.fixture
def engine(index: CatalogIndex) -> ResolutionEngine:
    return ResolutionEngine(index)
