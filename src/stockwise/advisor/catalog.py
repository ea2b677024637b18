"""Built-in stock catalog.

Snapshot prices used when the holdings document carries no price for a
symbol.  They are NOT live market prices; US listings are converted to NTD
at a fixed rate.
"""

from __future__ import annotations

from decimal import Decimal

from .models import StockCategory, StockQuote

USD_TO_NTD = Decimal("32.5")

_TW_ETF = StockCategory.TW_ETF
_TW_STOCK = StockCategory.TW_STOCK
_US_STOCK = StockCategory.US_STOCK
_BOND_ETF = StockCategory.BOND_ETF

_CATALOG: list[tuple[str, str, StockCategory, Decimal]] = [
    ("006208", "富邦台50", _TW_ETF, Decimal("100.50")),
    ("00646", "元大S&P500", _TW_ETF, Decimal("60.30")),
    ("00919", "群益台灣精選高息", _TW_ETF, Decimal("27.10")),
    ("00878", "國泰永續高股息", _TW_ETF, Decimal("24.05")),
    ("0056", "元大高股息", _TW_ETF, Decimal("40.20")),
    ("00933B", "國泰10Y+金融債", _BOND_ETF, Decimal("16.80")),
    ("0050", "元大台灣50", _TW_ETF, Decimal("170.50")),
    ("2330", "台積電", _TW_STOCK, Decimal("955.00")),
    ("00929", "復華台灣科技優息", _TW_ETF, Decimal("21.15")),
    ("00679B", "元大美債20年", _BOND_ETF, Decimal("29.80")),
    ("2603", "長榮", _TW_STOCK, Decimal("210.00")),
    ("00940", "元大臺灣價值高息", _TW_ETF, Decimal("10.25")),
    ("00713", "元大台灣高息低波", _TW_ETF, Decimal("58.50")),
    ("AAPL", "Apple Inc.", _US_STOCK, Decimal("190.00") * USD_TO_NTD),
    ("GOOGL", "Alphabet Inc. (Google)", _US_STOCK, Decimal("175.00") * USD_TO_NTD),
    ("MSFT", "Microsoft Corp.", _US_STOCK, Decimal("430.00") * USD_TO_NTD),
    ("AMZN", "Amazon.com Inc.", _US_STOCK, Decimal("185.00") * USD_TO_NTD),
    ("00733", "富邦臺灣中小", _TW_ETF, Decimal("70.50")),
    ("00858", "永豐美國500大", _TW_ETF, Decimal("30.80")),
    ("00900", "富邦特選高股息30", _TW_ETF, Decimal("15.20")),
    ("00910", "華南永昌台灣未來科技ETF", _TW_ETF, Decimal("18.30")),
    ("00916", "國泰全球品牌50 ETF", _TW_ETF, Decimal("22.40")),
    ("00921", "兆豐台灣產業龍頭存股等權重ETF", _TW_ETF, Decimal("19.10")),
    ("00942B", "台新美A公司債20+", _BOND_ETF, Decimal("15.50")),
    ("00947", "台新臺灣IC設計動能ETF", _TW_ETF, Decimal("16.10")),
]

# Symbols offered to providers as candidates for new positions.
NEW_SUGGESTIONS_POOL: tuple[str, ...] = (
    "0050", "2330", "00929", "00679B", "2603", "00940", "00713", "AAPL", "MSFT",
    "00733", "00858", "00900", "00910", "00916", "00921", "00942B", "00947",
)  # fmt: skip


def default_quotes() -> dict[str, StockQuote]:
    """Return a fresh symbol -> quote map of the built-in catalog."""
    return {
        symbol: StockQuote(symbol=symbol, name=name, category=category, current_price=price)
        for symbol, name, category, price in _CATALOG
    }
