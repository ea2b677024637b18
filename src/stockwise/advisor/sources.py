"""Collaborators that feed the pipeline: holdings, quotes and providers.

Both file formats are plain text kept in the document store:

``warehouse.md``: one holding per line, tab separated::

    0050<TAB>12<TAB>元大台灣50<TAB>189.5<TAB>...

(whitespace-separated ``symbol shares`` is accepted too).

``api.md``: one provider per ``###`` section::

    ### OpenRouter DeepSeek
    model="deepseek/deepseek-chat"
    base_url="https://openrouter.ai/api/v1"
    api_key="sk-..."
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from stockwise.core.storage import DocumentStore

from .catalog import default_quotes
from .models import Holding, ProviderConfig, StockCategory, StockQuote, to_decimal


@runtime_checkable
class PortfolioSource(Protocol):
    """Supplies the holdings and quote snapshot for a run."""

    async def load_holdings(self) -> list[Holding]: ...

    async def load_quotes(self, symbols: Iterable[str] | None = None) -> list[StockQuote]: ...


@runtime_checkable
class ProviderCatalog(Protocol):
    """Supplies the configured AI providers."""

    async def load_providers(self) -> list[ProviderConfig]: ...


@dataclass(frozen=True)
class WarehouseRow:
    """One parsed line of the holdings document."""

    symbol: str
    shares: int
    name: str | None = None
    price: Decimal | None = None


def parse_warehouse(text: str) -> list[WarehouseRow]:
    """Parse the holdings document.

    Lines whose share count is missing, unparsable or not positive are skipped.
    """
    rows: list[WarehouseRow] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        parts = [p.strip() for p in stripped.split("\t")] if "\t" in stripped else stripped.split()
        if len(parts) < 2:
            continue
        try:
            shares = int(parts[1])
        except ValueError:
            continue
        if shares <= 0:
            continue

        name = parts[2] if len(parts) > 2 and parts[2] else None
        price = to_decimal(parts[3], default=Decimal("-1")) if len(parts) > 3 and parts[3] else None
        if price is not None and price < 0:
            price = None
        rows.append(WarehouseRow(symbol=parts[0], shares=shares, name=name, price=price))
    return rows


class WarehouseSource:
    """Holdings from the warehouse document, quotes from the catalog overlaid by warehouse prices.

    Args:
        store: Document store holding the warehouse document.
        key: Document key.
        catalog: Base quote map; defaults to the built-in catalog.
    """

    def __init__(self, store: DocumentStore, key: str = "warehouse.md", catalog: Mapping[str, StockQuote] | None = None):
        self._store = store
        self.key = key
        self._catalog = dict(catalog) if catalog is not None else default_quotes()
        self._rows: list[WarehouseRow] = []

    async def load_holdings(self) -> list[Holding]:
        text = await self._store.read_or_default(self.key)
        self._rows = parse_warehouse(text)
        holdings: dict[str, int] = {}
        for row in self._rows:
            holdings[row.symbol] = holdings.get(row.symbol, 0) + row.shares
        logger.info(f"Loaded {len(holdings)} holding(s) from {self.key}")
        return [Holding(symbol=s, shares=n) for s, n in holdings.items()]

    async def load_quotes(self, symbols: Iterable[str] | None = None) -> list[StockQuote]:
        """Return quotes for *symbols* (all known symbols when None).

        Symbols nobody has data for are simply absent.
        """
        quotes = dict(self._catalog)
        for row in self._rows:
            base = quotes.get(row.symbol)
            if row.price is None and base is not None:
                if row.name and base.name == base.symbol:
                    quotes[row.symbol] = StockQuote(row.symbol, row.name, base.category, base.current_price)
                continue
            if row.price is None:
                continue
            quotes[row.symbol] = StockQuote(
                symbol=row.symbol,
                name=row.name or (base.name if base else row.symbol),
                category=base.category if base else StockCategory.UNKNOWN,
                current_price=row.price,
            )

        if symbols is None:
            return list(quotes.values())
        return [quotes[s] for s in dict.fromkeys(symbols) if s in quotes]


_SETTING_RE = re.compile(r"^(?P<key>model|base_url|api_key)\s*=\s*(?P<value>.*)$")
_SECTION_RE = re.compile(r"^###", re.MULTILINE)


def parse_provider_document(text: str) -> list[ProviderConfig]:
    """Parse ``### Name`` sections with ``model=``/``base_url=``/``api_key=`` lines.

    Incomplete sections are returned as-is; filtering unusable ones is the
    catalog's job.
    """
    providers: list[ProviderConfig] = []
    for section in _SECTION_RE.split(text)[1:]:
        lines = [line.strip() for line in section.splitlines() if line.strip()]
        if not lines:
            continue
        values = {"model": "", "base_url": "", "api_key": ""}
        for line in lines[1:]:
            match = _SETTING_RE.match(line)
            if match:
                values[match.group("key")] = match.group("value").strip().strip("\"'")
        providers.append(ProviderConfig(name=lines[0], **values))
    return providers


class DocumentProviderCatalog:
    """Providers from inline config entries plus the provider document.

    Inline entries win over document entries of the same name.  Providers
    missing any of name/model/base_url/api_key are skipped with a warning.

    Args:
        store: Document store holding the provider document, or None.
        key: Document key.
        inline: Provider entries from the config file (dicts or models).
    """

    def __init__(self, store: DocumentStore | None = None, key: str = "api.md", inline: Iterable[Any] = ()):
        self._store = store
        self.key = key
        self._inline = [self._coerce(p) for p in inline]

    @staticmethod
    def _coerce(entry: Any) -> ProviderConfig:
        if isinstance(entry, ProviderConfig):
            return entry
        if hasattr(entry, "model_dump"):
            entry = entry.model_dump()
        return ProviderConfig(
            name=str(entry.get("name", "")),
            model=str(entry.get("model", "")),
            base_url=str(entry.get("base_url", "")),
            api_key=str(entry.get("api_key", "")),
        )

    async def load_providers(self) -> list[ProviderConfig]:
        candidates = list(self._inline)
        if self._store is not None:
            candidates.extend(parse_provider_document(await self._store.read_or_default(self.key)))

        providers: list[ProviderConfig] = []
        seen: set[str] = set()
        for provider in candidates:
            if not provider.is_usable:
                logger.warning(f"Skipping provider {provider.name or '<unnamed>'!r}: incomplete configuration")
                continue
            if provider.name in seen:
                logger.warning(f"Skipping duplicate provider {provider.name!r}")
                continue
            seen.add(provider.name)
            providers.append(provider)
        return providers
