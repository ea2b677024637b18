"""Advice aggregator: run every provider in turn and record the results.

Providers are called one after another with a fixed pause in between so
that providers sharing an upstream quota don't trip each other's rate
limits.  A provider failure is captured in its :class:`ProviderResult` and
never stops the loop.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal

from loguru import logger

from stockwise.core.exceptions import ConfigurationError, MalformedResponseError, ProviderError
from stockwise.core.storage import StorageError

from .gateway import ProviderGateway
from .models import (
    DegradedResponse,
    Holding,
    ProviderConfig,
    ProviderResult,
    RunReport,
    StockQuote,
    to_decimal,
)
from .normalizer import normalize
from .prompts import build_prompt
from .record_store import DEFAULT_RETENTION_DAYS, AdviceRecordStore
from .sources import PortfolioSource, ProviderCatalog

SleepFn = Callable[[float], Awaitable[None]]


class AdviceAggregator:
    """Fan a prompt out to all providers sequentially.

    Args:
        gateway: Provider gateway used for every call.
        record_store: Ledger the actionable advice is written to.
        user_capacity: Maximum investment per run, NTD.
        min_investment: Nominal minimum for the decided investment, NTD.
        inter_provider_delay: Seconds to pause between providers.
        language: Language requested for free-text fields.
        clock: Returns today's date (injectable for tests).
        sleep: Awaitable pause (injectable for tests).
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        record_store: AdviceRecordStore,
        *,
        user_capacity: Decimal | int = 20000,
        min_investment: Decimal | int = 0,
        inter_provider_delay: float = 2.0,
        language: str = "Traditional Chinese",
        clock: Callable[[], date] = date.today,
        sleep: SleepFn = asyncio.sleep,
    ):
        self.gateway = gateway
        self.record_store = record_store
        self.user_capacity = to_decimal(user_capacity)
        self.min_investment = to_decimal(min_investment)
        self.inter_provider_delay = inter_provider_delay
        self.language = language
        self._clock = clock
        self._sleep = sleep

    def today(self) -> date:
        return self._clock()

    async def run_all(
        self,
        providers: Sequence[ProviderConfig],
        holdings: Iterable[Holding],
        quotes: Mapping[str, StockQuote] | Iterable[StockQuote],
    ) -> list[ProviderResult]:
        """Ask each provider for advice, normalize it and record it.

        Returns:
            One result per provider, in provider order.
        """
        holdings = list(holdings)
        quote_map = dict(quotes) if isinstance(quotes, Mapping) else {q.symbol: q for q in quotes}
        results: list[ProviderResult] = []

        for index, provider in enumerate(providers):
            if index:
                logger.debug(f"Waiting {self.inter_provider_delay:g}s before {provider.name}")
                await self._sleep(self.inter_provider_delay)
            results.append(await self._run_one(provider, holdings, quote_map))

        ok = sum(1 for r in results if r.succeeded)
        logger.info(f"Advice generation finished: {ok}/{len(results)} providers succeeded")
        return results

    async def _run_one(
        self,
        provider: ProviderConfig,
        holdings: list[Holding],
        quotes: dict[str, StockQuote],
    ) -> ProviderResult:
        logger.info(f"Requesting advice from {provider.name} ({provider.model})")
        prompt = build_prompt(holdings, quotes, self.user_capacity, model=provider.model, language=self.language)

        try:
            raw = await self.gateway.invoke(provider, prompt)
        except ProviderError as e:
            logger.error(f"{provider.name}: {type(e).__name__}: {e}")
            return ProviderResult(provider_name=provider.name, error=e)

        advice = normalize(
            raw,
            self.user_capacity,
            holdings,
            quotes,
            provider_name=provider.name,
            generated_at=self.today(),
            min_investment=self.min_investment,
        )

        if isinstance(raw, DegradedResponse):
            error = MalformedResponseError(
                f"{provider.name} returned an unparsable response ({raw.reason})",
                provider=provider.name,
                advice=advice,
                raw_content=raw.raw_content,
            )
            return ProviderResult(provider_name=provider.name, error=error)

        result = ProviderResult(provider_name=provider.name, advice=advice)
        try:
            result.recorded = await self.record_store.record(advice)
        except StorageError as e:
            logger.error(f"{provider.name}: failed to record advice: {e}")
            result.error = e
        return result


class AdvicePipeline:
    """One complete orchestration cycle: load inputs, run providers, prune.

    This is the callable the scheduler runs.

    Args:
        aggregator: Aggregator doing the provider fan-out.
        portfolio: Holdings/quote source.
        catalog: Provider catalog.
        retention_days: Ledger retention applied after each cycle.
    """

    def __init__(
        self,
        aggregator: AdviceAggregator,
        portfolio: PortfolioSource,
        catalog: ProviderCatalog,
        *,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ):
        self.aggregator = aggregator
        self.portfolio = portfolio
        self.catalog = catalog
        self.retention_days = retention_days

    async def _load_providers(self, only: str | None = None) -> list[ProviderConfig]:
        providers = await self.catalog.load_providers()
        if only is not None:
            providers = [p for p in providers if p.name == only]
            if not providers:
                raise ConfigurationError(f"Provider not found: {only}")
        if not providers:
            raise ConfigurationError("No usable AI providers configured")
        return providers

    async def _load_inputs(self) -> tuple[list[Holding], list[StockQuote]]:
        holdings = await self.portfolio.load_holdings()
        quotes = await self.portfolio.load_quotes()
        known = {q.symbol for q in quotes}
        unpriced = [h.symbol for h in holdings if h.symbol not in known]
        if unpriced:
            logger.warning(f"No quotes for held symbols {', '.join(unpriced)}; they will be priced at 0")
        return holdings, quotes

    async def run(self) -> RunReport:
        """Run every configured provider once.

        Raises:
            ConfigurationError: No usable providers are configured.
            StorageError: The holdings document could not be read.
        """
        return await self._run(None)

    async def run_provider(self, name: str) -> RunReport:
        """Run a single named provider through the same pipeline."""
        return await self._run(name)

    async def _run(self, only: str | None) -> RunReport:
        report = RunReport(started_at=datetime.now())
        providers = await self._load_providers(only)
        logger.info(f"Running {len(providers)} provider(s): {', '.join(p.name for p in providers)}")

        holdings, quotes = await self._load_inputs()
        report.results = await self.aggregator.run_all(providers, holdings, quotes)

        try:
            await self.aggregator.record_store.prune_older_than(self.retention_days, today=self.aggregator.today())
        except StorageError as e:
            logger.warning(f"Ledger pruning failed: {e}")

        report.finished_at = datetime.now()
        return report
