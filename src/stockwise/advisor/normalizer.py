"""Response normalizer: raw provider payload -> validated ``Advice``.

Rules, applied in order:

1. Symbols without a quote are priced at 0 with category Unknown.
2. Managed SELLs are clamped to the shares actually held.
3. Unrecognised actions become HOLD.
4. HOLD carries zero shares and zero amount; BUY/SELL allocate
   ``shares * price``.
5. New suggestions for symbols already held are dropped.
6. The decided investment is clamped into ``[0, user_capacity]``.
7. A degraded response yields an empty, zero-budget advice.

Corrections are logged as invariant violations; nothing here raises for bad
provider data.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import ROUND_FLOOR, Decimal
from typing import Any

from loguru import logger

from stockwise.core.exceptions import InvariantViolation

from .models import (
    ZERO,
    Action,
    Advice,
    BudgetSummary,
    DegradedResponse,
    Holding,
    RawResponse,
    RecommendedAction,
    StockQuote,
    to_decimal,
)

_OUTLOOK_KEYS = ("marketOutlook", "market_outlook")
_MANAGED_KEYS = ("managedRecommendations", "managed_recommendations", "existingHoldingsRecommendations")
_NEW_KEYS = ("newStockSuggestions", "new_stock_suggestions", "newSuggestions")
_BUDGET_KEYS = ("budgetSummary", "budget_summary")
_DECIDED_KEYS = ("decidedOptimalInvestmentNTD", "decidedInvestmentNTD", "decided_investment_ntd")


def _first(payload: Mapping[str, Any], keys: tuple[str, ...], default: Any = None) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _is_symbol(value: Any) -> bool:
    symbol = str(value or "").strip()
    return bool(symbol) and not any(ch.isspace() for ch in symbol)


def _as_items(value: Any) -> list[dict[str, Any]]:
    """Dict items with a usable ticker; junk and multi-word symbols are skipped."""
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        if not isinstance(item, dict):
            continue
        if not _is_symbol(item.get("symbol")):
            if item.get("symbol"):
                logger.warning(f"Skipping item with invalid symbol {item.get('symbol')!r}")
            continue
        items.append(item)
    return items


def _to_shares(value: Any) -> int:
    shares = to_decimal(value).to_integral_value(rounding=ROUND_FLOOR)
    return int(shares)


def _report(provider: str, violation: InvariantViolation) -> None:
    logger.warning(f"{provider}: corrected {violation}")


class _Context:
    """Lookup state shared by the per-item helpers."""

    def __init__(self, provider: str, holdings: Iterable[Holding], quotes: Mapping[str, StockQuote] | Iterable[StockQuote]):
        self.provider = provider
        self.held: dict[str, int] = {}
        for h in holdings:
            self.held[h.symbol] = self.held.get(h.symbol, 0) + h.shares
        if isinstance(quotes, Mapping):
            self.quotes = dict(quotes)
        else:
            self.quotes = {q.symbol: q for q in quotes}

    def quote(self, symbol: str) -> StockQuote:
        quote = self.quotes.get(symbol)
        if quote is None:
            logger.debug(f"{self.provider}: no quote for {symbol}, pricing at 0")
            return StockQuote.unknown(symbol)
        return quote

    def is_held(self, symbol: str) -> bool:
        return self.held.get(symbol, 0) > 0


def _requested_shares(ctx: _Context, symbol: str, value: Any) -> int:
    shares = _to_shares(value)
    if shares < 0:
        _report(ctx.provider, InvariantViolation("negative-shares", symbol, f"{shares} -> 0"))
        return 0
    return shares


def _managed_action(ctx: _Context, item: dict[str, Any]) -> RecommendedAction:
    symbol = str(item["symbol"]).strip()
    quote = ctx.quote(symbol)
    held = ctx.held.get(symbol, 0)

    action = Action.parse(item.get("action"))
    if action is None:
        _report(ctx.provider, InvariantViolation("unknown-action", symbol, f"{item.get('action')!r} -> HOLD"))
        action = Action.HOLD

    shares = _requested_shares(ctx, symbol, item.get("shares"))
    if action is Action.SELL and shares > held:
        _report(ctx.provider, InvariantViolation("oversell", symbol, f"{shares} -> {held} (held)"))
        shares = held
    if action is Action.HOLD:
        shares = 0

    return RecommendedAction(
        symbol=symbol,
        action=action,
        shares=shares,
        reasoning=str(item.get("reasoning") or "").strip(),
        allocated_amount=quote.current_price * shares,
        name=quote.name,
        price=quote.current_price,
        category=quote.category,
        held_shares=held,
    )


def _new_suggestion(ctx: _Context, item: dict[str, Any]) -> RecommendedAction | None:
    symbol = str(item["symbol"]).strip()
    if ctx.is_held(symbol):
        _report(ctx.provider, InvariantViolation("already-held", symbol, "dropped from new suggestions"))
        return None

    quote = ctx.quote(symbol)
    shares = _requested_shares(ctx, symbol, item.get("shares"))
    return RecommendedAction(
        symbol=symbol,
        action=Action.BUY,
        shares=shares,
        reasoning=str(item.get("reasoning") or "").strip(),
        allocated_amount=quote.current_price * shares,
        name=quote.name,
        price=quote.current_price,
        category=quote.category,
        held_shares=0,
    )


def clamp_decided_investment(
    provider: str, value: Any, user_capacity: Decimal, min_investment: Decimal = ZERO
) -> Decimal:
    """Clamp the provider's decided investment into ``[0, user_capacity]``.

    Positive values below ``min_investment`` are the provider's call and are
    only logged.
    """
    decided = to_decimal(value)
    if decided > user_capacity:
        _report(provider, InvariantViolation("over-capacity", "", f"decided {decided} -> {user_capacity}"))
        return user_capacity
    if decided < 0:
        _report(provider, InvariantViolation("negative-budget", "", f"decided {decided} -> 0"))
        return ZERO
    if 0 < decided < min_investment:
        logger.info(f"{provider}: decided investment {decided} is below the {min_investment} NTD minimum")
    return decided


def degraded_advice(
    provider_name: str,
    raw: DegradedResponse,
    user_capacity: Decimal | int,
    generated_at: date | None = None,
) -> Advice:
    """Empty, zero-budget advice recording that the provider was attempted."""
    return Advice(
        provider_name=provider_name,
        generated_at=generated_at or date.today(),
        market_outlook=f"Provider response could not be parsed ({raw.reason}); no recommendations available.",
        managed_actions=(),
        new_suggestions=(),
        budget=BudgetSummary.zero(to_decimal(user_capacity)),
        degraded=True,
    )


def normalize(
    raw: RawResponse,
    user_capacity: Decimal | int,
    holdings: Iterable[Holding],
    quotes: Mapping[str, StockQuote] | Iterable[StockQuote],
    *,
    provider_name: str = "",
    generated_at: date | None = None,
    min_investment: Decimal | int = 0,
) -> Advice:
    """Convert one provider response into a validated ``Advice``.

    Args:
        raw: Decoded gateway output.
        user_capacity: Maximum investment for this run, NTD.
        holdings: The caller's portfolio snapshot.
        quotes: Known quotes, as a symbol-keyed mapping or an iterable.
        provider_name: Name recorded on the advice.
        generated_at: Advice date; defaults to today.
        min_investment: Nominal minimum for the decided investment; a
            positive value below it is kept and logged.
    """
    capacity = to_decimal(user_capacity)
    if capacity < 0:
        raise ValueError(f"user_capacity must be non-negative, got {user_capacity}")

    if isinstance(raw, DegradedResponse):
        return degraded_advice(provider_name, raw, capacity, generated_at)

    ctx = _Context(provider_name, holdings, quotes)
    payload = raw.payload

    managed = tuple(_managed_action(ctx, item) for item in _as_items(_first(payload, _MANAGED_KEYS)))
    new = tuple(
        suggestion
        for suggestion in (_new_suggestion(ctx, item) for item in _as_items(_first(payload, _NEW_KEYS)))
        if suggestion is not None
    )

    budget_raw = _first(payload, _BUDGET_KEYS, {})
    if not isinstance(budget_raw, Mapping):
        budget_raw = {}
    decided = clamp_decided_investment(
        provider_name, _first(budget_raw, _DECIDED_KEYS), capacity, to_decimal(min_investment)
    )

    outlook = str(_first(payload, _OUTLOOK_KEYS, "") or "").strip() or "No market outlook provided."

    return Advice(
        provider_name=provider_name,
        generated_at=generated_at or date.today(),
        market_outlook=outlook,
        managed_actions=managed,
        new_suggestions=new,
        budget=BudgetSummary.from_actions(capacity, decided, managed + new),
    )
