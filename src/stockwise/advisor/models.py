"""Domain models for the advice pipeline.

Plain dataclasses, framework-agnostic.  Money is ``Decimal`` (NTD), share
counts are ``int``.  Everything a provider produces is frozen once the
normalizer has built it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

ZERO = Decimal("0")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Coerce a JSON-ish number (int, float, numeric string) to Decimal."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        return default
    try:
        result = Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        return default
    if not result.is_finite():
        return default
    return result


class StockCategory(Enum):
    """Asset category of a quoted symbol."""

    TW_ETF = "TW-ETF"
    TW_STOCK = "TW-Stock"
    US_STOCK = "US-Stock"
    BOND_ETF = "Bond-ETF"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Any) -> StockCategory:
        """Accept ``"TW ETF"``, ``"tw-etf"``, ``"TW_ETF"`` etc.; anything else is UNKNOWN."""
        if isinstance(value, StockCategory):
            return value
        normalized = str(value or "").strip().lower().replace(" ", "-").replace("_", "-")
        for member in cls:
            if member.value.lower() == normalized:
                return member
        return cls.UNKNOWN


class Action(Enum):
    """What a provider recommends doing with a symbol."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"

    @classmethod
    def parse(cls, value: Any) -> Action | None:
        """Return the matching action, or None for anything unrecognised."""
        if isinstance(value, Action):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return None


@dataclass(frozen=True)
class ProviderConfig:
    """One configured AI backend.

    Attributes:
        name: Unique display name; also the ledger key.
        model: Model identifier sent to the backend.
        base_url: OpenAI-compatible API base URL.
        api_key: Bearer token for the backend.
    """

    name: str
    model: str
    base_url: str
    api_key: str = field(repr=False)

    @property
    def is_usable(self) -> bool:
        return all(v.strip() for v in (self.name, self.model, self.base_url, self.api_key))


@dataclass(frozen=True)
class Holding:
    """A position in the caller's portfolio."""

    symbol: str
    shares: int

    def __post_init__(self):
        if not self.symbol or not self.symbol.strip():
            raise ValueError("Holding symbol cannot be empty")
        if self.shares < 0:
            raise ValueError(f"Holding {self.symbol} has negative shares: {self.shares}")


@dataclass(frozen=True)
class StockQuote:
    """Point-in-time price snapshot for a symbol. Never assumed live."""

    symbol: str
    name: str
    category: StockCategory
    current_price: Decimal

    def __post_init__(self):
        if not isinstance(self.current_price, Decimal):
            object.__setattr__(self, "current_price", to_decimal(self.current_price))
        if self.current_price < 0:
            raise ValueError(f"Negative price for {self.symbol}: {self.current_price}")

    @classmethod
    def unknown(cls, symbol: str) -> StockQuote:
        """Placeholder for a symbol nobody has pricing data for."""
        return cls(symbol=symbol, name=symbol, category=StockCategory.UNKNOWN, current_price=ZERO)


@dataclass(frozen=True)
class RecommendedAction:
    """A single normalized recommendation.

    Attributes:
        symbol: Ticker the recommendation targets.
        action: BUY, SELL or HOLD.
        shares: Share count to trade; always 0 for HOLD.
        reasoning: Provider-authored justification.
        allocated_amount: ``shares * price`` for BUY/SELL, 0 for HOLD.
        name: Display name from the quote (symbol when unknown).
        price: Price used for the allocation.
        category: Quote category.
        held_shares: Shares held when the advice was produced.
    """

    symbol: str
    action: Action
    shares: int
    reasoning: str
    allocated_amount: Decimal
    name: str = ""
    price: Decimal = ZERO
    category: StockCategory = StockCategory.UNKNOWN
    held_shares: int = 0

    def __post_init__(self):
        if self.shares < 0:
            raise ValueError(f"Negative share count for {self.symbol}: {self.shares}")
        if self.action is Action.HOLD and (self.shares or self.allocated_amount):
            raise ValueError(f"HOLD on {self.symbol} must carry zero shares and amount")

    @property
    def is_trade(self) -> bool:
        return self.action in (Action.BUY, Action.SELL)


@dataclass(frozen=True)
class BudgetSummary:
    """How a provider's decided investment breaks down (all NTD)."""

    user_capacity_ntd: Decimal
    decided_investment_ntd: Decimal
    total_buy_ntd: Decimal = ZERO
    total_sell_ntd: Decimal = ZERO
    net_investment_ntd: Decimal = ZERO
    remaining_unallocated_ntd: Decimal = ZERO

    @classmethod
    def from_actions(
        cls,
        user_capacity: Decimal,
        decided: Decimal,
        actions: list[RecommendedAction] | tuple[RecommendedAction, ...],
    ) -> BudgetSummary:
        """Derive buy/sell/net/remaining totals from the normalized actions."""
        total_buy = sum((a.allocated_amount for a in actions if a.action is Action.BUY), ZERO)
        total_sell = sum((a.allocated_amount for a in actions if a.action is Action.SELL), ZERO)
        net = total_buy - total_sell
        return cls(
            user_capacity_ntd=user_capacity,
            decided_investment_ntd=decided,
            total_buy_ntd=total_buy,
            total_sell_ntd=total_sell,
            net_investment_ntd=net,
            remaining_unallocated_ntd=decided - net,
        )

    @classmethod
    def zero(cls, user_capacity: Decimal) -> BudgetSummary:
        return cls(user_capacity_ntd=user_capacity, decided_investment_ntd=ZERO)


@dataclass(frozen=True)
class Advice:
    """One provider's normalized recommendation set.

    Invariant: no symbol in ``new_suggestions`` is in the caller's holdings.
    """

    provider_name: str
    generated_at: date
    market_outlook: str
    managed_actions: tuple[RecommendedAction, ...]
    new_suggestions: tuple[RecommendedAction, ...]
    budget: BudgetSummary
    degraded: bool = False

    @property
    def trades(self) -> tuple[RecommendedAction, ...]:
        """Managed BUY/SELL actions (HOLDs filtered out)."""
        return tuple(a for a in self.managed_actions if a.is_trade)

    @property
    def is_actionable(self) -> bool:
        """True if there is at least one managed BUY/SELL or one new suggestion."""
        return bool(self.trades) or bool(self.new_suggestions)


@dataclass(frozen=True)
class ParsedResponse:
    """Provider output that decoded to a JSON object."""

    payload: dict[str, Any]
    raw_content: str = ""


@dataclass(frozen=True)
class DegradedResponse:
    """Provider output that could not be decoded.

    Carries no actions and a zero budget; the normalizer turns it into a
    degraded ``Advice`` instead of failing the call.
    """

    reason: str
    raw_content: str = ""
    tag: str = "unparsable"


RawResponse = ParsedResponse | DegradedResponse


@dataclass(frozen=True)
class LedgerEntry:
    """One persisted section of the advice ledger, keyed by (date, provider).

    ``entry_date`` is None for sections whose header date could not be
    parsed; those are carried through untouched and never pruned.
    """

    entry_date: date | None
    provider_name: str
    body: str
    header: str = ""

    @property
    def key(self) -> tuple[date | None, str]:
        return (self.entry_date, self.provider_name)


@dataclass
class ProviderResult:
    """Outcome of one provider within a run."""

    provider_name: str
    advice: Advice | None = None
    error: Exception | None = None
    recorded: bool = False

    @property
    def succeeded(self) -> bool:
        return self.advice is not None and self.error is None

    def describe(self) -> str:
        if self.succeeded:
            status = "recorded" if self.recorded else "no actionable advice"
            return f"{self.provider_name}: ok ({status})"
        return f"{self.provider_name}: failed ({type(self.error).__name__}: {self.error})"


@dataclass
class RunReport:
    """Per-provider results of one orchestration run."""

    results: list[ProviderResult] = field(default_factory=list)
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def success(self) -> bool:
        """A run succeeds if at least one provider produced advice."""
        return any(r.succeeded for r in self.results)

    @property
    def succeeded(self) -> list[ProviderResult]:
        return [r for r in self.results if r.succeeded]

    @property
    def failed(self) -> list[ProviderResult]:
        return [r for r in self.results if not r.succeeded]

    def summary(self) -> str:
        return f"{len(self.succeeded)}/{len(self.results)} providers succeeded"
