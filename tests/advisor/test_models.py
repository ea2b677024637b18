"""Tests for advisor.models."""

from datetime import date
from decimal import Decimal

import pytest

from stockwise.advisor.models import (
    ZERO,
    Action,
    Advice,
    BudgetSummary,
    Holding,
    ProviderConfig,
    ProviderResult,
    RecommendedAction,
    RunReport,
    StockCategory,
    StockQuote,
    to_decimal,
)
from stockwise.core.exceptions import TransportError


def _action(symbol="0050", action=Action.BUY, shares=1, amount=Decimal("100")):
    return RecommendedAction(symbol=symbol, action=action, shares=shares, reasoning="", allocated_amount=amount)


def _advice(managed=(), new=()):
    return Advice(
        provider_name="alpha",
        generated_at=date(2026, 10, 19),
        market_outlook="ok",
        managed_actions=tuple(managed),
        new_suggestions=tuple(new),
        budget=BudgetSummary.zero(Decimal("20000")),
    )


class TestToDecimal:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (10, Decimal("10")),
            (1.5, Decimal("1.5")),
            ("20,000", Decimal("20000")),
            (" 7 ", Decimal("7")),
            (Decimal("3.3"), Decimal("3.3")),
        ],
    )
    def test_numbers(self, value, expected):
        assert to_decimal(value) == expected

    @pytest.mark.parametrize("value", [None, True, "abc", "", "NaN", "inf", [1]])
    def test_garbage_uses_default(self, value):
        assert to_decimal(value) == ZERO
        assert to_decimal(value, default=Decimal("-1")) == Decimal("-1")


class TestEnums:
    def test_category_parse(self):
        assert StockCategory.parse("TW-ETF") is StockCategory.TW_ETF
        assert StockCategory.parse("tw etf") is StockCategory.TW_ETF
        assert StockCategory.parse("Bond_ETF") is StockCategory.BOND_ETF
        assert StockCategory.parse("crypto") is StockCategory.UNKNOWN
        assert StockCategory.parse(None) is StockCategory.UNKNOWN

    def test_action_parse(self):
        assert Action.parse("buy") is Action.BUY
        assert Action.parse(" SELL ") is Action.SELL
        assert Action.parse(Action.HOLD) is Action.HOLD
        assert Action.parse("ACCUMULATE") is None
        assert Action.parse(None) is None


class TestValueObjects:
    def test_provider_config_usable(self):
        assert ProviderConfig("a", "m", "https://x", "k").is_usable
        assert not ProviderConfig("a", "m", "https://x", "  ").is_usable
        assert not ProviderConfig("", "m", "https://x", "k").is_usable

    def test_provider_config_hides_key(self):
        assert "secret" not in repr(ProviderConfig("a", "m", "u", "secret"))

    def test_holding_validation(self):
        with pytest.raises(ValueError):
            Holding("", 1)
        with pytest.raises(ValueError):
            Holding("0050", -1)
        assert Holding("0050", 0).shares == 0

    def test_quote_coerces_price(self):
        quote = StockQuote("0050", "x", StockCategory.TW_ETF, "150.5")
        assert quote.current_price == Decimal("150.5")
        with pytest.raises(ValueError):
            StockQuote("0050", "x", StockCategory.TW_ETF, -1)

    def test_unknown_quote(self):
        quote = StockQuote.unknown("XYZ")
        assert quote.name == "XYZ"
        assert quote.category is StockCategory.UNKNOWN
        assert quote.current_price == ZERO

    def test_hold_must_be_empty(self):
        with pytest.raises(ValueError):
            _action(action=Action.HOLD, shares=1, amount=ZERO)
        with pytest.raises(ValueError):
            _action(action=Action.HOLD, shares=0, amount=Decimal("5"))
        assert not _action(action=Action.HOLD, shares=0, amount=ZERO).is_trade

    def test_negative_shares_rejected(self):
        with pytest.raises(ValueError):
            _action(shares=-1)


class TestBudgetSummary:
    def test_from_actions(self):
        actions = [
            _action("0050", Action.BUY, 10, Decimal("1500")),
            _action("2330", Action.SELL, 1, Decimal("600")),
            _action("00878", Action.BUY, 100, Decimal("2000")),
            _action("0056", Action.HOLD, 0, ZERO),
        ]
        budget = BudgetSummary.from_actions(Decimal("20000"), Decimal("10000"), actions)
        assert budget.total_buy_ntd == Decimal("3500")
        assert budget.total_sell_ntd == Decimal("600")
        assert budget.net_investment_ntd == Decimal("2900")
        assert budget.remaining_unallocated_ntd == Decimal("7100")

    def test_zero(self):
        budget = BudgetSummary.zero(Decimal("20000"))
        assert budget.user_capacity_ntd == Decimal("20000")
        assert budget.decided_investment_ntd == ZERO
        assert budget.net_investment_ntd == ZERO


class TestAdvice:
    def test_hold_only_is_not_actionable(self):
        advice = _advice(managed=[_action(action=Action.HOLD, shares=0, amount=ZERO)])
        assert advice.trades == ()
        assert not advice.is_actionable

    def test_trade_is_actionable(self):
        assert _advice(managed=[_action()]).is_actionable

    def test_new_suggestion_is_actionable(self):
        assert _advice(new=[_action("00878")]).is_actionable


class TestRunReport:
    def test_success_if_any_provider_succeeded(self):
        advice = _advice()
        ok = ProviderResult("alpha", advice=advice)
        bad = ProviderResult("beta", error=TransportError("boom", provider="beta"))
        report = RunReport(results=[ok, bad])

        assert report.success
        assert report.succeeded == [ok]
        assert report.failed == [bad]
        assert report.summary() == "1/2 providers succeeded"
        assert bad.describe() == "beta: failed (TransportError: boom)"
        assert ok.describe() == "alpha: ok (no actionable advice)"

    def test_all_failed(self):
        report = RunReport(results=[ProviderResult("beta", error=TransportError("boom"))])
        assert not report.success

    def test_empty_report(self):
        assert not RunReport().success
