"""Tests for advisor.normalizer."""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest

from stockwise.advisor.models import ZERO, Action, DegradedResponse, Holding, ParsedResponse, StockCategory
from stockwise.advisor.normalizer import clamp_decided_investment, degraded_advice, normalize

TODAY = date(2026, 10, 19)


def _normalize(payload, holdings, quotes, capacity=20000):
    return normalize(
        ParsedResponse(payload=payload),
        capacity,
        holdings,
        quotes,
        provider_name="alpha",
        generated_at=TODAY,
    )


def _managed(*items):
    return {"managedRecommendations": list(items), "budgetSummary": {"decidedOptimalInvestmentNTD": 10000}}


class TestNormalize:
    @pytest.mark.smoke
    def test_well_formed_payload(self, sample_payload, holdings, quotes):
        advice = _normalize(sample_payload, holdings, quotes)

        assert advice.provider_name == "alpha"
        assert advice.generated_at == TODAY
        assert advice.market_outlook == "Neutral with upside."
        assert not advice.degraded

        buy, hold = advice.managed_actions
        assert (buy.symbol, buy.action, buy.shares) == ("0050", Action.BUY, 20)
        assert buy.allocated_amount == Decimal("3000")
        assert buy.name == "元大台灣50"
        assert buy.held_shares == 10
        assert (hold.action, hold.shares, hold.allocated_amount) == (Action.HOLD, 0, ZERO)

        (suggestion,) = advice.new_suggestions
        assert suggestion.action is Action.BUY
        assert suggestion.allocated_amount == Decimal("2000")

        budget = advice.budget
        assert budget.user_capacity_ntd == Decimal("20000")
        assert budget.decided_investment_ntd == Decimal("10000")
        assert budget.total_buy_ntd == Decimal("5000")
        assert budget.total_sell_ntd == ZERO
        assert budget.net_investment_ntd == Decimal("5000")
        assert budget.remaining_unallocated_ntd == Decimal("5000")

    def test_oversell_is_clamped_to_held(self, quotes):
        holdings = [Holding("2330", 2)]
        advice = _normalize(_managed({"symbol": "2330", "action": "SELL", "shares": 5}), holdings, quotes)

        (sell,) = advice.managed_actions
        assert sell.shares == 2
        assert sell.allocated_amount == Decimal("1200")
        assert advice.budget.total_sell_ntd == Decimal("1200")

    def test_sell_of_unheld_symbol_becomes_zero(self, quotes):
        advice = _normalize(_managed({"symbol": "0050", "action": "SELL", "shares": 3}), [], quotes)
        assert advice.managed_actions[0].shares == 0

    def test_unknown_action_becomes_hold(self, holdings, quotes):
        advice = _normalize(_managed({"symbol": "0050", "action": "ACCUMULATE", "shares": 7}), holdings, quotes)

        (action,) = advice.managed_actions
        assert action.action is Action.HOLD
        assert action.shares == 0
        assert action.allocated_amount == ZERO

    def test_hold_with_shares_is_zeroed(self, holdings, quotes):
        advice = _normalize(_managed({"symbol": "0050", "action": "HOLD", "shares": 12}), holdings, quotes)
        assert advice.managed_actions[0].shares == 0
        assert not advice.is_actionable

    def test_negative_and_fractional_shares(self, holdings, quotes):
        advice = _normalize(
            _managed(
                {"symbol": "0050", "action": "BUY", "shares": -4},
                {"symbol": "2330", "action": "BUY", "shares": "1.9"},
            ),
            holdings,
            quotes,
        )
        assert [a.shares for a in advice.managed_actions] == [0, 1]

    def test_unknown_symbol_priced_at_zero(self, holdings, quotes):
        payload = {"newStockSuggestions": [{"symbol": "NVDA", "shares": 10, "reasoning": "AI"}]}
        advice = _normalize(payload, holdings, quotes)

        (suggestion,) = advice.new_suggestions
        assert suggestion.price == ZERO
        assert suggestion.allocated_amount == ZERO
        assert suggestion.category is StockCategory.UNKNOWN
        assert suggestion.name == "NVDA"

    def test_new_suggestion_for_held_symbol_dropped(self, holdings, quotes):
        payload = {
            "newStockSuggestions": [
                {"symbol": "0050", "shares": 10},
                {"symbol": "00878", "shares": 10},
            ]
        }
        advice = _normalize(payload, holdings, quotes)
        assert [s.symbol for s in advice.new_suggestions] == ["00878"]

    def test_zero_share_holding_does_not_block_suggestion(self, quotes):
        payload = {"newStockSuggestions": [{"symbol": "0050", "shares": 1}]}
        advice = _normalize(payload, [Holding("0050", 0)], quotes)
        assert [s.symbol for s in advice.new_suggestions] == ["0050"]

    def test_new_suggestion_action_is_always_buy(self, holdings, quotes):
        payload = {"newStockSuggestions": [{"symbol": "00878", "action": "SELL", "shares": 5}]}
        advice = _normalize(payload, holdings, quotes)
        assert advice.new_suggestions[0].action is Action.BUY

    def test_decided_investment_clamped_to_capacity(self, holdings, quotes):
        payload = {"budgetSummary": {"decidedOptimalInvestmentNTD": 50000}}
        advice = _normalize(payload, holdings, quotes, capacity=20000)
        assert advice.budget.decided_investment_ntd == Decimal("20000")

    def test_zero_capacity(self, holdings, quotes):
        payload = {"budgetSummary": {"decidedOptimalInvestmentNTD": 5000}}
        advice = _normalize(payload, holdings, quotes, capacity=0)
        assert advice.budget.decided_investment_ntd == ZERO
        assert advice.budget.user_capacity_ntd == ZERO

    def test_negative_capacity_rejected(self, holdings, quotes):
        with pytest.raises(ValueError):
            _normalize({}, holdings, quotes, capacity=-1)

    def test_missing_fields(self, holdings, quotes):
        advice = _normalize({"unexpected": True}, holdings, quotes)
        assert advice.market_outlook == "No market outlook provided."
        assert advice.managed_actions == ()
        assert advice.new_suggestions == ()
        assert advice.budget.decided_investment_ntd == ZERO

    def test_junk_items_skipped(self, holdings, quotes):
        payload = {
            "managedRecommendations": ["0050", {"action": "BUY"}, {"symbol": " ", "action": "BUY"}, None],
            "newStockSuggestions": "none",
            "budgetSummary": "lots",
        }
        advice = _normalize(payload, holdings, quotes)
        assert advice.managed_actions == ()
        assert advice.new_suggestions == ()

    def test_symbols_with_whitespace_skipped(self, holdings, quotes):
        payload = {
            "managedRecommendations": [{"symbol": "0050\n## 2020-01-01 - evil", "action": "BUY", "shares": 1}],
            "newStockSuggestions": [{"symbol": "XYZ ABC", "shares": 1}, {"symbol": " 00878 ", "shares": 1}],
        }
        advice = _normalize(payload, holdings, quotes)
        assert advice.managed_actions == ()
        assert [s.symbol for s in advice.new_suggestions] == ["00878"]

    def test_snake_case_keys(self, holdings, quotes):
        payload = {
            "market_outlook": "ok",
            "managed_recommendations": [{"symbol": "0050", "action": "buy", "shares": 1}],
            "budget_summary": {"decided_investment_ntd": "3,000"},
        }
        advice = _normalize(payload, holdings, quotes)
        assert advice.market_outlook == "ok"
        assert advice.managed_actions[0].action is Action.BUY
        assert advice.budget.decided_investment_ntd == Decimal("3000")

    def test_quotes_as_iterable(self, holdings, quotes):
        advice = _normalize(_managed({"symbol": "0050", "action": "BUY", "shares": 1}), holdings, quotes.values())
        assert advice.managed_actions[0].price == Decimal("150")


class TestDegraded:
    def test_degraded_response(self, holdings, quotes):
        raw = DegradedResponse(reason="no JSON object found", raw_content="prose")
        advice = normalize(raw, 20000, holdings, quotes, provider_name="beta", generated_at=TODAY)

        assert advice.degraded
        assert advice.provider_name == "beta"
        assert advice.managed_actions == ()
        assert advice.new_suggestions == ()
        assert advice.budget.decided_investment_ntd == ZERO
        assert advice.budget.user_capacity_ntd == Decimal("20000")
        assert "no JSON object found" in advice.market_outlook
        assert not advice.is_actionable

    def test_degraded_advice_helper(self):
        advice = degraded_advice("beta", DegradedResponse(reason="empty response"), 1000, TODAY)
        assert advice.generated_at == TODAY
        assert advice.budget.net_investment_ntd == ZERO


class TestClampDecided:
    @pytest.mark.parametrize(
        "value, expected",
        [(5000, "5000"), (25000, "20000"), (-10, "0"), ("abc", "0"), (None, "0"), (500, "500")],
    )
    def test_clamp(self, value, expected):
        assert clamp_decided_investment("alpha", value, Decimal("20000")) == Decimal(expected)


class TestProperties:
    def test_sell_beyond_holding(self):
        holdings = [Holding("AAPL", 10)]
        payload = {"managedRecommendations": [{"symbol": "AAPL", "action": "SELL", "shares": 50}]}
        advice = _normalize(payload, holdings, {})
        assert advice.managed_actions[0].shares == 10

    def test_decided_over_capacity(self):
        payload = {"budgetSummary": {"decidedOptimalInvestmentNTD": 25000}}
        advice = _normalize(payload, [], {}, capacity=20000)
        assert advice.budget.decided_investment_ntd == Decimal("20000")

    @pytest.mark.parametrize("action", ["BUY", "SELL", "HOLD", "WAIT", None])
    @pytest.mark.parametrize("shares", [-5, 0, 3, 500])
    def test_invariants_hold_for_any_input(self, action, shares, holdings, quotes):
        payload = {
            "managedRecommendations": [{"symbol": s, "action": action, "shares": shares} for s in ("0050", "2330", "9999")],
            "newStockSuggestions": [{"symbol": s, "shares": shares} for s in ("0050", "00878")],
            "budgetSummary": {"decidedOptimalInvestmentNTD": shares * 100},
        }
        advice = _normalize(payload, holdings, quotes)
        held = {h.symbol: h.shares for h in holdings}

        for a in advice.managed_actions:
            assert a.shares >= 0
            if a.action is Action.SELL:
                assert a.shares <= held.get(a.symbol, 0)
            if a.action is Action.HOLD:
                assert a.allocated_amount == ZERO
        assert not {s.symbol for s in advice.new_suggestions} & set(held)
        assert ZERO <= advice.budget.decided_investment_ntd <= Decimal("20000")


class TestMinimumInvestment:
    def test_below_minimum_is_kept_and_logged(self):
        with patch("stockwise.advisor.normalizer.logger") as log:
            decided = clamp_decided_investment("alpha", 500, Decimal("20000"), Decimal("1000"))
        assert decided == Decimal("500")
        log.info.assert_called_once()
        assert "below the 1000 NTD minimum" in log.info.call_args[0][0]

    @pytest.mark.parametrize("value", [0, 1000, 5000])
    def test_zero_or_at_least_minimum_not_logged(self, value):
        with patch("stockwise.advisor.normalizer.logger") as log:
            clamp_decided_investment("alpha", value, Decimal("20000"), Decimal("1000"))
        log.info.assert_not_called()

    def test_normalize_passes_minimum_through(self, holdings, quotes):
        payload = {"budgetSummary": {"decidedOptimalInvestmentNTD": 300}}
        with patch("stockwise.advisor.normalizer.logger") as log:
            advice = normalize(
                ParsedResponse(payload=payload), 20000, holdings, quotes, provider_name="alpha", min_investment=1000
            )
        assert advice.budget.decided_investment_ntd == Decimal("300")
        log.info.assert_called_once()
