"""Prompt construction for provider calls.

The prompt embeds the portfolio snapshot and asks for a strict JSON
document.  The key names in the schema are the ones the normalizer reads.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from decimal import Decimal

from .catalog import NEW_SUGGESTIONS_POOL
from .models import Holding, StockQuote

RESPONSE_SCHEMA = """{
  "marketOutlook": "market analysis, cycle and risk assessment",
  "managedRecommendations": [
    {"symbol": "held symbol", "action": "BUY | SELL | HOLD", "shares": 0, "reasoning": "why"}
  ],
  "newStockSuggestions": [
    {"symbol": "symbol not currently held", "shares": 0, "reasoning": "why"}
  ],
  "budgetSummary": {
    "userProvidedMonthlyCapacityNTD": %(capacity)s,
    "decidedOptimalInvestmentNTD": 0,
    "totalSpentOnBuysNTD": 0,
    "totalGainedFromSellsNTD": 0,
    "netInvestmentNTD": 0,
    "remainingUnallocatedNTD": 0
  }
}"""


def _holdings_context(holdings: Iterable[Holding]) -> str:
    return json.dumps(
        [{"symbol": h.symbol, "shares": h.shares} for h in holdings if h.shares > 0],
        ensure_ascii=False,
        indent=2,
    )


def _quotes_context(quotes: Mapping[str, StockQuote]) -> str:
    return json.dumps(
        [
            {
                "symbol": q.symbol,
                "name": q.name,
                "currentPrice": float(q.current_price),
                "category": q.category.value,
            }
            for q in quotes.values()
        ],
        ensure_ascii=False,
        indent=2,
    )


def _is_compact_model(model: str) -> bool:
    # Long instruction prompts degrade these models' JSON output.
    return "deepseek" in model.lower()


def build_prompt(
    holdings: Iterable[Holding],
    quotes: Mapping[str, StockQuote],
    user_capacity: Decimal | int,
    *,
    model: str = "",
    language: str = "Traditional Chinese",
    candidates: Iterable[str] = NEW_SUGGESTIONS_POOL,
) -> str:
    """Build the advice prompt for one provider.

    Args:
        holdings: Current portfolio snapshot.
        quotes: Known quotes keyed by symbol.
        user_capacity: Upper bound of this month's investment, NTD.
        model: Provider model id; selects the compact variant for some models.
        language: Language for the free-text fields.
        candidates: Symbols suggested as new-position candidates.
    """
    holdings = list(holdings)
    schema = RESPONSE_SCHEMA % {"capacity": int(user_capacity)}
    held_context = _holdings_context(holdings)

    if _is_compact_model(model):
        return (
            f"You are a Taiwan stock market investment advisor. Monthly budget: {int(user_capacity)} NTD.\n"
            f"Current holdings: {held_context}\n\n"
            f"Reply in {language} using only this JSON format:\n{schema}"
        )

    held = {h.symbol for h in holdings if h.shares > 0}
    candidate_list = ", ".join(s for s in candidates if s not in held)
    return f"""You are a professional Taiwan stock market investment analyst.
Your client follows a long-term, disciplined, staged investment strategy and is willing to buy and sell monthly.
Write every free-text field in {language}.

Investment principles:
1. Long-term value: favour quality stocks and ETFs with durable growth.
2. Diversification: spread across categories (TW ETFs, US equity ETFs, bond ETFs).
3. Regular investing: disciplined periodic contributions.
4. Round amounts: keep each position's amount close to a multiple of 5000 NTD.
5. Water level: scale the invested share of the budget to your market risk assessment.

Client information:
- Maximum monthly investment: {int(user_capacity)} NTD
- Current holdings: {held_context}
- Known stocks: {_quotes_context(quotes)}
- Candidates for new positions: {candidate_list}

Instructions:
1. Analyse the current Taiwan market in "marketOutlook", including cycle, risk and possible turning points.
2. Decide "decidedOptimalInvestmentNTD" between 0 and {int(user_capacity)}; all recommendations follow from it.
3. For every current holding give BUY, SELL or HOLD with a share count (0 for HOLD). Never sell more than is held.
4. Put symbols that are not currently held in "newStockSuggestions" only.
5. Summarise the allocation in "budgetSummary".

Respond with this JSON only, with no text before or after it:
{schema}
"""
