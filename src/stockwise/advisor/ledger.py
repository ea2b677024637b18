"""The advice ledger: a markdown document of actionable advice sections.

Layout::

    <optional preamble>
    ## 2026-10-19 - ProviderName

    ### Market Outlook
    ...

    ---

The document is parsed into an ordered list of :class:`LedgerEntry`,
edited as a list (replace-by-key, prepend, filter by date) and rendered back
to text.  Section order is most recent first.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from .models import Advice, LedgerEntry, RecommendedAction

_HEADER_RE = re.compile(r"^## (?P<title>.+?)\s*$")
_TITLE_RE = re.compile(
    r"^(?P<y>\d{4})[-/](?P<m>\d{1,2})[-/](?P<d>\d{1,2})"  # 2026-10-19 or 2026/10/19
    r"(?:\s*[(（][^)）]*[)）])?"  # optional weekday, e.g. "(週日)"
    r"\s+-\s+(?P<provider>.+)$"
)
_SEPARATOR = "---"


def _plain(text: str, *, single_line: bool = False) -> str:
    """Neutralise markdown headings in provider text so they cannot start a section."""
    lines = [line.lstrip("#").lstrip() if line.lstrip().startswith("#") else line for line in text.splitlines()]
    return " ".join(s.strip() for s in lines if s.strip()) if single_line else "\n".join(lines).strip()


def _format_ntd(amount: Decimal) -> str:
    return f"NT$ {amount:,.0f}"


def _format_price(amount: Decimal) -> str:
    return f"NT$ {amount:,.2f}"


def format_header(entry_date: date, provider_name: str) -> str:
    return f"## {entry_date.isoformat()} - {provider_name}"


def parse_header(line: str) -> tuple[date | None, str] | None:
    """Parse a ``## <date> - <provider>`` line.

    Returns:
        ``(date, provider)``; ``(None, title)`` for a level-2 heading whose
        date cannot be read; None if the line is not a level-2 heading.
    """
    match = _HEADER_RE.match(line)
    if not match:
        return None
    title = match.group("title")
    parts = _TITLE_RE.match(title)
    if not parts:
        return None, title
    try:
        entry_date = date(int(parts.group("y")), int(parts.group("m")), int(parts.group("d")))
    except ValueError:
        return None, title
    return entry_date, parts.group("provider").strip()


def _render_action(action: RecommendedAction) -> list[str]:
    label = f"{action.symbol} ({action.name})" if action.name and action.name != action.symbol else action.symbol
    label = _plain(label, single_line=True)
    return [
        f"- {action.action.value} **{label}**: {action.shares} shares",
        f"  - Price: {_format_price(action.price)}",
        f"  - Amount: {_format_ntd(action.allocated_amount)}",
        f"  - Reasoning: {_plain(action.reasoning, single_line=True) or '-'}",
        "",
    ]


def render_advice_body(advice: Advice) -> str:
    """Render the markdown body (everything below the header) for an advice."""
    budget = advice.budget
    lines = [
        "### Market Outlook",
        _plain(advice.market_outlook),
        "",
        "### Budget Summary",
        f"- **Decided investment**: {_format_ntd(budget.decided_investment_ntd)}"
        f" (capacity {_format_ntd(budget.user_capacity_ntd)})",
        f"- **Total buy**: {_format_ntd(budget.total_buy_ntd)}",
        f"- **Total sell**: {_format_ntd(budget.total_sell_ntd)}",
        f"- **Net investment**: {_format_ntd(budget.net_investment_ntd)}",
        f"- **Remaining unallocated**: {_format_ntd(budget.remaining_unallocated_ntd)}",
        "",
    ]

    trades = advice.trades
    if trades:
        lines.append("### Holding Actions")
        for action in trades:
            lines.extend(_render_action(action))

    if advice.new_suggestions:
        lines.append("### New Suggestions")
        for action in advice.new_suggestions:
            lines.extend(_render_action(action))

    return "\n".join(lines).strip()


def entry_from_advice(advice: Advice, entry_date: date | None = None) -> LedgerEntry:
    """Build the ledger entry for an advice, dated ``entry_date`` or its generation date."""
    entry_date = entry_date or advice.generated_at
    return LedgerEntry(
        entry_date=entry_date,
        provider_name=advice.provider_name,
        body=render_advice_body(advice),
        header=format_header(entry_date, advice.provider_name),
    )


@dataclass
class Ledger:
    """In-memory, ordered view of the advice ledger document."""

    entries: list[LedgerEntry] = field(default_factory=list)
    preamble: str = ""

    @classmethod
    def parse(cls, text: str) -> Ledger:
        """Split a ledger document into entries at each level-2 heading."""
        preamble_lines: list[str] = []
        entries: list[LedgerEntry] = []
        current: tuple[str, date | None, str] | None = None
        body: list[str] = []

        def _flush() -> None:
            if current is None:
                return
            header, entry_date, provider = current
            entries.append(
                LedgerEntry(
                    entry_date=entry_date,
                    provider_name=provider,
                    body=_strip_separator("\n".join(body)),
                    header=header,
                )
            )

        for line in text.replace("\r\n", "\n").split("\n"):
            parsed = parse_header(line)
            if parsed is not None:
                _flush()
                current = (line.rstrip(), parsed[0], parsed[1])
                body = []
            elif current is None:
                preamble_lines.append(line)
            else:
                body.append(line)
        _flush()

        return cls(entries=entries, preamble=_strip_separator("\n".join(preamble_lines)))

    def render(self) -> str:
        parts = []
        if self.preamble:
            parts.append(f"{self.preamble}\n\n")
        for entry in self.entries:
            header = entry.header or format_header(entry.entry_date, entry.provider_name)
            parts.append(f"{header}\n\n{entry.body}\n\n{_SEPARATOR}\n\n")
        return "".join(parts)

    def find(self, entry_date: date, provider_name: str) -> LedgerEntry | None:
        for entry in self.entries:
            if entry.key == (entry_date, provider_name):
                return entry
        return None

    def upsert(self, entry: LedgerEntry) -> bool:
        """Replace the entry with the same key in place, or prepend it.

        Any further duplicates of the key are dropped so the key stays unique.

        Returns:
            True if an existing entry was replaced.
        """
        if entry.entry_date is None:
            raise ValueError("Ledger entries must be dated")

        replaced = False
        merged: list[LedgerEntry] = []
        for existing in self.entries:
            if existing.key != entry.key:
                merged.append(existing)
            elif not replaced:
                merged.append(entry)
                replaced = True
        if not replaced:
            merged.insert(0, entry)
        self.entries = merged
        return replaced

    def prune_older_than(self, days: int, today: date | None = None) -> list[LedgerEntry]:
        """Drop dated entries more than ``days`` days before ``today``.

        Returns:
            The removed entries.
        """
        cutoff = (today or date.today()) - timedelta(days=days)
        kept: list[LedgerEntry] = []
        removed: list[LedgerEntry] = []
        for entry in self.entries:
            if entry.entry_date is not None and entry.entry_date < cutoff:
                removed.append(entry)
            else:
                kept.append(entry)
        self.entries = kept
        return removed


def _strip_separator(text: str) -> str:
    text = text.strip()
    while text.endswith(_SEPARATOR):
        text = text[: -len(_SEPARATOR)].rstrip()
    return text
