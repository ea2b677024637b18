"""Advice pipeline: gateway, normalizer, aggregator, ledger and scheduler."""

from .aggregator import AdviceAggregator, AdvicePipeline
from .gateway import ProviderGateway
from .ledger import Ledger
from .models import (
    Action,
    Advice,
    BudgetSummary,
    DegradedResponse,
    Holding,
    LedgerEntry,
    ParsedResponse,
    ProviderConfig,
    ProviderResult,
    RawResponse,
    RecommendedAction,
    RunReport,
    StockCategory,
    StockQuote,
)
from .normalizer import normalize
from .record_store import AdviceRecordStore
from .scheduler import AdviceScheduler, SchedulerState
from .sources import DocumentProviderCatalog, PortfolioSource, ProviderCatalog, WarehouseSource

__all__ = [
    "Action",
    "Advice",
    "AdviceAggregator",
    "AdvicePipeline",
    "AdviceRecordStore",
    "AdviceScheduler",
    "BudgetSummary",
    "DegradedResponse",
    "DocumentProviderCatalog",
    "Holding",
    "Ledger",
    "LedgerEntry",
    "ParsedResponse",
    "PortfolioSource",
    "ProviderCatalog",
    "ProviderConfig",
    "ProviderGateway",
    "ProviderResult",
    "RawResponse",
    "RecommendedAction",
    "RunReport",
    "SchedulerState",
    "StockCategory",
    "StockQuote",
    "WarehouseSource",
    "normalize",
]
