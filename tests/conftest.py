"""Shared test fixtures for stockwise."""

import os
import tempfile
from decimal import Decimal
from types import SimpleNamespace

import pytest

from stockwise.advisor.models import Holding, ProviderConfig, StockCategory, StockQuote
from stockwise.core.storage import LocalDocumentStore


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file pointing at a temp data dir."""
    import yaml

    config_data = {
        "paths": {
            "data_dir": os.path.join(tmp_dir, "data"),
            "log_dir": os.path.join(tmp_dir, "logs"),
        },
        "advisor": {"user_capacity_ntd": 20000, "inter_provider_delay": 0},
        "providers": [
            {"name": "alpha", "model": "gpt-4o-mini", "base_url": "https://alpha.example/v1", "api_key": "k-alpha"},
        ],
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def store(tmp_path):
    return LocalDocumentStore(base_path=str(tmp_path / "docs"))


@pytest.fixture
def quotes():
    return {
        "0050": StockQuote("0050", "元大台灣50", StockCategory.TW_ETF, Decimal("150")),
        "2330": StockQuote("2330", "台積電", StockCategory.TW_STOCK, Decimal("600")),
        "00878": StockQuote("00878", "國泰永續高股息", StockCategory.TW_ETF, Decimal("20")),
    }


@pytest.fixture
def holdings():
    return [Holding("0050", 10), Holding("2330", 2)]


@pytest.fixture
def provider():
    return ProviderConfig(name="alpha", model="gpt-4o-mini", base_url="https://alpha.example/v1/", api_key="k-alpha")


@pytest.fixture
def sample_payload():
    """A well-formed provider answer for the ``holdings`` fixture."""
    return {
        "marketOutlook": "Neutral with upside.",
        "managedRecommendations": [
            {"symbol": "0050", "action": "BUY", "shares": 20, "reasoning": "core position"},
            {"symbol": "2330", "action": "HOLD", "shares": 0, "reasoning": "fairly valued"},
        ],
        "newStockSuggestions": [
            {"symbol": "00878", "shares": 100, "reasoning": "dividend"},
        ],
        "budgetSummary": {"decidedOptimalInvestmentNTD": 10000},
    }


def make_completion(content, **message_fields):
    """Build an object shaped like a litellm ModelResponse."""
    message = SimpleNamespace(content=content, **message_fields)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.fixture
def completion():
    """Factory fixture for litellm-shaped responses."""
    return make_completion
