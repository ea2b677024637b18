"""Pydantic models for config validation.

``Config.validated()`` turns the merged ``Config.config_data`` dict into a
typed ``StockwiseConfig``.  Environment overrides arrive as strings; pydantic
coerces them to the declared types.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PathsConfig(BaseModel):
    """File-system paths used by the application."""

    data_dir: Path
    log_dir: Path | None = None

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v


class SchedulerConfig(BaseModel):
    """Daily run time and the catch-up window after it."""

    hour: int = Field(default=10, ge=0, le=23)
    minute: int = Field(default=0, ge=0, le=59)
    grace_minutes: int = Field(default=5, ge=0)
    timezone: str | None = None


class AdvisorConfig(BaseModel):
    """Budget and pacing knobs for one orchestration run."""

    user_capacity_ntd: int = Field(default=20000, ge=0)
    min_investment_ntd: int = Field(default=1000, ge=0)
    inter_provider_delay: float = Field(default=2.0, ge=0)
    retention_days: int = Field(default=30, ge=1)
    language: str = "Traditional Chinese"


class GatewayConfig(BaseModel):
    """Transport and retry settings shared by every provider call."""

    max_attempts: int = Field(default=3, ge=1)
    rate_limit_base_delay: float = Field(default=5.0, ge=0)
    timeout: int = Field(default=180, gt=0)
    temperature: float = 0.7
    max_tokens: int = Field(default=8000, gt=0)


class DocumentsConfig(BaseModel):
    """Document-store keys for the holdings, advice and provider documents."""

    holdings_key: str = "warehouse.md"
    advice_key: str = "advice.md"
    providers_key: str = "api.md"


class ProviderSettings(BaseModel):
    """One inline provider entry from the config file."""

    name: str = ""
    model: str = ""
    base_url: str = ""
    api_key: str = ""


class StockwiseConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so deployments can carry custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig(data_dir=Path("~/.stockwise-data"))
    scheduler: SchedulerConfig = SchedulerConfig()
    advisor: AdvisorConfig = AdvisorConfig()
    gateway: GatewayConfig = GatewayConfig()
    documents: DocumentsConfig = DocumentsConfig()
    providers: list[ProviderSettings] = []

    @model_validator(mode="after")
    def _unique_provider_names(self) -> StockwiseConfig:
        names = [p.name for p in self.providers if p.name]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"provider names must be unique, duplicated: {duplicates}")
        return self
