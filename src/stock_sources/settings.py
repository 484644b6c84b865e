"""Analytics configuration.

Loads from environment variables (prefix ``STOCK_``) and an optional .env
file. The engine itself never reads settings; the session passes these
values in as explicit arguments.
"""

from __future__ import annotations

from functools import lru_cache
import logging
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalyticsSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STOCK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ----- Series -----
    default_granularity: Literal["day", "week", "month", "year"] = Field(
        default="month",
        description="Period used when the caller does not pick one.",
    )
    top_suppliers: int = Field(
        default=6, ge=1, description="Suppliers kept in the purchase cost series."
    )
    line_top: int = Field(
        default=8, ge=1, description="Product lines shown before grouping into Otros."
    )
    customers_top: int = Field(
        default=10, ge=1, description="Customers ranked per year."
    )

    # ----- Replenishment -----
    window_months: int = Field(
        default=12, ge=1, description="Trailing months used to measure consumption."
    )
    target_months: float = Field(
        default=3, ge=0, description="Months of stock to hold after a purchase."
    )
    lead_time_months: float = Field(
        default=1, ge=0, description="Months between ordering and receiving."
    )
    buffer_months: float = Field(
        default=1, ge=0, description="Safety coverage on top of lead time."
    )

    # ----- Runtime -----
    cache_size: int = Field(
        default=128, ge=1, description="Memoized builder results kept per session."
    )
    log_level: str = Field(default="INFO", description="Root log level.")


@lru_cache
def get_settings() -> AnalyticsSettings:
    """Return a cached instance of :class:`AnalyticsSettings`."""
    return AnalyticsSettings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
