"""Environment-driven configuration for the ShopDesk service.

Every knob the service reads lives on ``AppSettings``. Values come from the
process environment first, then ``.env``/``.env.local`` files, and finally the
defaults below, so a fresh checkout boots without any setup.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Any, Iterable

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "ShopDesk"
    # Printed on customer-facing documents such as warranty certificates.
    SHOP_NAME: str = "ShopDesk"
    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parents[2] / "data")
    TEMPLATES_DIR: Path | None = None

    # Local zone for calendar bucketing (per-day/per-month charts) and display.
    TZ: str = "Africa/Dar_es_Salaam"
    CURRENCY: str = "TZS"
    LOG_LEVEL: str = "INFO"

    DB_URL: str = Field(default="", validation_alias=AliasChoices("DATABASE_URL", "DB_URL"))

    # Analytics windows and chart sizes.
    # The dashboard fetches two 30-day windows so the monthly trend has a
    # previous period to compare against.
    SALES_WINDOW_DAYS: int = 60
    SALES_PAGE_WINDOW_DAYS: int = 90
    CHART_DAYS: int = 14
    CHART_BRANDS: int = 6

    # Stock alerts: rows below LOW_STOCK_THRESHOLD are reported, rows at or
    # below CRITICAL_STOCK_LEVEL are flagged critical.
    LOW_STOCK_THRESHOLD: int = 5
    CRITICAL_STOCK_LEVEL: int = 1

    EXPIRING_SOON_DAYS: int = 30

    # Background dashboard refresh. 0 disables the poller.
    DASHBOARD_REFRESH_SECONDS: int = 300

    # Comma separated in the environment.
    ALLOWED_ORIGINS: Annotated[list[str], NoDecode] = Field(default_factory=list)

    @property
    def templates_dir(self) -> Path:
        return self.TEMPLATES_DIR if self.TEMPLATES_DIR is not None else self.BASE_DIR / "templates"

    @property
    def database_url(self) -> str:
        return self.DB_URL or f"sqlite:///{self.DATA_DIR / 'shopdesk.db'}"

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_allowed_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, Iterable):
            return [str(item).strip() for item in value if str(item).strip()]
        raise TypeError("ALLOWED_ORIGINS must be a comma separated string or list")

    @field_validator("CRITICAL_STOCK_LEVEL", "LOW_STOCK_THRESHOLD", "CHART_DAYS", "CHART_BRANDS")
    @classmethod
    def non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must be zero or greater")
        return value


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    if not settings.DB_URL:
        settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    if settings.TEMPLATES_DIR is None:
        settings.TEMPLATES_DIR = settings.BASE_DIR / "templates"
    return settings


settings = get_settings()
