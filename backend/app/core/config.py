from functools import lru_cache
from typing import Any

from pydantic import AnyUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    debug: bool = Field(False, description="Enable FastAPI debug mode")
    environment: str = Field(
        default="development",
        description="Runtime environment (development|staging|production)",
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum loguru level emitted to stderr",
    )
    polymarket_base_url: AnyUrl = Field(
        default="https://gamma-api.polymarket.com",
        description="Base URL for the Polymarket Gamma catalog API",
    )
    polymarket_markets_path: str = Field(
        default="/markets",
        description="Relative path for markets endpoint",
    )
    polymarket_search_path: str = Field(
        default="/public-search",
        description="Relative path for the free-text search endpoint",
    )
    catalog_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout applied to every catalog request",
        gt=0,
    )
    subgraph_url: AnyUrl = Field(
        default="https://api.thegraph.com/subgraphs/name/polymarket/pnl-subgraph",
        description="GraphQL endpoint serving market positions",
    )
    subgraph_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout applied to every ledger request; pages can be large",
        gt=0,
    )
    ledger_enabled: bool = Field(
        default=True,
        description="Query the position ledger before falling back to prices",
    )
    ledger_page_size: int = Field(
        default=1000,
        description="Number of positions requested per GraphQL page",
        ge=1,
    )
    ledger_max_skip: int = Field(
        default=10_000,
        description="Upper bound on the pagination skip offset",
        ge=0,
    )
    expiry_grace_hours: int = Field(
        default=24,
        description="Markets that ended longer ago than this are hidden from listings",
        ge=0,
    )
    cors_allowed_origins: list[str] | str = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://localhost:5173",
            "*",
        ],
        description="Origins allowed by the CORS middleware (list or comma-separated string)",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        candidate = value.strip().upper()
        if not candidate:
            raise ValueError("LOG_LEVEL must not be blank")
        return candidate

    @field_validator("cors_allowed_origins", mode="after")
    @classmethod
    def _parse_cors_origins(cls, value: Any) -> list[str]:
        if value in (None, "", []):
            return []
        if isinstance(value, str):
            return [
                item for item in (part.strip() for part in value.split(",")) if item
            ]
        if isinstance(value, (list, tuple, set)):
            return [str(item).strip() for item in value if str(item).strip()]
        raise ValueError(
            "CORS_ALLOWED_ORIGINS must be provided as a list or comma-separated string"
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
