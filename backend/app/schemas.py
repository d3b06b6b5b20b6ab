from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from app.domain import Market as MarketRecord
from app.domain import MarketStats as MarketStatsRecord


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Market(CamelModel):
    id: str
    condition_id: str = Field(alias="conditionId")
    question: str
    description: str
    outcomes: list[str] = Field(default_factory=list)
    outcome_prices: list[str] = Field(default_factory=list, alias="outcomePrices")
    end_date: datetime | None = Field(default=None, alias="endDate")
    volume: str
    liquidity: str
    active: bool

    @classmethod
    def from_domain(cls, market: MarketRecord) -> "Market":
        return cls(
            id=market.market_id,
            condition_id=market.condition_id,
            question=market.question,
            description=market.description,
            outcomes=list(market.outcomes),
            outcome_prices=list(market.outcome_prices),
            end_date=market.end_date,
            volume=market.volume,
            liquidity=market.liquidity,
            active=market.active,
        )


class OutcomeStat(CamelModel):
    outcome: str
    outcome_index: int = Field(alias="outcomeIndex")
    user_count: int = Field(alias="userCount")
    percentage: float
    price: str


class MarketStats(CamelModel):
    market_id: str = Field(alias="marketId")
    question: str
    total_users: int = Field(alias="totalUsers")
    outcome_stats: list[OutcomeStat] = Field(default_factory=list, alias="outcomeStats")
    popular_outcome: str = Field(alias="popularOutcome")
    popular_pct: float = Field(alias="popularPct")
    source: Literal["ledger", "price"]
    fallback_reason: str | None = Field(default=None, alias="fallbackReason")

    @classmethod
    def from_domain(cls, stats: MarketStatsRecord) -> "MarketStats":
        return cls(
            market_id=stats.market_id,
            question=stats.question,
            total_users=stats.total_users,
            outcome_stats=[
                OutcomeStat(
                    outcome=item.outcome,
                    outcome_index=item.outcome_index,
                    user_count=item.user_count,
                    percentage=item.percentage,
                    price=item.price,
                )
                for item in stats.outcome_stats
            ],
            popular_outcome=stats.popular_outcome,
            popular_pct=stats.popular_pct,
            source=stats.source.kind,
            fallback_reason=getattr(stats.source, "reason", None),
        )


class APIResponse(BaseModel):
    """Envelope shared by every endpoint: ``data`` on success, ``error`` otherwise."""

    success: bool
    data: Any = None
    error: str | None = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            payload["data"] = _dump(self.data)
        if self.error is not None:
            payload["error"] = self.error
        return payload


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (list, tuple)):
        return [_dump(item) for item in value]
    return value
