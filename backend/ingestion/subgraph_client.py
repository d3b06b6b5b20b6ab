from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from app.core.config import settings
from app.core.errors import UpstreamProtocolError, UpstreamTransportError
from app.domain import LedgerPosition

_SOURCE = "ledger"

MARKET_POSITIONS_QUERY = """
query GetPositions($marketId: String!, $first: Int!, $skip: Int!) {
    positions(first: $first, skip: $skip, where: { market: $marketId }) {
        id
        user {
            id
        }
        outcome
        market {
            id
        }
        quantityBought
        quantitySold
    }
}
"""


def _nested_id(value: Any) -> str:
    if isinstance(value, dict):
        return str(value.get("id") or "")
    if value is None:
        return ""
    return str(value)


def parse_position(raw: dict[str, Any]) -> LedgerPosition:
    return LedgerPosition(
        position_id=str(raw.get("id") or ""),
        user_id=_nested_id(raw.get("user")),
        outcome=str(raw.get("outcome") if raw.get("outcome") is not None else ""),
        market_id=_nested_id(raw.get("market")),
        quantity_bought=str(raw.get("quantityBought") or "0"),
        quantity_sold=str(raw.get("quantitySold") or "0"),
    )


class SubgraphClient:
    """GraphQL client for the Polymarket position ledger."""

    def __init__(
        self,
        *,
        endpoint: str | None = None,
        timeout: float | None = None,
        page_size: int | None = None,
        max_skip: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint or str(settings.subgraph_url)
        self.timeout = timeout if timeout is not None else settings.subgraph_timeout_seconds
        self.page_size = page_size or settings.ledger_page_size
        self.max_skip = settings.ledger_max_skip if max_skip is None else max_skip
        self.client = httpx.Client(timeout=self.timeout, transport=transport)

    def query(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute ``query`` and return its ``data`` payload.

        Any non-empty ``errors`` list in the response envelope is treated as a
        failure of the whole call.
        """

        body: dict[str, Any] = {"query": query}
        if variables:
            body["variables"] = variables
        try:
            response = self.client.post(self.endpoint, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise UpstreamProtocolError(
                f"ledger API error {status}", source=_SOURCE, status_code=status
            ) from exc
        except httpx.TransportError as exc:
            raise UpstreamTransportError(
                f"failed to reach ledger API: {exc}", source=_SOURCE
            ) from exc
        except httpx.RequestError as exc:
            raise UpstreamProtocolError(
                f"ledger API response could not be read: {exc}", source=_SOURCE
            ) from exc

        try:
            envelope = response.json()
        except ValueError as exc:
            raise UpstreamProtocolError(
                "ledger API returned malformed JSON", source=_SOURCE
            ) from exc
        if not isinstance(envelope, dict):
            raise UpstreamProtocolError(
                "ledger API returned a non-object envelope", source=_SOURCE
            )

        errors = envelope.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) else errors
            message = first.get("message") if isinstance(first, dict) else str(first)
            raise UpstreamProtocolError(f"GraphQL error: {message}", source=_SOURCE)

        data = envelope.get("data")
        if not isinstance(data, dict):
            raise UpstreamProtocolError("ledger response carried no data", source=_SOURCE)
        return data

    def fetch_positions(self, condition_id: str) -> list[LedgerPosition]:
        """Return every position recorded against ``condition_id``.

        Pages are requested sequentially until one comes back short or the
        skip offset would pass ``max_skip``.
        """

        positions: list[LedgerPosition] = []
        skip = 0
        while True:
            variables = {"marketId": condition_id, "first": self.page_size, "skip": skip}
            logger.info("Subgraph positions market={} skip={}", condition_id, skip)
            data = self.query(MARKET_POSITIONS_QUERY, variables)
            page = data.get("positions")
            if not isinstance(page, list):
                raise UpstreamProtocolError(
                    f"ledger positions page (skip={skip}) was not a list", source=_SOURCE
                )
            positions.extend(parse_position(item) for item in page if isinstance(item, dict))

            if len(page) < self.page_size:
                break
            skip += self.page_size
            if skip > self.max_skip:
                logger.warning(
                    "Stopping position pagination for {} at skip ceiling {}",
                    condition_id,
                    self.max_skip,
                )
                break
        return positions

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "SubgraphClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
