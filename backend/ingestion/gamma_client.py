from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from app.core.config import settings
from app.core.errors import UpstreamProtocolError, UpstreamTransportError

_SOURCE = "catalog"


class GammaClient:
    """Thin wrapper around the Polymarket Gamma catalog endpoints."""

    def __init__(
        self,
        *,
        base_url: str | None = None,
        markets_path: str | None = None,
        search_path: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or str(settings.polymarket_base_url)
        self.markets_path = (markets_path or settings.polymarket_markets_path).rstrip("/")
        self.search_path = search_path or settings.polymarket_search_path
        self.timeout = timeout if timeout is not None else settings.catalog_timeout_seconds
        self.client = httpx.Client(
            base_url=self.base_url, timeout=self.timeout, transport=transport
        )

    @staticmethod
    def _serialize_param(value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)

    def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        query = {key: self._serialize_param(value) for key, value in (params or {}).items()}
        logger.info("Gamma GET {} params={}", path, query)
        try:
            response = self.client.get(path, params=query)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise UpstreamProtocolError(
                f"catalog API error {status}: {exc.response.text[:200]}",
                source=_SOURCE,
                status_code=status,
            ) from exc
        except httpx.TransportError as exc:
            raise UpstreamTransportError(
                f"failed to reach catalog API: {exc}", source=_SOURCE
            ) from exc
        except httpx.RequestError as exc:
            raise UpstreamProtocolError(
                f"catalog API response could not be read: {exc}", source=_SOURCE
            ) from exc
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamProtocolError(
                f"catalog API returned malformed JSON for {path}",
                source=_SOURCE,
                status_code=response.status_code,
            ) from exc

    def fetch_markets(
        self,
        *,
        limit: int,
        offset: int,
        active: bool = True,
        closed: bool = False,
        order: str | None = "volume",
        ascending: bool = False,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {
            "active": active,
            "closed": closed,
            "limit": limit,
            "offset": offset,
        }
        if order:
            params["order"] = order
            params["ascending"] = ascending
        payload = self._get_json(self.markets_path, params)
        if not isinstance(payload, list):
            raise UpstreamProtocolError(
                "catalog market listing was not a JSON array", source=_SOURCE
            )
        return [item for item in payload if isinstance(item, dict)]

    def fetch_market(self, market_id: str) -> dict[str, Any]:
        payload = self._get_json(f"{self.markets_path}/{market_id}")
        if not isinstance(payload, dict):
            raise UpstreamProtocolError(
                f"catalog returned no market object for {market_id}", source=_SOURCE
            )
        return payload

    def search_markets(self, query: str, *, limit: int) -> list[dict[str, Any]]:
        """Return raw markets nested under the events matched by ``query``."""

        payload = self._get_json(self.search_path, {"q": query, "limit_per_type": limit})
        if not isinstance(payload, dict):
            raise UpstreamProtocolError(
                "catalog search response was not a JSON object", source=_SOURCE
            )
        events = payload.get("events") or []
        if not isinstance(events, list):
            raise UpstreamProtocolError(
                "catalog search response carried a malformed events list", source=_SOURCE
            )

        raw_markets: list[dict[str, Any]] = []
        for event in events:
            if not isinstance(event, dict):
                continue
            for market in event.get("markets") or []:
                if isinstance(market, dict):
                    raw_markets.append(market)
        return raw_markets

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "GammaClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
