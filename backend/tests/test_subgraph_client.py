from __future__ import annotations

import json

import httpx
import pytest

from app.core.errors import UpstreamProtocolError, UpstreamTransportError
from ingestion.ledger import aggregate_positions
from ingestion.subgraph_client import SubgraphClient, parse_position


def _position(index: int, *, user: str | None = None, outcome: str = "0") -> dict[str, object]:
    return {
        "id": f"pos-{index}",
        "user": {"id": user or f"0xuser{index}"},
        "outcome": outcome,
        "market": {"id": "0xcondition"},
        "quantityBought": "100",
        "quantitySold": "0",
    }


class RecordingLedger:
    """Serve fixed-size pages and remember every skip requested."""

    def __init__(self, page_sizes: list[int]) -> None:
        self.page_sizes = page_sizes
        self.requests: list[dict[str, object]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.requests.append(body)
        page_index = len(self.requests) - 1
        size = self.page_sizes[page_index] if page_index < len(self.page_sizes) else 0
        offset = body["variables"]["skip"]
        positions = [_position(offset + i) for i in range(size)]
        return httpx.Response(200, json={"data": {"positions": positions}})

    @property
    def skips(self) -> list[int]:
        return [body["variables"]["skip"] for body in self.requests]


def _client(handler, **kwargs) -> SubgraphClient:
    return SubgraphClient(
        endpoint="https://subgraph.test/graphql",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_pagination_stops_at_first_short_page():
    ledger = RecordingLedger([1000, 1000, 250])

    with _client(ledger, page_size=1000, max_skip=10_000) as client:
        positions = client.fetch_positions("0xcondition")

    assert ledger.skips == [0, 1000, 2000]
    assert len(positions) == 2250
    assert [p.position_id for p in positions[:2]] == ["pos-0", "pos-1"]
    assert positions[-1].position_id == "pos-2249"
    first = ledger.requests[0]
    assert "positions(" in first["query"]
    assert first["variables"] == {"marketId": "0xcondition", "first": 1000, "skip": 0}


def test_pagination_never_requests_past_skip_ceiling():
    ledger = RecordingLedger([1000] * 50)

    with _client(ledger, page_size=1000, max_skip=10_000) as client:
        positions = client.fetch_positions("0xcondition")

    assert max(ledger.skips) == 10_000
    assert ledger.skips == list(range(0, 10_001, 1000))
    assert len(positions) == 11_000


def test_graphql_errors_fail_the_fetch():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"errors": [{"message": "indexer unavailable"}]})

    with _client(handler) as client:
        with pytest.raises(UpstreamProtocolError, match="indexer unavailable"):
            client.fetch_positions("0xcondition")


def test_failure_on_later_page_aborts_without_retry():
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(json.loads(request.content)["variables"]["skip"])
        if len(calls) == 2:
            return httpx.Response(503, text="busy")
        return httpx.Response(
            200, json={"data": {"positions": [_position(i) for i in range(1000)]}}
        )

    with _client(handler, page_size=1000) as client:
        with pytest.raises(UpstreamProtocolError) as excinfo:
            client.fetch_positions("0xcondition")

    assert excinfo.value.status_code == 503
    assert excinfo.value.source == "ledger"
    assert calls == [0, 1000]


def test_timeouts_surface_as_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with _client(handler) as client:
        with pytest.raises(UpstreamTransportError):
            client.fetch_positions("0xcondition")


def test_undecodable_body_is_protocol_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"content-encoding": "gzip"}, content=b"not gzip")

    with _client(handler) as client:
        with pytest.raises(UpstreamProtocolError) as excinfo:
            client.fetch_positions("0xcondition")

    assert excinfo.value.source == "ledger"


@pytest.mark.parametrize(
    "payload",
    [{"data": None}, {"data": {"positions": None}}, ["not", "an", "envelope"]],
)
def test_malformed_envelopes_are_protocol_errors(payload):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    with _client(handler) as client:
        with pytest.raises(UpstreamProtocolError):
            client.fetch_positions("0xcondition")


def test_parse_position_flattens_nested_ids():
    position = parse_position(_position(3, user="0xabc", outcome="1"))

    assert position.user_id == "0xabc"
    assert position.market_id == "0xcondition"
    assert position.outcome == "1"
    assert position.quantity_bought == "100"


def test_aggregate_counts_distinct_bettors(make_position):
    aggregate = aggregate_positions(
        [
            make_position("0xa", "0"),
            make_position("0xa", "0"),
            make_position("0xb", "0"),
            make_position("0xa", "1"),
            make_position("0xc", "1"),
            make_position("", "1"),
        ]
    )

    assert aggregate.user_count("0") == 2
    assert aggregate.user_count("1") == 2
    assert aggregate.user_count("2") == 0
    assert aggregate.total_users == 3
