"""Failures raised while talking to the catalog and ledger services."""

from __future__ import annotations


class UpstreamError(Exception):
    """An upstream call could not produce a usable payload."""

    def __init__(self, message: str, *, source: str) -> None:
        super().__init__(message)
        self.source = source


class UpstreamTransportError(UpstreamError):
    """The upstream service could not be reached or timed out."""


class UpstreamProtocolError(UpstreamError):
    """The upstream service answered with an error status or a malformed body."""

    def __init__(
        self,
        message: str,
        *,
        source: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, source=source)
        self.status_code = status_code


__all__ = ["UpstreamError", "UpstreamProtocolError", "UpstreamTransportError"]
