"""Request values and the single place where transports are called."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from common.errors import UpstreamError
from transports.transport_interface import Transport, TransportResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Request:
    method: str
    path: str
    query: Mapping[str, Any] = field(default_factory=dict)
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def describe(self) -> str:
        return f"{self.method} {self.path}"


def perform(transport: Transport, request: Request) -> TransportResponse:
    """Send ``request`` and turn failure statuses into UpstreamError."""
    logger.debug("request %s", request.describe())
    response = transport.send(
        request.method,
        request.path,
        query=dict(request.query) or None,
        body=request.body,
        headers=dict(request.headers) or None,
    )
    if not response.ok:
        raise UpstreamError(
            f"{request.describe()} failed with status {response.status}",
            status=response.status,
            body=response.body,
        )
    return response
