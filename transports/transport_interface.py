from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol


@dataclass(frozen=True)
class TransportResponse:
    """
    What a transport hands back for one request.

    status is an HTTP-like status code (the CLI transport maps its
    failures onto the same codes). body is the decoded JSON value,
    raw bytes for binary payloads, or None for an empty response.
    """
    status: int
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status < 400


class Transport(Protocol):
    """Interface Protocol for transports.
    The core never looks past this interface: it does not know whether
    a request went over HTTP or through a local CLI process.
    Implementations must be safe to share between threads.
    """

    def send(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
    ) -> TransportResponse:
        """
        Perform one request.
        :param method: HTTP method (GET, POST, ...).
        :param path: path relative to the API url, or an absolute url.
        :param query: query parameters; None values are dropped.
        :param body: JSON-serializable request body.
        :param headers: extra headers, merged over the transport defaults.
        Raises TransportError when the request could not be performed at all.
        """
        ...

    def close(self) -> None: ...
