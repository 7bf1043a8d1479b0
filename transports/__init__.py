"""Transport Port and its HTTP and CLI implementations."""

from .transport_interface import Transport, TransportResponse
from .api_transport import ApiTransport
from .cli_transport import CliTransport
from .transports_manager import close_all, get_transport

__all__ = [
    "ApiTransport",
    "CliTransport",
    "Transport",
    "TransportResponse",
    "close_all",
    "get_transport",
]
