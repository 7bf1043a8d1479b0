# transports_manager.py
"""
transports_manager.py
---------------------
Picks and holds transports.

Selects the transport named by ClientOptions.transport_mode:
    "api"  -> ApiTransport
    "cli"  -> CliTransport
    "auto" -> CliTransport when cli_path is an executable file, else ApiTransport
Reuses an existing transport when equal options are asked for again,
so HTTP connections are pooled across clients.
"""

import logging
import os
import threading

from common.config import ClientOptions
from transports.api_transport import ApiTransport
from transports.cli_transport import CliTransport
from transports.transport_interface import Transport

logger = logging.getLogger(__name__)

_active_transports: dict[tuple[str, ClientOptions], Transport] = {}
# key: (resolved mode, ClientOptions)
# value: Transport instance
_lock = threading.Lock()


def resolve_mode(options: ClientOptions) -> str:
    """Turn "auto" into a concrete mode."""
    mode = options.transport_mode
    if mode == "auto":
        cli_path = options.cli_path
        if cli_path and os.path.isfile(cli_path) and os.access(cli_path, os.X_OK):
            return "cli"
        return "api"
    return mode


def get_transport(options: ClientOptions) -> Transport:
    """
    Get or create the transport for the given options.
    Reuses an existing transport only when every option matches,
    since transports bake urls, credentials and headers in at creation.
    """
    mode = resolve_mode(options)
    key = (mode, options)
    with _lock:
        if key in _active_transports:
            return _active_transports[key]

        if mode == "api":
            transport: Transport = ApiTransport(options)
        elif mode == "cli":
            transport = CliTransport(options)
        else:
            raise ValueError(f"Unsupported transport mode: {mode}")

        logger.info("Using %s transport for %s", mode, options.api_url)
        _active_transports[key] = transport
        return transport


def close_all() -> None:
    """Close and forget every transport created by get_transport."""
    with _lock:
        for transport in _active_transports.values():
            transport.close()
        _active_transports.clear()
