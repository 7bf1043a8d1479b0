"""Top level client: options, transport and one namespace per resource."""

from __future__ import annotations

from typing import Any, Mapping

from common.app_setup import setup_logging
from common.config import ClientOptions, load_options
from transports.transport_interface import Transport
from transports.transports_manager import get_transport

from .endpoints import (
    Branches,
    Changesets,
    Collections,
    Comments,
    Commits,
    Data,
    Dispatcher,
    Files,
    Layers,
    Organizations,
    Pages,
    Previews,
    Projects,
)


class Client:
    """
    Entry point of the SDK.

    Args:
        options: ClientOptions, a mapping of option values, or None to load
            them from the environment (ABSTRACT_TOKEN, ABSTRACT_CLI_PATH,
            ABSTRACT_CONFIG, ABSTRACT_LOG_LEVEL).
        transport: a Transport to use instead of the one transport_mode selects.
        **overrides: option values applied on top of ``options``.
    Examples:
        client = Client(access_token="...", transport_mode="api")
        client.commits.info({"projectId": "p", "branchId": "master"})
        Client(log_level="DEBUG")  # lookups and requests go to ~/.abstract_sdk/log.txt
    """

    def __init__(
        self,
        options: ClientOptions | Mapping[str, Any] | None = None,
        transport: Transport | None = None,
        **overrides: Any,
    ):
        if options is None:
            options = load_options(**overrides)
        elif isinstance(options, ClientOptions):
            options = options.merge(overrides) if overrides else options
        else:
            options = load_options(**{**dict(options), **overrides})
        self.options: ClientOptions = options
        if options.log_level:
            setup_logging(loglevel=options.log_level, logfile=options.log_file, token=options.access_token)
        self.transport: Transport = transport or get_transport(options)

        dispatcher = Dispatcher(self.transport, options)
        self.organizations = Organizations(dispatcher)
        self.projects = Projects(dispatcher)
        self.collections = Collections(dispatcher)
        self.comments = Comments(dispatcher)
        self.commits = Commits(dispatcher)
        self.branches = Branches(dispatcher)
        self.files = Files(dispatcher)
        self.pages = Pages(dispatcher)
        self.layers = Layers(dispatcher)
        self.changesets = Changesets(dispatcher)
        self.previews = Previews(dispatcher)
        self.data = Data(dispatcher)
