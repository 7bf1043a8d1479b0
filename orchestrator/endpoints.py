"""
Endpoint Dispatcher.

``Dispatcher.run`` executes one operation recipe: coerce the descriptor,
resolve missing fields, send the final request, shape the result. The
namespace classes below give every operation its public method, e.g.
``client.commits.info(descriptor)``.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from common.config import ClientOptions
from transports.transport_interface import Transport

from .models import coerce_descriptor
from .operations import OPERATIONS, CommentInput, Context, Operation
from .requests import perform
from .resolver import Resolver

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(self, transport: Transport, options: ClientOptions, resolver: Resolver | None = None):
        self.transport = transport
        self.options = options
        self.resolver = resolver or Resolver(transport)

    def run(self, operation: Operation, descriptor: Any = None, **args: Any) -> Any:
        """
        Execute ``operation`` for ``descriptor``.
        Raises InvalidDescriptor, NotFound, UpstreamError or TransportError;
        a failure at any step stops the remaining steps.
        """
        logger.debug("%s(%r)", operation.name, descriptor)
        if operation.prepare is not None:
            args = dict(operation.prepare(args))

        if descriptor is None and operation.descriptor_optional:
            ctx = Context(None, None, args, self.options)
        else:
            coerced = coerce_descriptor(descriptor, operation.kinds)
            resolution = self.resolver.resolve(coerced, operation.needs_for(coerced), operation.pin)
            ctx = Context(resolution.descriptor, resolution, args, self.options)

        response = None
        if operation.request is not None:
            response = perform(self.transport, operation.request(ctx))
        return operation.shape(response, ctx)


class Endpoint:
    """Base for the namespaces exposed on Client."""

    def __init__(self, dispatcher: Dispatcher):
        self._dispatcher = dispatcher

    def _run(self, name: str, descriptor: Any = None, **args: Any) -> Any:
        return self._dispatcher.run(OPERATIONS[name], descriptor, **args)


class Organizations(Endpoint):
    def list(self):
        return self._run("organizations.list")

    def info(self, descriptor):
        return self._run("organizations.info", descriptor)


class Projects(Endpoint):
    def list(self, descriptor=None, filter: str | None = None):
        """Projects visible to the token, optionally within one organization."""
        return self._run("projects.list", descriptor, filter=filter)

    def info(self, descriptor):
        return self._run("projects.info", descriptor)


class Collections(Endpoint):
    def list(self, descriptor):
        return self._run("collections.list", descriptor)

    def info(self, descriptor):
        return self._run("collections.info", descriptor)


class Comments(Endpoint):
    def create(self, descriptor, comment: CommentInput | Mapping[str, Any]):
        """
        Comment on a branch or a layer.
        ``comment`` holds ``body`` and an optional ``annotation``
        ({x, y, width, height}). A missing sha is pinned to the branch head;
        layers are located on their page through a layer lookup.
        """
        return self._run("comments.create", descriptor, comment=comment)


class Commits(Endpoint):
    def list(self, descriptor):
        """Commits of the branch, most recent first, narrowed to a file or layer when given."""
        return self._run("commits.list", descriptor)

    def info(self, descriptor):
        return self._run("commits.info", descriptor)


class Branches(Endpoint):
    def list(self, descriptor, filter: str | None = None):
        return self._run("branches.list", descriptor, filter=filter)

    def info(self, descriptor):
        return self._run("branches.info", descriptor)


class Files(Endpoint):
    def list(self, descriptor):
        return self._run("files.list", descriptor)

    def info(self, descriptor):
        return self._run("files.info", descriptor)


class Pages(Endpoint):
    def list(self, descriptor):
        return self._run("pages.list", descriptor)

    def info(self, descriptor):
        return self._run("pages.info", descriptor)


class Layers(Endpoint):
    def list(self, descriptor):
        return self._run("layers.list", descriptor)

    def info(self, descriptor):
        """Layer, page and file of a layer in one round trip."""
        return self._run("layers.info", descriptor)


class Changesets(Endpoint):
    def info(self, descriptor):
        return self._run("changesets.info", descriptor)


class Previews(Endpoint):
    def url(self, descriptor) -> str:
        """Preview url of a layer at a known sha. Never touches the network."""
        return self._run("previews.url", descriptor)

    def blob(self, descriptor) -> bytes:
        return self._run("previews.blob", descriptor)


class Data(Endpoint):
    def info(self, descriptor):
        return self._run("data.info", descriptor)
