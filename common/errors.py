"""This file defines the exceptions raised by the Abstract SDK client"""

import logging
mylogger = logging.getLogger(__name__)


class AbstractSDKError(Exception):
    """Base exception with a message."""
    def __init__(self, message="An Abstract SDK error occurred", log=False):
        self.message = message
        super().__init__(self.message)
        if log:
            mylogger.error(message)


class InvalidDescriptor(AbstractSDKError):
    """The descriptor cannot satisfy an operation, even after resolution."""


class NotFound(AbstractSDKError):
    """An addressed resource is absent from an otherwise successful response."""


class UpstreamError(AbstractSDKError):
    """The wrapped service answered with a failure status."""
    def __init__(self, message="Upstream request failed", status=None, body=None, log=False):
        self.status = status
        self.body = body
        super().__init__(message, log=log)


class TransportError(AbstractSDKError):
    """The transport itself could not complete the request."""
