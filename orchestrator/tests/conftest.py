from dataclasses import dataclass
from typing import Any

import pytest

from common.config import ClientOptions
from orchestrator import Client
from transports.transport_interface import TransportResponse


@dataclass
class Call:
    method: str
    path: str
    query: Any
    body: Any
    headers: Any


class RecordingTransport:
    """
    Transport double: answers with queued responses, in order, and records
    every call. Once the queue is empty it answers 200 with an empty object.
    Queue an exception to have send raise it.
    """
    def __init__(self):
        self.calls: list[Call] = []
        self._queue: list[Any] = []

    def queue(self, *responses):
        for response in responses:
            if isinstance(response, (TransportResponse, Exception)):
                self._queue.append(response)
            else:
                self._queue.append(TransportResponse(200, response))
        return self

    def send(self, method, path, *, query=None, body=None, headers=None):
        self.calls.append(Call(method, path, query, body, headers))
        response = self._queue.pop(0) if self._queue else TransportResponse(200, {})
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        pass

    @property
    def paths(self) -> list[str]:
        return [call.path for call in self.calls]


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def options():
    return ClientOptions(access_token="token", transport_mode="api")


@pytest.fixture
def client(transport, options):
    return Client(options, transport=transport)
