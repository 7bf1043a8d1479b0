"""
Response Shaper.

Turns raw transport responses into the value each operation returns:
envelopes are stripped, lists are narrowed to the addressed item, and
results are wrapped in Box/BoxList for dot access.
"""

from __future__ import annotations

from typing import Any, Iterable

from box import Box, BoxList

from common.errors import NotFound, UpstreamError
from transports.transport_interface import TransportResponse


def boxed(value: Any) -> Any:
    """Wrap mappings and lists for dot access, leave scalars and bytes alone."""
    if isinstance(value, dict):
        return Box(value)
    if isinstance(value, list):
        return BoxList(value)
    return value


def pluck(response: TransportResponse, *path: str) -> Any:
    """
    Walk ``path`` into the response body.
    A missing key means the service answered with an unexpected shape,
    reported as UpstreamError with the response attached.
    """
    value = response.body
    for key in path:
        if not isinstance(value, dict) or key not in value:
            raise UpstreamError(
                f"Unexpected response shape: missing {'.'.join(path)}",
                status=response.status,
                body=response.body,
            )
        value = value[key]
    return boxed(value)


def first(items: Iterable[Any], what: str) -> Any:
    for item in items:
        return boxed(item)
    raise NotFound(f"No {what} found")


def find_by_id(items: Iterable[Any], item_id: str, what: str) -> Any:
    for item in items:
        if isinstance(item, dict) and item.get("id") == item_id:
            return boxed(item)
    raise NotFound(f"{what} {item_id!r} not found")


def composite(response: TransportResponse, *keys: str) -> Box:
    """Keep only ``keys`` of the body, each one required."""
    return Box({key: pluck(response, key) for key in keys})


def preview_url(previews_url: str, project_id: str, sha: str, file_id: str, layer_id: str) -> str:
    base = previews_url.rstrip("/")
    return f"{base}/projects/{project_id}/commits/{sha}/files/{file_id}/layers/{layer_id}"
