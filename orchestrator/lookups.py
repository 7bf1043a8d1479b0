"""
Declarative resolution table.

Maps (descriptor kind, missing field) to the single lookup that supplies
it. Nothing here performs I/O; the resolver executes what this module
describes.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping

from common.errors import UpstreamError
from transports.transport_interface import TransportResponse

from .models import Descriptor, DescriptorKind
from .requests import Request
from .shaper import first, pluck


class Pin(str, Enum):
    """How a missing ``sha`` is pinned."""

    HEAD = "head"  # current head of the owning branch
    LATEST_COMMIT = "latest_commit"  # most recent commit touching the addressed object


@dataclass(frozen=True)
class Lookup:
    name: str
    requires: tuple[str, ...]
    provides: tuple[str, ...]
    request: Callable[[Descriptor], Request]
    extract: Callable[[TransportResponse], Mapping[str, Any]]


def _branch_head_request(d: Descriptor) -> Request:
    return Request("GET", f"projects/{d.project_id}/branches/{d.branch_id}")


def _branch_head_extract(response: TransportResponse) -> dict[str, Any]:
    body = response.body if isinstance(response.body, dict) else {}
    for key in ("head", "sha", "name"):
        if body.get(key):
            return {"sha": body[key]}
    return {"sha": pluck(response, "head")}


def _latest_commit_request(d: Descriptor) -> Request:
    return Request(
        "GET",
        f"projects/{d.project_id}/branches/{d.branch_id}/commits",
        query={
            "fileId": getattr(d, "file_id", None),
            "layerId": getattr(d, "layer_id", None),
            "limit": 1,
        },
    )


def _latest_commit_extract(response: TransportResponse) -> dict[str, Any]:
    commit = first(pluck(response, "data", "commits"), "commit")
    if not commit.get("sha"):
        raise UpstreamError("Commit listing returned a commit without sha", status=response.status, body=response.body)
    return {"sha": commit["sha"]}


def _layer_info_request(d: Descriptor) -> Request:
    return Request("GET", f"projects/{d.project_id}/commits/{d.sha}/files/{d.file_id}/layers/{d.layer_id}")


def _layer_info_extract(response: TransportResponse) -> dict[str, Any]:
    return {
        "page_id": pluck(response, "page", "id"),
        "file_name": pluck(response, "file", "name"),
        "page_name": pluck(response, "page", "name"),
        "layer_name": pluck(response, "layer", "name"),
    }


BRANCH_HEAD = Lookup(
    name="branch_head",
    requires=("project_id", "branch_id"),
    provides=("sha",),
    request=_branch_head_request,
    extract=_branch_head_extract,
)

LATEST_COMMIT = Lookup(
    name="latest_commit",
    requires=("project_id", "branch_id"),
    provides=("sha",),
    request=_latest_commit_request,
    extract=_latest_commit_extract,
)

LAYER_INFO = Lookup(
    name="layer_info",
    requires=("project_id", "sha", "file_id", "layer_id"),
    provides=("page_id", "file_name", "page_name", "layer_name"),
    request=_layer_info_request,
    extract=_layer_info_extract,
)

_SHA_OWNERS = (DescriptorKind.BRANCH, DescriptorKind.FILE, DescriptorKind.PAGE, DescriptorKind.LAYER)
_LAYER_LOCATION = {(DescriptorKind.LAYER, name): LAYER_INFO for name in LAYER_INFO.provides}

LOOKUP_TABLE: dict[Pin, dict[tuple[DescriptorKind, str], Lookup]] = {
    Pin.HEAD: {
        **{(kind, "sha"): BRANCH_HEAD for kind in _SHA_OWNERS},
        **_LAYER_LOCATION,
    },
    Pin.LATEST_COMMIT: {
        **{(kind, "sha"): LATEST_COMMIT for kind in _SHA_OWNERS},
        **_LAYER_LOCATION,
    },
}

# Optional fields no lookup can supply. Together with LOOKUP_TABLE this
# covers every optional field of every kind.
UNRESOLVABLE: frozenset[tuple[DescriptorKind, str]] = frozenset(
    {
        (DescriptorKind.PROJECT, "organization_id"),
        (DescriptorKind.COMMIT, "branch_id"),
        (DescriptorKind.FILE, "branch_id"),
        (DescriptorKind.PAGE, "branch_id"),
        (DescriptorKind.LAYER, "branch_id"),
        (DescriptorKind.COLLECTION, "branch_id"),
    }
)


def lookup_for(kind: DescriptorKind, field_name: str, pin: Pin = Pin.HEAD) -> Lookup | None:
    return LOOKUP_TABLE[pin].get((kind, field_name))
