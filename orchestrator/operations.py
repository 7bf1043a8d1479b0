"""
Operation recipes.

Each operation is a small declarative record: the descriptor kinds it
accepts, the fields it needs (resolved when missing), how the final
request is built and how its response is shaped. The dispatcher in
``endpoints`` executes them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping

from pydantic import BaseModel, Field, ValidationError

from common.config import ClientOptions
from common.errors import InvalidDescriptor
from transports.transport_interface import TransportResponse

from .lookups import Pin
from .models import (
    BranchDescriptor,
    CollectionDescriptor,
    CommitDescriptor,
    Descriptor,
    DescriptorKind,
    FileDescriptor,
    LayerDescriptor,
    OrganizationDescriptor,
    PageDescriptor,
    ProjectDescriptor,
)
from .requests import Request
from .resolver import Resolution
from .shaper import composite, find_by_id, first, pluck, preview_url


@dataclass(frozen=True)
class Context:
    """What a recipe sees once resolution is done."""

    descriptor: Any
    resolution: Resolution | None
    args: Mapping[str, Any]
    options: ClientOptions


@dataclass(frozen=True)
class Operation:
    name: str
    kinds: tuple[type[Descriptor], ...] = ()
    needs: tuple[str, ...] | Mapping[DescriptorKind, tuple[str, ...]] = ()
    # None: no lookups allowed, every needed field must be given
    pin: Pin | None = Pin.HEAD
    request: Callable[[Context], Request] | None = None
    shape: Callable[[TransportResponse | None, Context], Any] = lambda response, ctx: None
    descriptor_optional: bool = False
    prepare: Callable[[Mapping[str, Any]], Mapping[str, Any]] | None = None

    def needs_for(self, descriptor: Descriptor) -> tuple[str, ...]:
        if isinstance(self.needs, Mapping):
            return self.needs[descriptor.kind]
        return self.needs


class Annotation(BaseModel):
    x: float
    y: float
    width: float
    height: float


class CommentInput(BaseModel):
    body: str = Field(..., min_length=1)
    annotation: Annotation | None = None


def _prepare_comment(args: Mapping[str, Any]) -> dict[str, Any]:
    comment = args.get("comment")
    if isinstance(comment, CommentInput):
        return {"comment": comment}
    try:
        return {"comment": CommentInput.model_validate(comment or {})}
    except ValidationError as exc:
        raise InvalidDescriptor(f"Invalid comment: {exc}") from exc


def _body(response: TransportResponse | None, ctx: Context) -> Any:
    return pluck(response)


def _at(*path: str) -> Callable[[TransportResponse | None, Context], Any]:
    def shape(response: TransportResponse | None, ctx: Context) -> Any:
        return pluck(response, *path)
    return shape


def _commit_path(d: Any) -> str:
    return f"projects/{d.project_id}/commits/{d.sha}"


def _layer_path(d: Any) -> str:
    return f"{_commit_path(d)}/files/{d.file_id}/layers/{d.layer_id}"


def _commits_request(ctx: Context) -> Request:
    d = ctx.descriptor
    return Request(
        "GET",
        f"projects/{d.project_id}/branches/{d.branch_id}/commits",
        query={"fileId": getattr(d, "file_id", None), "layerId": getattr(d, "layer_id", None)},
    )


def _comment_request(ctx: Context) -> Request:
    d = ctx.descriptor
    comment: CommentInput = ctx.args["comment"]
    payload: dict[str, Any] = {
        "projectId": d.project_id,
        "branchId": d.branch_id,
        "commitSha": d.sha,
        "body": comment.body,
    }
    if comment.annotation is not None:
        payload["annotation"] = comment.annotation.model_dump()
    if isinstance(d, LayerDescriptor):
        payload.update(
            fileId=d.file_id,
            pageId=d.page_id,
            layerId=d.layer_id,
            fileName=d.file_name,
            pageName=d.page_name,
            layerName=d.layer_name,
        )
    return Request("POST", "comments", body=payload)


def _preview_url(ctx: Context) -> str:
    d = ctx.descriptor
    return preview_url(ctx.options.previews_url, d.project_id, d.sha, d.file_id, d.layer_id)


_COMMIT_CONTEXT = (BranchDescriptor, FileDescriptor, PageDescriptor, LayerDescriptor)
_LAYER_NEEDS = ("project_id", "sha", "file_id", "layer_id")

OPERATIONS: dict[str, Operation] = {
    op.name: op
    for op in (
        # organizations
        Operation(
            "organizations.list",
            descriptor_optional=True,
            request=lambda ctx: Request("GET", "organizations"),
            shape=_at("data"),
        ),
        Operation(
            "organizations.info",
            kinds=(OrganizationDescriptor,),
            needs=("organization_id",),
            request=lambda ctx: Request("GET", f"organizations/{ctx.descriptor.organization_id}"),
            shape=_at("data"),
        ),
        # projects
        Operation(
            "projects.list",
            kinds=(OrganizationDescriptor,),
            descriptor_optional=True,
            request=lambda ctx: Request(
                "GET",
                "projects",
                query={
                    "organizationId": getattr(ctx.descriptor, "organization_id", None),
                    "filter": ctx.args.get("filter"),
                },
            ),
            shape=_at("data"),
        ),
        Operation(
            "projects.info",
            kinds=(ProjectDescriptor,),
            needs=("project_id",),
            request=lambda ctx: Request("GET", f"projects/{ctx.descriptor.project_id}"),
            shape=_at("data"),
        ),
        # collections
        Operation(
            "collections.list",
            kinds=(ProjectDescriptor, BranchDescriptor),
            needs=("project_id",),
            request=lambda ctx: Request(
                "GET",
                f"projects/{ctx.descriptor.project_id}/collections",
                query={"branchId": getattr(ctx.descriptor, "branch_id", None)},
            ),
            shape=_at("data", "collections"),
        ),
        Operation(
            "collections.info",
            kinds=(CollectionDescriptor,),
            needs=("project_id", "collection_id"),
            request=lambda ctx: Request(
                "GET", f"projects/{ctx.descriptor.project_id}/collections/{ctx.descriptor.collection_id}"
            ),
            shape=_at("data"),
        ),
        # comments
        Operation(
            "comments.create",
            kinds=(BranchDescriptor, LayerDescriptor),
            needs={
                DescriptorKind.BRANCH: ("project_id", "branch_id", "sha"),
                DescriptorKind.LAYER: _LAYER_NEEDS + ("branch_id", "page_id", "file_name", "page_name", "layer_name"),
            },
            prepare=_prepare_comment,
            request=_comment_request,
            shape=_body,
        ),
        # commits
        Operation(
            "commits.list",
            kinds=_COMMIT_CONTEXT,
            needs=("project_id", "branch_id"),
            request=_commits_request,
            shape=_at("data", "commits"),
        ),
        Operation(
            "commits.info",
            kinds=_COMMIT_CONTEXT,
            needs=("project_id", "branch_id"),
            request=_commits_request,
            shape=lambda response, ctx: first(pluck(response, "data", "commits"), "commit"),
        ),
        # branches
        Operation(
            "branches.list",
            kinds=(ProjectDescriptor,),
            needs=("project_id",),
            request=lambda ctx: Request(
                "GET",
                f"projects/{ctx.descriptor.project_id}/branches",
                query={"filter": ctx.args.get("filter")},
            ),
            shape=_at("data", "branches"),
        ),
        Operation(
            "branches.info",
            kinds=(BranchDescriptor,),
            needs=("project_id", "branch_id"),
            request=lambda ctx: Request(
                "GET", f"projects/{ctx.descriptor.project_id}/branches/{ctx.descriptor.branch_id}"
            ),
            shape=_body,
        ),
        # files
        Operation(
            "files.list",
            kinds=(BranchDescriptor,),
            needs=("project_id", "sha"),
            request=lambda ctx: Request("GET", f"{_commit_path(ctx.descriptor)}/files"),
            shape=_at("files"),
        ),
        Operation(
            "files.info",
            kinds=(FileDescriptor,),
            needs=("project_id", "sha", "file_id"),
            request=lambda ctx: Request("GET", f"{_commit_path(ctx.descriptor)}/files"),
            shape=lambda response, ctx: find_by_id(pluck(response, "files"), ctx.descriptor.file_id, "file"),
        ),
        # pages
        Operation(
            "pages.list",
            kinds=(FileDescriptor,),
            needs=("project_id", "sha", "file_id"),
            request=lambda ctx: Request(
                "GET", f"{_commit_path(ctx.descriptor)}/files/{ctx.descriptor.file_id}/pages"
            ),
            shape=_at("pages"),
        ),
        Operation(
            "pages.info",
            kinds=(PageDescriptor,),
            needs=("project_id", "sha", "file_id", "page_id"),
            request=lambda ctx: Request(
                "GET", f"{_commit_path(ctx.descriptor)}/files/{ctx.descriptor.file_id}/pages"
            ),
            shape=lambda response, ctx: find_by_id(pluck(response, "pages"), ctx.descriptor.page_id, "page"),
        ),
        # layers
        Operation(
            "layers.list",
            kinds=(FileDescriptor, PageDescriptor),
            needs=("project_id", "sha", "file_id"),
            request=lambda ctx: Request(
                "GET",
                f"{_commit_path(ctx.descriptor)}/files/{ctx.descriptor.file_id}/layers",
                query={"pageId": getattr(ctx.descriptor, "page_id", None)},
            ),
            shape=_at("layers"),
        ),
        Operation(
            "layers.info",
            kinds=(LayerDescriptor,),
            needs=_LAYER_NEEDS,
            request=lambda ctx: Request("GET", _layer_path(ctx.descriptor)),
            shape=lambda response, ctx: composite(response, "layer", "page", "file"),
        ),
        # changesets
        Operation(
            "changesets.info",
            kinds=(CommitDescriptor,),
            needs=("project_id", "sha"),
            request=lambda ctx: Request("GET", f"{_commit_path(ctx.descriptor)}/changeset"),
            shape=_at("changeset"),
        ),
        # previews
        Operation(
            "previews.url",
            kinds=(LayerDescriptor,),
            needs=_LAYER_NEEDS,
            pin=None,
            shape=lambda response, ctx: _preview_url(ctx),
        ),
        Operation(
            "previews.blob",
            kinds=(LayerDescriptor,),
            needs=_LAYER_NEEDS,
            pin=Pin.LATEST_COMMIT,
            request=lambda ctx: Request("GET", _preview_url(ctx), headers={"Accept": "image/png"}),
            shape=lambda response, ctx: response.body,
        ),
        # data
        Operation(
            "data.info",
            kinds=(LayerDescriptor,),
            needs=_LAYER_NEEDS,
            request=lambda ctx: Request("GET", f"{_layer_path(ctx.descriptor)}/data"),
            shape=_body,
        ),
    )
}
