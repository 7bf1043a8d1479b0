"""Pydantic models for resource descriptors.

A descriptor is an immutable, partially filled record of identifiers that
addresses one resource of the design-versioning service. Optional fields
may be missing and filled in later by the resolver, which always builds a
new descriptor with ``layered`` instead of editing the caller's one.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Iterable, Mapping

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from common.errors import InvalidDescriptor


class DescriptorKind(str, Enum):
    ORGANIZATION = "organization"
    PROJECT = "project"
    BRANCH = "branch"
    COMMIT = "commit"
    FILE = "file"
    PAGE = "page"
    LAYER = "layer"
    COLLECTION = "collection"


class Descriptor(BaseModel):
    """Base class for every descriptor kind."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel, extra="ignore")

    kind: ClassVar[DescriptorKind]

    def missing(self, fields: Iterable[str]) -> tuple[str, ...]:
        """Fields of ``fields`` that are absent. Fields this kind does not carry count as absent."""
        return tuple(name for name in fields if getattr(self, name, None) is None)

    def layered(self, values: Mapping[str, Any]) -> Descriptor:
        """Return a new descriptor with ``values`` filling only the fields that are still empty."""
        update = {
            name: value
            for name, value in values.items()
            if name in type(self).model_fields and getattr(self, name) is None and value is not None
        }
        if not update:
            return self
        return self.model_copy(update=update)

    def wire(self) -> dict[str, Any]:
        """camelCase identifiers that are present, as sent to the service."""
        return self.model_dump(by_alias=True, exclude_none=True)


class OrganizationDescriptor(Descriptor):
    kind: ClassVar[DescriptorKind] = DescriptorKind.ORGANIZATION
    organization_id: str


class ProjectDescriptor(Descriptor):
    kind: ClassVar[DescriptorKind] = DescriptorKind.PROJECT
    organization_id: str | None = None
    project_id: str


class BranchDescriptor(Descriptor):
    """Current head of a branch, or the branch pinned at ``sha``."""

    kind: ClassVar[DescriptorKind] = DescriptorKind.BRANCH
    project_id: str
    branch_id: str
    sha: str | None = None


class CommitDescriptor(Descriptor):
    kind: ClassVar[DescriptorKind] = DescriptorKind.COMMIT
    project_id: str
    branch_id: str | None = None
    sha: str


class FileDescriptor(Descriptor):
    kind: ClassVar[DescriptorKind] = DescriptorKind.FILE
    project_id: str
    branch_id: str | None = None
    sha: str | None = None
    file_id: str


class PageDescriptor(Descriptor):
    kind: ClassVar[DescriptorKind] = DescriptorKind.PAGE
    project_id: str
    branch_id: str | None = None
    sha: str | None = None
    file_id: str
    page_id: str


class LayerDescriptor(Descriptor):
    """A layer, located on its page. The names travel with comments posted on it."""

    kind: ClassVar[DescriptorKind] = DescriptorKind.LAYER
    project_id: str
    branch_id: str | None = None
    sha: str | None = None
    file_id: str
    page_id: str | None = None
    layer_id: str
    file_name: str | None = None
    page_name: str | None = None
    layer_name: str | None = None


class CollectionDescriptor(Descriptor):
    kind: ClassVar[DescriptorKind] = DescriptorKind.COLLECTION
    project_id: str
    branch_id: str | None = None
    collection_id: str


DESCRIPTOR_TYPES: dict[DescriptorKind, type[Descriptor]] = {
    cls.kind: cls
    for cls in (
        OrganizationDescriptor,
        ProjectDescriptor,
        BranchDescriptor,
        CommitDescriptor,
        FileDescriptor,
        PageDescriptor,
        LayerDescriptor,
        CollectionDescriptor,
    )
}

# Most specific first: the first identifying key found decides the kind.
_INFERENCE_ORDER: tuple[tuple[str, DescriptorKind], ...] = (
    ("layer_id", DescriptorKind.LAYER),
    ("page_id", DescriptorKind.PAGE),
    ("file_id", DescriptorKind.FILE),
    ("collection_id", DescriptorKind.COLLECTION),
    ("branch_id", DescriptorKind.BRANCH),
    ("sha", DescriptorKind.COMMIT),
    ("project_id", DescriptorKind.PROJECT),
    ("organization_id", DescriptorKind.ORGANIZATION),
)


# ---------------------------------------------------------------------------
# helpers


def infer_descriptor(value: Mapping[str, Any]) -> Descriptor:
    """Build the most specific descriptor the keys of ``value`` allow."""
    present = {_snake(key) for key, item in value.items() if item is not None}
    for key, kind in _INFERENCE_ORDER:
        if key in present:
            return _build(DESCRIPTOR_TYPES[kind], value)
    raise InvalidDescriptor(f"Cannot infer a descriptor from keys {sorted(value)}")


def coerce_descriptor(value: Any, kinds: Iterable[type[Descriptor]]) -> Descriptor:
    """Normalize ``value`` into a descriptor of one of ``kinds``."""
    kinds = tuple(kinds)
    if isinstance(value, Descriptor):
        descriptor = value
    elif isinstance(value, Mapping):
        descriptor = infer_descriptor(value)
    else:
        raise InvalidDescriptor(f"Unsupported descriptor value: {value!r}")
    if not isinstance(descriptor, kinds):
        expected = ", ".join(cls.kind.value for cls in kinds)
        raise InvalidDescriptor(f"Expected a {expected} descriptor, got {descriptor.kind.value}")
    return descriptor


def _build(cls: type[Descriptor], value: Mapping[str, Any]) -> Descriptor:
    try:
        return cls.model_validate(dict(value))
    except ValidationError as exc:
        raise InvalidDescriptor(f"Invalid {cls.kind.value} descriptor: {exc}") from exc


def _snake(name: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in name)


__all__ = [
    "BranchDescriptor",
    "CollectionDescriptor",
    "CommitDescriptor",
    "DESCRIPTOR_TYPES",
    "Descriptor",
    "DescriptorKind",
    "FileDescriptor",
    "LayerDescriptor",
    "OrganizationDescriptor",
    "PageDescriptor",
    "ProjectDescriptor",
    "coerce_descriptor",
    "infer_descriptor",
]
