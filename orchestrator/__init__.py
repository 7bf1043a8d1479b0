"""Descriptor resolution and request orchestration for the Abstract API."""

from common.errors import AbstractSDKError, InvalidDescriptor, NotFound, TransportError, UpstreamError

from .client import Client
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
    coerce_descriptor,
    infer_descriptor,
)
from .resolver import Resolution, Resolver

__all__ = [
    "AbstractSDKError",
    "BranchDescriptor",
    "Client",
    "CollectionDescriptor",
    "CommitDescriptor",
    "Descriptor",
    "DescriptorKind",
    "FileDescriptor",
    "InvalidDescriptor",
    "LayerDescriptor",
    "NotFound",
    "OrganizationDescriptor",
    "PageDescriptor",
    "Pin",
    "ProjectDescriptor",
    "Resolution",
    "Resolver",
    "TransportError",
    "UpstreamError",
    "coerce_descriptor",
    "infer_descriptor",
]
