import pytest

from orchestrator.lookups import (
    BRANCH_HEAD,
    LATEST_COMMIT,
    LAYER_INFO,
    LOOKUP_TABLE,
    UNRESOLVABLE,
    Pin,
    lookup_for,
)
from orchestrator.models import DESCRIPTOR_TYPES, DescriptorKind, LayerDescriptor
from common.errors import NotFound, UpstreamError
from transports.transport_interface import TransportResponse


def _optional_fields(cls):
    return [name for name, info in cls.model_fields.items() if not info.is_required()]


@pytest.mark.parametrize("pin", list(Pin))
@pytest.mark.parametrize("kind", list(DescriptorKind))
def test_every_optional_field_is_classified(kind, pin):
    """Each optional field either has a lookup or is declared unresolvable, never both."""
    for name in _optional_fields(DESCRIPTOR_TYPES[kind]):
        in_table = (kind, name) in LOOKUP_TABLE[pin]
        unresolvable = (kind, name) in UNRESOLVABLE
        assert in_table != unresolvable, f"{kind.value}.{name}"


def test_table_only_names_real_fields():
    for pin, table in LOOKUP_TABLE.items():
        for kind, name in table:
            assert name in DESCRIPTOR_TYPES[kind].model_fields, f"{pin}: {kind.value}.{name}"


def test_lookup_providers_only_require_fields_of_the_kind():
    for table in LOOKUP_TABLE.values():
        for (kind, _), lookup in table.items():
            for name in lookup.requires:
                assert name in DESCRIPTOR_TYPES[kind].model_fields


def test_sha_is_pinned_by_branch_head_or_latest_commit():
    assert lookup_for(DescriptorKind.LAYER, "sha") is BRANCH_HEAD
    assert lookup_for(DescriptorKind.LAYER, "sha", Pin.LATEST_COMMIT) is LATEST_COMMIT
    assert lookup_for(DescriptorKind.LAYER, "page_id") is LAYER_INFO
    assert lookup_for(DescriptorKind.COMMIT, "sha") is None
    assert lookup_for(DescriptorKind.LAYER, "file_id") is None


@pytest.mark.parametrize(
    "body, sha",
    [
        ({"name": "branch-name"}, "branch-name"),
        ({"head": "head-sha", "name": "master"}, "head-sha"),
        ({"sha": "the-sha", "name": "master"}, "the-sha"),
    ],
)
def test_branch_head_reads_head_sha(body, sha):
    assert BRANCH_HEAD.extract(TransportResponse(200, body)) == {"sha": sha}


def test_branch_head_without_any_sha_is_upstream_error():
    with pytest.raises(UpstreamError):
        BRANCH_HEAD.extract(TransportResponse(200, {}))


def test_latest_commit_takes_first_entry():
    response = TransportResponse(200, {"data": {"commits": [{"sha": "commit-sha"}, {"sha": "next-commit-sha"}]}})
    assert LATEST_COMMIT.extract(response) == {"sha": "commit-sha"}


def test_latest_commit_on_empty_listing_is_not_found():
    with pytest.raises(NotFound):
        LATEST_COMMIT.extract(TransportResponse(200, {"data": {"commits": []}}))


def test_latest_commit_request_is_scoped_to_the_layer():
    layer = LayerDescriptor(project_id="p", branch_id="b", file_id="f", layer_id="l")
    request = LATEST_COMMIT.request(layer)
    assert request.path == "projects/p/branches/b/commits"
    assert request.query == {"fileId": "f", "layerId": "l", "limit": 1}


def test_layer_info_locates_the_layer_and_names_it():
    response = TransportResponse(
        200,
        {"layer": {"name": "Header"}, "page": {"id": "page-id", "name": "Desktop"}, "file": {"name": "Home.sketch"}},
    )
    assert LAYER_INFO.extract(response) == {
        "page_id": "page-id",
        "file_name": "Home.sketch",
        "page_name": "Desktop",
        "layer_name": "Header",
    }


def test_layer_info_without_names_is_upstream_error():
    with pytest.raises(UpstreamError):
        LAYER_INFO.extract(TransportResponse(200, {"layer": {}, "page": {"id": "page-id"}, "file": {}}))


@pytest.mark.parametrize("name", ["page_id", "file_name", "page_name", "layer_name"])
def test_layer_location_fields_come_from_layer_info(name):
    for pin in Pin:
        assert lookup_for(DescriptorKind.LAYER, name, pin) is LAYER_INFO
