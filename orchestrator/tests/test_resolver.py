import pytest

from common.errors import InvalidDescriptor, NotFound, TransportError, UpstreamError
from orchestrator import BranchDescriptor, CommitDescriptor, FileDescriptor, LayerDescriptor, Pin, Resolver
from orchestrator.lookups import BRANCH_HEAD, LAYER_INFO
from transports.transport_interface import TransportResponse

LAYER_INFO_BODY = {
    "layer": {"name": "layer-name"},
    "page": {"name": "page-name", "id": "page-id"},
    "file": {"name": "file-name"},
}


@pytest.fixture
def resolver(transport):
    return Resolver(transport)


def test_complete_descriptor_needs_no_lookups(resolver, transport):
    layer = LayerDescriptor(project_id="p", branch_id="b", sha="s", file_id="f", page_id="pg", layer_id="l")
    resolution = resolver.resolve(layer, ("project_id", "sha", "file_id", "page_id", "layer_id"))
    assert resolution.descriptor is layer
    assert resolution.responses == {}
    assert transport.calls == []


def test_explicit_sha_skips_branch_head(resolver, transport):
    branch = BranchDescriptor(project_id="p", branch_id="b", sha="pinned")
    resolution = resolver.resolve(branch, ("sha",))
    assert resolution.descriptor.sha == "pinned"
    assert transport.calls == []


def test_missing_sha_resolves_through_branch_head(resolver, transport):
    transport.queue({"name": "branch-name"})
    file = FileDescriptor(project_id="p", branch_id="b", file_id="f")
    resolution = resolver.resolve(file, ("sha", "file_id"))
    assert resolution.descriptor == file.layered({"sha": "branch-name"})
    assert transport.paths == ["projects/p/branches/b"]
    assert file.sha is None


def test_dependent_lookups_run_in_order(resolver, transport):
    transport.queue({"name": "branch-name"}, LAYER_INFO_BODY)
    layer = LayerDescriptor(project_id="p", branch_id="b", file_id="f", layer_id="l")
    resolution = resolver.resolve(layer, ("sha", "page_id"))
    assert transport.paths == [
        "projects/p/branches/b",
        "projects/p/commits/branch-name/files/f/layers/l",
    ]
    assert resolution.descriptor.sha == "branch-name"
    assert resolution.descriptor.page_id == "page-id"
    assert resolution.response("layer_info").body == LAYER_INFO_BODY


def test_plan_groups_lookups_in_waves(resolver):
    layer = LayerDescriptor(project_id="p", branch_id="b", file_id="f", layer_id="l")
    assert resolver.plan(layer, ("sha", "page_id")) == [[BRANCH_HEAD], [LAYER_INFO]]
    assert resolver.plan(layer.layered({"sha": "s"}), ("sha", "page_id")) == [[LAYER_INFO]]


def test_a_lookup_serving_several_needs_is_issued_once(resolver, transport):
    transport.queue({"name": "branch-name"}, LAYER_INFO_BODY)
    layer = LayerDescriptor(project_id="p", branch_id="b", file_id="f", layer_id="l")
    resolver.resolve(layer, ("sha", "page_id", "sha"))
    assert len(transport.calls) == 2


def test_latest_commit_pin(resolver, transport):
    transport.queue({"data": {"commits": [{"sha": "commit-sha"}, {"sha": "next-commit-sha"}]}})
    layer = LayerDescriptor(project_id="p", branch_id="b", file_id="f", layer_id="l")
    resolution = resolver.resolve(layer, ("sha",), Pin.LATEST_COMMIT)
    assert resolution.descriptor.sha == "commit-sha"
    assert transport.calls[0].path == "projects/p/branches/b/commits"
    assert transport.calls[0].query == {"fileId": "f", "layerId": "l", "limit": 1}


def test_unresolvable_field_fails_before_any_request(resolver, transport):
    layer = LayerDescriptor(project_id="p", sha="s", file_id="f", layer_id="l")
    with pytest.raises(InvalidDescriptor):
        resolver.resolve(layer, ("branch_id",))
    commit = CommitDescriptor(project_id="p", sha="s")
    with pytest.raises(InvalidDescriptor):
        resolver.resolve(commit, ("file_id",))
    assert transport.calls == []


def test_lookup_inputs_that_cannot_be_supplied_fail_early(resolver, transport):
    # branch head needs branch_id, which a bare layer cannot provide
    layer = LayerDescriptor(project_id="p", file_id="f", layer_id="l")
    with pytest.raises(InvalidDescriptor):
        resolver.resolve(layer, ("sha",))
    assert transport.calls == []


def test_offline_resolution_refuses_lookups(resolver, transport):
    layer = LayerDescriptor(project_id="p", branch_id="b", file_id="f", layer_id="l")
    with pytest.raises(InvalidDescriptor):
        resolver.resolve(layer, ("sha",), pin=None)
    assert transport.calls == []


def test_failing_second_lookup_returns_nothing(resolver, transport):
    transport.queue({"name": "branch-name"}, TransportResponse(404, {"error": "missing layer"}))
    layer = LayerDescriptor(project_id="p", branch_id="b", file_id="f", layer_id="l")
    with pytest.raises(UpstreamError) as excinfo:
        resolver.resolve(layer, ("sha", "page_id"))
    assert excinfo.value.status == 404
    assert excinfo.value.body == {"error": "missing layer"}
    assert len(transport.calls) == 2


def test_failing_first_lookup_stops_the_chain(resolver, transport):
    transport.queue(TransportError("unreachable"))
    layer = LayerDescriptor(project_id="p", branch_id="b", file_id="f", layer_id="l")
    with pytest.raises(TransportError):
        resolver.resolve(layer, ("sha", "page_id"))
    assert len(transport.calls) == 1


def test_empty_commit_listing_is_not_found(resolver, transport):
    transport.queue({"data": {"commits": []}})
    branch = BranchDescriptor(project_id="p", branch_id="b")
    with pytest.raises(NotFound):
        resolver.resolve(branch, ("sha",), Pin.LATEST_COMMIT)


def test_independent_lookups_in_one_wave_all_complete(resolver, transport):
    transport.queue({"name": "branch-name"}, LAYER_INFO_BODY)
    layer = LayerDescriptor(project_id="p", branch_id="b", sha="s", file_id="f", layer_id="l")
    results = resolver._run_wave(layer, [BRANCH_HEAD, LAYER_INFO])
    assert [lookup.name for lookup, _ in results] == ["branch_head", "layer_info"]
    assert len(transport.calls) == 2
