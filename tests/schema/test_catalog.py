import pytest

from application.services.resolver import resolve
from domain.common.exceptions import SchemaLoadError
from domain.schema import (
    UNKNOWN_NAMESPACE,
    Namespace,
    SchemaFormat,
    SchemaSource,
    ServiceDefinition,
)
from infrastructure.schema import build_tree, load_catalog, merge_definitions


def _sources(proto_path, *names):
    return [SchemaSource.from_path(proto_path(n)) for n in names]


def _compile_descriptor_set(proto_path, name, out, include_imports=True):
    from grpc_tools import protoc
    from infrastructure.schema.parsers import well_known_include_dir

    source = proto_path(name)
    args = [
        "grpc_tools.protoc",
        f"--proto_path={source.rsplit('/', 1)[0]}",
        f"--proto_path={well_known_include_dir()}",
        f"--descriptor_set_out={out}",
        source,
    ]
    if include_imports:
        args.insert(-1, "--include_imports")
    assert protoc.main(args) == 0
    return str(out)


def test_source_format_follows_extension():
    assert SchemaSource.from_path("x/service.proto").format is SchemaFormat.PROTO
    assert SchemaSource.from_path("x/service.pb").format is SchemaFormat.DESCRIPTOR_SET


def test_single_package_resolves_to_fqn(proto_path):
    tree = load_catalog(_sources(proto_path, "greeter.proto"))
    greeter = tree["a"]["b"]["Greeter"]
    assert isinstance(greeter, ServiceDefinition)
    assert greeter.methods == ["SayHello", "SayHellos", "Fail"]
    assert [s.fqn for s in resolve(tree)] == ["a.b.Greeter"]


def test_first_listed_source_wins(proto_path):
    tree = load_catalog(_sources(proto_path, "foo_first.proto", "foo_second.proto"))
    assert tree[UNKNOWN_NAMESPACE]["Foo"].methods == ["First"]
    # keys only the later source defines are still merged in
    assert tree[UNKNOWN_NAMESPACE]["Bar"].methods == ["Ping"]

    reversed_tree = load_catalog(_sources(proto_path, "foo_second.proto", "foo_first.proto"))
    assert reversed_tree[UNKNOWN_NAMESPACE]["Foo"].methods == ["Second"]


@pytest.mark.parametrize(
    "partials, expected",
    [
        ([{"Foo": "s0"}, {"Foo": "s1"}], {"Foo": "s0"}),
        ([{"Foo": "s0"}, {"Foo": "s1"}, {"Foo": "s2", "Bar": "s2"}], {"Foo": "s0", "Bar": "s2"}),
        ([{"Bar": "s0"}, {"Foo": "s1"}, {"Foo": "s2", "Bar": "s2"}], {"Foo": "s1", "Bar": "s0"}),
        ([{}, {"Foo": "s1"}], {"Foo": "s1"}),
    ],
)
def test_merge_takes_value_from_earliest_defining_source(partials, expected):
    assert merge_definitions(partials) == expected


def test_packageless_services_move_under_unknown(proto_path):
    tree = load_catalog(_sources(proto_path, "foo_second.proto"))
    assert set(tree.children) == {UNKNOWN_NAMESPACE}
    fqns = sorted(s.fqn for s in resolve(tree))
    assert fqns == ["unknown.Bar", "unknown.Foo"]


def test_unknown_namespace_always_present(proto_path):
    tree = load_catalog(_sources(proto_path, "greeter.proto"))
    assert isinstance(tree[UNKNOWN_NAMESPACE], Namespace)
    assert tree[UNKNOWN_NAMESPACE].children == {}


def test_existing_unknown_package_is_extended():
    svc = ServiceDefinition(name="Svc", descriptor=None)
    tree = build_tree({"unknown.Real": svc, "Loose": svc})
    assert set(tree[UNKNOWN_NAMESPACE].children) == {"Real", "Loose"}


def test_imports_of_well_known_types(proto_path):
    tree = load_catalog(_sources(proto_path, "shop.proto"))
    assert sorted(s.fqn for s in resolve(tree)) == ["shop.v1.CartService", "shop.v1.OrderService"]


def test_descriptor_set_matches_proto(proto_path, tmp_path):
    pb = _compile_descriptor_set(proto_path, "greeter.proto", tmp_path / "greeter.pb")
    tree = load_catalog([SchemaSource.from_path(pb)])
    assert [s.fqn for s in resolve(tree)] == ["a.b.Greeter"]


def test_descriptor_set_without_imports_borrows_well_known_types(proto_path, tmp_path):
    pb = _compile_descriptor_set(proto_path, "shop.proto", tmp_path / "shop.pb", include_imports=False)
    tree = load_catalog([SchemaSource.from_path(pb)])
    assert len(resolve(tree)) == 2


def test_mixed_formats_merge(proto_path, tmp_path):
    pb = _compile_descriptor_set(proto_path, "foo_second.proto", tmp_path / "second.pb")
    tree = load_catalog([SchemaSource.from_path(proto_path("foo_first.proto")), SchemaSource.from_path(pb)])
    assert tree[UNKNOWN_NAMESPACE]["Foo"].methods == ["First"]


def test_unparsable_proto_fails(proto_path):
    with pytest.raises(SchemaLoadError):
        load_catalog(_sources(proto_path, "broken.proto"))


def test_missing_file_fails(tmp_path):
    with pytest.raises(SchemaLoadError):
        load_catalog([SchemaSource.from_path(str(tmp_path / "nope.proto"))])
    with pytest.raises(SchemaLoadError):
        load_catalog([SchemaSource.from_path(str(tmp_path / "nope.pb"))])


def test_garbage_descriptor_set_fails(tmp_path):
    bad = tmp_path / "bad.pb"
    bad.write_bytes(b"\xff\xff\xff\xff")
    with pytest.raises(SchemaLoadError):
        load_catalog([SchemaSource.from_path(str(bad))])


def test_no_partial_catalog_on_failure(proto_path):
    with pytest.raises(SchemaLoadError):
        load_catalog(_sources(proto_path, "greeter.proto", "broken.proto"))


def test_no_sources_is_an_error():
    with pytest.raises(SchemaLoadError):
        load_catalog([])
