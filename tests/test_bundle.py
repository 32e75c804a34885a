import json

import pytest

from flowcanvas.bundle import BundleError, build_bundle, dumps_bundle, parse_bundle
from flowcanvas.models import Edge, Node, Snapshot, StateVariable, Version


@pytest.fixture
def snapshot():
    return Snapshot.of(
        [
            Node(id="p", type="page", x=0, y=0, width=600, height=400, title="Home", docs="Start here"),
            Node(id="e", type="entity", x=10, y=20, width=250, height=120, parent_id="p",
                 variables=(StateVariable(id="v1", key="email", value='"a@b.c"'),)),
            Node(id="x", type="external", x=700, y=20, width=250, height=120, title="Stripe"),
        ],
        [Edge(id="e1", source_id="e", target_id="x", label="Pay", type="system", condition="total > 0")],
    )


def test_bundle_uses_camel_case_keys(snapshot):
    data = build_bundle(snapshot, [])
    assert data["history"] == []
    entity = data["nodes"][1]
    assert entity["parentId"] == "p"
    assert entity["variables"] == [{"id": "v1", "key": "email", "value": '"a@b.c"'}]
    assert "docs" not in entity
    assert data["nodes"][0]["docs"] == "Start here"
    assert data["edges"][0] == {
        "id": "e1", "sourceId": "e", "targetId": "x",
        "label": "Pay", "type": "system", "condition": "total > 0",
    }


def test_versions_are_flattened(snapshot):
    version = Version(id="v", name="Launch", timestamp="2024-01-01T00:00:00Z", snapshot=snapshot)
    data = json.loads(dumps_bundle(Snapshot(), [version]))
    record = data["history"][0]
    assert (record["id"], record["name"], record["timestamp"]) == ("v", "Launch", "2024-01-01T00:00:00Z")
    assert [n["id"] for n in record["nodes"]] == ["p", "e", "x"]

    parsed = parse_bundle(json.dumps(data))
    assert parsed.is_full_bundle
    assert parsed.versions == [version]


def test_bare_file_has_no_versions(snapshot):
    parsed = parse_bundle(json.dumps(snapshot.to_dict()))
    assert not parsed.is_full_bundle
    assert parsed.snapshot == snapshot


def test_unicode_survives(snapshot):
    text = dumps_bundle(snapshot.replace_node("x", title="Zahlung über Stripe"), [])
    assert "über" in text
    assert parse_bundle(text).snapshot.node("x").title == "Zahlung über Stripe"


@pytest.mark.parametrize("text", [
    "",
    "{oops",
    "[]",
    '{"nodes": []}',
    '{"nodes": {}, "edges": []}',
    '{"nodes": [], "edges": [], "history": {}}',
    '{"nodes": [], "edges": [], "history": [42]}',
    '{"nodes": [], "edges": [], "history": [{"nodes": "x", "edges": []}]}',
    '{"nodes": [7], "edges": []}',
    '{"nodes": [{"type": "ui"}], "edges": []}',
    '{"nodes": [{"id": "a", "type": "widget"}], "edges": []}',
    '{"nodes": [{"id": "a", "type": "ui", "x": "left"}], "edges": []}',
    '{"nodes": [], "edges": [{"id": "e", "sourceId": "a"}]}',
    '{"nodes": [], "edges": [{"id": "e", "sourceId": "a", "targetId": "b", "type": "teleport"}]}',
])
def test_malformed_files_raise(text):
    with pytest.raises(BundleError):
        parse_bundle(text)


@pytest.mark.parametrize("variables", ["[1]", '"ab"', '{"id": "v"}', '[{"id": "v"}, null]'])
def test_malformed_variables_raise(variables):
    text = '{"nodes": [{"id": "a", "type": "entity", "variables": %s}], "edges": []}' % variables
    with pytest.raises(BundleError, match="variables"):
        parse_bundle(text)
