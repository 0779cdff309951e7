"""
Tests for graph persistence.
"""

import json

import pytest

from node_compositor.core.errors import (
    CycleError,
    DocumentFormatError,
    InputAlreadyConnectedError,
    InvalidParameterError,
    TypeMismatchError,
    UnknownKindError,
    UnsupportedVersionError,
)
from node_compositor.core.graph import NodeGraph, Point2D
from node_compositor.core.node_types import NodeRegistry
from node_compositor.core.serialization import (
    FORMAT_VERSION,
    GRAPH_SUFFIX,
    deserialize,
    dumps,
    list_saved_graphs,
    load_graph,
    loads,
    save_graph,
    serialize,
)
from node_compositor.nodes import build_default_graph, register_all_nodes


def make_registry() -> NodeRegistry:
    return register_all_nodes(NodeRegistry())


def make_graph(registry):
    """Default chain plus a composite fed by a second input and a time-driven blur radius."""
    graph = build_default_graph(registry, name="Round Trip")
    grade = graph.find_node("Color Grade")
    blur = graph.find_node("Blur")
    graph.set_parameter(grade.id, "saturation", 1.5)
    graph.set_parameter(grade.id, "tint", "#ffcc99")

    overlay = registry.create_node("io.input", "Overlay", Point2D(100, 300))
    clock = registry.create_node("value.time", "Clock", Point2D(300, 300))
    comp = registry.create_node("composite.blend", "Comp", Point2D(600, 300))
    for node in (overlay, clock, comp):
        graph.add_node(node)
    graph.set_parameter(comp.id, "mode", "screen")
    graph.connect(blur.output("image"), comp.input("background"))
    graph.connect(overlay.output("image"), comp.input("foreground"))
    graph.connect(clock.output("time"), blur.input("radius"))
    return graph


def snapshot(graph: NodeGraph):
    nodes = [
        (n.id, n.type_id, n.name, n.position, dict(n.parameters))
        for n in graph
    ]
    connections = sorted(
        (c.id, c.source, c.target) for c in graph.connections
    )
    return graph.id, graph.name, nodes, connections


class TestSerialize:
    """Tests for the document layout."""

    def test_document_fields(self):
        registry = make_registry()
        graph = build_default_graph(registry)

        document = serialize(graph)

        assert document["format"] == "node-compositor"
        assert document["version"] == FORMAT_VERSION
        assert document["id"] == str(graph.id)
        assert [n["kind"] for n in document["nodes"]] == [
            "io.input", "color.grade", "effect.blur", "io.output",
        ]
        assert document["nodes"][0]["position"] == {"x": 100, "y": 100}
        assert len(document["connections"]) == 3

    def test_connection_endpoints_are_port_indices(self):
        registry = make_registry()
        graph = build_default_graph(registry)
        source = graph.find_node("Input")
        grade = graph.find_node("Color Grade")

        first = serialize(graph)["connections"][0]

        assert first["source"] == {"node": str(source.id), "port": 0}
        assert first["target"] == {"node": str(grade.id), "port": 0}

    def test_json_compatible(self):
        registry = make_registry()
        text = dumps(make_graph(registry))
        document = json.loads(text)
        grade = next(n for n in document["nodes"] if n["kind"] == "color.grade")
        assert grade["parameters"]["tint"] == [1.0, 0.8, 0.6, 1.0]


class TestRoundTrip:
    """Tests for serialize -> deserialize."""

    def test_round_trip(self):
        registry = make_registry()
        graph = make_graph(registry)

        restored = deserialize(serialize(graph), registry)

        assert snapshot(restored) == snapshot(graph)

    def test_round_trip_through_text(self):
        registry = make_registry()
        graph = make_graph(registry)

        restored = loads(dumps(graph), registry)

        assert snapshot(restored) == snapshot(graph)
        assert serialize(restored) == serialize(graph)

    def test_restored_graph_enforces_rules(self):
        registry = make_registry()
        restored = loads(dumps(make_graph(registry)), registry)
        grade = restored.find_node("Color Grade")
        output = restored.find_node("Output")

        with pytest.raises(CycleError):
            restored.connect(output.input("image"), output.input("image"))
        with pytest.raises(InputAlreadyConnectedError):
            restored.connect(grade.output("image"), output.input("image"))

    def test_empty_name_survives(self):
        registry = make_registry()
        graph = build_default_graph(registry)
        blur = graph.find_node("Blur")
        blur.name = ""

        restored = loads(dumps(graph), registry)

        assert restored.get_node(blur.id).name == ""
        assert snapshot(restored) == snapshot(graph)


class TestDeserializeErrors:
    """Tests for rejected documents."""

    def test_unknown_kind(self):
        registry = make_registry()
        document = serialize(build_default_graph(registry))
        document["nodes"][1]["kind"] = "LegacyGlow"

        with pytest.raises(UnknownKindError):
            deserialize(document, registry)

    def test_unsupported_version(self):
        registry = make_registry()
        document = serialize(build_default_graph(registry))

        for version in (2, 0, "1", True):
            document["version"] = version
            with pytest.raises(UnsupportedVersionError):
                deserialize(document, registry)

    def test_missing_version(self):
        registry = make_registry()
        document = serialize(build_default_graph(registry))
        del document["version"]

        with pytest.raises(DocumentFormatError):
            deserialize(document, registry)

    def test_wrong_format(self):
        registry = make_registry()
        document = serialize(build_default_graph(registry))
        document["format"] = "something-else"

        with pytest.raises(DocumentFormatError):
            deserialize(document, registry)

    def test_type_mismatch_in_document(self):
        registry = make_registry()
        graph = make_graph(registry)
        document = serialize(graph)
        clock = graph.find_node("Clock")
        output = graph.find_node("Output")
        document["connections"].append({
            "id": None,
            "source": {"node": str(clock.id), "port": 0},
            "target": {"node": str(output.id), "port": 0},
        })

        # Output's input is already fed, but the type check comes first
        with pytest.raises(TypeMismatchError):
            deserialize(document, registry)

    def test_cycle_in_document(self):
        registry = make_registry()
        graph = build_default_graph(registry)
        document = serialize(graph)
        # Drop Input -> Grade and feed Grade from Blur instead
        grade = graph.find_node("Color Grade")
        blur = graph.find_node("Blur")
        document["connections"][0] = {
            "id": document["connections"][0]["id"],
            "source": {"node": str(blur.id), "port": 2},
            "target": {"node": str(grade.id), "port": 0},
        }

        with pytest.raises(CycleError):
            deserialize(document, registry)

    def test_invalid_parameter(self):
        registry = make_registry()
        document = serialize(build_default_graph(registry))
        document["nodes"][2]["parameters"]["radius"] = -5

        with pytest.raises(InvalidParameterError):
            deserialize(document, registry)

    def test_malformed_entries(self):
        registry = make_registry()
        good = serialize(build_default_graph(registry))

        bad_id = json.loads(json.dumps(good))
        bad_id["nodes"][0]["id"] = "not-a-uuid"
        bad_nodes = dict(good, nodes={"oops": 1})
        bad_port = json.loads(json.dumps(good))
        bad_port["connections"][0]["source"]["port"] = "0"
        missing_kind = json.loads(json.dumps(good))
        del missing_kind["nodes"][0]["kind"]
        list_kind = json.loads(json.dumps(good))
        list_kind["nodes"][0]["kind"] = ["io.input"]
        number_name = json.loads(json.dumps(good))
        number_name["nodes"][0]["name"] = 123

        documents = (bad_id, bad_nodes, bad_port, missing_kind, list_kind, number_name, [1, 2])
        for document in documents:
            with pytest.raises(DocumentFormatError):
                deserialize(document, registry)

    def test_invalid_json(self):
        with pytest.raises(DocumentFormatError):
            loads("{not json", make_registry())


class TestFiles:
    """Tests for saving and loading documents on disk."""

    def test_save_and_load(self, tmp_path):
        registry = make_registry()
        graph = make_graph(registry)
        path = tmp_path / "graphs" / f"intro{GRAPH_SUFFIX}"

        assert save_graph(graph, path) == path
        restored = load_graph(path, registry)

        assert snapshot(restored) == snapshot(graph)
        assert "saved_at" in json.loads(path.read_text())

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_graph(tmp_path / "nope.graph.json", make_registry())

    def test_list_saved_graphs(self, tmp_path):
        registry = make_registry()
        save_graph(build_default_graph(registry, name="One"), tmp_path / f"one{GRAPH_SUFFIX}")
        save_graph(make_graph(registry), tmp_path / f"two{GRAPH_SUFFIX}")
        (tmp_path / f"broken{GRAPH_SUFFIX}").write_text("{")
        (tmp_path / "notes.txt").write_text("ignored")

        listed = list_saved_graphs(tmp_path)

        assert sorted(g["name"] for g in listed) == ["One", "Round Trip"]
        counts = {g["name"]: g["node_count"] for g in listed}
        assert counts == {"One": 4, "Round Trip": 7}

    def test_list_missing_directory(self, tmp_path):
        assert list_saved_graphs(tmp_path / "absent") == []
