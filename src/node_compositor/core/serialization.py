"""
Graph Persistence - Save and load compositing graphs.

This module converts a NodeGraph to and from a versioned, JSON-friendly
document. Loading rebuilds nodes through the kind registry and every
connection through NodeGraph.connect, so a hand-edited document that
breaks a graph rule fails with the same error as a live edit.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from node_compositor.core.errors import (
    DocumentFormatError,
    UnsupportedVersionError,
)
from node_compositor.core.graph import (
    ConnectionId,
    NodeGraph,
    NodeId,
    Point2D,
    PortRef,
    Size2D,
)
from node_compositor.core.node_types import NodeRegistry


logger = logging.getLogger(__name__)

DOCUMENT_FORMAT = "node-compositor"
FORMAT_VERSION = 1
SUPPORTED_VERSIONS = (1,)
GRAPH_SUFFIX = ".graph.json"


def serialize(graph: NodeGraph) -> dict[str, Any]:
    """
    Convert a graph to a document.

    Nodes are listed in insertion order; connection endpoints are
    (node id, port index) pairs.
    """
    nodes_data = [
        {
            "id": str(node.id),
            "kind": node.type_id,
            "name": node.name,
            "position": {"x": node.position.x, "y": node.position.y},
            "size": {"width": node.size.width, "height": node.size.height},
            "parameters": {
                name: list(value) if isinstance(value, tuple) else value
                for name, value in node.parameters.items()
            },
        }
        for node in graph
    ]

    connections_data = [
        {
            "id": str(conn.id),
            "source": {"node": str(conn.source.node_id), "port": conn.source.index},
            "target": {"node": str(conn.target.node_id), "port": conn.target.index},
        }
        for conn in graph.connections
    ]

    return {
        "format": DOCUMENT_FORMAT,
        "version": FORMAT_VERSION,
        "id": str(graph.id),
        "name": graph.name,
        "nodes": nodes_data,
        "connections": connections_data,
    }


def deserialize(document: dict[str, Any], registry: NodeRegistry | None = None) -> NodeGraph:
    """
    Rebuild a graph from a document.

    The graph is assembled privately and only returned once every node
    and connection has been validated.

    Raises:
        UnsupportedVersionError: If the document version is unknown.
        UnknownKindError: If a node kind is not registered.
        InvalidParameterError: If a stored parameter fails validation.
        DocumentFormatError: If the document is malformed.
        CompositorError: Any connection rule violation (type mismatch,
            cycle, doubly-fed input, ...).
    """
    if registry is None:
        registry = NodeRegistry.instance()

    if not isinstance(document, dict):
        raise DocumentFormatError("Graph document must be an object")
    if "version" not in document:
        raise DocumentFormatError("Graph document has no version")
    version = document["version"]
    if isinstance(version, bool) or version not in SUPPORTED_VERSIONS:
        raise UnsupportedVersionError(version)
    if document.get("format", DOCUMENT_FORMAT) != DOCUMENT_FORMAT:
        raise DocumentFormatError(f"Not a graph document: {document.get('format')!r}")

    graph = NodeGraph(
        name=str(document.get("name", "Untitled")),
        graph_id=_parse_uuid(document["id"], "graph id") if document.get("id") else None,
    )

    for entry in _list_field(document, "nodes"):
        try:
            node_id = NodeId(_parse_uuid(entry["id"], "node id"))
            kind = entry["kind"]
            name = entry.get("name")
            position = entry.get("position", {"x": 0.0, "y": 0.0})
            point = Point2D(float(position["x"]), float(position["y"]))
            parameters = entry.get("parameters", {})
            size = entry.get("size")
            extent = Size2D(float(size["width"]), float(size["height"])) if size else None
            if not isinstance(kind, str):
                raise TypeError(f"kind must be a string, got {type(kind).__name__}")
            if name is not None and not isinstance(name, str):
                raise TypeError(f"name must be a string, got {type(name).__name__}")
        except (KeyError, TypeError, ValueError) as e:
            raise DocumentFormatError(f"Malformed node entry {entry!r}: {e}") from None
        if not isinstance(parameters, dict):
            raise DocumentFormatError(f"Parameters of node {node_id} must be an object")

        node = registry.create_node(kind, name=name, position=point, node_id=node_id)
        if extent is not None:
            node.size = extent
        for param_name, value in parameters.items():
            node.set_parameter(param_name, value)
        graph.add_node(node)

    for entry in _list_field(document, "connections"):
        try:
            source = PortRef(
                NodeId(_parse_uuid(entry["source"]["node"], "source node")),
                _parse_index(entry["source"]["port"]),
            )
            target = PortRef(
                NodeId(_parse_uuid(entry["target"]["node"], "target node")),
                _parse_index(entry["target"]["port"]),
            )
            connection_id = (
                ConnectionId(_parse_uuid(entry["id"], "connection id"))
                if entry.get("id") else None
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DocumentFormatError(f"Malformed connection entry {entry!r}: {e}") from None

        graph.connect(source, target, connection_id=connection_id)

    logger.debug(
        "Loaded graph %s: %d node(s), %d connection(s)",
        graph.name, len(graph), len(graph.connections),
    )
    return graph


def _list_field(document: dict[str, Any], key: str) -> list[dict[str, Any]]:
    entries = document.get(key, [])
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        raise DocumentFormatError(f"'{key}' must be a list of objects")
    return entries


def _parse_uuid(value: Any, what: str) -> UUID:
    try:
        return UUID(str(value))
    except ValueError:
        raise DocumentFormatError(f"Invalid {what}: {value!r}") from None


def _parse_index(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise DocumentFormatError(f"Port index must be an integer, got {value!r}")
    return value


def dumps(graph: NodeGraph, indent: int | None = 2) -> str:
    """Serialize a graph to JSON text."""
    return json.dumps(serialize(graph), indent=indent)


def loads(text: str, registry: NodeRegistry | None = None) -> NodeGraph:
    """Deserialize a graph from JSON text."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise DocumentFormatError(f"Failed to parse graph document: {e}") from None
    return deserialize(document, registry)


def save_graph(graph: NodeGraph, path: Path) -> Path:
    """
    Save a graph document to disk.

    The document is written with a `saved_at` timestamp next to the
    graph data.

    Returns:
        Path where the graph was saved
    """
    document = serialize(graph)
    document["saved_at"] = datetime.now().isoformat()

    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2)

    logger.debug("Saved graph %s to %s", graph.name, path)
    return path


def load_graph(path: Path, registry: NodeRegistry | None = None) -> NodeGraph:
    """
    Load a graph document from disk.

    Raises:
        FileNotFoundError: If the file doesn't exist
        DocumentFormatError: If the file is not valid JSON or malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Graph not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        return loads(f.read(), registry)


def list_saved_graphs(directory: Path) -> list[dict[str, Any]]:
    """
    List graph documents in a directory.

    Returns:
        List of dicts with 'name', 'path', 'saved_at' and 'node_count',
        most recently saved first. Unreadable files are skipped.
    """
    graphs = []
    if not directory.exists():
        return graphs

    for path in directory.glob(f"*{GRAPH_SUFFIX}"):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            graphs.append({
                "name": data.get("name", path.name[: -len(GRAPH_SUFFIX)]),
                "path": path,
                "saved_at": data.get("saved_at", ""),
                "node_count": len(data.get("nodes", [])),
            })
        except (OSError, json.JSONDecodeError, AttributeError) as e:
            logger.warning("Skipping unreadable graph %s: %s", path, e)
            continue

    graphs.sort(key=lambda g: g.get("saved_at") or "", reverse=True)
    return graphs
