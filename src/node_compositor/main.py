"""
Node Compositor - Command line entry point.

Works on saved graph documents:

    node-compositor kinds
    node-compositor new intro
    node-compositor add intro effect.blur --name "Soft" --x 400 --y 220
    node-compositor connect intro "Input:image" "Soft:image"
    node-compositor order intro
    node-compositor pick intro 300 130
    node-compositor eval intro --time 1.5
    node-compositor clear intro

Bare graph names resolve inside the configured graphs directory; paths
with a directory part are used as given.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from node_compositor import __version__
from node_compositor.core.errors import CompositorError, NotFoundError
from node_compositor.core.evaluation import Evaluator
from node_compositor.core.graph import NodeGraph, Point2D, PortDirection, PortRef, Size2D
from node_compositor.core.node_types import NodeCategory, NodeRegistry
from node_compositor.core.serialization import GRAPH_SUFFIX, load_graph, save_graph
from node_compositor.core.settings import CompositorSettings, configure_logging, load_settings
from node_compositor.nodes import build_default_graph, register_all_nodes


logger = logging.getLogger(__name__)


def _graph_path(value: str, settings: CompositorSettings) -> Path:
    path = Path(value)
    if path.parent != Path("."):
        return path
    if not value.endswith(".json"):
        value = f"{value}{GRAPH_SUFFIX}"
    return settings.graphs_dir / value


def _port(graph: NodeGraph, spec: str, direction: PortDirection) -> PortRef:
    """Resolve 'node name:port name' to a port reference."""
    node_name, sep, port_name = spec.rpartition(":")
    if not sep:
        raise NotFoundError(f"Expected NODE:PORT, got {spec!r}")
    node = graph.find_node(node_name)
    if node is None:
        raise NotFoundError(f"No node named {node_name!r}")
    return node.port(port_name, direction).ref


def cmd_kinds(args: argparse.Namespace, registry: NodeRegistry, settings: CompositorSettings) -> int:
    for category in NodeCategory:
        kinds = registry.list_by_category(category)
        if not kinds:
            continue
        print(f"{category.value}:")
        for kind in kinds:
            print(f"  {kind.id:<22} {kind.name} - {kind.description}")
    return 0


def cmd_new(args: argparse.Namespace, registry: NodeRegistry, settings: CompositorSettings) -> int:
    path = _graph_path(args.name, settings)
    graph = build_default_graph(registry, name=Path(args.name).name.split(".")[0])
    for node in graph:
        node.size = Size2D(settings.default_node_width, settings.default_node_height)
    save_graph(graph, path)
    print(f"Created {path}")
    return 0


def cmd_add(args: argparse.Namespace, registry: NodeRegistry, settings: CompositorSettings) -> int:
    path = _graph_path(args.file, settings)
    graph = load_graph(path, registry)
    node = registry.create_node(args.kind, name=args.name, position=Point2D(args.x, args.y))
    node.size = Size2D(settings.default_node_width, settings.default_node_height)
    graph.add_node(node)
    save_graph(graph, path)
    print(f"Added node: {node.name} ({node.type_id})")
    return 0


def cmd_connect(args: argparse.Namespace, registry: NodeRegistry, settings: CompositorSettings) -> int:
    path = _graph_path(args.file, settings)
    graph = load_graph(path, registry)
    graph.connect(
        _port(graph, args.source, PortDirection.OUTPUT),
        _port(graph, args.target, PortDirection.INPUT),
    )
    save_graph(graph, path)
    print(f"Connected {args.source} -> {args.target}")
    return 0


def cmd_clear(args: argparse.Namespace, registry: NodeRegistry, settings: CompositorSettings) -> int:
    path = _graph_path(args.file, settings)
    graph = load_graph(path, registry)
    graph.clear()
    save_graph(graph, path)
    print(f"Cleared {path}")
    return 0


def cmd_pick(args: argparse.Namespace, registry: NodeRegistry, settings: CompositorSettings) -> int:
    graph = load_graph(_graph_path(args.file, settings), registry)
    ref = graph.find_port_at(Point2D(args.x, args.y), settings.port_hit_radius)
    if ref is None:
        print("No port within reach")
        return 1
    port = graph.get_port(ref)
    node = graph.get_node(ref.node_id)
    print(f"{node.name}:{port.name} ({port.direction.value}, {port.data_type.value})")
    return 0


def cmd_order(args: argparse.Namespace, registry: NodeRegistry, settings: CompositorSettings) -> int:
    graph = load_graph(_graph_path(args.file, settings), registry)
    for position, node_id in enumerate(Evaluator().execution_order(graph), start=1):
        node = graph.get_node(node_id)
        print(f"{position:>3}. {node.name} ({node.type_id})")
    return 0


def cmd_eval(args: argparse.Namespace, registry: NodeRegistry, settings: CompositorSettings) -> int:
    graph = load_graph(_graph_path(args.file, settings), registry)
    result = Evaluator().evaluate(graph, args.time)
    for node_id in result.order:
        node = graph.get_node(node_id)
        status = f"skipped ({result.missing[node_id]})" if node_id in result.missing else "ok"
        print(f"{node.name}: {status}")
    for target, value in result.rendered.items():
        size = getattr(value, "size", None)
        print(f"rendered '{target}': {size[0]}x{size[1]}" if size else f"rendered '{target}'")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="node-compositor",
        description="Build and evaluate node compositing graphs",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", type=Path, default=None, help="Settings file to use")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("kinds", help="List available node kinds")
    p.set_defaults(func=cmd_kinds)

    p = sub.add_parser("new", help="Create a graph with the default node chain")
    p.add_argument("name")
    p.set_defaults(func=cmd_new)

    p = sub.add_parser("add", help="Add a node to a graph")
    p.add_argument("file")
    p.add_argument("kind")
    p.add_argument("--name", default=None)
    p.add_argument("--x", type=float, default=0.0)
    p.add_argument("--y", type=float, default=0.0)
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("connect", help="Connect NODE:PORT to NODE:PORT")
    p.add_argument("file")
    p.add_argument("source")
    p.add_argument("target")
    p.set_defaults(func=cmd_connect)

    p = sub.add_parser("clear", help="Remove all nodes from a graph")
    p.add_argument("file")
    p.set_defaults(func=cmd_clear)

    p = sub.add_parser("pick", help="Find the port nearest a canvas position")
    p.add_argument("file")
    p.add_argument("x", type=float)
    p.add_argument("y", type=float)
    p.set_defaults(func=cmd_pick)

    p = sub.add_parser("order", help="Print the evaluation order")
    p.add_argument("file")
    p.set_defaults(func=cmd_order)

    p = sub.add_parser("eval", help="Evaluate a graph at a time value")
    p.add_argument("file")
    p.add_argument("--time", type=float, default=0.0)
    p.set_defaults(func=cmd_eval)

    return parser


def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the compositor command line.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    args = build_parser().parse_args(argv)

    settings = load_settings(args.config)
    if args.debug:
        settings.debug = True
    configure_logging(settings)

    registry = register_all_nodes(NodeRegistry())

    try:
        return args.func(args, registry, settings)
    except (CompositorError, FileNotFoundError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
