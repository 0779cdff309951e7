"""
Nodes package - Built-in node kinds.

This package contains node implementations organized by category:
- io: Input, Output
- color: Color Grade
- effect: Blur
- transform: Transform
- composite: Composite
- values: Scalar, Color, Time
"""

from __future__ import annotations

from node_compositor.core.graph import NodeGraph, Point2D
from node_compositor.core.node_types import NodeRegistry, NodeType
from node_compositor.nodes.color import COLOR_GRADE_NODE
from node_compositor.nodes.composite import COMPOSITE_NODE
from node_compositor.nodes.effect import BLUR_NODE
from node_compositor.nodes.io import INPUT_NODE, OUTPUT_NODE
from node_compositor.nodes.transform import TRANSFORM_NODE
from node_compositor.nodes.values import COLOR_NODE, SCALAR_NODE, TIME_NODE


BUILTIN_NODES: tuple[NodeType, ...] = (
    INPUT_NODE,
    OUTPUT_NODE,
    COLOR_GRADE_NODE,
    BLUR_NODE,
    TRANSFORM_NODE,
    COMPOSITE_NODE,
    SCALAR_NODE,
    COLOR_NODE,
    TIME_NODE,
)


def register_all_nodes(registry: NodeRegistry | None = None) -> NodeRegistry:
    """Register all built-in kinds, skipping any already registered."""
    if registry is None:
        registry = NodeRegistry.instance()
    for node_type in BUILTIN_NODES:
        if node_type.id not in registry:
            registry.register(node_type)
    return registry


def build_default_graph(registry: NodeRegistry | None = None, name: str = "Untitled") -> NodeGraph:
    """
    Build the starter graph: Input -> Color Grade -> Blur -> Output.

    Missing built-in kinds are registered first.
    """
    registry = register_all_nodes(registry)
    graph = NodeGraph(name=name)

    chain = [
        registry.create_node("io.input", "Input", Point2D(100, 100)),
        registry.create_node("color.grade", "Color Grade", Point2D(300, 100)),
        registry.create_node("effect.blur", "Blur", Point2D(500, 100)),
        registry.create_node("io.output", "Output", Point2D(700, 100)),
    ]
    for node in chain:
        graph.add_node(node)
    for upstream, downstream in zip(chain, chain[1:]):
        graph.connect(upstream.output("image"), downstream.input("image"))

    return graph


__all__ = [
    "BUILTIN_NODES",
    "BLUR_NODE",
    "COLOR_GRADE_NODE",
    "COLOR_NODE",
    "COMPOSITE_NODE",
    "INPUT_NODE",
    "OUTPUT_NODE",
    "SCALAR_NODE",
    "TIME_NODE",
    "TRANSFORM_NODE",
    "build_default_graph",
    "register_all_nodes",
]
