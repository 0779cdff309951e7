"""
Value Nodes - Constant and animated non-image values.

These feed scalar and color ports of other nodes, e.g. driving a blur
radius from the current time.
"""

from __future__ import annotations

from typing import Any

from node_compositor.core.data_types import Color, DataType
from node_compositor.core.node_types import (
    NodeCategory,
    NodeType,
    OutputDefinition,
    ParameterDefinition,
)


def scalar_executor(inputs: dict[str, Any], parameters: dict[str, Any], context: Any) -> dict[str, Any]:
    return {"value": float(parameters.get("value", 0.0))}


SCALAR_NODE = NodeType(
    id="value.scalar",
    name="Scalar",
    description="Constant number",
    category=NodeCategory.VALUE,
    outputs=[OutputDefinition("value", "Value", DataType.SCALAR)],
    parameters=[ParameterDefinition.float_param("value", "Value", default=0.0)],
    executor=scalar_executor,
)


def color_executor(inputs: dict[str, Any], parameters: dict[str, Any], context: Any) -> dict[str, Any]:
    return {"color": Color.from_value(parameters.get("color", (1.0, 1.0, 1.0, 1.0)))}


COLOR_NODE = NodeType(
    id="value.color",
    name="Color",
    description="Constant RGBA color",
    category=NodeCategory.VALUE,
    outputs=[OutputDefinition("color", "Color", DataType.COLOR)],
    parameters=[ParameterDefinition.color("color", "Color", default=(1.0, 1.0, 1.0, 1.0))],
    executor=color_executor,
)


def time_executor(inputs: dict[str, Any], parameters: dict[str, Any], context: Any) -> dict[str, Any]:
    """Execute time node: offset + speed * time."""
    speed = float(parameters.get("speed", 1.0))
    offset = float(parameters.get("offset", 0.0))
    return {"time": offset + speed * context.time}


TIME_NODE = NodeType(
    id="value.time",
    name="Time",
    description="Current evaluation time, scaled and offset",
    category=NodeCategory.VALUE,
    outputs=[OutputDefinition("time", "Time", DataType.SCALAR)],
    parameters=[
        ParameterDefinition.float_param("speed", "Speed", default=1.0),
        ParameterDefinition.float_param("offset", "Offset", default=0.0),
    ],
    executor=time_executor,
)
