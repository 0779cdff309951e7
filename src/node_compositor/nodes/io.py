"""
I/O Nodes - Nodes that bring frames into the graph and hand them back.

Input nodes read a named source frame supplied by the host for the
current pass (or fill a solid frame when no source is named); Output
nodes publish their frame under a target name.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from node_compositor.core.data_types import Color, DataType, ImageData
from node_compositor.core.errors import MissingInputError
from node_compositor.core.node_types import (
    InputDefinition,
    NodeCategory,
    NodeType,
    OutputDefinition,
    ParameterDefinition,
)


def input_executor(
    inputs: dict[str, Any],
    parameters: dict[str, Any],
    context: Any,
) -> dict[str, Any]:
    """
    Execute input node.

    A named source must be supplied by the host for this pass as
    ImageData, a numpy array or a PIL image; with no source name the node
    renders a solid frame of its fill color.
    """
    source = parameters.get("source", "")
    if source:
        frame = context.get_source(source)
        if frame is None:
            raise MissingInputError(context.current_node.id, "source", f"unavailable ('{source}')")
        if isinstance(frame, ImageData):
            image = frame.copy()
        elif isinstance(frame, np.ndarray):
            image = ImageData.from_numpy(frame)
        else:
            image = ImageData.from_pil(frame)
    else:
        image = ImageData.solid(
            int(parameters.get("width", 64)),
            int(parameters.get("height", 64)),
            Color.from_value(parameters.get("color", (0.0, 0.0, 0.0, 1.0))),
        )

    image.metadata["time"] = context.time
    return {"image": image}


INPUT_NODE = NodeType(
    id="io.input",
    name="Input",
    description="Input node for media sources",
    category=NodeCategory.IO,
    inputs=[],
    outputs=[
        OutputDefinition(
            name="image",
            label="Image",
            data_type=DataType.IMAGE,
            description="Source frame for the current time",
        ),
    ],
    parameters=[
        ParameterDefinition.text(
            name="source",
            label="Source",
            default="",
            description="Name of the host-supplied source (empty for a solid frame)",
        ),
        ParameterDefinition.integer("width", "Width", default=64, min_value=1, max_value=16384),
        ParameterDefinition.integer("height", "Height", default=64, min_value=1, max_value=16384),
        ParameterDefinition.color("color", "Fill Color", default=(0.0, 0.0, 0.0, 1.0)),
    ],
    executor=input_executor,
)


def output_executor(
    inputs: dict[str, Any],
    parameters: dict[str, Any],
    context: Any,
) -> dict[str, Any]:
    """Execute output node - publishes the final frame under its target name."""
    context.publish(parameters.get("target", "main"), inputs["image"])
    return {}


OUTPUT_NODE = NodeType(
    id="io.output",
    name="Output",
    description="Output node for final render",
    category=NodeCategory.IO,
    inputs=[
        InputDefinition(
            name="image",
            label="Image",
            data_type=DataType.IMAGE,
            required=True,
            description="Frame to render",
        ),
    ],
    outputs=[],  # Terminal node
    parameters=[
        ParameterDefinition.text(
            name="target",
            label="Target",
            default="main",
            description="Name the rendered frame is published under",
        ),
    ],
    executor=output_executor,
)
