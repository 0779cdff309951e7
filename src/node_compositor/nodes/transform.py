"""
Transform Nodes - Scale, rotate and position frames.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from PIL import Image

from node_compositor.core.data_types import DataType, ImageData, Transform2D
from node_compositor.core.node_types import (
    InputDefinition,
    NodeCategory,
    NodeType,
    OutputDefinition,
    ParameterDefinition,
)


def build_transform(parameters: dict[str, Any], width: int, height: int) -> Transform2D:
    """Scale and rotate about the frame center, then translate."""
    cx, cy = width / 2.0, height / 2.0
    return (
        Transform2D.translation(-cx, -cy)
        .then(Transform2D.scaling(float(parameters.get("scale", 1.0))))
        .then(Transform2D.rotation(float(parameters.get("rotation", 0.0))))
        .then(Transform2D.translation(
            cx + float(parameters.get("translate_x", 0.0)),
            cy + float(parameters.get("translate_y", 0.0)),
        ))
    )


def transform_executor(
    inputs: dict[str, Any],
    parameters: dict[str, Any],
    context: Any,
) -> dict[str, Any]:
    """
    Execute transform node.

    The node's own transform is applied first, then any connected
    upstream matrix. Pixels outside the source become transparent.
    """
    image: ImageData = inputs["image"]
    transform = build_transform(parameters, image.width, image.height)
    upstream = inputs.get("matrix")
    if upstream is not None:
        transform = transform.then(upstream)

    if transform.is_identity:
        return {"image": image.copy(), "matrix": transform}

    # PIL maps output pixels back to input pixels
    inverse = transform.inverse().to_array()
    coefficients = tuple(float(v) for v in inverse[:2].reshape(-1))

    rgba = ImageData(pixels=image.to_rgba()).to_pil()
    warped = rgba.transform(
        rgba.size,
        Image.Transform.AFFINE,
        coefficients,
        resample=Image.Resampling.BILINEAR,
    )

    arr = np.array(warped, dtype=np.float32) / 255.0
    return {"image": image.with_pixels(arr), "matrix": transform}


TRANSFORM_NODE = NodeType(
    id="transform.transform",
    name="Transform",
    description="Scale, rotate, position",
    category=NodeCategory.TRANSFORM,
    inputs=[
        InputDefinition(
            name="image",
            label="Image",
            data_type=DataType.IMAGE,
            required=True,
        ),
        InputDefinition(
            name="matrix",
            label="Matrix",
            data_type=DataType.TRANSFORM2D,
            description="Optional transform applied after this node's own",
        ),
    ],
    outputs=[
        OutputDefinition(name="image", label="Image", data_type=DataType.IMAGE),
        OutputDefinition(
            name="matrix",
            label="Matrix",
            data_type=DataType.TRANSFORM2D,
            description="The combined transform, for chaining",
        ),
    ],
    parameters=[
        ParameterDefinition.float_param("translate_x", "Translate X", default=0.0),
        ParameterDefinition.float_param("translate_y", "Translate Y", default=0.0),
        ParameterDefinition.float_param("rotation", "Rotation", default=0.0, min_value=-360.0, max_value=360.0),
        ParameterDefinition.float_param("scale", "Scale", default=1.0, min_value=0.01, max_value=100.0),
    ],
    executor=transform_executor,
)
