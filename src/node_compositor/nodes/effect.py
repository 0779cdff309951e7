"""
Effect Nodes - Image filters.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from PIL import ImageFilter

from node_compositor.core.data_types import DataType, ImageData
from node_compositor.core.node_types import (
    InputDefinition,
    NodeCategory,
    NodeType,
    OutputDefinition,
    ParameterDefinition,
)


def blur_executor(
    inputs: dict[str, Any],
    parameters: dict[str, Any],
    context: Any,
) -> dict[str, Any]:
    """Execute blur node - Gaussian blur; a connected radius overrides the parameter."""
    image: ImageData = inputs["image"]
    radius = inputs.get("radius")
    if radius is None:
        radius = parameters.get("radius", 2.0)
    radius = max(0.0, float(radius))

    if radius == 0.0:
        return {"image": image.copy()}

    pil_image = image.to_pil()
    pil_image = pil_image.filter(ImageFilter.GaussianBlur(radius=radius))

    arr = np.array(pil_image, dtype=np.float32) / 255.0
    return {"image": image.with_pixels(arr)}


BLUR_NODE = NodeType(
    id="effect.blur",
    name="Blur",
    description="Gaussian blur effect",
    category=NodeCategory.EFFECT,
    inputs=[
        InputDefinition(
            name="image",
            label="Image",
            data_type=DataType.IMAGE,
            required=True,
        ),
        InputDefinition(
            name="radius",
            label="Radius",
            data_type=DataType.SCALAR,
            description="Optional radius driving the blur (e.g. from a Time node)",
        ),
    ],
    outputs=[
        OutputDefinition(name="image", label="Image", data_type=DataType.IMAGE),
    ],
    parameters=[
        ParameterDefinition.float_param(
            "radius", "Radius", default=2.0, min_value=0.0, max_value=250.0,
        ),
    ],
    executor=blur_executor,
)
