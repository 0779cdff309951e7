"""
Color Nodes - Color correction and grading.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from node_compositor.core.data_types import DataType
from node_compositor.core.node_types import (
    InputDefinition,
    NodeCategory,
    NodeType,
    OutputDefinition,
    ParameterDefinition,
)

# Rec. 709 luma weights
LUMA = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)


def color_grade_executor(
    inputs: dict[str, Any],
    parameters: dict[str, Any],
    context: Any,
) -> dict[str, Any]:
    """
    Execute color grade node.

    Applied in order: exposure (stops) and gain, tint multiply,
    contrast around mid grey, saturation around luma, gamma. Alpha is
    left untouched.
    """
    image = inputs["image"]
    gain = inputs.get("gain")
    gain = 1.0 if gain is None else float(gain)

    rgb = image.pixels[..., :3].astype(np.float32)
    tint = np.asarray(parameters.get("tint", (1.0, 1.0, 1.0, 1.0))[:3], dtype=np.float32)

    rgb = rgb * (2.0 ** float(parameters.get("exposure", 0.0))) * gain * tint
    rgb = (rgb - 0.5) * float(parameters.get("contrast", 1.0)) + 0.5

    luma = (rgb @ LUMA)[..., np.newaxis]
    rgb = luma + (rgb - luma) * float(parameters.get("saturation", 1.0))

    rgb = np.clip(rgb, 0.0, 1.0)
    gamma = float(parameters.get("gamma", 1.0))
    if gamma != 1.0:
        rgb = rgb ** (1.0 / gamma)

    pixels = image.pixels.copy()
    pixels[..., :3] = rgb
    return {"image": image.with_pixels(pixels)}


COLOR_GRADE_NODE = NodeType(
    id="color.grade",
    name="Color Grade",
    description="Color correction and grading",
    category=NodeCategory.COLOR,
    inputs=[
        InputDefinition(
            name="image",
            label="Image",
            data_type=DataType.IMAGE,
            required=True,
        ),
        InputDefinition(
            name="gain",
            label="Gain",
            data_type=DataType.SCALAR,
            default_value=None,
            description="Optional linear gain multiplier",
        ),
    ],
    outputs=[
        OutputDefinition(name="image", label="Image", data_type=DataType.IMAGE),
    ],
    parameters=[
        ParameterDefinition.float_param("exposure", "Exposure", default=0.0, min_value=-10.0, max_value=10.0),
        ParameterDefinition.slider("contrast", "Contrast", default=1.0, min_value=0.0, max_value=4.0),
        ParameterDefinition.slider("saturation", "Saturation", default=1.0, min_value=0.0, max_value=4.0),
        ParameterDefinition.float_param("gamma", "Gamma", default=1.0, min_value=0.1, max_value=10.0),
        ParameterDefinition.color("tint", "Tint", default=(1.0, 1.0, 1.0, 1.0)),
    ],
    executor=color_grade_executor,
)
