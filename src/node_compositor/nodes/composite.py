"""
Composite Nodes - Layer blending and compositing.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from node_compositor.core.data_types import DataType, ImageData
from node_compositor.core.node_types import (
    InputDefinition,
    NodeCategory,
    NodeType,
    OutputDefinition,
    ParameterDefinition,
)


def _blend(mode: str, src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    if mode == "add":
        return np.clip(src + dst, 0.0, 1.0)
    if mode == "multiply":
        return src * dst
    if mode == "screen":
        return 1.0 - (1.0 - src) * (1.0 - dst)
    return src


def composite(
    background: ImageData,
    foreground: ImageData,
    opacity: float = 1.0,
    mode: str = "over",
) -> ImageData:
    """
    Composite foreground over background.

    Uses "over" alpha compositing with the blend mode applied to the
    color of overlapping pixels.
    """
    if background.size != foreground.size:
        raise ValueError(
            f"Composite size mismatch: {background.size} vs {foreground.size}"
        )

    dst = background.to_rgba()
    src = foreground.to_rgba()

    src_a = (src[..., 3:4] * float(opacity)).clip(0.0, 1.0)
    dst_rgb = dst[..., :3]
    dst_a = dst[..., 3:4]

    src_rgb = _blend(mode, src[..., :3], dst_rgb)

    out = np.empty_like(dst)
    out[..., :3] = src_rgb * src_a + dst_rgb * (1.0 - src_a)
    out[..., 3:4] = src_a + dst_a * (1.0 - src_a)
    return background.with_pixels(out)


def composite_executor(
    inputs: dict[str, Any],
    parameters: dict[str, Any],
    context: Any,
) -> dict[str, Any]:
    """Execute composite node - passes the background through when no foreground is connected."""
    background: ImageData = inputs["background"]
    foreground: ImageData | None = inputs.get("foreground")
    if foreground is None:
        return {"image": background.copy()}

    opacity = inputs.get("opacity")
    if opacity is None:
        opacity = parameters.get("opacity", 1.0)

    result = composite(background, foreground, float(opacity), parameters.get("mode", "over"))
    return {"image": result}


COMPOSITE_NODE = NodeType(
    id="composite.blend",
    name="Composite",
    description="Layer blending and compositing",
    category=NodeCategory.COMPOSITE,
    inputs=[
        InputDefinition(
            name="background",
            label="Background",
            data_type=DataType.IMAGE,
            required=True,
        ),
        InputDefinition(
            name="foreground",
            label="Foreground",
            data_type=DataType.IMAGE,
        ),
        InputDefinition(
            name="opacity",
            label="Opacity",
            data_type=DataType.SCALAR,
            description="Optional opacity overriding the parameter",
        ),
    ],
    outputs=[
        OutputDefinition(name="image", label="Image", data_type=DataType.IMAGE),
    ],
    parameters=[
        ParameterDefinition.enum(
            "mode",
            "Blend Mode",
            options=[
                ("over", "Normal"),
                ("add", "Add"),
                ("multiply", "Multiply"),
                ("screen", "Screen"),
            ],
        ),
        ParameterDefinition.slider("opacity", "Opacity", default=1.0),
    ],
    executor=composite_executor,
)
