"""
Data Types - Values that flow through the compositing graph.

This module defines the data types carried by node ports:
- DataType: Closed set of port type tags
- ImageData: Container for frame pixels
- Color: RGBA color value
- Transform2D: 2D affine transform
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, TypeAlias

import numpy as np
from numpy.typing import NDArray


class DataType(Enum):
    """
    Enumeration of data types that can flow through node connections.

    Each port has a DataType; a connection is only valid between
    ports carrying the same type.
    """
    IMAGE = "image"             # RGB/RGBA frame
    SCALAR = "scalar"           # Float number
    COLOR = "color"             # RGBA color
    TRANSFORM2D = "transform2d" # 2D affine matrix

    def is_compatible_with(self, other: DataType) -> bool:
        """Check if this type can connect to another type."""
        return self == other


# Type alias for parameter values
ParameterValue: TypeAlias = str | int | float | bool | tuple | list | dict | None


@dataclass(frozen=True)
class Color:
    """RGBA color with float components in [0, 1]."""
    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 1.0

    @classmethod
    def from_value(cls, value: Any) -> Color:
        """
        Build a color from a Color, a 3/4 sequence or a '#rrggbb[aa]' string.

        Raises:
            ValueError: If the value cannot be read as a color.
        """
        if isinstance(value, Color):
            return value
        if isinstance(value, str):
            text = value.lstrip("#")
            if len(text) not in (6, 8):
                raise ValueError(f"Invalid color string: {value!r}")
            try:
                channels = [int(text[i:i + 2], 16) / 255.0 for i in range(0, len(text), 2)]
            except ValueError:
                raise ValueError(f"Invalid color string: {value!r}") from None
            return cls(*channels)
        if isinstance(value, (list, tuple)) and len(value) in (3, 4):
            if not all(isinstance(c, (int, float)) and not isinstance(c, bool) for c in value):
                raise ValueError(f"Color components must be numbers: {value!r}")
            return cls(*(float(c) for c in value))
        raise ValueError(f"Cannot interpret {value!r} as a color")

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.r, self.g, self.b, self.a)


@dataclass
class ImageData:
    """
    Container for image data flowing through the graph.

    Internally stores pixels as a numpy array in HWC format with
    float32 values in range [0, 1].

    Attributes:
        pixels: numpy array of shape (H, W, C) with float32 values [0, 1]
        metadata: Free-form metadata (source name, frame time, ...)
    """
    pixels: NDArray[np.float32]
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_numpy(
        cls,
        array: NDArray,
        metadata: dict[str, Any] | None = None
    ) -> ImageData:
        """
        Create ImageData from a numpy array.

        Handles various input formats:
        - uint8 [0, 255] -> float32 [0, 1]
        - float64 -> float32
        - HW (grayscale) -> HWC
        """
        arr = np.array(array, copy=True)

        if arr.dtype == np.uint8:
            arr = arr.astype(np.float32) / 255.0
        elif arr.dtype != np.float32:
            arr = arr.astype(np.float32)

        if arr.ndim == 2:
            arr = np.stack([arr, arr, arr], axis=-1)

        return cls(pixels=arr, metadata=dict(metadata or {}))

    @classmethod
    def from_pil(cls, image, metadata: dict[str, Any] | None = None) -> ImageData:
        """Create ImageData from a PIL Image."""
        from PIL import Image

        if not isinstance(image, Image.Image):
            raise TypeError(f"Expected PIL Image, got {type(image)}")

        if image.mode not in ("RGB", "RGBA"):
            image = image.convert("RGB")

        arr = np.array(image, dtype=np.float32) / 255.0
        return cls(pixels=arr, metadata=dict(metadata or {}))

    @classmethod
    def solid(cls, width: int, height: int, color: Color | None = None) -> ImageData:
        """Create an RGBA image filled with one color."""
        color = color or Color()
        arr = np.empty((height, width, 4), dtype=np.float32)
        arr[...] = color.as_tuple()
        return cls(pixels=arr)

    @classmethod
    def empty(cls, width: int, height: int, channels: int = 3) -> ImageData:
        """Create an empty (black) image of the given size."""
        arr = np.zeros((height, width, channels), dtype=np.float32)
        return cls(pixels=arr)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def channels(self) -> int:
        return self.pixels.shape[2] if self.pixels.ndim == 3 else 1

    @property
    def size(self) -> tuple[int, int]:
        """Image size as (width, height)."""
        return (self.width, self.height)

    @property
    def has_alpha(self) -> bool:
        return self.channels == 4

    def to_rgba(self) -> NDArray[np.float32]:
        """Return the pixels as an (H, W, 4) array, adding opaque alpha if needed."""
        if self.has_alpha:
            return self.pixels
        alpha = np.ones((self.height, self.width, 1), dtype=np.float32)
        return np.concatenate([self.pixels[..., :3], alpha], axis=-1)

    def to_numpy(self, dtype: np.dtype = np.float32) -> NDArray:
        """Convert to a numpy array in HWC format."""
        if dtype == np.uint8:
            return (self.pixels * 255).round().clip(0, 255).astype(np.uint8)
        return self.pixels.astype(dtype)

    def to_pil(self):
        """Convert to PIL Image."""
        from PIL import Image

        return Image.fromarray(self.to_numpy(np.uint8))

    def with_pixels(self, pixels: NDArray) -> ImageData:
        """New image with the given pixels and a copy of this metadata."""
        return ImageData(
            pixels=np.asarray(pixels, dtype=np.float32),
            metadata=dict(self.metadata),
        )

    def copy(self) -> ImageData:
        return ImageData(pixels=self.pixels.copy(), metadata=dict(self.metadata))


@dataclass(frozen=True)
class Transform2D:
    """
    2D affine transform stored as a 3x3 row-major matrix.

    Points are column vectors: p' = M @ [x, y, 1].
    """
    matrix: tuple[tuple[float, ...], ...] = (
        (1.0, 0.0, 0.0),
        (0.0, 1.0, 0.0),
        (0.0, 0.0, 1.0),
    )

    @classmethod
    def identity(cls) -> Transform2D:
        return cls()

    @classmethod
    def from_array(cls, array: Iterable[Iterable[float]]) -> Transform2D:
        arr = np.asarray(array, dtype=np.float64)
        if arr.shape != (3, 3):
            raise ValueError(f"Transform matrix must be 3x3, got {arr.shape}")
        return cls(tuple(tuple(float(v) for v in row) for row in arr))

    @classmethod
    def translation(cls, tx: float, ty: float) -> Transform2D:
        return cls.from_array([[1, 0, tx], [0, 1, ty], [0, 0, 1]])

    @classmethod
    def rotation(cls, degrees: float) -> Transform2D:
        theta = math.radians(degrees)
        c, s = math.cos(theta), math.sin(theta)
        return cls.from_array([[c, -s, 0], [s, c, 0], [0, 0, 1]])

    @classmethod
    def scaling(cls, sx: float, sy: float | None = None) -> Transform2D:
        sy = sx if sy is None else sy
        return cls.from_array([[sx, 0, 0], [0, sy, 0], [0, 0, 1]])

    def to_array(self) -> NDArray[np.float64]:
        return np.array(self.matrix, dtype=np.float64)

    def then(self, other: Transform2D) -> Transform2D:
        """Apply this transform first, then `other`."""
        return Transform2D.from_array(other.to_array() @ self.to_array())

    def inverse(self) -> Transform2D:
        return Transform2D.from_array(np.linalg.inv(self.to_array()))

    def apply(self, x: float, y: float) -> tuple[float, float]:
        """Transform a single point."""
        px, py, _ = self.to_array() @ np.array([x, y, 1.0])
        return (float(px), float(py))

    @property
    def is_identity(self) -> bool:
        return bool(np.allclose(self.to_array(), np.eye(3)))
