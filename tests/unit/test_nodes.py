"""
Tests for the built-in node kinds.
"""

import numpy as np
import pytest
from PIL import Image

from node_compositor.core.data_types import Color, ImageData, Transform2D
from node_compositor.core.evaluation import EvaluationContext, Evaluator
from node_compositor.core.node_types import NodeRegistry
from node_compositor.nodes import (
    BLUR_NODE,
    BUILTIN_NODES,
    COLOR_GRADE_NODE,
    COLOR_NODE,
    COMPOSITE_NODE,
    INPUT_NODE,
    SCALAR_NODE,
    TRANSFORM_NODE,
    build_default_graph,
    register_all_nodes,
)
from node_compositor.nodes.composite import composite
from node_compositor.nodes.transform import build_transform


def run(kind, inputs=None, time=0.0, **parameters):
    """Call a kind's executor with its defaults plus overrides."""
    params = kind.get_default_parameters()
    params.update(parameters)
    return kind.executor(inputs or {}, params, EvaluationContext(time))


def grey(value, width=4, height=4):
    return ImageData.solid(width, height, Color(value, value, value, 1.0))


class TestRegistration:
    """Tests for registering the built-in kinds."""

    def test_register_all(self):
        registry = register_all_nodes(NodeRegistry())
        assert len(registry) == len(BUILTIN_NODES)
        assert {"io.input", "io.output", "color.grade", "effect.blur",
                "transform.transform", "composite.blend"} <= {k.id for k in registry.get_all()}

    def test_register_all_is_idempotent(self):
        registry = register_all_nodes(NodeRegistry())
        assert register_all_nodes(registry) is registry
        assert len(registry) == len(BUILTIN_NODES)

    def test_kind_tags_unique(self):
        tags = [k.id for k in BUILTIN_NODES]
        assert len(tags) == len(set(tags))


class TestDefaultGraph:
    """Tests for the starter graph."""

    def test_structure(self):
        graph = build_default_graph(NodeRegistry())
        assert [n.type_id for n in graph] == [
            "io.input", "color.grade", "effect.blur", "io.output",
        ]
        assert len(graph.connections) == 3

    def test_evaluates(self):
        graph = build_default_graph(NodeRegistry())
        result = Evaluator().evaluate(graph, 0.0)

        assert result.complete
        frame = result.rendered["main"]
        assert frame.size == (64, 64)
        np.testing.assert_allclose(frame.pixels[..., :3], 0.0, atol=1e-6)


class TestInput:
    """Tests for the input kind."""

    def test_pil_source(self):
        picture = Image.new("RGB", (5, 3), (255, 0, 0))
        context = EvaluationContext(0.0, {"camera": picture})

        out = INPUT_NODE.executor({}, {"source": "camera"}, context)["image"]

        assert out.size == (5, 3)
        np.testing.assert_allclose(out.pixels[0, 0], [1.0, 0.0, 0.0])

    def test_pil_source_renders(self):
        graph = build_default_graph(NodeRegistry())
        graph.set_parameter(graph.find_node("Input").id, "source", "camera")
        picture = Image.new("RGBA", (5, 3), (0, 0, 0, 255))

        result = Evaluator().evaluate(graph, 0.0, sources={"camera": picture})

        assert result.complete
        assert result.rendered["main"].size == (5, 3)

    def test_array_source_is_copied(self):
        pixels = np.full((2, 2, 3), 0.5, dtype=np.float32)
        context = EvaluationContext(0.0, {"camera": pixels})

        out = INPUT_NODE.executor({}, {"source": "camera"}, context)["image"]
        out.pixels[...] = 0.0

        np.testing.assert_allclose(pixels, 0.5)

    def test_unsupported_source_type(self):
        context = EvaluationContext(0.0, {"camera": "frame.png"})

        with pytest.raises(TypeError):
            INPUT_NODE.executor({}, {"source": "camera"}, context)


class TestColorGrade:
    """Tests for the color grade kind."""

    def test_defaults_are_identity(self):
        image = grey(0.3)
        out = run(COLOR_GRADE_NODE, {"image": image})["image"]
        np.testing.assert_allclose(out.pixels, image.pixels, atol=1e-6)

    def test_exposure(self):
        out = run(COLOR_GRADE_NODE, {"image": grey(0.25)}, exposure=1.0)["image"]
        np.testing.assert_allclose(out.pixels[..., :3], 0.5, atol=1e-6)

    def test_gain_input(self):
        out = run(COLOR_GRADE_NODE, {"image": grey(0.8), "gain": 0.5})["image"]
        np.testing.assert_allclose(out.pixels[..., :3], 0.4, atol=1e-6)

    def test_desaturate(self):
        image = ImageData.solid(2, 2, Color(1.0, 0.0, 0.0, 1.0))
        out = run(COLOR_GRADE_NODE, {"image": image}, saturation=0.0)["image"]
        np.testing.assert_allclose(out.pixels[..., :3], 0.2126, atol=1e-5)

    def test_alpha_untouched(self):
        image = ImageData.solid(2, 2, Color(0.5, 0.5, 0.5, 0.25))
        out = run(COLOR_GRADE_NODE, {"image": image}, exposure=3.0)["image"]
        np.testing.assert_allclose(out.pixels[..., 3], 0.25)


class TestBlur:
    """Tests for the blur kind."""

    def test_zero_radius_passes_through(self):
        image = grey(0.3)
        out = run(BLUR_NODE, {"image": image}, radius=0.0)["image"]
        np.testing.assert_array_equal(out.pixels, image.pixels)
        assert out is not image

    def test_spreads_a_point(self):
        pixels = np.zeros((9, 9, 3), dtype=np.float32)
        pixels[4, 4] = 1.0
        out = run(BLUR_NODE, {"image": ImageData.from_numpy(pixels)}, radius=1.5)["image"]
        assert out.pixels[4, 4, 0] < 1.0
        assert out.pixels[4, 5, 0] > 0.0
        assert out.size == (9, 9)

    def test_radius_input_overrides_parameter(self):
        pixels = np.zeros((9, 9, 3), dtype=np.float32)
        pixels[4, 4] = 1.0
        image = ImageData.from_numpy(pixels)
        out = run(BLUR_NODE, {"image": image, "radius": 0.0}, radius=5.0)["image"]
        np.testing.assert_array_equal(out.pixels, image.pixels)


class TestTransform:
    """Tests for the transform kind."""

    def test_identity(self):
        image = grey(0.6)
        result = run(TRANSFORM_NODE, {"image": image})
        assert result["matrix"].is_identity
        np.testing.assert_array_equal(result["image"].pixels, image.pixels)

    def test_translation_matrix(self):
        matrix = build_transform({"translate_x": 3.0, "translate_y": -2.0}, 10, 10)
        assert matrix.apply(0.0, 0.0) == pytest.approx((3.0, -2.0))

    def test_rotation_about_center(self):
        matrix = build_transform({"rotation": 90.0}, 10, 10)
        assert matrix.apply(5.0, 5.0) == pytest.approx((5.0, 5.0))
        assert matrix.apply(10.0, 5.0) == pytest.approx((5.0, 10.0))

    def test_upstream_matrix_applied_after(self):
        upstream = Transform2D.translation(1.0, 0.0)
        result = run(TRANSFORM_NODE, {"image": grey(0.5), "matrix": upstream}, scale=2.0)
        # Scale about the center (2, 2) first, then shift right
        assert result["matrix"].apply(0.0, 0.0) == pytest.approx((-1.0, -2.0))

    def test_translate_moves_pixels(self):
        pixels = np.zeros((4, 4, 3), dtype=np.float32)
        pixels[1, 1] = 1.0
        out = run(TRANSFORM_NODE, {"image": ImageData.from_numpy(pixels)}, translate_x=1.0)["image"]
        assert out.has_alpha
        assert out.pixels[1, 2, 0] == pytest.approx(1.0, abs=1 / 255)
        assert out.pixels[1, 1, 0] == pytest.approx(0.0, abs=1 / 255)
        # Uncovered pixels are transparent
        assert out.pixels[0, 0, 3] == pytest.approx(0.0, abs=1 / 255)


class TestComposite:
    """Tests for the composite kind."""

    def test_over_with_opacity(self):
        out = composite(grey(0.0), grey(1.0), opacity=0.5)
        np.testing.assert_allclose(out.pixels[..., :3], 0.5, atol=1e-6)
        np.testing.assert_allclose(out.pixels[..., 3], 1.0)

    def test_multiply(self):
        out = composite(grey(0.5), grey(0.5), mode="multiply")
        np.testing.assert_allclose(out.pixels[..., :3], 0.25, atol=1e-6)

    def test_screen(self):
        out = composite(grey(0.5), grey(0.5), mode="screen")
        np.testing.assert_allclose(out.pixels[..., :3], 0.75, atol=1e-6)

    def test_transparent_foreground(self):
        foreground = ImageData.solid(4, 4, Color(1.0, 1.0, 1.0, 0.0))
        out = composite(grey(0.2), foreground)
        np.testing.assert_allclose(out.pixels[..., :3], 0.2, atol=1e-6)

    def test_size_mismatch(self):
        with pytest.raises(ValueError):
            composite(grey(0.0, 4, 4), grey(0.0, 2, 2))

    def test_missing_foreground_passes_background(self):
        background = grey(0.7)
        out = run(COMPOSITE_NODE, {"background": background, "foreground": None})["image"]
        np.testing.assert_array_equal(out.pixels, background.pixels)

    def test_opacity_input_overrides_parameter(self):
        inputs = {"background": grey(0.0), "foreground": grey(1.0), "opacity": 0.25}
        out = run(COMPOSITE_NODE, inputs, opacity=1.0)["image"]
        np.testing.assert_allclose(out.pixels[..., :3], 0.25, atol=1e-6)


class TestValueNodes:
    """Tests for scalar and color value kinds."""

    def test_scalar(self):
        assert run(SCALAR_NODE, value=2.5) == {"value": 2.5}

    def test_color(self):
        assert run(COLOR_NODE, color=(0.1, 0.2, 0.3, 1.0))["color"] == Color(0.1, 0.2, 0.3, 1.0)
