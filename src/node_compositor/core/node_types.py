"""
Node Type System - Definitions and registry for node kinds.

This module defines how node kinds are specified:
- InputDefinition: Describes an input port
- OutputDefinition: Describes an output port
- ParameterDefinition: Describes a configurable parameter and validates values
- NodeType: Complete definition of a node kind
- NodeRegistry: Registry of available kinds and the node factory
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Protocol, runtime_checkable

from node_compositor.core.data_types import Color, DataType, ParameterValue
from node_compositor.core.errors import (
    DuplicateKindError,
    InvalidParameterError,
    UnknownKindError,
)
from node_compositor.core.graph import Node, NodeId, Point2D


logger = logging.getLogger(__name__)


class ParameterType(Enum):
    """Types of node parameters (determines validation and editor widget)."""
    TEXT = "text"               # Single-line text input
    INTEGER = "integer"         # Integer spinner
    FLOAT = "float"             # Float spinner
    BOOLEAN = "boolean"         # Checkbox
    ENUM = "enum"               # Dropdown
    SLIDER = "slider"           # Slider with range
    COLOR = "color"             # Color picker


class NodeCategory(Enum):
    """Categories for organizing kinds in the node library."""
    IO = "io"
    COLOR = "color"
    EFFECT = "effect"
    TRANSFORM = "transform"
    COMPOSITE = "composite"
    VALUE = "value"
    CUSTOM = "custom"


@dataclass(frozen=True)
class InputDefinition:
    """
    Definition of an input port on a node kind.

    Attributes:
        name: Port identifier (used in code)
        label: Display label in the editor
        data_type: Type of data accepted
        required: If True, the node cannot evaluate without this input
        default_value: Value to use if not connected
    """
    name: str
    label: str
    data_type: DataType
    required: bool = False
    default_value: Any = None
    description: str = ""


@dataclass(frozen=True)
class OutputDefinition:
    """
    Definition of an output port on a node kind.

    Attributes:
        name: Port identifier (used in code)
        label: Display label in the editor
        data_type: Type of data produced
    """
    name: str
    label: str
    data_type: DataType
    description: str = ""


@dataclass
class EnumOption:
    """A single option in an enum parameter."""
    value: str
    label: str


@dataclass
class ParameterDefinition:
    """
    Definition of a configurable parameter on a node kind.

    Parameters are user-editable values that affect node behavior.
    Unlike inputs, they don't come from connections.

    Attributes:
        name: Parameter identifier
        label: Display label
        param_type: Type of parameter (determines validation and widget)
        default: Default value
        min_value: Minimum value (for numeric types)
        max_value: Maximum value (for numeric types)
        options: List of options (for enum type)
        description: Tooltip/description text
    """
    name: str
    label: str
    param_type: ParameterType
    default: ParameterValue = None
    min_value: float | None = None
    max_value: float | None = None
    options: list[EnumOption] = field(default_factory=list)
    description: str = ""

    @classmethod
    def text(
        cls,
        name: str,
        label: str,
        default: str = "",
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for text parameter."""
        return cls(
            name=name,
            label=label,
            param_type=ParameterType.TEXT,
            default=default,
            description=description,
        )

    @classmethod
    def integer(
        cls,
        name: str,
        label: str,
        default: int = 0,
        min_value: int | None = None,
        max_value: int | None = None,
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for integer parameter."""
        return cls(
            name=name,
            label=label,
            param_type=ParameterType.INTEGER,
            default=default,
            min_value=min_value,
            max_value=max_value,
            description=description,
        )

    @classmethod
    def float_param(
        cls,
        name: str,
        label: str,
        default: float = 0.0,
        min_value: float | None = None,
        max_value: float | None = None,
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for float parameter."""
        return cls(
            name=name,
            label=label,
            param_type=ParameterType.FLOAT,
            default=default,
            min_value=min_value,
            max_value=max_value,
            description=description,
        )

    @classmethod
    def slider(
        cls,
        name: str,
        label: str,
        default: float = 0.5,
        min_value: float = 0.0,
        max_value: float = 1.0,
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for slider parameter."""
        return cls(
            name=name,
            label=label,
            param_type=ParameterType.SLIDER,
            default=default,
            min_value=min_value,
            max_value=max_value,
            description=description,
        )

    @classmethod
    def boolean(
        cls,
        name: str,
        label: str,
        default: bool = False,
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for boolean parameter."""
        return cls(
            name=name,
            label=label,
            param_type=ParameterType.BOOLEAN,
            default=default,
            description=description,
        )

    @classmethod
    def enum(
        cls,
        name: str,
        label: str,
        options: list[tuple[str, str]],  # [(value, label), ...]
        default: str | None = None,
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for enum parameter."""
        enum_options = [EnumOption(v, l) for v, l in options]
        return cls(
            name=name,
            label=label,
            param_type=ParameterType.ENUM,
            default=default or (options[0][0] if options else None),
            options=enum_options,
            description=description,
        )

    @classmethod
    def color(
        cls,
        name: str,
        label: str,
        default: tuple[float, float, float, float] = (0.0, 0.0, 0.0, 1.0),
        description: str = "",
    ) -> ParameterDefinition:
        """Factory for RGBA color parameter."""
        return cls(
            name=name,
            label=label,
            param_type=ParameterType.COLOR,
            default=tuple(default),
            description=description,
        )

    def validate(self, value: Any) -> ParameterValue:
        """
        Check a value against this definition.

        Returns:
            The value coerced to its canonical form (ints widened to
            floats for float parameters, colors as 4-tuples).

        Raises:
            InvalidParameterError: If the value is wrongly typed or out of range.
        """
        kind = self.param_type

        if kind in (ParameterType.TEXT, ParameterType.ENUM):
            if not isinstance(value, str):
                raise self._invalid(value, "expected a string")
            if kind == ParameterType.ENUM and value not in {o.value for o in self.options}:
                raise self._invalid(value, "not one of the allowed options")
            return value

        if kind == ParameterType.BOOLEAN:
            if not isinstance(value, bool):
                raise self._invalid(value, "expected a boolean")
            return value

        if kind == ParameterType.COLOR:
            try:
                color = Color.from_value(value)
            except ValueError as e:
                raise self._invalid(value, str(e)) from None
            if any(c < 0.0 or c > 1.0 for c in color.as_tuple()):
                raise self._invalid(value, "color components must be within [0, 1]")
            return color.as_tuple()

        # Numeric parameters; bool is an int subclass but never a number here
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise self._invalid(value, "expected a number")
        if kind == ParameterType.INTEGER:
            if isinstance(value, float):
                if not value.is_integer():
                    raise self._invalid(value, "expected an integer")
                value = int(value)
        else:
            value = float(value)

        if self.min_value is not None and value < self.min_value:
            raise self._invalid(value, f"below minimum {self.min_value}")
        if self.max_value is not None and value > self.max_value:
            raise self._invalid(value, f"above maximum {self.max_value}")
        return value

    def _invalid(self, value: Any, reason: str) -> InvalidParameterError:
        return InvalidParameterError(
            f"Invalid value {value!r} for parameter '{self.name}': {reason}"
        )


@runtime_checkable
class NodeExecutor(Protocol):
    """Protocol for node evaluation functions."""

    def __call__(
        self,
        inputs: dict[str, Any],
        parameters: dict[str, Any],
        context: Any,
    ) -> dict[str, Any]:
        """
        Evaluate the node.

        Must be deterministic for fixed inputs, parameters and time.

        Args:
            inputs: Resolved input values by name
            parameters: Parameter values by name
            context: EvaluationContext (time, host sources, publishing)

        Returns:
            Dictionary of output values by name
        """
        ...


@dataclass
class NodeType:
    """
    Complete definition of a node kind.

    NodeTypes are templates that define what a node does, its inputs,
    outputs, and parameters. Nodes in a graph reference their NodeType;
    the `id` is the kind tag written to documents.
    """
    id: str  # Kind tag, e.g., "color.grade"
    name: str  # Display name, e.g., "Color Grade"
    category: NodeCategory
    description: str = ""

    inputs: list[InputDefinition] = field(default_factory=list)
    outputs: list[OutputDefinition] = field(default_factory=list)
    parameters: list[ParameterDefinition] = field(default_factory=list)

    # The evaluation function
    executor: NodeExecutor | None = None

    def get_input(self, name: str) -> InputDefinition | None:
        """Get an input definition by name."""
        for inp in self.inputs:
            if inp.name == name:
                return inp
        return None

    def get_output(self, name: str) -> OutputDefinition | None:
        """Get an output definition by name."""
        for out in self.outputs:
            if out.name == name:
                return out
        return None

    def get_parameter(self, name: str) -> ParameterDefinition | None:
        """Get a parameter definition by name."""
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def get_default_parameters(self) -> dict[str, ParameterValue]:
        """Get default values for all parameters."""
        return {p.name: p.default for p in self.parameters}

    def validate_parameter(self, name: str, value: Any) -> ParameterValue:
        """Validate a single parameter value against this kind's schema."""
        definition = self.get_parameter(name)
        if definition is None:
            raise InvalidParameterError(
                f"Node kind '{self.id}' has no parameter '{name}'"
            )
        return definition.validate(value)


class NodeRegistry:
    """
    Registry of available node kinds and the node factory.

    Kinds register themselves with the registry, and the editor uses
    the registry to populate the node library. `instance()` returns
    the process-wide registry; constructing a NodeRegistry directly
    gives an independent one.
    """

    _instance: NodeRegistry | None = None

    @classmethod
    def instance(cls) -> NodeRegistry:
        """Get the shared instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(self):
        self._types: dict[str, NodeType] = {}

    def register(self, node_type: NodeType) -> NodeType:
        """
        Register a node kind.

        Raises:
            DuplicateKindError: If the kind tag is already registered.
        """
        if node_type.id in self._types:
            raise DuplicateKindError(node_type.id)
        self._types[node_type.id] = node_type
        logger.debug("Registered node kind %s", node_type.id)
        return node_type

    def unregister(self, type_id: str) -> NodeType | None:
        """Unregister a node kind."""
        return self._types.pop(type_id, None)

    def get(self, type_id: str) -> NodeType | None:
        """Get a node kind by tag."""
        return self._types.get(type_id)

    def require(self, type_id: str) -> NodeType:
        """Get a node kind by tag, raising UnknownKindError if absent."""
        node_type = self._types.get(type_id)
        if node_type is None:
            raise UnknownKindError(type_id)
        return node_type

    def get_all(self) -> list[NodeType]:
        """Get all registered kinds."""
        return list(self._types.values())

    def list_by_category(self, category: NodeCategory) -> list[NodeType]:
        """Get all kinds in a category."""
        return [t for t in self._types.values() if t.category == category]

    def search(self, query: str) -> list[NodeType]:
        """Search kinds by name or description."""
        query = query.lower()
        return [
            t for t in self._types.values()
            if query in t.name.lower() or query in t.description.lower()
        ]

    def create_node(
        self,
        kind: str,
        name: str | None = None,
        position: Point2D | None = None,
        node_id: NodeId | None = None,
    ) -> Node:
        """
        Create a node of a registered kind.

        Raises:
            UnknownKindError: If the kind is not registered.
        """
        return Node.create(self.require(kind), name=name, position=position, node_id=node_id)

    def clear(self) -> None:
        """Remove all registered kinds (for testing)."""
        self._types.clear()

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, type_id: str) -> bool:
        return type_id in self._types


def register_node(node_type: NodeType, registry: NodeRegistry | None = None) -> NodeType:
    """
    Register a node kind with a registry (the shared one by default).

    Can be used as:
        register_node(MY_NODE)
    """
    if registry is None:
        registry = NodeRegistry.instance()
    return registry.register(node_type)


def node_type(
    id: str,
    name: str,
    category: NodeCategory,
    description: str = "",
    registry: NodeRegistry | None = None,
    **kwargs,
) -> Callable[[NodeExecutor], NodeType]:
    """
    Decorator to create and register a node kind from an executor function.

    Usage:
        @node_type("value.constant", "Constant", NodeCategory.VALUE,
                   outputs=[OutputDefinition("value", "Value", DataType.SCALAR)])
        def constant_executor(inputs, parameters, context):
            return {"value": parameters["value"]}
    """
    def decorator(executor: NodeExecutor) -> NodeType:
        nt = NodeType(
            id=id,
            name=name,
            category=category,
            description=description,
            executor=executor,
            **kwargs,
        )
        register_node(nt, registry)
        return nt
    return decorator
