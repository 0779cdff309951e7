"""
Core module - Data structures, evaluation engine, and persistence.

This module provides the fundamental building blocks of the compositor:
- Graph: Nodes, ports, connections and the invariant-enforcing graph
- Data Types: Port type tags and the values that flow between nodes
- Node Types: Kind definitions, parameter schemas and the registry
- Evaluation: Deterministic dependency-ordered evaluation
- Serialization: Versioned graph documents
"""

from node_compositor.core.graph import (
    Connection,
    ConnectionId,
    GraphEvent,
    Node,
    NodeGraph,
    NodeId,
    Point2D,
    Port,
    PortDirection,
    PortRef,
    Size2D,
    new_connection_id,
    new_node_id,
)

from node_compositor.core.data_types import (
    Color,
    DataType,
    ImageData,
    ParameterValue,
    Transform2D,
)

from node_compositor.core.errors import (
    CompositorError,
    CycleError,
    DirectionMismatchError,
    DocumentFormatError,
    DuplicateIdError,
    DuplicateKindError,
    InputAlreadyConnectedError,
    InvalidParameterError,
    MissingInputError,
    NotFoundError,
    TypeMismatchError,
    UnknownKindError,
    UnsupportedVersionError,
)

from node_compositor.core.node_types import (
    InputDefinition,
    NodeCategory,
    NodeExecutor,
    NodeRegistry,
    NodeType,
    OutputDefinition,
    ParameterDefinition,
    ParameterType,
    node_type,
    register_node,
)

from node_compositor.core.evaluation import (
    NO_OUTPUT,
    EvaluationContext,
    EvaluationResult,
    Evaluator,
)

from node_compositor.core.serialization import (
    FORMAT_VERSION,
    deserialize,
    dumps,
    list_saved_graphs,
    load_graph,
    loads,
    save_graph,
    serialize,
)

from node_compositor.core.settings import (
    CompositorSettings,
    configure_logging,
    load_settings,
    save_settings,
)


__all__ = [
    # graph.py
    "Connection",
    "ConnectionId",
    "GraphEvent",
    "Node",
    "NodeGraph",
    "NodeId",
    "Point2D",
    "Port",
    "PortDirection",
    "PortRef",
    "Size2D",
    "new_connection_id",
    "new_node_id",
    # data_types.py
    "Color",
    "DataType",
    "ImageData",
    "ParameterValue",
    "Transform2D",
    # errors.py
    "CompositorError",
    "CycleError",
    "DirectionMismatchError",
    "DocumentFormatError",
    "DuplicateIdError",
    "DuplicateKindError",
    "InputAlreadyConnectedError",
    "InvalidParameterError",
    "MissingInputError",
    "NotFoundError",
    "TypeMismatchError",
    "UnknownKindError",
    "UnsupportedVersionError",
    # node_types.py
    "InputDefinition",
    "NodeCategory",
    "NodeExecutor",
    "NodeRegistry",
    "NodeType",
    "OutputDefinition",
    "ParameterDefinition",
    "ParameterType",
    "node_type",
    "register_node",
    # evaluation.py
    "NO_OUTPUT",
    "EvaluationContext",
    "EvaluationResult",
    "Evaluator",
    # serialization.py
    "FORMAT_VERSION",
    "deserialize",
    "dumps",
    "list_saved_graphs",
    "load_graph",
    "loads",
    "save_graph",
    "serialize",
    # settings.py
    "CompositorSettings",
    "configure_logging",
    "load_settings",
    "save_settings",
]
