"""
Node Graph Model - Core data structures for the compositing graph.

This module defines the fundamental building blocks:
- Port: A typed, directional connection point on a node
- Node: A single processing unit with ports and parameters
- Connection: A link from a node output to another node's input
- NodeGraph: The graph owning nodes and connections, enforcing
  acyclicity and single-input rules on every mutation
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, Callable, Iterator, NewType
from uuid import UUID, uuid4

from node_compositor.core.data_types import DataType, ParameterValue
from node_compositor.core.errors import (
    CycleError,
    DirectionMismatchError,
    DuplicateIdError,
    InputAlreadyConnectedError,
    NotFoundError,
    TypeMismatchError,
)

if TYPE_CHECKING:
    from node_compositor.core.node_types import NodeType


logger = logging.getLogger(__name__)


# Type aliases for clarity
NodeId = NewType("NodeId", UUID)
ConnectionId = NewType("ConnectionId", UUID)

# Port anchor layout, relative to the node's top-left corner
PORT_HEADER_OFFSET = 30.0
PORT_SPACING = 20.0
DEFAULT_PORT_HIT_RADIUS = 8.0


def new_node_id() -> NodeId:
    """Generate a new unique node ID."""
    return NodeId(uuid4())


def new_connection_id() -> ConnectionId:
    """Generate a new unique connection ID."""
    return ConnectionId(uuid4())


@dataclass
class Point2D:
    """2D point for node placement on the editor canvas."""
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Point2D) -> Point2D:
        return Point2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Point2D) -> Point2D:
        return Point2D(self.x - other.x, self.y - other.y)

    def distance_to(self, other: Point2D) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


@dataclass
class Size2D:
    """2D size for node dimensions."""
    width: float = 150.0
    height: float = 80.0


class PortDirection(Enum):
    INPUT = "input"
    OUTPUT = "output"


@dataclass(frozen=True)
class PortRef:
    """Reference to a port: owning node identity plus the port's index."""
    node_id: NodeId
    index: int


@dataclass(frozen=True)
class Port:
    """
    A named, typed connection point on a node.

    The owning node is referenced by identity only; direction and
    type never change after the node is built.
    """
    node_id: NodeId
    index: int
    name: str
    direction: PortDirection
    data_type: DataType

    @property
    def ref(self) -> PortRef:
        return PortRef(self.node_id, self.index)

    @property
    def is_input(self) -> bool:
        return self.direction == PortDirection.INPUT

    @property
    def is_output(self) -> bool:
        return self.direction == PortDirection.OUTPUT


@dataclass(frozen=True)
class Connection:
    """
    A connection (wire) between two nodes.

    Connects an output port of one node to an input port of another.
    """
    id: ConnectionId
    source: PortRef
    target: PortRef

    @classmethod
    def create(cls, source: PortRef, target: PortRef) -> Connection:
        """Factory method to create a new connection."""
        return cls(id=new_connection_id(), source=source, target=target)

    def touches(self, node_id: NodeId) -> bool:
        return self.source.node_id == node_id or self.target.node_id == node_id


@dataclass(eq=False)
class Node:
    """
    A single node in the compositing graph.

    Nodes have:
    - A unique ID, assigned at creation
    - A kind (NodeType) providing ports, parameter schema and evaluator
    - Position and size on the editor canvas
    - Parameter values validated against the kind's schema

    The port tuple is built from the kind's template (inputs first,
    then outputs) and never changes afterwards.
    """
    id: NodeId
    kind: NodeType = field(repr=False)
    name: str
    position: Point2D = field(default_factory=Point2D)
    size: Size2D = field(default_factory=Size2D)
    ports: tuple[Port, ...] = ()
    parameters: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        kind: NodeType,
        name: str | None = None,
        position: Point2D | None = None,
        node_id: NodeId | None = None,
    ) -> Node:
        """Factory method to create a node from its kind's template."""
        node_id = node_id or new_node_id()
        templates = [
            (d.name, PortDirection.INPUT, d.data_type) for d in kind.inputs
        ] + [
            (d.name, PortDirection.OUTPUT, d.data_type) for d in kind.outputs
        ]
        ports = tuple(
            Port(node_id, index, port_name, direction, data_type)
            for index, (port_name, direction, data_type) in enumerate(templates)
        )
        return cls(
            id=node_id,
            kind=kind,
            name=kind.name if name is None else name,
            position=position or Point2D(),
            ports=ports,
            parameters=kind.get_default_parameters(),
        )

    @property
    def type_id(self) -> str:
        """The kind tag."""
        return self.kind.id

    @property
    def inputs(self) -> list[Port]:
        return [p for p in self.ports if p.is_input]

    @property
    def outputs(self) -> list[Port]:
        return [p for p in self.ports if p.is_output]

    def port(self, name: str, direction: PortDirection | None = None) -> Port:
        """
        Find a port by name.

        Raises:
            NotFoundError: If no port matches.
        """
        for port in self.ports:
            if port.name == name and (direction is None or port.direction == direction):
                return port
        raise NotFoundError(f"Node '{self.name}' has no port '{name}'")

    def input(self, name: str) -> PortRef:
        """Reference to the input port with this name."""
        return self.port(name, PortDirection.INPUT).ref

    def output(self, name: str) -> PortRef:
        """Reference to the output port with this name."""
        return self.port(name, PortDirection.OUTPUT).ref

    def get_parameter(self, name: str, default: Any = None) -> Any:
        """Get a parameter value."""
        return self.parameters.get(name, default)

    def set_parameter(self, name: str, value: Any) -> ParameterValue:
        """
        Validate and set a parameter value.

        Raises:
            InvalidParameterError: If the kind has no such parameter or
                the value does not fit its definition.
        """
        validated = self.kind.validate_parameter(name, value)
        self.parameters[name] = validated
        return validated

    def port_anchor(self, index: int) -> Point2D:
        """
        Canvas position of a port.

        Inputs sit on the left edge, outputs on the right edge, each
        stacked downward from the header.
        """
        port = self.ports[index]
        siblings = self.inputs if port.is_input else self.outputs
        row = siblings.index(port)
        x = self.position.x if port.is_input else self.position.x + self.size.width
        y = self.position.y + PORT_HEADER_OFFSET + row * PORT_SPACING
        return Point2D(x, y)


class GraphEvent(Enum):
    """Structural changes reported to graph observers."""
    NODE_ADDED = auto()
    NODE_REMOVED = auto()
    CONNECTED = auto()
    DISCONNECTED = auto()
    CLEARED = auto()


GraphObserver = Callable[["NodeGraph", GraphEvent], None]


class NodeGraph:
    """
    The complete compositing graph.

    Owns nodes and the connections between them. Every mutation is
    validated fully before it is committed, so the graph is always a
    DAG in which each input port has at most one incoming connection.
    """

    def __init__(self, name: str = "Untitled", graph_id: UUID | None = None):
        self.id: UUID = graph_id or uuid4()
        self.name: str = name
        self._nodes: dict[NodeId, Node] = {}
        self._connections: dict[ConnectionId, Connection] = {}
        self._incoming: dict[PortRef, ConnectionId] = {}
        self._observers: list[GraphObserver] = []

    # --- Observers ---

    def add_observer(self, observer: GraphObserver) -> None:
        """Register a callback invoked after every structural change."""
        if observer not in self._observers:
            self._observers.append(observer)

    def remove_observer(self, observer: GraphObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def _notify(self, event: GraphEvent) -> None:
        for observer in list(self._observers):
            observer(self, event)

    # --- Node operations ---

    @property
    def nodes(self) -> dict[NodeId, Node]:
        """Get all nodes in insertion order (read-only view)."""
        return self._nodes.copy()

    def add_node(self, node: Node) -> NodeId:
        """
        Add an unconnected node to the graph.

        Raises:
            DuplicateIdError: If a node with the same ID exists.
        """
        if node.id in self._nodes:
            raise DuplicateIdError(node.id)
        self._nodes[node.id] = node
        logger.debug("Added node %s (%s)", node.name, node.type_id)
        self._notify(GraphEvent.NODE_ADDED)
        return node.id

    def remove_node(self, node_id: NodeId) -> Node:
        """
        Remove a node and every connection touching its ports.

        Returns the removed node.

        Raises:
            NotFoundError: If the node does not exist.
        """
        node = self.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Node not found: {node_id}")

        kept = {
            cid: conn for cid, conn in self._connections.items()
            if not conn.touches(node_id)
        }
        dropped = len(self._connections) - len(kept)

        self._connections = kept
        self._incoming = {
            ref: cid for ref, cid in self._incoming.items()
            if ref.node_id != node_id
        }
        del self._nodes[node_id]

        logger.debug("Removed node %s and %d connection(s)", node.name, dropped)
        self._notify(GraphEvent.NODE_REMOVED)
        return node

    def get_node(self, node_id: NodeId) -> Node | None:
        """Get a node by ID."""
        return self._nodes.get(node_id)

    def find_node(self, name: str) -> Node | None:
        """Get the first node with this display name."""
        for node in self._nodes.values():
            if node.name == name:
                return node
        return None

    def ports(self, node_id: NodeId) -> tuple[Port, ...]:
        """Get a node's ports in index order."""
        node = self.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Node not found: {node_id}")
        return node.ports

    def get_port(self, ref: PortRef) -> Port:
        """
        Resolve a port reference.

        Raises:
            NotFoundError: If the node or port index does not exist.
        """
        node = self.get_node(ref.node_id)
        if node is None:
            raise NotFoundError(f"Node not found: {ref.node_id}")
        if not 0 <= ref.index < len(node.ports):
            raise NotFoundError(f"Node '{node.name}' has no port {ref.index}")
        return node.ports[ref.index]

    def set_node_position(self, node_id: NodeId, position: Point2D) -> None:
        node = self.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Node not found: {node_id}")
        node.position = position

    def set_parameter(self, node_id: NodeId, name: str, value: Any) -> ParameterValue:
        """Validate and set a node parameter (see Node.set_parameter)."""
        node = self.get_node(node_id)
        if node is None:
            raise NotFoundError(f"Node not found: {node_id}")
        return node.set_parameter(name, value)

    # --- Connection operations ---

    @property
    def connections(self) -> list[Connection]:
        """Get all connections (read-only copy)."""
        return list(self._connections.values())

    def get_connection(self, connection_id: ConnectionId) -> Connection | None:
        return self._connections.get(connection_id)

    def connect(
        self,
        source: PortRef,
        target: PortRef,
        connection_id: ConnectionId | None = None,
    ) -> ConnectionId:
        """
        Connect an output port to an input port.

        Checks, in order: both ports exist, the edge is not a self-loop,
        directions, types, the input is free, and no cycle is closed.

        Returns:
            The new connection's ID.

        Raises:
            NotFoundError: If either port does not exist.
            CycleError: On a self-loop or if the edge would close a cycle.
            DirectionMismatchError: If source is not an output or target
                is not an input.
            TypeMismatchError: If the port types differ.
            InputAlreadyConnectedError: If the input is already fed.
            DuplicateIdError: If `connection_id` is already in use.
        """
        source_port = self.get_port(source)
        target_port = self.get_port(target)

        if source.node_id == target.node_id:
            raise CycleError("Cannot connect a node to itself")

        if not source_port.is_output or not target_port.is_input:
            raise DirectionMismatchError(
                f"Connections run from an output to an input, got "
                f"{source_port.direction.value} '{source_port.name}' -> "
                f"{target_port.direction.value} '{target_port.name}'"
            )

        if not source_port.data_type.is_compatible_with(target_port.data_type):
            raise TypeMismatchError(
                f"Cannot connect {source_port.data_type.value} output "
                f"'{source_port.name}' to {target_port.data_type.value} input "
                f"'{target_port.name}'"
            )

        if target in self._incoming:
            raise InputAlreadyConnectedError(
                f"Input '{target_port.name}' already has an incoming connection"
            )

        if self._would_create_cycle(source.node_id, target.node_id):
            raise CycleError("Connection would create a cycle")

        if connection_id is not None and connection_id in self._connections:
            raise DuplicateIdError(connection_id)

        connection = Connection(
            id=connection_id or new_connection_id(),
            source=source,
            target=target,
        )
        self._connections[connection.id] = connection
        self._incoming[target] = connection.id

        logger.debug(
            "Connected %s.%s -> %s.%s",
            self._nodes[source.node_id].name, source_port.name,
            self._nodes[target.node_id].name, target_port.name,
        )
        self._notify(GraphEvent.CONNECTED)
        return connection.id

    def disconnect(self, connection_id: ConnectionId) -> Connection:
        """
        Remove a connection by ID.

        Raises:
            NotFoundError: If the connection does not exist.
        """
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            raise NotFoundError(f"Connection not found: {connection_id}")
        del self._incoming[connection.target]
        self._notify(GraphEvent.DISCONNECTED)
        return connection

    def get_input_connection(self, port: PortRef) -> Connection | None:
        """Get the connection feeding into a specific input."""
        connection_id = self._incoming.get(port)
        if connection_id is None:
            return None
        return self._connections[connection_id]

    def get_output_connections(self, port: PortRef) -> list[Connection]:
        """Get all connections from a specific output."""
        return [
            conn for conn in self._connections.values()
            if conn.source == port
        ]

    # --- Graph analysis ---

    def get_output_nodes(self) -> list[Node]:
        """Get nodes with no outgoing connections (graph sinks)."""
        sources = {conn.source.node_id for conn in self._connections.values()}
        return [
            node for node_id, node in self._nodes.items()
            if node_id not in sources
        ]

    def get_upstream_nodes(self, node_id: NodeId) -> set[NodeId]:
        """Get all nodes that this node depends on (directly or indirectly)."""
        upstream: set[NodeId] = set()
        to_visit = [node_id]

        while to_visit:
            current = to_visit.pop()
            for conn in self._connections.values():
                if conn.target.node_id == current:
                    source_id = conn.source.node_id
                    if source_id not in upstream:
                        upstream.add(source_id)
                        to_visit.append(source_id)

        return upstream

    def get_downstream_nodes(self, node_id: NodeId) -> set[NodeId]:
        """Get all nodes that depend on this node (directly or indirectly)."""
        downstream: set[NodeId] = set()
        to_visit = [node_id]

        while to_visit:
            current = to_visit.pop()
            for conn in self._connections.values():
                if conn.source.node_id == current:
                    target_id = conn.target.node_id
                    if target_id not in downstream:
                        downstream.add(target_id)
                        to_visit.append(target_id)

        return downstream

    def _would_create_cycle(self, source_id: NodeId, target_id: NodeId) -> bool:
        """Check if an edge source -> target would close a cycle."""
        if source_id == target_id:
            return True
        # A cycle exists if source is already reachable from target
        return source_id in self.get_downstream_nodes(target_id)

    # --- Editor helpers ---

    def find_port_at(
        self,
        point: Point2D,
        tolerance: float = DEFAULT_PORT_HIT_RADIUS,
    ) -> PortRef | None:
        """
        Find the port anchor nearest to a canvas position.

        Returns None if no anchor lies within `tolerance`.
        """
        best: PortRef | None = None
        best_distance = tolerance
        for node in self._nodes.values():
            for port in node.ports:
                distance = node.port_anchor(port.index).distance_to(point)
                if distance <= best_distance:
                    best, best_distance = port.ref, distance
        return best

    # --- Utility ---

    def clear(self) -> None:
        """Remove all nodes and connections."""
        self._nodes.clear()
        self._connections.clear()
        self._incoming.clear()
        self._notify(GraphEvent.CLEARED)

    def __len__(self) -> int:
        """Return the number of nodes."""
        return len(self._nodes)

    def __contains__(self, node_id: NodeId) -> bool:
        """Check if a node exists in the graph."""
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        return iter(list(self._nodes.values()))
