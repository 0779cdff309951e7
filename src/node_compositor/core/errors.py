"""
Errors - Exception hierarchy for the compositing graph.

Every failure raised by the registry, the graph mutation API, the
evaluator and the serializer derives from CompositorError, so hosts
can catch the whole family in one place.
"""

from __future__ import annotations

from typing import Any


class CompositorError(Exception):
    """Base exception for compositor errors."""
    pass


class UnknownKindError(CompositorError):
    """A node kind tag is not registered."""

    def __init__(self, kind: str):
        super().__init__(f"Unknown node kind: {kind!r}")
        self.kind = kind


class DuplicateKindError(CompositorError):
    """A node kind tag is already registered."""

    def __init__(self, kind: str):
        super().__init__(f"Node kind already registered: {kind!r}")
        self.kind = kind


class DuplicateIdError(CompositorError):
    """A node or connection identity is already in use."""

    def __init__(self, identity: Any):
        super().__init__(f"Identity already in use: {identity}")
        self.identity = identity


class NotFoundError(CompositorError, KeyError):
    """A node, port or connection does not exist."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class DirectionMismatchError(CompositorError):
    """A connection must run from an output port to an input port."""
    pass


class TypeMismatchError(CompositorError):
    """Source and target ports carry different data types."""
    pass


class InputAlreadyConnectedError(CompositorError):
    """The target input already has an incoming connection."""
    pass


class CycleError(CompositorError):
    """The connection would close (or the graph contains) a cycle."""
    pass


class MissingInputError(CompositorError):
    """An input has no value during evaluation."""

    def __init__(self, node_id: Any, input_name: str, reason: str = "not connected"):
        super().__init__(f"Input '{input_name}' of node {node_id} is {reason}")
        self.node_id = node_id
        self.input_name = input_name
        self.reason = reason


class InvalidParameterError(CompositorError, ValueError):
    """A parameter value is unknown, wrongly typed or out of range."""
    pass


class UnsupportedVersionError(CompositorError):
    """A serialized document uses an unknown format version."""

    def __init__(self, version: Any):
        super().__init__(f"Unsupported document version: {version!r}")
        self.version = version


class DocumentFormatError(CompositorError, ValueError):
    """A serialized document is malformed."""
    pass
