"""Exception types raised inside sketchgraph."""

from __future__ import annotations


class SketchgraphError(Exception):
    """Base class for sketchgraph errors."""


class DeclarationError(SketchgraphError, ValueError):
    """A single header declaration, parameter or macro could not be read.

    The parser catches these per item and records them as warnings.
    """

    def __init__(self, message: str, fragment: str) -> None:
        super().__init__(f"{message}: {fragment}")
        self.fragment = fragment


class ConnectionRejected(SketchgraphError, ValueError):
    """An edge was refused by the connection gate."""
