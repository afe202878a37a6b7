"""Node factories used when placing library entries on the canvas."""

from __future__ import annotations

import uuid

from sketchgraph.domain.models import (
    FunctionDef,
    FunctionNode,
    Graph,
    Library,
    LoopNode,
    Port,
    SetupNode,
    VariableNode,
)
from sketchgraph.domain.value_types import ValueType


def default_graph() -> Graph:
    """A fresh graph holding only the permanent ``setup`` and ``loop`` nodes."""

    return Graph(nodes=[SetupNode(label="setup()"), LoopNode(label="loop()")])


def function_node(fn: FunctionDef, library: Library, node_id: str | None = None) -> FunctionNode:
    """Build a function node for a library function or method.

    Parameters become ``input-<i>`` ports pre-filled with their default
    values. A non-void return type adds an ``output`` port. Methods are
    called through their class (``Servo.attach``).
    """

    inputs = [
        Port(id=f"input-{i}", label=p.name, type=p.type, literal=p.default_value)
        for i, p in enumerate(fn.parameters)
    ]
    outputs = []
    if fn.return_type is not ValueType.VOID:
        outputs.append(Port(id="output", label="result", type=fn.return_type))

    call_name = fn.qualified_name
    return FunctionNode(
        id=node_id or f"{fn.name}-{uuid.uuid4().hex[:8]}",
        label=call_name,
        call_name=call_name,
        library=library.name,
        include=library.include or None,
        inputs=inputs,
        outputs=outputs,
    )


def variable_node(
    node_id: str | None = None,
    *,
    name: str = "",
    var_type: ValueType = ValueType.INT,
    initial_value: str | None = "0",
    is_global: bool = True,
) -> VariableNode:
    """Build a variable node with its single value output port."""

    return VariableNode(
        id=node_id or f"var-{uuid.uuid4().hex[:8]}",
        label="Variable",
        name=name,
        var_type=var_type,
        initial_value=initial_value,
        is_global=is_global,
        outputs=[Port(id="value", label=name or "var", type=var_type)],
    )
