"""Unit tests for the graph and library models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sketchgraph.domain.models import (
    Edge,
    FunctionDef,
    FunctionNode,
    Graph,
    LoopNode,
    Port,
    SetupNode,
    VariableNode,
)
from sketchgraph.domain.value_types import ValueType


def test_graph_rejects_duplicate_node_ids() -> None:
    with pytest.raises(ValidationError, match="duplicate node id"):
        Graph(
            nodes=[
                FunctionNode(id="a", call_name="f"),
                FunctionNode(id="a", call_name="g"),
            ]
        )


def test_graph_allows_at_most_one_setup_node() -> None:
    with pytest.raises(ValidationError, match="more than one setup"):
        Graph(nodes=[SetupNode(id="s1"), SetupNode(id="s2")])


def test_node_rejects_duplicate_port_ids() -> None:
    with pytest.raises(ValidationError, match="duplicate input port id"):
        FunctionNode(id="a", call_name="f", inputs=[Port(id="input-0"), Port(id="input-0")])


def test_graph_parses_discriminated_nodes_from_json() -> None:
    graph = Graph.model_validate(
        {
            "nodes": [
                {"kind": "setup"},
                {"kind": "loop"},
                {"kind": "function", "id": "blink", "call_name": "digitalWrite"},
                {"kind": "variable", "id": "v", "name": "count", "var_type": "long"},
            ],
            "edges": [
                {"source": "setup", "source_handle": "exec-out", "target": "blink", "target_handle": "exec-in"}
            ],
        }
    )

    assert [type(n) for n in graph.nodes] == [SetupNode, LoopNode, FunctionNode, VariableNode]
    assert graph.get_node("setup") is graph.nodes[0]
    assert graph.get_node("missing") is None
    assert graph.edges[0].is_execution


def test_variable_node_gets_a_default_value_port() -> None:
    node = VariableNode(id="v", name="count", var_type=ValueType.LONG)

    assert node.value_port.id == "value"
    assert node.value_port.label == "count"
    assert node.value_port.type is ValueType.LONG


def test_variable_node_output_must_match_declared_type() -> None:
    with pytest.raises(ValidationError, match="does not match declared type"):
        VariableNode(id="v", name="x", var_type=ValueType.INT, outputs=[Port(id="value", type=ValueType.FLOAT)])


def test_variable_declaration() -> None:
    assert VariableNode(id="v", name="count", initial_value="0").declaration() == "int count = 0;"
    assert VariableNode(id="v", name="msg", var_type=ValueType.STRING).declaration() == "String msg;"


def test_data_edge_is_not_execution() -> None:
    edge = Edge(source="a", source_handle="output", target="b", target_handle="input-0")
    assert not edge.is_execution


def test_models_are_frozen() -> None:
    port = Port(id="input-0")
    with pytest.raises(ValidationError):
        port.connected = True


def test_method_qualified_name() -> None:
    method = FunctionDef(name="attach", is_method=True, class_name="Servo")
    ctor = FunctionDef(name="Servo", class_name="Servo")

    assert method.qualified_name == "Servo.attach"
    assert ctor.qualified_name == "Servo"
