"""Pydantic domain models for sketch graphs and library descriptors.

Two families live here:
- Graph snapshot: `Port`, the per-kind node models, `Edge`, `Graph`
- Library descriptors: `ConstantDef`, `Parameter`, `FunctionDef`,
  `ClassDef`, `Library`

All models are frozen. The parser builds libraries once, the caller-side
store builds graph snapshots, and the compiler only reads them.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from sketchgraph.domain.value_types import ValueType

EXEC_IN = "exec-in"
EXEC_OUT = "exec-out"

SETUP_ID = "setup"
LOOP_ID = "loop"


class Port(BaseModel):
    """A typed attachment point on a node."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Port id, unique within its node")
    label: str = Field(default="", description="Display label")
    type: ValueType = Field(default=ValueType.ANY, description="Value type carried by the port")
    literal: str | None = Field(default=None, description="Literal used when the port is unconnected")
    connected: bool = Field(default=False, description="Whether a data edge targets this port")


class _NodeBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable unique identifier")
    label: str | None = Field(default=None, description="Optional display label")
    inputs: list[Port] = Field(default_factory=list, description="Input ports")
    outputs: list[Port] = Field(default_factory=list, description="Output ports")

    @model_validator(mode="after")
    def _check_port_ids(self) -> "_NodeBase":
        for side, ports in (("input", self.inputs), ("output", self.outputs)):
            ids = [p.id for p in ports]
            if len(ids) != len(set(ids)):
                raise ValueError(f"duplicate {side} port id on node {self.id!r}")
        return self

    def input_port(self, port_id: str) -> Port | None:
        return next((p for p in self.inputs if p.id == port_id), None)

    def output_port(self, port_id: str) -> Port | None:
        return next((p for p in self.outputs if p.id == port_id), None)


class SetupNode(_NodeBase):
    """Entry of the initialization procedure (``void setup()``)."""

    kind: Literal["setup"] = "setup"
    id: str = SETUP_ID


class LoopNode(_NodeBase):
    """Entry of the repeating procedure (``void loop()``)."""

    kind: Literal["loop"] = "loop"
    id: str = LOOP_ID


class FunctionNode(_NodeBase):
    """A call to a library function or class method."""

    kind: Literal["function"] = "function"
    call_name: str = Field(..., description="Qualified call name, e.g. 'Servo.attach'")
    library: str = Field(default="", description="Originating library id")
    include: str | None = Field(default=None, description="Include directive required by the call")


class VariableNode(_NodeBase):
    """A declared variable exposing its value on a single output port."""

    kind: Literal["variable"] = "variable"
    name: str = Field(default="", description="Declared variable name")
    var_type: ValueType = Field(default=ValueType.INT, description="Declared type")
    initial_value: str | None = Field(default=None, description="Optional initial value literal")
    is_global: bool = Field(default=True, description="Declare at file scope")

    @model_validator(mode="before")
    @classmethod
    def _default_value_port(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("outputs"):
            data = dict(data)
            data["outputs"] = [
                {
                    "id": "value",
                    "label": data.get("name") or "var",
                    "type": data.get("var_type", ValueType.INT),
                }
            ]
        return data

    @model_validator(mode="after")
    def _check_value_port(self) -> "VariableNode":
        if len(self.outputs) != 1:
            raise ValueError(f"variable node {self.id!r} must have exactly one output port")
        if self.outputs[0].type is not self.var_type:
            raise ValueError(
                f"variable node {self.id!r} output type {self.outputs[0].type} "
                f"does not match declared type {self.var_type}"
            )
        return self

    @property
    def value_port(self) -> Port:
        return self.outputs[0]

    def declaration(self) -> str:
        """Render the C++ declaration statement for this variable."""

        if self.initial_value:
            return f"{self.var_type} {self.name} = {self.initial_value};"
        return f"{self.var_type} {self.name};"


Node = Annotated[
    Union[SetupNode, LoopNode, FunctionNode, VariableNode],
    Field(discriminator="kind"),
]


class Edge(BaseModel):
    """A directed connection between two node handles."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="Source node id")
    source_handle: str = Field(..., description="Source output port id or 'exec-out'")
    target: str = Field(..., description="Target node id")
    target_handle: str = Field(..., description="Target input port id or 'exec-in'")

    @property
    def is_execution(self) -> bool:
        return self.source_handle == EXEC_OUT and self.target_handle == EXEC_IN


class Graph(BaseModel):
    """An immutable snapshot of the node graph."""

    model_config = ConfigDict(frozen=True)

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_nodes(self) -> "Graph":
        seen: set[str] = set()
        for n in self.nodes:
            if n.id in seen:
                raise ValueError(f"duplicate node id: {n.id!r}")
            seen.add(n.id)
        for kind in ("setup", "loop"):
            if sum(1 for n in self.nodes if n.kind == kind) > 1:
                raise ValueError(f"graph has more than one {kind} node")
        return self

    def get_node(self, node_id: str) -> SetupNode | LoopNode | FunctionNode | VariableNode | None:
        return next((n for n in self.nodes if n.id == node_id), None)


# ---------------------------------------------------------------------------
# Library descriptors produced by the header parser or bundled data.
# ---------------------------------------------------------------------------


class ConstantDef(BaseModel):
    """A ``#define`` or ``const`` global exported by a library."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str
    type: ValueType = ValueType.INT


class Parameter(BaseModel):
    """One parameter of a function prototype."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: ValueType = ValueType.ANY
    default_value: str | None = None


class FunctionDef(BaseModel):
    """A free function, class method or constructor."""

    model_config = ConfigDict(frozen=True)

    name: str
    return_type: ValueType = ValueType.VOID
    parameters: list[Parameter] = Field(default_factory=list)
    description: str | None = None
    is_method: bool = False
    class_name: str | None = Field(default=None, description="Owning class for methods and constructors")
    category: str | None = None

    @property
    def qualified_name(self) -> str:
        """Call name as written in a sketch (``Class.method`` for methods)."""

        if self.is_method and self.class_name:
            return f"{self.class_name}.{self.name}"
        return self.name


class ClassDef(BaseModel):
    """A class with its public methods and constructors."""

    model_config = ConfigDict(frozen=True)

    name: str
    methods: list[FunctionDef] = Field(default_factory=list)
    constructors: list[FunctionDef] = Field(default_factory=list)
    description: str | None = None


class Library(BaseModel):
    """Structured API descriptor for one header file."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Library id, derived from the header file name")
    display_name: str = Field(..., description="Name shown in the palette")
    include: str = Field(..., description="Include directive, e.g. '#include <Servo.h>'")
    is_core: bool = False
    category: str = "Custom"
    constants: list[ConstantDef] = Field(default_factory=list)
    functions: list[FunctionDef] = Field(default_factory=list)
    classes: list[ClassDef] = Field(default_factory=list)
