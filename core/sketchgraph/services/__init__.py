"""Core services for sketchgraph."""

from .connections import check_connection, connect
from .generator import CompilerOptions, Sketch, compile_graph, compile_sketch
from .header_parser import ParseResult, parse_header, validate_library
from .palette import default_graph, function_node, variable_node

__all__ = [
	"CompilerOptions",
	"ParseResult",
	"Sketch",
	"check_connection",
	"compile_graph",
	"compile_sketch",
	"connect",
	"default_graph",
	"function_node",
	"parse_header",
	"validate_library",
	"variable_node",
]
