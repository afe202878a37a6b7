"""C/C++ header parser producing `Library` descriptors.

The parser is lenient. It does not build a C++ AST; it strips
comments and preprocessor noise, then recognizes declaration shapes with
regular expressions and small bracket-aware scanners:

- ``#define NAME VALUE`` and ``const TYPE NAME = VALUE;`` constants
- free function prototypes ``[qualifiers] RET NAME(PARAMS) [const];``
- ``class``/``struct`` bodies, restricted to their ``public:`` sections

A malformed macro, declaration or parameter is skipped and reported as a
warning. Only an unexpected fault aborts the parse, and it is returned as a
single error instead of being raised.
"""

from __future__ import annotations

import logging
import re

from pydantic import BaseModel, ConfigDict, Field

from sketchgraph.domain.models import ClassDef, ConstantDef, FunctionDef, Library, Parameter
from sketchgraph.domain.value_types import ValueType
from sketchgraph.errors import DeclarationError

logger = logging.getLogger(__name__)

TYPE_MAP: dict[str, ValueType] = {
    "void": ValueType.VOID,
    "int": ValueType.INT,
    "short": ValueType.INT,
    "int16_t": ValueType.INT,
    "long": ValueType.LONG,
    "long int": ValueType.LONG,
    "int32_t": ValueType.LONG,
    "float": ValueType.FLOAT,
    "double": ValueType.DOUBLE,
    "bool": ValueType.BOOL,
    "boolean": ValueType.BOOLEAN,
    "byte": ValueType.BYTE,
    "char": ValueType.CHAR,
    "signed char": ValueType.CHAR,
    "String": ValueType.STRING,
    "uint8_t": ValueType.UINT8,
    "uint16_t": ValueType.UINT16,
    "uint32_t": ValueType.UINT32,
    "unsigned long": ValueType.ULONG,
    "unsigned long int": ValueType.ULONG,
    "unsigned": ValueType.UINT16,
    "unsigned int": ValueType.UINT16,
    "unsigned short": ValueType.UINT16,
    "unsigned char": ValueType.UINT8,
    "size_t": ValueType.UINT32,
    "word": ValueType.UINT16,
}

QUALIFIER_KEYWORDS = frozenset(
    {
        "const",
        "volatile",
        "static",
        "unsigned",
        "signed",
        "long",
        "short",
        "struct",
        "class",
        "enum",
        "typename",
        "template",
    }
)

# Fundamental type keywords can never be parameter names. Typedef names such
# as ``byte`` or ``word`` are ordinary identifiers.
_FUNDAMENTAL_TYPES = frozenset({"int", "char", "float", "double", "bool", "void"})

# Words that a prototype match may pick up in the return-type slot but that
# never start a real return type.
_NOT_RETURN_TYPES = frozenset(
    {
        "explicit",
        "virtual",
        "static",
        "inline",
        "extern",
        "friend",
        "constexpr",
        "return",
        "else",
        "new",
        "delete",
        "typedef",
        "using",
        "case",
        "goto",
        "throw",
        "operator",
    }
)

_CONTAINER_TEMPLATES = ("vector", "list", "array", "pair", "tuple")

_PARAMS = r"(?P<params>[^()]*(?:\([^()]*\)[^()]*)*)"

_PROTOTYPE_RE = re.compile(
    r"(?:^|(?<=[;{}:]))\s*"
    r"(?:(?:static|inline|virtual|extern|explicit|constexpr|friend)\s+)*"
    r"(?P<ret>(?:(?:const|unsigned|signed|struct|enum)\s+)*"
    r"[A-Za-z_][\w:]*(?:\s*<[^;{}()]*?>)?(?:\s+(?:long|int|char|short|double))?)"
    r"(?P<ptr>\s*[*&]+\s*|\s+)"
    r"(?P<name>~?[A-Za-z_]\w*)\s*\(" + _PARAMS + r"\)"
    r"\s*(?:const\b)?\s*(?:override\b)?\s*(?:=\s*0\s*)?;",
    re.MULTILINE,
)

_CONSTRUCTOR_RE = re.compile(
    r"(?:^|(?<=[;{}:]))\s*"
    r"(?:(?:explicit|inline|constexpr)\s+)*"
    r"(?P<name>[A-Za-z_]\w*)\s*\(" + _PARAMS + r"\)(?:\s*:[^;{}]*?)?"
    r"\s*(?:=\s*(?P<special>default|delete)\s*)?;",
    re.MULTILINE,
)

_CLASS_RE = re.compile(r"\b(?:class|struct)\s+(?P<name>[A-Za-z_]\w*)(?:\s+final)?\s*(?::[^{;]*)?\{")
_ACCESS_RE = re.compile(r"\b(public|private|protected)\s*:(?!:)")

_DEFINE_RE = re.compile(r"^[ \t]*#[ \t]*define\b(?P<body>.*)$", re.MULTILINE)
_DEFINE_BODY_RE = re.compile(r"^[ \t]+(?P<name>[A-Za-z_]\w*)(?P<paren>\()?[ \t]*(?P<value>.*?)[ \t]*$")
_INCLUDE_GUARD_RE = re.compile(r"_(?:H|HPP)_?$")
_PREPROCESSOR_RE = re.compile(r"^[ \t]*#(?:[^\n]*\\\n)*[^\n]*", re.MULTILINE)

_CONST_RE = re.compile(
    r"\bconst[ \t]+(?P<type>[A-Za-z_][\w: \t*&<>,]*?)[ \t]*\b(?P<name>[A-Za-z_]\w*)"
    r"\s*=\s*(?P<value>[^;]+);"
)

_BODY_PREFIX_RE = re.compile(r"\)\s*(?:(?:const|override|noexcept|final)\b\s*)*$")
_STATEMENT_RE = re.compile(r"[^;]*;")
_SKIPPED_STATEMENT_MARKERS = ("operator", "typedef", "using ", "friend ", "~", "#", "static_assert")

_HEADER_SUFFIX_RE = re.compile(r"\.(?:h|hh|hpp)$", re.IGNORECASE)
_IDENT_RE = re.compile(r"^[A-Za-z_]\w*$")
_ARRAY_NAME_RE = re.compile(r"^(?P<name>[A-Za-z_]\w*)\[[^\]]*\]$")
_CV_RE = re.compile(r"\b(?:const|volatile|static|struct|class|enum|typename)\b")
_TEMPLATE_RE = re.compile(r"^(?P<base>[\w:]+)\s*<.*>")
_NAMESPACE_RE = re.compile(r"\b\w+::")


class ParseResult(BaseModel):
    """Outcome of `parse_header`.

    On success ``library`` is set and ``warnings`` lists skipped fragments.
    On failure ``library`` is None and ``errors`` holds one message.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    library: Library | None = None
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def parse_header(content: str, file_name: str) -> ParseResult:
    """Parse header text into a library descriptor.

    Args:
        content: Raw header text.
        file_name: Header file name (e.g. ``"Servo.h"``). The library id and
            display name are the base name without its extension; the include
            directive is ``#include <file_name>``.

    Returns:
        A `ParseResult`. This function never raises.
    """

    warnings: list[str] = []

    try:
        base_name = re.split(r"[\\/]", file_name)[-1]
        library_name = _HEADER_SUFFIX_RE.sub("", base_name)

        text = strip_comments(content.replace("\r\n", "\n"))
        constants = _parse_defines(text, warnings)

        code = _collapse_bodies(_PREPROCESSOR_RE.sub("", text))
        constants.extend(_parse_const_globals(code))

        classes, outside = _parse_classes(code, warnings)
        functions, _ = _scan_prototypes(outside, warnings)

        library = Library(
            name=library_name,
            display_name=library_name,
            include=f"#include <{base_name}>",
            is_core=False,
            category="Custom",
            constants=constants,
            functions=functions,
            classes=classes,
        )
    except Exception as exc:  # noqa: BLE001 - any fault is reported, never raised
        logger.debug("header parse of %s failed", file_name, exc_info=True)
        return ParseResult(success=False, errors=[f"Failed to parse header: {exc}"], warnings=warnings)

    warnings.extend(validate_library(library))
    logger.debug(
        "parsed %s: %d constants, %d functions, %d classes, %d warnings",
        file_name,
        len(library.constants),
        len(library.functions),
        len(library.classes),
        len(warnings),
    )
    return ParseResult(success=True, library=library, warnings=warnings)


def validate_library(library: Library) -> list[str]:
    """Advisory checks on a parsed library. Findings never block loading."""

    problems: list[str] = []
    if not library.name:
        problems.append("Library name is required")
    if not library.functions and not library.classes:
        problems.append("No functions or classes found in header")
    return problems


def strip_comments(content: str) -> str:
    """Remove ``//`` line comments, then ``/* */`` block comments."""

    result = re.sub(r"//.*$", "", content, flags=re.MULTILINE)
    return re.sub(r"/\*[\s\S]*?\*/", "", result)


def infer_type(value: str) -> ValueType:
    """Guess a macro's type from the lexical shape of its value."""

    if value.startswith('"'):
        return ValueType.STRING
    if value.startswith("'"):
        return ValueType.CHAR
    if value in ("true", "false"):
        return ValueType.BOOL
    if "." in value:
        return ValueType.FLOAT
    if value.lower().startswith("0x"):
        return ValueType.INT
    if value.isdigit():
        return ValueType.INT
    return ValueType.INT


def map_type(cpp_type: str) -> ValueType:
    """Map a plain C++ type through the base table.

    ``char*`` and ``int*`` have dedicated kinds; any other pointer and any
    unknown name map to the wildcard. References map to their base type.
    """

    base = " ".join(re.sub(r"[*&]", " ", cpp_type).split())
    if "*" in cpp_type:
        if base == "char":
            return ValueType.CHAR_PTR
        if base == "int":
            return ValueType.INT_PTR
        return ValueType.ANY
    return TYPE_MAP.get(base, ValueType.ANY)


def map_complex_type(cpp_type: str) -> ValueType:
    """Map a possibly qualified, namespaced or templated C++ type."""

    clean = " ".join(_CV_RE.sub("", cpp_type).split())

    template = _TEMPLATE_RE.match(clean)
    if template:
        base = template.group("base").lower()
        if any(name in base for name in _CONTAINER_TEMPLATES):
            return ValueType.ANY
        if "string" in base:
            return ValueType.STRING
        return ValueType.ANY

    return map_type(_NAMESPACE_RE.sub("", clean))


def split_parameters(params: str) -> list[str]:
    """Split a parameter list on top-level commas.

    Commas nested in ``<>``, ``()``, ``[]``, ``{}`` or inside string and
    character literals do not split.
    """

    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    escaped = False

    for ch in params:
        if quote is not None:
            current.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == quote:
                quote = None
            continue

        if ch in "\"'":
            quote = ch
        elif ch in "<([{":
            depth += 1
        elif ch in ">)]}":
            depth = max(depth - 1, 0)
        elif ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)

    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return parts


def parse_parameter(text: str, index: int = 0) -> Parameter:
    """Parse one parameter declaration such as ``const String& name = ""``.

    Args:
        text: One entry produced by `split_parameters`.
        index: Position in the parameter list, used to synthesize ``arg<N>``
            when the declaration has no name.

    Raises:
        DeclarationError: If the fragment cannot be read as a parameter.
    """

    fragment = text.strip()
    if not fragment:
        raise DeclarationError("Could not parse parameter", text)
    if fragment.endswith("..."):
        raise DeclarationError("Variadic parameter not supported", fragment)

    type_and_name, default_value = _split_default(fragment)
    if not type_and_name or not _balanced(type_and_name):
        raise DeclarationError("Could not parse parameter", fragment)

    normalized = " ".join(re.sub(r"\s*([*&])\s*", r" \1 ", type_and_name).split())
    tokens = normalized.split(" ")

    name: str | None = None
    type_str = normalized
    for i in range(len(tokens) - 1, 0, -1):
        token = tokens[i]
        if token in ("*", "&"):
            continue
        array = _ARRAY_NAME_RE.match(token)
        candidate = array.group("name") if array else token
        if not _IDENT_RE.match(candidate):
            continue
        if candidate in QUALIFIER_KEYWORDS or candidate in _FUNDAMENTAL_TYPES:
            continue
        name = candidate
        type_tokens = tokens[:i] + tokens[i + 1 :]
        if array:
            type_tokens.append("*")
        type_str = " ".join(type_tokens)
        break

    if name is None:
        name = f"arg{index}"

    if not re.match(r"^(?:[A-Za-z_]|::)", type_str):
        raise DeclarationError("Could not parse parameter", fragment)

    return Parameter(name=name, type=map_complex_type(type_str), default_value=default_value)


def parse_parameters(params: str, warnings: list[str]) -> list[Parameter]:
    """Parse a whole parameter list, dropping malformed entries with a warning."""

    stripped = params.strip()
    if not stripped or stripped == "void":
        return []

    out: list[Parameter] = []
    for index, part in enumerate(split_parameters(stripped)):
        try:
            out.append(parse_parameter(part, index))
        except DeclarationError as exc:
            warnings.append(str(exc))
    return out


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _parse_defines(text: str, warnings: list[str]) -> list[ConstantDef]:
    constants: list[ConstantDef] = []
    for match in _DEFINE_RE.finditer(text):
        body = match.group("body")
        line = " ".join(match.group(0).split())
        if body.rstrip().endswith("\\"):
            warnings.append(f"Skipped multi-line macro: {line}")
            continue

        parsed = _DEFINE_BODY_RE.match(body)
        if parsed is None:
            warnings.append(f"Could not parse macro: {line}")
            continue
        if parsed.group("paren"):
            continue

        name = parsed.group("name")
        value = parsed.group("value")
        if not value or _INCLUDE_GUARD_RE.search(name):
            continue

        constants.append(ConstantDef(name=name, value=value, type=infer_type(value)))
    return constants


def _parse_const_globals(code: str) -> list[ConstantDef]:
    constants: list[ConstantDef] = []
    for match in _CONST_RE.finditer(code):
        value = match.group("value").strip()
        # A default argument such as ``f(const int a = 5);`` is not a global.
        if value.count(")") > value.count("("):
            continue
        constants.append(
            ConstantDef(
                name=match.group("name"),
                value=value,
                type=map_complex_type(match.group("type")),
            )
        )
    return constants


def _parse_classes(code: str, warnings: list[str]) -> tuple[list[ClassDef], str]:
    """Extract class bodies. Returns the classes and the code outside them."""

    classes: list[ClassDef] = []
    outside: list[str] = []
    pos = 0

    while True:
        match = _CLASS_RE.search(code, pos)
        if match is None:
            break

        class_name = match.group("name")
        close = _match_brace(code, match.end() - 1)
        if close is None:
            warnings.append(f"Unterminated class body: {class_name}")
            break

        outside.append(code[pos : match.start()])
        outside.append(";")

        methods: list[FunctionDef] = []
        constructors: list[FunctionDef] = []
        body = _strip_nested_classes(code[match.end() : close])
        for section in _public_sections(body):
            found, ctors = _scan_prototypes(section, warnings, class_name=class_name)
            methods.extend(found)
            constructors.extend(ctors)

        if methods or constructors:
            classes.append(ClassDef(name=class_name, methods=methods, constructors=constructors))
        pos = close + 1

    outside.append(code[pos:])
    return classes, "".join(outside)


def _strip_nested_classes(body: str) -> str:
    """Replace nested ``class``/``struct`` bodies with ``;``."""

    parts: list[str] = []
    pos = 0
    while True:
        match = _CLASS_RE.search(body, pos)
        if match is None:
            break
        close = _match_brace(body, match.end() - 1)
        if close is None:
            break
        parts.append(body[pos : match.start()])
        parts.append(";")
        pos = close + 1
    parts.append(body[pos:])
    return "".join(parts)


def _public_sections(body: str) -> list[str]:
    labels = list(_ACCESS_RE.finditer(body))
    if not labels:
        return [body]

    sections: list[str] = []
    for i, label in enumerate(labels):
        if label.group(1) != "public":
            continue
        end = labels[i + 1].start() if i + 1 < len(labels) else len(body)
        sections.append(body[label.end() : end])
    return sections


def _scan_prototypes(
    code: str,
    warnings: list[str],
    *,
    class_name: str | None = None,
) -> tuple[list[FunctionDef], list[FunctionDef]]:
    """Find prototypes in a declaration span.

    Returns:
        ``(functions, constructors)``. Outside a class, functions are free
        functions and constructors is always empty.
    """

    functions: list[FunctionDef] = []
    constructors: list[FunctionDef] = []
    covered: set[int] = set()

    if class_name is not None:
        for match in _CONSTRUCTOR_RE.finditer(code):
            if match.group("name") != class_name:
                continue
            covered.add(match.end())
            if match.group("special") == "delete":
                continue
            constructors.append(
                FunctionDef(
                    name=class_name,
                    return_type=ValueType.VOID,
                    parameters=parse_parameters(match.group("params"), warnings),
                    is_method=False,
                    class_name=class_name,
                    category=class_name,
                )
            )

    for match in _PROTOTYPE_RE.finditer(code):
        name = match.group("name")
        ret = match.group("ret")
        if match.end() in covered:
            continue
        if ret.split()[0] in _NOT_RETURN_TYPES:
            continue
        covered.add(match.end())
        if name.startswith("~") or name.startswith("operator"):
            continue
        if class_name is not None and name == class_name:
            continue

        return_type = map_complex_type(ret + match.group("ptr").strip())
        parameters = parse_parameters(match.group("params"), warnings)
        if class_name is None:
            functions.append(
                FunctionDef(
                    name=name,
                    return_type=return_type,
                    parameters=parameters,
                    category="Functions",
                )
            )
        else:
            functions.append(
                FunctionDef(
                    name=name,
                    return_type=return_type,
                    parameters=parameters,
                    is_method=True,
                    class_name=class_name,
                    category=class_name,
                )
            )

    for statement in _STATEMENT_RE.finditer(code):
        if statement.end() in covered or "(" not in statement.group(0):
            continue
        fragment = " ".join(re.split(r"[{}]", statement.group(0))[-1].split())
        if not fragment or any(marker in fragment for marker in _SKIPPED_STATEMENT_MARKERS):
            continue
        warnings.append(f"Skipped unrecognized declaration: {fragment}")

    return functions, constructors


def _collapse_bodies(code: str) -> str:
    """Replace inline function bodies ``) { ... }`` with ``;``."""

    parts: list[str] = []
    pos = 0
    i = 0
    while True:
        i = code.find("{", i)
        if i < 0:
            break
        if _BODY_PREFIX_RE.search(code, max(pos, i - 256), i):
            close = _match_brace(code, i)
            if close is None:
                break
            parts.append(code[pos:i])
            parts.append(";")
            pos = i = close + 1
        else:
            i += 1
    parts.append(code[pos:])
    return "".join(parts)


def _match_brace(code: str, open_index: int) -> int | None:
    """Return the index of the brace closing ``code[open_index]``."""

    depth = 0
    quote: str | None = None
    i = open_index
    while i < len(code):
        ch = code[i]
        if quote is not None:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def _split_default(fragment: str) -> tuple[str, str | None]:
    depth = 0
    quote: str | None = None
    for i, ch in enumerate(fragment):
        if quote is not None:
            if ch == quote and fragment[i - 1] != "\\":
                quote = None
            continue
        if ch in "\"'":
            quote = ch
        elif ch in "<([{":
            depth += 1
        elif ch in ">)]}":
            depth = max(depth - 1, 0)
        elif ch == "=" and depth == 0:
            default_value = fragment[i + 1 :].strip()
            if not default_value:
                raise DeclarationError("Missing default value", fragment)
            return fragment[:i].strip(), default_value
    return fragment, None


def _balanced(text: str) -> bool:
    return text.count("<") == text.count(">") and text.count("(") == text.count(")")
