"""
Logicless Template Renderer (render time: template + context → text).

Grammar (nothing else is accepted):
    {{path}}                       escaped interpolation
    {{#if path}}...{{/if}}         render body if path is truthy
    {{#unless path}}...{{/unless}} render body if path is falsy
    {{#each path}}...{{/each}}     render body once per sequence element

Scoping:
    - `this` / `this.x` address the innermost scope (the current element
      inside `each`, the root data otherwise)
    - any other path looks its first segment up from the innermost scope
      outwards, so outer data stays visible inside `each`
    - missing paths are None: empty when interpolated, falsy in blocks

Text between tags is copied byte for byte. Interpolated values are
HTML-escaped with the Handlebars character set.

This module is the interpreting engine; template_compiler.py is the
second, independent engine that must produce identical output.
"""

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union

from .errors import TemplateSyntaxError
from .snapshot import RenderContext, StateSnapshot, is_sequence, is_truthy, resolve_segment

TAG_RE = re.compile(r"\{\{(.*?)\}\}", re.DOTALL)
PATH_RE = re.compile(r"[A-Za-z_$][\w$-]*(\.[\w$-]+)*")
BLOCK_RE = re.compile(r"#(\w+)\s+(\S+)")

# Deepest allowed block nesting; both engines share the parser
MAX_BLOCK_DEPTH = 64
HELPERS = ("if", "unless", "each")
THIS = "this"

_ESCAPES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "`": "&#x60;",
    "=": "&#x3D;",
}
_ESCAPE_RE = re.compile("[&<>\"'`=]")


# =========================================================================
# NODES
# =========================================================================

class Node:
    """Base class for parsed template nodes."""
    pass


@dataclass(frozen=True)
class Text(Node):
    text: str


@dataclass(frozen=True)
class Variable(Node):
    path: Tuple[str, ...]
    line: int = 0


@dataclass(frozen=True)
class Block(Node):
    """An if / unless / each section."""
    helper: str
    path: Tuple[str, ...]
    body: Tuple[Node, ...]
    line: int = 0


@dataclass(frozen=True)
class Template:
    nodes: Tuple[Node, ...]
    source: Optional[str] = None


# =========================================================================
# PARSING
# =========================================================================

def _parse_path(raw: str, line: int, source: Optional[str]) -> Tuple[str, ...]:
    if not PATH_RE.fullmatch(raw):
        raise TemplateSyntaxError(f"invalid path '{raw}'", line, source)
    segments = tuple(raw.split("."))
    if THIS in segments[1:]:
        raise TemplateSyntaxError(f"'this' may only start a path: '{raw}'", line, source)
    return segments


def _classify(inner: str, line: int, source: Optional[str]) -> Tuple[str, Any]:
    if inner.startswith("{"):
        raise TemplateSyntaxError("triple-stash (unescaped output) is not supported", line, source)
    tag = inner.strip()
    if not tag:
        raise TemplateSyntaxError("empty tag", line, source)
    marker = tag[0]
    if marker == "#":
        match = BLOCK_RE.fullmatch(tag)
        if match is None:
            raise TemplateSyntaxError(f"malformed block tag '{{{{{tag}}}}}'", line, source)
        helper, raw_path = match.groups()
        if helper not in HELPERS:
            raise TemplateSyntaxError(f"unknown block helper '{helper}'", line, source)
        return "open", (helper, _parse_path(raw_path, line, source))
    if marker == "/":
        return "close", tag[1:].strip()
    if marker == "!":
        raise TemplateSyntaxError("comments are not supported", line, source)
    if marker == ">":
        raise TemplateSyntaxError("partials are not supported", line, source)
    if marker in "^&":
        raise TemplateSyntaxError(f"'{marker}' tags are not supported", line, source)
    if tag == "else" or tag.startswith("else "):
        raise TemplateSyntaxError("'else' is not supported", line, source)
    return "var", _parse_path(tag, line, source)


def parse_template(text: str, source: Optional[str] = None) -> Template:
    """
    Parse template text.

    Args:
        text: Template source
        source: Name used in error messages (usually the file path)

    Raises:
        TemplateSyntaxError: With the line number of the offending tag
    """
    # Each frame: (helper, path, line, children)
    stack: List[Tuple[Optional[str], Tuple[str, ...], int, List[Node]]] = [(None, (), 0, [])]
    position = 0
    line = 1

    for match in TAG_RE.finditer(text):
        before = text[position:match.start()]
        if before:
            stack[-1][3].append(Text(before))
        line += before.count("\n")
        tag_line = line
        line += match.group(0).count("\n")
        position = match.end()

        kind, value = _classify(match.group(1), tag_line, source)
        if kind == "var":
            stack[-1][3].append(Variable(value, tag_line))
        elif kind == "open":
            helper, path = value
            if len(stack) > MAX_BLOCK_DEPTH:
                raise TemplateSyntaxError(
                    f"blocks nested deeper than {MAX_BLOCK_DEPTH} levels", tag_line, source,
                )
            stack.append((helper, path, tag_line, []))
        else:
            helper, path, open_line, children = stack[-1]
            if helper is None:
                raise TemplateSyntaxError(f"'{{{{/{value}}}}}' closes nothing", tag_line, source)
            if value != helper:
                raise TemplateSyntaxError(
                    f"'{{{{/{value}}}}}' does not match '{{{{#{helper}}}}}' opened on line {open_line}",
                    tag_line, source,
                )
            stack.pop()
            stack[-1][3].append(Block(helper, path, tuple(children), open_line))

    rest = text[position:]
    if "{{" in rest:
        line += rest[:rest.index("{{")].count("\n")
        raise TemplateSyntaxError("unterminated tag", line, source)
    if rest:
        stack[-1][3].append(Text(rest))

    if len(stack) > 1:
        helper, _, open_line, _ = stack[-1]
        raise TemplateSyntaxError(f"unclosed '{{{{#{helper}}}}}'", open_line, source)

    return Template(tuple(stack[0][3]), source)


# =========================================================================
# VALUE SEMANTICS
# =========================================================================

def escape_html(text: str) -> str:
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(0)], text)


def _format_number(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    mantissa, _, exponent = repr(value).partition("e")
    if not exponent:
        return mantissa
    power = int(exponent)
    if -7 < power < 0:
        # Fixed notation down to 1e-6, as JavaScript prints numbers
        sign = "-" if mantissa.startswith("-") else ""
        digits = mantissa.lstrip("-").replace(".", "")
        return f"{sign}0.{'0' * (-power - 1)}{digits}"
    return f"{mantissa}e{'+' if power > 0 else '-'}{abs(power)}"


def display_value(value: Any) -> str:
    """
    Text for an interpolated value.

    None -> "", booleans -> true/false, integral floats without a
    fraction, sequences comma-joined, mappings "[object Object]".
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_number(value)
    if isinstance(value, (int, str)):
        return str(value)
    if isinstance(value, Mapping):
        return "[object Object]"
    if is_sequence(value):
        return ",".join(display_value(v) for v in value)
    return str(value)


def _defines(scope: Any, name: str) -> bool:
    if isinstance(scope, Mapping):
        return name in scope
    if scope is None or is_sequence(scope) or isinstance(scope, (str, int, float, bool)):
        return False
    return not name.startswith("_") and hasattr(scope, name)


def lookup(scopes: Sequence[Any], path: Tuple[str, ...]) -> Any:
    """Resolve a parsed path against a scope chain (innermost last)."""
    head, rest = path[0], path[1:]
    if head == THIS:
        value = scopes[-1]
    else:
        value = None
        for scope in reversed(scopes):
            if _defines(scope, head):
                value = resolve_segment(scope, head)
                break
    for segment in rest:
        if value is None:
            return None
        value = resolve_segment(value, segment)
    return value


def iterate(value: Any) -> Sequence[Any]:
    """Elements an `each` block visits; non-sequences visit nothing."""
    return value if is_sequence(value) else ()


def root_scope(data: Any) -> Any:
    if isinstance(data, (RenderContext, StateSnapshot)):
        return data.as_scope()
    return data


# =========================================================================
# INTERPRETING
# =========================================================================

def _render_nodes(nodes: Sequence[Node], scopes: Tuple[Any, ...], out: List[str]) -> None:
    for node in nodes:
        if isinstance(node, Text):
            out.append(node.text)
        elif isinstance(node, Variable):
            out.append(escape_html(display_value(lookup(scopes, node.path))))
        elif isinstance(node, Block):
            value = lookup(scopes, node.path)
            if node.helper == "if":
                if is_truthy(value):
                    _render_nodes(node.body, scopes, out)
            elif node.helper == "unless":
                if not is_truthy(value):
                    _render_nodes(node.body, scopes, out)
            else:
                for item in iterate(value):
                    _render_nodes(node.body, scopes + (item,), out)
        else:
            raise TypeError(f"Unsupported template node: {type(node)}")


def render_template(template: Union[Template, str], data: Any) -> str:
    """
    Render a template against a RenderContext, snapshot or plain mapping.

    Pure: the data is never modified and nothing outside the returned
    string is written.
    """
    if isinstance(template, str):
        template = parse_template(template)
    out: List[str] = []
    _render_nodes(template.nodes, (root_scope(data),), out)
    return "".join(out)


__all__ = [
    "Template",
    "Text",
    "Variable",
    "Block",
    "parse_template",
    "render_template",
    "display_value",
    "escape_html",
    "lookup",
]
