"""
Template compiler: the second template engine.

Translates a parsed Template into the source of a Python function and
executes that source once, instead of walking the node tree on every
render. Its output must be byte-identical to render_template for every
(template, data) pair; the tests hold both engines to that.

The source is generated from parsed nodes only, never by splicing
template text: literals go through repr() and paths are tuples of
validated segments. compile_template is the one place that calls
exec(), with a namespace holding nothing but the RUNTIME helpers.

Every `each` body becomes its own top-level function, so loops never nest
inside one another in the generated code. `if` and `unless` nest as plain
statements, bounded by MAX_BLOCK_DEPTH in the parser.

Generated code for `{{#each entry.items}}<li>{{title}}</li>{{/each}}`:

    def each1(scopes1, _append):
        _append('<li>')
        _append(escape_html(display_value(lookup(scopes1, ('title',)))))
        _append('</li>')

    def render(data):
        scopes0 = (root_scope(data),)
        out = []
        _append = out.append
        for item1 in iterate(lookup(scopes0, ('entry', 'items'))):
            each1(scopes0 + (item1,), _append)
        return ''.join(out)
"""

from dataclasses import dataclass, field
from typing import Any, Callable, List, Sequence, Union

from .snapshot import is_truthy
from .template import (
    Block,
    Node,
    Template,
    Text,
    Variable,
    display_value,
    escape_html,
    iterate,
    lookup,
    parse_template,
    root_scope,
)

INDENT = "    "
FUNCTION_NAME = "render"

# Names the generated code may use
RUNTIME = {
    "display_value": display_value,
    "escape_html": escape_html,
    "is_truthy": is_truthy,
    "iterate": iterate,
    "lookup": lookup,
    "root_scope": root_scope,
}


class _CodeWriter:
    def __init__(self):
        self.lines: List[str] = []
        self.depth = 0
        self.counter = 0
        # Finished `each` body functions, in completion order
        self.functions: List[List[str]] = []

    def line(self, text: str) -> None:
        self.lines.append(INDENT * self.depth + text)

    def next_id(self) -> int:
        self.counter += 1
        return self.counter

    def body(self, nodes: Sequence[Node], scopes: str) -> None:
        depth = self.depth
        self.depth += 1
        if nodes:
            _emit_nodes(nodes, scopes, self)
        else:
            self.line("pass")
        self.depth = depth


def _emit_each(node: Block, value: str, scopes: str, w: _CodeWriter) -> None:
    n = w.next_id()
    outer = w.lines, w.depth
    w.lines, w.depth = [], 0
    w.line(f"def each{n}(scopes{n}, _append):")
    w.body(node.body, f"scopes{n}")
    w.functions.append(w.lines)
    w.lines, w.depth = outer

    w.line(f"for item{n} in iterate({value}):")
    w.line(f"{INDENT}each{n}({scopes} + (item{n},), _append)")


def _emit_block(node: Block, scopes: str, w: _CodeWriter) -> None:
    value = f"lookup({scopes}, {node.path!r})"
    if node.helper == "each":
        _emit_each(node, value, scopes, w)
        return

    test = f"is_truthy({value})" if node.helper == "if" else f"not is_truthy({value})"
    w.line(f"if {test}:")
    w.body(node.body, scopes)


def _emit_nodes(nodes: Sequence[Node], scopes: str, w: _CodeWriter) -> None:
    for node in nodes:
        if isinstance(node, Text):
            w.line(f"_append({node.text!r})")
        elif isinstance(node, Variable):
            w.line(f"_append(escape_html(display_value(lookup({scopes}, {node.path!r}))))")
        elif isinstance(node, Block):
            _emit_block(node, scopes, w)
        else:
            raise TypeError(f"Unsupported template node: {type(node)}")


def generate_source(template: Template) -> str:
    """Python source of the render function (and its `each` bodies) for one template."""
    w = _CodeWriter()
    w.line(f"def {FUNCTION_NAME}(data):")
    w.depth += 1
    w.line("scopes0 = (root_scope(data),)")
    w.line("out = []")
    w.line("_append = out.append")
    _emit_nodes(template.nodes, "scopes0", w)
    w.line("return ''.join(out)")
    chunks = ["\n".join(lines) + "\n" for lines in w.functions + [w.lines]]
    return "\n".join(chunks)


@dataclass
class CompiledTemplate:
    """A template turned into a plain Python function."""

    template: Template
    source: str
    function: Callable[[Any], str] = field(repr=False)

    def render(self, data: Any) -> str:
        return self.function(data)


def compile_template(template: Union[Template, str], source: str = None) -> CompiledTemplate:
    """
    Compile a template (or template text) into a CompiledTemplate.

    Raises:
        TemplateSyntaxError: If template text is malformed
    """
    if isinstance(template, str):
        template = parse_template(template, source=source)
    code = generate_source(template)
    filename = f"<template {template.source or source or '?'}>"
    namespace = dict(RUNTIME)
    exec(compile(code, filename, "exec"), namespace)
    return CompiledTemplate(template=template, source=code, function=namespace[FUNCTION_NAME])


__all__ = ["CompiledTemplate", "compile_template", "generate_source"]
