"""
Tests for the layout interpreter.

Tests cover:
    - Loading and validating layout JSON
    - if / unless pruning with AND semantics and missing paths
    - each producing sibling instantiations in sequence order
    - import rebinding the module overlay (replace, not merge)
    - Undefined module references
"""

import json

import pytest
from isomodel.errors import LayoutLoadError, UndefinedModuleReference
from isomodel.layout import (
    LayoutNode,
    RenderUnit,
    interpret_layout,
    iter_leaves,
    layout_to_list,
    load_layout,
    parse_layout,
    validate_layout,
)
from isomodel.snapshot import RenderContext, StateSnapshot


def snapshot(**fields):
    return StateSnapshot.from_dict(fields)


def names(units):
    return [unit.name for unit in units]


class TestSidebarScenario:
    """A sidebar shown only to signed-in users."""

    LAYOUT = '[{"name": "sidebar", "if": ["user.isSignedIn"]}]'

    def test_signed_out_prunes(self):
        """Signed out yields no units."""
        layout = parse_layout(self.LAYOUT)
        assert interpret_layout(layout, snapshot(user={"isSignedIn": False})) == []

    def test_signed_in_renders(self):
        """Signed in yields exactly one sidebar unit."""
        layout = parse_layout(self.LAYOUT)
        state = snapshot(user={"isSignedIn": True})
        units = interpret_layout(layout, state)
        assert units == [RenderUnit("sidebar", RenderContext(state))]
        assert units[0] == ("sidebar", RenderContext(state))


class TestConditionals:
    """Test if/unless directives."""

    def test_and_semantics(self):
        """Every if path must be truthy."""
        layout = parse_layout('[{"name": "m", "if": ["a.b", "c.d"]}]')
        both = StateSnapshot.from_dict({"state": {}})

        def run(a, c):
            data = {"global": {"a": {"b": a}}, "config": {"c": {"d": c}}}
            return interpret_layout(
                (LayoutNode("m", if_=("global.a.b", "config.c.d")),),
                StateSnapshot.from_dict(data),
            )

        assert names(run(True, 1)) == ["m"]
        assert run(False, 1) == []
        assert run(True, 0) == []
        assert interpret_layout(layout, both) == []

    def test_missing_path_is_falsy(self):
        """A missing path hides the module instead of raising."""
        layout = (LayoutNode("m", if_=("user.profile.name",)),)
        assert interpret_layout(layout, snapshot()) == []

    def test_unless(self):
        """unless requires every path to be falsy."""
        layout = (LayoutNode("footer", unless=("config.hideFooter", "config.embedded")),)
        assert names(interpret_layout(layout, snapshot(config={}))) == ["footer"]
        assert interpret_layout(layout, snapshot(config={"embedded": True})) == []

    def test_pruning_removes_subtree(self):
        """A failing parent prunes all descendants."""
        layout = parse_layout(
            '[{"name": "panel", "if": ["user.admin"], "layout": [{"name": "a"}, {"name": "b"}]},'
            ' {"name": "c"}]'
        )
        assert names(interpret_layout(layout, snapshot(user={"admin": False}))) == ["c"]
        assert names(interpret_layout(layout, snapshot(user={"admin": True}))) == ["a", "b", "c"]

    def test_parents_are_structural(self):
        """Nodes with children yield only their children's units."""
        layout = parse_layout('[{"name": "wrapper", "layout": [{"name": "inner"}]}]')
        assert names(interpret_layout(layout, snapshot())) == ["inner"]


class TestEach:
    """Test iteration."""

    def test_each_produces_siblings(self):
        """Three elements give three units in order, module bound to each."""
        items = [{"id": 1}, {"id": 2}, {"id": 3}]
        layout = parse_layout('[{"name": "tile", "each": "entry.items"}]')
        units = interpret_layout(layout, snapshot(entry={"items": items}))
        assert names(units) == ["tile", "tile", "tile"]
        assert [u.context.resolve("module.id") for u in units] == [1, 2, 3]

    @pytest.mark.parametrize("entry", [{}, {"items": None}, {"items": "abc"}, {"items": {"a": 1}}])
    def test_non_sequence_is_empty(self, entry):
        """Missing or non-sequence paths instantiate nothing."""
        layout = parse_layout('[{"name": "tile", "each": "entry.items"}]')
        assert interpret_layout(layout, snapshot(entry=entry)) == []

    def test_each_subtree(self):
        """Each element instantiates the whole subtree."""
        layout = parse_layout(
            '[{"name": "shelf", "each": "entry.shelves", "layout": ['
            '  {"name": "title"},'
            '  {"name": "tile", "each": "module.movies"}'
            ']}]'
        )
        state = snapshot(entry={"shelves": [
            {"movies": [{"t": "a"}, {"t": "b"}]},
            {"movies": []},
            {"movies": [{"t": "c"}]},
        ]})
        units = interpret_layout(layout, state)
        assert names(units) == ["title", "tile", "tile", "title", "title", "tile"]
        assert [u.context.resolve("module.t") for u in units if u.name == "tile"] == ["a", "b", "c"]

    def test_conditions_checked_before_each(self):
        """if is evaluated against the enclosing context, once."""
        layout = (LayoutNode("tile", if_=("module.visible",), each="entry.items"),)
        state = snapshot(entry={"items": [1, 2]})
        assert interpret_layout(layout, state, module={"visible": True}) != []
        assert interpret_layout(layout, state) == []


class TestImport:
    """Test the import directive."""

    def test_import_binds_module(self):
        """import rebinds module to the resolved value."""
        layout = parse_layout('[{"name": "hero", "import": "entry.featured"}]')
        units = interpret_layout(layout, snapshot(entry={"featured": {"title": "Heat"}}))
        assert units[0].context.resolve("module.title") == "Heat"

    def test_import_replaces_ancestor(self):
        """The imported value replaces the inherited module outright."""
        layout = (LayoutNode("hero", import_="entry.featured"),)
        state = snapshot(entry={"featured": {"title": "Heat"}})
        units = interpret_layout(layout, state, module={"title": "Old", "rank": 1})
        assert units[0].context.resolve("module.title") == "Heat"
        assert units[0].context.resolve("module.rank") is None

    def test_import_missing_path(self):
        """A missing import path binds module to None."""
        layout = (LayoutNode("hero", import_="entry.featured"),)
        units = interpret_layout(layout, snapshot(), module={"x": 1})
        assert units[0].context.module is None

    def test_import_after_each(self):
        """With each, import resolves against each element."""
        layout = (LayoutNode("poster", each="entry.movies", import_="module.poster"),)
        state = snapshot(entry={"movies": [{"poster": {"url": "a"}}, {"poster": {"url": "b"}}]})
        units = interpret_layout(layout, state)
        assert [u.context.resolve("module.url") for u in units] == ["a", "b"]

    def test_import_inherited_by_children(self):
        """Children see the imported module."""
        layout = parse_layout(
            '[{"name": "card", "import": "entry.featured", "layout": [{"name": "body"}]}]'
        )
        units = interpret_layout(layout, snapshot(entry={"featured": {"id": 7}}))
        assert units[0].context.resolve("module.id") == 7


class TestRegistry:
    """Test module name checks."""

    def test_undefined_module(self):
        """A rendered leaf missing from the registry is fatal."""
        layout = parse_layout('[{"name": "header"}, {"name": "ghost"}]')
        with pytest.raises(UndefinedModuleReference) as exc:
            interpret_layout(layout, snapshot(), registry={"header"})
        assert exc.value.module_name == "ghost"

    def test_pruned_unknown_module_not_checked(self):
        """Pruned nodes are not checked at render time."""
        layout = parse_layout('[{"name": "ghost", "if": ["user.nope"]}]')
        assert interpret_layout(layout, snapshot(), registry=set()) == []

    def test_validate_layout(self):
        """Static validation checks every leaf regardless of state."""
        layout = parse_layout('[{"name": "ghost", "if": ["user.nope"]}]')
        with pytest.raises(UndefinedModuleReference):
            validate_layout(layout, set())
        validate_layout(layout, {"ghost"})

    def test_iter_leaves(self):
        """Leaves are listed depth-first."""
        layout = parse_layout('[{"name": "a", "layout": [{"name": "b"}, {"name": "c"}]}, {"name": "d"}]')
        assert [n.name for n in iter_leaves(layout)] == ["b", "c", "d"]


class TestLoading:
    """Test layout JSON loading."""

    def test_parse_all_directives(self):
        """Should read every directive."""
        layout = parse_layout(
            '[{"name": "a", "if": ["x"], "unless": ["y"], "each": "z", "import": "w",'
            ' "layout": [{"name": "b"}]}]'
        )
        node = layout[0]
        assert node == LayoutNode("a", ("x",), ("y",), "z", "w", (LayoutNode("b"),))
        assert not node.is_leaf

    def test_layout_to_list_roundtrip(self):
        """layout_to_list is the inverse of parsing."""
        data = [{"name": "a", "if": ["x"], "layout": [{"name": "b", "each": "e"}]}]
        assert layout_to_list(parse_layout(json.dumps(data))) == data

    @pytest.mark.parametrize("text", [
        "{not json",
        '{"name": "a"}',
        '[{"if": ["x"]}]',
        '[{"name": 3}]',
        '[{"name": "a", "if": "x"}]',
        '[{"name": "a", "each": ["x"]}]',
        '[{"name": "a", "layout": {}}]',
        '[{"name": "a", "colour": "red"}]',
        '["a"]',
    ])
    def test_malformed(self, text):
        """Malformed layouts raise LayoutLoadError."""
        with pytest.raises(LayoutLoadError):
            parse_layout(text, source="page.json")

    def test_error_names_file(self, tmp_path):
        """Load errors name the file."""
        path = tmp_path / "page.json"
        path.write_text("[{", encoding="utf-8")
        with pytest.raises(LayoutLoadError) as exc:
            load_layout(str(path))
        assert str(path) in str(exc.value)
        assert exc.value.source == str(path)

    def test_nested_error_location(self):
        """Structural errors point at the offending descriptor."""
        with pytest.raises(LayoutLoadError) as exc:
            parse_layout('[{"name": "a", "layout": [{"name": "b"}, {"nam": "c"}]}]')
        assert "[0].layout[1]" in str(exc.value)

    def test_load_layout(self, tmp_path):
        """Should load a layout file."""
        path = tmp_path / "page.json"
        path.write_text('[{"name": "header"}]', encoding="utf-8")
        assert load_layout(str(path)) == (LayoutNode("header"),)


class TestDeterminism:
    """Interpreting twice gives equal plans."""

    def test_same_plan(self):
        layout = parse_layout('[{"name": "tile", "each": "entry.items"}]')
        state = snapshot(entry={"items": [{"a": 1}, {"a": 2}]})
        assert interpret_layout(layout, state) == interpret_layout(layout, state)
