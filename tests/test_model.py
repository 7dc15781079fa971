"""
Tests for the decision catalog model objects.

These tests verify:
    - Option and node creation
    - Predicate filtering (effective options are a subset, in order)
    - Node applicability
    - Catalog lookups and walk order
"""

import pytest
from stackplan.model import (
    ChoiceNode,
    DecisionCatalog,
    Exclusivity,
    Option,
    ToolCategory,
    PHASE_ORDER,
)
from stackplan.guards import parse_guard
from stackplan.defaults import build_default_catalog


def framework_node() -> ChoiceNode:
    return ChoiceNode(
        id="framework",
        category="framework",
        options=[
            Option("nextjs", "Next.js", parse_guard("project_type == 'web'")),
            Option("express", "Express", parse_guard("project_type == 'api'")),
            Option("hono", "Hono", parse_guard("project_type == 'api' & language == 'typescript'")),
            Option("other", "Other"),
        ],
        applies_when=parse_guard("project_type != 'library'"),
    )


class TestOption:
    def test_minimal_option(self):
        opt = Option("pnpm")
        assert opt.id == "pnpm"
        assert opt.label == ""
        assert opt.available_when is None

    def test_option_immutable(self):
        opt = Option("pnpm", "pnpm")
        with pytest.raises(AttributeError):
            opt.id = "npm"


class TestChoiceNode:
    """Test predicate filtering."""

    def test_defaults(self):
        node = ChoiceNode(id="x", category="structure")
        assert node.multi_select is False
        assert node.required is True
        assert node.options == []

    def test_filter_keeps_static_order(self):
        node = framework_node()
        ids = [o.id for o in node.filter_options({"project_type": "api", "language": "typescript"})]
        assert ids == ["express", "hono", "other"]

    def test_filter_excludes_failed_guards(self):
        node = framework_node()
        ids = [o.id for o in node.filter_options({"project_type": "web"})]
        assert ids == ["nextjs", "other"]

    @pytest.mark.parametrize("answers", [
        {},
        {"project_type": "web"},
        {"project_type": "api", "language": "python"},
        {"project_type": "api", "language": "typescript"},
        {"project_type": "cli"},
    ])
    def test_filter_is_subset_of_static_options(self, answers):
        node = framework_node()
        filtered = node.filter_options(answers)
        assert set(o.id for o in filtered) <= set(node.option_ids())

    def test_applies(self):
        node = framework_node()
        assert node.applies({"project_type": "web"}) is True
        assert node.applies({"project_type": "library"}) is False

    def test_get_option(self):
        node = framework_node()
        assert node.get_option("hono").label == "Hono"
        assert node.get_option("missing") is None


class TestDecisionCatalog:
    """Test catalog lookups."""

    def test_get_node(self):
        catalog = DecisionCatalog(name="c", nodes=[framework_node()])
        assert catalog.get_node("framework") is not None
        assert catalog.get_node("missing") is None

    def test_ordered_nodes_follow_phases(self):
        catalog = DecisionCatalog(name="c", nodes=[
            ChoiceNode(id="fw", category="framework"),
            ChoiceNode(id="extra", category="custom"),
            ChoiceNode(id="lang", category="language"),
            ChoiceNode(id="shape", category="structure"),
        ])
        assert [n.id for n in catalog.ordered_nodes()] == ["shape", "lang", "fw", "extra"]

    def test_ordered_nodes_stable_within_phase(self):
        catalog = DecisionCatalog(name="c", nodes=[
            ChoiceNode(id="b", category="stack-additions"),
            ChoiceNode(id="a", category="stack-additions"),
        ])
        assert [n.id for n in catalog.ordered_nodes()] == ["b", "a"]

    def test_categories_for(self):
        catalog = DecisionCatalog(name="c", categories=[
            ToolCategory("linter", Exclusivity.ONE_OF, ("biome", "eslint")),
            ToolCategory("formatter", Exclusivity.ONE_OF, ("biome", "prettier")),
        ])
        assert [c.name for c in catalog.categories_for("biome")] == ["linter", "formatter"]
        assert catalog.get_category("linter").exclusivity is Exclusivity.ONE_OF
        assert catalog.get_category("missing") is None

    def test_tool_order(self):
        catalog = build_default_catalog()
        order = catalog.tool_order()
        assert order["monorepo"] < order["web"] < order["nextjs"] < order["pnpm"] < order["biome"]

    def test_default_catalog_uses_known_phases(self):
        catalog = build_default_catalog()
        assert all(n.category in PHASE_ORDER for n in catalog.nodes)
