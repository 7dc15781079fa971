"""
Tests for the Operation Planner.

These tests verify:
    - Operations are emitted only for things that exist / differ
    - Fixed ordering: dependencies, then files, then scripts
    - Files owned by an active tool are never deleted
    - Idempotence: apply, re-plan -> empty plan
    - The reference scenarios (formatter replacing a linter pair,
      no additions)
"""

import pytest
from stackplan.model import ChoiceNode, DecisionCatalog, Option
from stackplan.planner import (
    DeleteFile,
    OperationPlan,
    ProjectState,
    RemoveDependency,
    RewriteScript,
    apply_plan,
    matches,
    plan,
)
from stackplan.rules import RuleTable, SupersessionRule, resolve_superseded
from stackplan.selection import SelectionModel


def scenario_catalog() -> DecisionCatalog:
    return DecisionCatalog(name="scenario", nodes=[
        ChoiceNode(id="structure", category="structure", options=[Option("monorepo"), Option("single")]),
        ChoiceNode(id="type", category="project-type", options=[Option("web"), Option("api")]),
        ChoiceNode(id="language", category="language", options=[Option("typescript"), Option("javascript")]),
        ChoiceNode(id="framework", category="framework", options=[Option("nextjs"), Option("remix")]),
        ChoiceNode(id="additions", category="stack-additions", multi_select=True, required=False,
                   options=[Option("formatterX"), Option("testerY")]),
    ])


def scenario_rules() -> RuleTable:
    return RuleTable(rules=[
        SupersessionRule(
            "formatterX",
            replaced_tools=("legacyLinter", "legacyFormatter"),
            file_patterns=(".legacylintrc*", ".legacyformatrc*"),
            dependency_names=("legacyLinter", "legacyFormatter"),
            script_rewrites={"lint": "formatterX check"},
            owned_files=("formatterx.json",),
        ),
    ])


def scenario_snapshot(additions=("formatterX",)):
    model = SelectionModel(scenario_catalog())
    model.record("structure", "monorepo")
    model.record("type", "web")
    model.record("language", "typescript")
    model.record("framework", "nextjs")
    model.record("additions", list(additions))
    return model.finalize()


def scaffolded_state(**overrides) -> ProjectState:
    values = dict(
        dependencies={"next", "react", "legacyLinter", "legacyFormatter"},
        files={"package.json", "apps/web/.legacylintrc.json", "formatterx.json"},
        scripts={"lint": "legacyLinter .", "dev": "next dev"},
    )
    values.update(overrides)
    return ProjectState.build(**values)


def plan_for(snapshot, state, rules=None):
    superseded = resolve_superseded(snapshot, rules or scenario_rules())
    return plan(superseded, snapshot, state)


class TestMatches:
    def test_basename_pattern_matches_any_depth(self):
        assert matches("apps/web/.eslintrc.json", ".eslintrc*")
        assert matches(".eslintrc", ".eslintrc*")

    def test_path_pattern(self):
        assert matches("prisma/schema.prisma", "prisma/schema.prisma")
        assert not matches("schema.prisma", "prisma/schema.prisma")

    def test_no_match(self):
        assert not matches("eslint.md", ".eslintrc*")


class TestProjectState:
    def test_build_normalizes_paths(self):
        state = ProjectState.build(files=["apps\\web\\a.json"])
        assert "apps/web/a.json" in state.files

    def test_state_is_immutable(self):
        state = ProjectState.build(scripts={"a": "b"})
        with pytest.raises(TypeError):
            state.scripts["a"] = "c"


class TestScenarios:
    """Reference scenarios."""

    def test_formatter_replaces_linter_pair(self):
        result = plan_for(scenario_snapshot(), scaffolded_state())
        assert result.operations == [
            RemoveDependency("legacyLinter"),
            RemoveDependency("legacyFormatter"),
            DeleteFile("apps/web/.legacylintrc.json", ".legacylintrc*"),
            RewriteScript("lint", "formatterX check", "legacyLinter ."),
        ]

    def test_formatter_without_leftover_files(self):
        state = scaffolded_state(files={"package.json"})
        result = plan_for(scenario_snapshot(), state)
        assert len(result.of_kind("remove-dependency")) == 2
        assert len(result.of_kind("delete-file")) == 0
        assert len(result.of_kind("rewrite-script")) == 1

    @pytest.mark.parametrize("state", [
        ProjectState(),
        scaffolded_state(),
        scaffolded_state(files={"a", ".legacylintrc", ".legacyformatrc.json"}),
    ])
    def test_no_additions_means_empty_plan(self, state):
        result = plan_for(scenario_snapshot(additions=()), state)
        assert result.is_empty


class TestPlanRules:
    """Per-category emission rules."""

    def test_absent_dependency_is_not_removed(self):
        state = scaffolded_state(dependencies={"next"})
        result = plan_for(scenario_snapshot(), state)
        assert result.of_kind("remove-dependency") == []

    def test_matching_script_is_not_rewritten(self):
        state = scaffolded_state(scripts={"lint": "formatterX check"})
        assert plan_for(scenario_snapshot(), state).of_kind("rewrite-script") == []

    def test_missing_script_is_added(self):
        state = scaffolded_state(scripts={})
        ops = plan_for(scenario_snapshot(), state).of_kind("rewrite-script")
        assert ops == [RewriteScript("lint", "formatterX check", None)]

    def test_protected_file_is_kept(self):
        """A selected tool's own file wins over another rule's pattern."""
        rules = RuleTable(rules=[
            SupersessionRule("formatterX", file_patterns=("*.json",)),
            SupersessionRule("testerY", owned_files=("tester.json",)),
        ])
        state = ProjectState.build(files={"old.json", "tester.json"})
        result = plan_for(scenario_snapshot(additions=("formatterX", "testerY")), state, rules)
        assert [op.path for op in result.of_kind("delete-file")] == ["old.json"]

    def test_protected_dependency_is_kept(self):
        rules = RuleTable(rules=[
            SupersessionRule("formatterX", dependency_names=("shared", "old")),
            SupersessionRule("testerY", owned_dependencies=("shared",)),
        ])
        state = ProjectState.build(dependencies={"shared", "old"})
        result = plan_for(scenario_snapshot(additions=("formatterX", "testerY")), state, rules)
        assert result.operations == [RemoveDependency("old")]

    def test_file_matched_by_two_patterns_is_deleted_once(self):
        rules = RuleTable(rules=[SupersessionRule("formatterX", file_patterns=(".old*", "*.json"))])
        state = ProjectState.build(files={".old.json"})
        result = plan_for(scenario_snapshot(), state, rules)
        assert result.operations == [DeleteFile(".old.json", ".old*")]

    def test_categories_in_fixed_order(self):
        result = plan_for(scenario_snapshot(), scaffolded_state())
        kinds = [op.kind for op in result]
        assert kinds == sorted(kinds, key=["remove-dependency", "delete-file", "rewrite-script"].index)

    def test_deterministic(self):
        a = plan_for(scenario_snapshot(), scaffolded_state())
        b = plan_for(scenario_snapshot(), scaffolded_state())
        assert a.operations == b.operations

    def test_plan_records_catalog(self):
        result = plan_for(scenario_snapshot(), scaffolded_state())
        assert result.catalog_name == "scenario"

    def test_describe(self):
        lines = plan_for(scenario_snapshot(), scaffolded_state()).describe()
        assert lines[0] == "remove dependency legacyLinter"
        assert lines[-1].startswith("script lint:")


class TestIdempotence:
    """apply + re-plan yields an empty plan."""

    @pytest.mark.parametrize("state", [
        ProjectState(),
        scaffolded_state(),
        scaffolded_state(scripts={}),
        scaffolded_state(files={"x/.legacyformatrc", ".legacylintrc", "formatterx.json"}),
    ])
    def test_second_plan_is_empty(self, state):
        snapshot = scenario_snapshot()
        superseded = resolve_superseded(snapshot, scenario_rules())
        first = plan(superseded, snapshot, state)
        reconciled = apply_plan(first, state)
        second = plan(superseded, snapshot, reconciled)
        assert second.is_empty

    def test_apply_plan_is_pure(self):
        state = scaffolded_state()
        result = plan_for(scenario_snapshot(), state)
        after = apply_plan(result, state)
        assert "legacyLinter" in state.dependencies
        assert "legacyLinter" not in after.dependencies
        assert after.scripts["lint"] == "formatterX check"
        assert "apps/web/.legacylintrc.json" not in after.files
        assert "formatterx.json" in after.files

    def test_apply_rejects_unknown_operation(self):
        with pytest.raises(TypeError):
            apply_plan([object()], ProjectState())

    def test_empty_plan_object(self):
        assert OperationPlan().is_empty
        assert len(OperationPlan()) == 0
