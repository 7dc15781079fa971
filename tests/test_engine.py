"""
Tests for a complete reconciliation pass.

A pass is computed in memory: any failure leaves the project state and
the stored document exactly as they were.
"""

import pytest

from stackplan.defaults import build_default_catalog, build_default_rules
from stackplan.engine import run_pass
from stackplan.errors import ConflictCycle, WalkCancelled
from stackplan.persister import ConfigStore
from stackplan.planner import ProjectState, apply_plan, plan
from stackplan.rules import RuleTable, SupersessionRule
from stackplan.walker import Prompt, ScriptedChooser


ANSWERS = {
    "structure": "single",
    "project_type": "web",
    "language": "typescript",
    "framework": "nextjs",
    "package_manager": "pnpm",
    "additions": ["biome"],
}

METADATA = {"tooling": {"mcp": ["github"]}, "integrations": {"tracker": {"project": "WEB"}}}


def scaffold() -> ProjectState:
    return ProjectState.build(
        dependencies={"next", "react", "eslint", "eslint-config-next"},
        files={"package.json", "tsconfig.json", "next.config.mjs", ".eslintrc.json", "pnpm-lock.yaml"},
        scripts={"dev": "next dev", "lint": "next lint"},
    )


class TestRunPass:
    def test_full_pass(self):
        result = run_pass(build_default_catalog(), build_default_rules(), ScriptedChooser(ANSWERS),
                          scaffold(), integration_metadata=METADATA)
        assert result.snapshot.get("additions") == ("biome",)
        assert result.superseded.replaced_tools == ["npm", "yarn", "eslint", "prettier"]
        assert [op.kind for op in result.plan] == [
            "remove-dependency", "remove-dependency", "delete-file", "rewrite-script", "rewrite-script",
        ]
        assert result.config["stack"]["additions"] == ["biome"]
        assert result.config["tooling"] == {"mcp": ["github"]}

    def test_pass_is_idempotent(self):
        state = scaffold()
        first = run_pass(build_default_catalog(), build_default_rules(), ScriptedChooser(ANSWERS), state)
        reconciled = apply_plan(first.plan, state)
        second = run_pass(build_default_catalog(), build_default_rules(), ScriptedChooser(ANSWERS),
                          reconciled, existing_config=first.config)
        assert second.plan.is_empty
        assert second.config == first.config

    def test_detected_defaults_are_offered(self):
        prompts = []

        def chooser(prompt: Prompt):
            prompts.append(prompt)
            return ANSWERS[prompt.node.id]

        run_pass(build_default_catalog(), build_default_rules(), chooser, scaffold())
        defaults = {p.node.id: p.default for p in prompts}
        assert defaults["framework"] == "nextjs"
        assert defaults["package_manager"] == "pnpm"
        assert defaults["additions"] == ("eslint",)

    def test_explicit_defaults_skip_detection(self):
        prompts = []

        def chooser(prompt: Prompt):
            prompts.append(prompt)
            return ANSWERS[prompt.node.id]

        run_pass(build_default_catalog(), build_default_rules(), chooser, scaffold(), defaults={})
        assert all(p.default is None for p in prompts)

    def test_project_with_two_linters_still_resolves(self):
        """Detected biome and eslint together default to biome alone."""
        answers = {k: v for k, v in ANSWERS.items() if k != "additions"}
        state = ProjectState.build(
            dependencies={"next", "eslint", "@biomejs/biome"},
            files={"package.json", ".eslintrc.json", "biome.json"},
            scripts={"lint": "next lint"},
        )
        result = run_pass(build_default_catalog(), build_default_rules(), ScriptedChooser(answers), state)
        assert result.snapshot.get("additions") == ("biome",)
        removed = [op.name for op in result.plan if op.kind == "remove-dependency"]
        assert "eslint" in removed
        assert "@biomejs/biome" not in removed

    def test_existing_document_is_merged(self):
        existing = {"owner": "me", "integrations": {}, "tooling": {"mcp": ["sentry"]}, "stack": {}}
        result = run_pass(build_default_catalog(), build_default_rules(), ScriptedChooser(ANSWERS),
                          scaffold(), existing_config=existing, integration_metadata=METADATA)
        assert result.config["owner"] == "me"
        assert result.config["tooling"]["mcp"] == ["sentry", "github"]


class TestFailedPass:
    """Failures surface before anything is written."""

    def test_cancel_writes_nothing(self, tmp_path):
        store = ConfigStore(tmp_path / "stackplan.yaml")

        def cancel(prompt):
            raise WalkCancelled("closed")

        with pytest.raises(WalkCancelled):
            result = run_pass(build_default_catalog(), build_default_rules(), cancel, scaffold())
            store.commit(result.config)
        assert store.load() is None

    def test_rule_cycle_aborts_pass(self):
        rules = RuleTable(rules=[
            SupersessionRule("pnpm", replaced_tools=("biome",)),
            SupersessionRule("biome", replaced_tools=("pnpm",)),
        ])
        with pytest.raises(ConflictCycle):
            run_pass(build_default_catalog(), rules, ScriptedChooser(ANSWERS), scaffold())

    def test_commit_after_pass(self, tmp_path):
        store = ConfigStore(tmp_path / "stackplan.yaml")
        result = run_pass(build_default_catalog(), build_default_rules(), ScriptedChooser(ANSWERS),
                          scaffold(), existing_config=store.load(), integration_metadata=METADATA)
        store.commit(result.config)
        assert store.load() == result.config

    def test_plan_matches_direct_computation(self):
        state = scaffold()
        result = run_pass(build_default_catalog(), build_default_rules(), ScriptedChooser(ANSWERS), state)
        assert plan(result.superseded, result.snapshot, state).operations == result.plan.operations
