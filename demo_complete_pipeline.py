#!/usr/bin/env python3
"""
Complete Pipeline Demo: Catalog → Selection → Superseded Set → Plan → Config

Shows the full workflow on a freshly scaffolded Next.js project:
1. Check the shipped catalog and rule table
2. Detect defaults and walk the catalog with scripted answers
3. Resolve which tooling the selection supersedes
4. Plan (and simulate) the cleanup
5. Merge and write the canonical configuration document
"""

import sys
import tempfile
from pathlib import Path

from stackplan.analyzer import analyze_catalog
from stackplan.config import configure_logging, load_settings
from stackplan.defaults import build_default_catalog, build_default_rules
from stackplan.engine import run_pass
from stackplan.persister import ConfigStore
from stackplan.planner import ProjectState, apply_plan, plan
from stackplan.walker import ScriptedChooser


ANSWERS = {
    "structure": "single",
    "project_type": "web",
    "language": "typescript",
    "framework": "nextjs",
    "package_manager": "pnpm",
    "additions": ["biome", "vitest", "tailwind"],
}


def main(target_dir: Path):
    settings = load_settings()
    configure_logging(settings.log_level)

    catalog = build_default_catalog()
    rules = build_default_rules()
    state = ProjectState.build(
        dependencies={"next", "react", "react-dom", "eslint", "eslint-config-next", "jest", "@types/jest"},
        files={"package.json", "tsconfig.json", "next.config.mjs", ".eslintrc.json",
               "jest.config.js", "pnpm-lock.yaml", "app/page.tsx"},
        scripts={"dev": "next dev", "build": "next build", "lint": "next lint", "test": "jest"},
    )

    print("=" * 80)
    print("COMPLETE PIPELINE DEMO: Catalog → Selection → Plan → Config")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Analyze the static tables
    # =========================================================================
    print("\n1. ANALYZING CATALOG...")
    report = analyze_catalog(catalog, rules)
    print(f"   ✓ Catalog: {catalog.name} v{catalog.version}")
    print(f"   ✓ Nodes: {report.total_nodes}, options: {report.total_options}")
    print(f"   ✓ Rules: {report.total_rules}")
    for warning in report.warnings:
        print(f"      - {warning}")

    # =========================================================================
    # STEP 2-4: One pass
    # =========================================================================
    print("\n2. RESOLVING SELECTION...")
    store = ConfigStore(target_dir / settings.config_filename, settings.required_sections)
    result = run_pass(
        catalog, rules, ScriptedChooser(ANSWERS), state,
        existing_config=store.load(),
        integration_metadata={"tooling": {"mcp": ["github"], "skills": ["frontend-design"]}},
        settings=settings,
    )
    for node_id, value in result.snapshot.as_dict().items():
        print(f"   ✓ {node_id}: {value}")

    print("\n3. SUPERSEDED TOOLING...")
    for target in result.superseded.replaced_tools:
        print(f"   ✓ {target} (by {', '.join(result.superseded.origins_of(target))})")

    print("\n4. PLAN:")
    print("-" * 80)
    for line in result.plan.describe():
        print(f"   {line}")

    after = apply_plan(result.plan, state)
    again = plan(result.superseded, result.snapshot, after)
    print(f"\n   Re-plan after applying: {len(again)} operation(s)")

    # =========================================================================
    # STEP 5: Persist
    # =========================================================================
    print("\n5. WRITING CONFIG...")
    path = store.commit(result.config)
    print(f"   ✓ Wrote {path}")
    print("-" * 80)
    print(store.dumps(result.config))

    print("=" * 80)
    print("PIPELINE COMPLETE!")
    print("=" * 80)


if __name__ == "__main__":
    if len(sys.argv) > 1:
        main(Path(sys.argv[1]))
    else:
        with tempfile.TemporaryDirectory() as tmp:
            main(Path(tmp))
