"""
Default decision catalog and supersession rule table.

These are the static, versioned tables the engine ships with.
Guards are written in catalog syntax and parsed once at build time.
"""

from typing import Optional

from stackplan.guards import parse_guard
from stackplan.model import ChoiceNode, DecisionCatalog, Exclusivity, Option, ToolCategory
from stackplan.rules import RuleTable, SupersessionRule

CATALOG_VERSION = "2026.1"

_JS = "language == 'typescript' | language == 'javascript'"
_PY = "language == 'python'"


def _opt(option_id: str, label: str, when: Optional[str] = None) -> Option:
    return Option(id=option_id, label=label, available_when=parse_guard(when))


def build_default_catalog() -> DecisionCatalog:
    catalog = DecisionCatalog(name="default-stack", version=CATALOG_VERSION)

    catalog.nodes = [
        ChoiceNode(
            id="structure",
            category="structure",
            text="How should the repository be organised?",
            options=[
                _opt("single", "Single package"),
                _opt("monorepo", "Monorepo with workspaces"),
            ],
        ),
        ChoiceNode(
            id="project_type",
            category="project-type",
            text="What are you building?",
            options=[
                _opt("web", "Web application"),
                _opt("api", "HTTP API"),
                _opt("mobile", "Mobile app"),
                _opt("cli", "Command-line tool"),
                _opt("library", "Library"),
            ],
        ),
        ChoiceNode(
            id="language",
            category="language",
            text="Which language?",
            options=[
                _opt("typescript", "TypeScript"),
                _opt("javascript", "JavaScript", "project_type != 'mobile'"),
                _opt("python", "Python", "project_type != 'mobile'"),
            ],
        ),
        ChoiceNode(
            id="framework",
            category="framework",
            text="Which framework?",
            applies_when=parse_guard("project_type != 'library'"),
            options=[
                _opt("nextjs", "Next.js", f"project_type == 'web' & ({_JS})"),
                _opt("remix", "Remix", f"project_type == 'web' & ({_JS})"),
                _opt("astro", "Astro", f"project_type == 'web' & ({_JS})"),
                _opt("express", "Express", f"project_type == 'api' & ({_JS})"),
                _opt("fastify", "Fastify", f"project_type == 'api' & ({_JS})"),
                _opt("hono", "Hono", f"project_type == 'api' & language == 'typescript'"),
                _opt("fastapi", "FastAPI", f"project_type == 'api' & {_PY}"),
                _opt("django", "Django", f"(project_type == 'api' | project_type == 'web') & {_PY}"),
                _opt("expo", "Expo", "project_type == 'mobile'"),
                _opt("commander", "Commander", f"project_type == 'cli' & ({_JS})"),
                _opt("typer", "Typer", f"project_type == 'cli' & {_PY}"),
            ],
        ),
        ChoiceNode(
            id="package_manager",
            category="stack-additions",
            text="Which package manager?",
            options=[
                _opt("pnpm", "pnpm", _JS),
                _opt("npm", "npm", _JS),
                _opt("yarn", "Yarn", _JS),
                _opt("bun", "Bun", _JS),
                _opt("uv", "uv", _PY),
                _opt("poetry", "Poetry", _PY),
            ],
        ),
        ChoiceNode(
            id="additions",
            category="stack-additions",
            text="Add any of these tools?",
            multi_select=True,
            required=False,
            options=[
                _opt("biome", "Biome (lint + format)", _JS),
                _opt("eslint", "ESLint", _JS),
                _opt("prettier", "Prettier", _JS),
                _opt("vitest", "Vitest", _JS),
                _opt("jest", "Jest", _JS),
                _opt("playwright", "Playwright", "project_type == 'web'"),
                _opt("tailwind", "Tailwind CSS", "project_type == 'web' | project_type == 'mobile'"),
                _opt("prisma", "Prisma", f"({_JS}) & project_type != 'cli'"),
                _opt("drizzle", "Drizzle", f"language == 'typescript' & project_type != 'cli'"),
                _opt("ruff", "Ruff (lint + format)", _PY),
                _opt("black", "Black", _PY),
                _opt("flake8", "Flake8", _PY),
                _opt("pytest", "pytest", _PY),
                _opt("mypy", "mypy", _PY),
            ],
        ),
    ]

    catalog.categories = [
        ToolCategory("package-manager", Exclusivity.ONE_OF, ("pnpm", "npm", "yarn", "bun", "uv", "poetry")),
        ToolCategory("linter", Exclusivity.ONE_OF, ("biome", "eslint", "ruff", "flake8")),
        ToolCategory("formatter", Exclusivity.ONE_OF, ("prettier", "black")),
        ToolCategory("unit-test-runner", Exclusivity.ONE_OF, ("vitest", "jest", "pytest")),
        ToolCategory("orm", Exclusivity.ONE_OF, ("prisma", "drizzle")),
        ToolCategory("styling", Exclusivity.MANY_OF, ("tailwind",)),
    ]
    return catalog


def build_default_rules() -> RuleTable:
    """
    Rules for tools that supersede framework-default tooling.

    Frameworks such as Next.js scaffold ESLint (and often Prettier);
    choosing Biome or Ruff replaces that pair.
    """
    return RuleTable(
        name="default-rules",
        version=CATALOG_VERSION,
        rules=[
            SupersessionRule(
                tool="biome",
                replaced_tools=("eslint", "prettier"),
                file_patterns=(".eslintrc*", "eslint.config.*", ".eslintignore",
                               ".prettierrc*", "prettier.config.*", ".prettierignore"),
                dependency_names=("eslint", "eslint-config-next", "eslint-config-prettier",
                                  "@eslint/js", "typescript-eslint", "prettier"),
                script_rewrites={"lint": "biome check .", "format": "biome format --write ."},
                owned_files=("biome.json", "biome.jsonc"),
                owned_dependencies=("@biomejs/biome",),
            ),
            SupersessionRule(
                tool="eslint",
                owned_files=(".eslintrc*", "eslint.config.*"),
                owned_dependencies=("eslint",),
            ),
            SupersessionRule(
                tool="prettier",
                owned_files=(".prettierrc*", "prettier.config.*"),
                owned_dependencies=("prettier",),
            ),
            SupersessionRule(
                tool="vitest",
                replaced_tools=("jest",),
                file_patterns=("jest.config.*", "jest.setup.*", "babel.config.*"),
                dependency_names=("jest", "ts-jest", "@types/jest", "babel-jest", "jest-environment-jsdom"),
                script_rewrites={"test": "vitest run"},
                owned_files=("vitest.config.*", "vitest.workspace.*"),
                owned_dependencies=("vitest",),
            ),
            SupersessionRule(
                tool="jest",
                owned_files=("jest.config.*",),
                owned_dependencies=("jest",),
            ),
            SupersessionRule(
                tool="pnpm",
                replaced_tools=("npm", "yarn"),
                file_patterns=("package-lock.json", "yarn.lock", ".yarnrc*"),
                owned_files=("pnpm-lock.yaml", "pnpm-workspace.yaml"),
            ),
            SupersessionRule(
                tool="bun",
                replaced_tools=("npm", "yarn"),
                file_patterns=("package-lock.json", "yarn.lock", ".yarnrc*"),
                owned_files=("bun.lockb", "bun.lock"),
            ),
            SupersessionRule(
                tool="yarn",
                replaced_tools=("npm",),
                file_patterns=("package-lock.json",),
                owned_files=("yarn.lock", ".yarnrc*"),
            ),
            SupersessionRule(
                tool="uv",
                replaced_tools=("poetry",),
                file_patterns=("poetry.lock", "requirements*.txt"),
                owned_files=("uv.lock",),
            ),
            SupersessionRule(
                tool="ruff",
                replaced_tools=("flake8", "black", "isort"),
                file_patterns=(".flake8", ".isort.cfg"),
                dependency_names=("flake8", "black", "isort"),
                script_rewrites={"lint": "ruff check .", "format": "ruff format ."},
                owned_files=("ruff.toml", ".ruff.toml"),
                owned_dependencies=("ruff",),
            ),
            SupersessionRule(
                tool="drizzle",
                replaced_tools=("prisma",),
                file_patterns=("prisma/schema.prisma",),
                dependency_names=("prisma", "@prisma/client"),
                owned_files=("drizzle.config.*",),
                owned_dependencies=("drizzle-orm", "drizzle-kit"),
            ),
        ],
    )
