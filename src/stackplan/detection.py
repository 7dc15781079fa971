"""
Environment detection: seeds walker defaults from an existing project.

Signals are file names and manifest dependency names only. Detection
never reads file contents and never guesses from free text.

The result is a suggestion: the walker offers each default to the
chooser and drops any that its filtered option set does not contain.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Dict, List, Tuple, Union

from stackplan.planner import ProjectState

logger = logging.getLogger(__name__)

MONOREPO_MARKERS = ("pnpm-workspace.yaml", "turbo.json", "nx.json", "lerna.json")

# (lock file, package manager), most specific first
LOCK_FILES = (
    ("pnpm-lock.yaml", "pnpm"),
    ("bun.lockb", "bun"),
    ("bun.lock", "bun"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
    ("uv.lock", "uv"),
    ("poetry.lock", "poetry"),
)

# (config file prefix or dependency name, framework)
FRAMEWORK_FILES = (
    ("next.config.", "nextjs"),
    ("remix.config.", "remix"),
    ("astro.config.", "astro"),
    ("app.json", "expo"),
    ("manage.py", "django"),
)

FRAMEWORK_DEPENDENCIES = (
    ("next", "nextjs"),
    ("@remix-run/react", "remix"),
    ("astro", "astro"),
    ("expo", "expo"),
    ("express", "express"),
    ("fastify", "fastify"),
    ("hono", "hono"),
    ("commander", "commander"),
    ("fastapi", "fastapi"),
    ("django", "django"),
    ("typer", "typer"),
)

FRAMEWORK_PROJECT_TYPE = {
    "nextjs": "web",
    "remix": "web",
    "astro": "web",
    "expo": "mobile",
    "express": "api",
    "fastify": "api",
    "hono": "api",
    "fastapi": "api",
    "django": "web",
    "commander": "cli",
    "typer": "cli",
}

ADDITION_DEPENDENCIES = (
    ("@biomejs/biome", "biome"),
    ("eslint", "eslint"),
    ("prettier", "prettier"),
    ("vitest", "vitest"),
    ("jest", "jest"),
    ("@playwright/test", "playwright"),
    ("tailwindcss", "tailwind"),
    ("prisma", "prisma"),
    ("drizzle-orm", "drizzle"),
    ("ruff", "ruff"),
    ("black", "black"),
    ("flake8", "flake8"),
    ("pytest", "pytest"),
    ("mypy", "mypy"),
)


def _root_names(state: ProjectState) -> List[str]:
    return sorted(p for p in state.files if "/" not in p)


def _names(state: ProjectState) -> List[str]:
    return sorted({PurePosixPath(p).name for p in state.files})


def detect_defaults(state: ProjectState) -> Dict[str, Union[str, Tuple[str, ...]]]:
    """
    Derive walker defaults from a project snapshot.

    Returns:
        node id -> option id (or tuple of ids for "additions");
        nodes without a signal are absent
    """
    defaults: Dict[str, Union[str, Tuple[str, ...]]] = {}
    root = _root_names(state)
    names = _names(state)

    if any(marker in root for marker in MONOREPO_MARKERS):
        defaults["structure"] = "monorepo"
    elif root:
        defaults["structure"] = "single"

    for lock_file, manager in LOCK_FILES:
        if lock_file in root:
            defaults["package_manager"] = manager
            break

    if "tsconfig.json" in names:
        defaults["language"] = "typescript"
    elif "pyproject.toml" in root or "requirements.txt" in root:
        defaults["language"] = "python"
    elif "package.json" in root:
        defaults["language"] = "javascript"

    framework = None
    for prefix, candidate in FRAMEWORK_FILES:
        if any(name.startswith(prefix) if prefix.endswith(".") else name == prefix for name in names):
            framework = candidate
            break
    if framework is None:
        for dependency, candidate in FRAMEWORK_DEPENDENCIES:
            if dependency in state.dependencies:
                framework = candidate
                break
    if framework is not None:
        defaults["framework"] = framework
        defaults["project_type"] = FRAMEWORK_PROJECT_TYPE[framework]

    additions = tuple(tool for dependency, tool in ADDITION_DEPENDENCIES if dependency in state.dependencies)
    if additions:
        defaults["additions"] = additions

    logger.debug("Detected defaults: %s", defaults)
    return defaults
