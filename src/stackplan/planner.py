"""
Operation Planner: turns a SupersededSet into concrete, idempotent steps.

The planner reads a snapshot of the project (dependency names, file
paths, scripts) and emits only the operations that would change it.
It never performs them: execution belongs to an external collaborator.

Order is fixed:
    1. RemoveDependency, in rule order
    2. DeleteFile, in rule order (pattern order, then path order)
    3. RewriteScript, in rule order

IDEMPOTENCE LAW:
    plan(s, sel, apply_plan(plan(s, sel, state), state)) is empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Sequence

from stackplan.rules import SupersededSet
from stackplan.selection import SelectionSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectState:
    """
    Snapshot of a scaffolded project, supplied by an inspection collaborator.

    Properties:
        dependencies: Dependency names currently declared (flat, all kinds)
        files: Existing file paths, relative, '/'-separated
        scripts: Script name -> current command
    """

    dependencies: FrozenSet[str] = frozenset()
    files: FrozenSet[str] = frozenset()
    scripts: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(cls, dependencies: Iterable[str] = (), files: Iterable[str] = (),
              scripts: Optional[Mapping[str, str]] = None) -> "ProjectState":
        return cls(
            dependencies=frozenset(dependencies),
            files=frozenset(f.replace("\\", "/") for f in files),
            scripts=MappingProxyType(dict(scripts or {})),
        )


class Operation:
    """Base class for plan steps."""

    kind = ""


@dataclass(frozen=True)
class RemoveDependency(Operation):
    name: str
    kind = "remove-dependency"


@dataclass(frozen=True)
class DeleteFile(Operation):
    """Delete an existing file. `pattern` is the rule glob that matched it."""

    path: str
    pattern: str = ""
    kind = "delete-file"


@dataclass(frozen=True)
class RewriteScript(Operation):
    """Set script `name` to `new_command`. `old_command` is None if the script is new."""

    name: str
    new_command: str
    old_command: Optional[str] = None
    kind = "rewrite-script"


@dataclass
class OperationPlan:
    """Ordered list of operations for one reconciliation pass."""

    operations: List[Operation] = field(default_factory=list)
    catalog_name: str = ""
    catalog_version: str = ""

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)

    def __len__(self) -> int:
        return len(self.operations)

    @property
    def is_empty(self) -> bool:
        return not self.operations

    def of_kind(self, kind: str) -> List[Operation]:
        return [op for op in self.operations if op.kind == kind]

    def describe(self) -> List[str]:
        """One human-readable line per operation."""
        lines = []
        for op in self.operations:
            if isinstance(op, RemoveDependency):
                lines.append(f"remove dependency {op.name}")
            elif isinstance(op, DeleteFile):
                lines.append(f"delete {op.path} (matches {op.pattern})")
            elif isinstance(op, RewriteScript):
                lines.append(f"script {op.name}: {op.old_command!r} -> {op.new_command!r}")
        return lines


def matches(path: str, pattern: str) -> bool:
    """
    Glob match a relative path.

    Patterns without a '/' match the file name at any depth
    (".eslintrc*" matches "apps/web/.eslintrc.json").
    """
    return PurePosixPath(path).match(pattern)


def _protected(path: str, patterns: Sequence[str]) -> bool:
    return any(matches(path, p) for p in patterns)


def plan(superseded: SupersededSet, snapshot: SelectionSnapshot, state: ProjectState) -> OperationPlan:
    """
    Compute the operations that reconcile `state` with the selection.

    Args:
        superseded: Output of resolve_superseded() for `snapshot`
        snapshot: Finalized selection
        state: Current project state

    Returns:
        OperationPlan, empty if nothing needs to change
    """
    result = OperationPlan(catalog_name=snapshot.catalog_name, catalog_version=snapshot.catalog_version)

    for name in superseded.dependency_names:
        if name not in state.dependencies:
            continue
        if name in superseded.protected_dependencies:
            logger.debug("Keeping dependency %s: owned by an active tool", name)
            continue
        result.operations.append(RemoveDependency(name))

    claimed: set = set()
    ordered_files = sorted(state.files)
    for pattern in superseded.file_patterns:
        for path in ordered_files:
            if path in claimed or not matches(path, pattern):
                continue
            claimed.add(path)
            if _protected(path, superseded.protected_files):
                logger.debug("Keeping %s: owned by an active tool", path)
                continue
            result.operations.append(DeleteFile(path, pattern))

    for name, command in superseded.script_rewrites.items():
        current = state.scripts.get(name)
        if current != command:
            result.operations.append(RewriteScript(name, command, current))

    logger.info("Planned %d operation(s)", len(result))
    return result


def apply_plan(operations: Iterable[Operation], state: ProjectState) -> ProjectState:
    """
    Return the state that results from applying `operations`.

    Pure simulation for dry runs and idempotence checks; nothing on disk changes.
    """
    dependencies = set(state.dependencies)
    files = set(state.files)
    scripts: Dict[str, str] = dict(state.scripts)

    for op in operations:
        if isinstance(op, RemoveDependency):
            dependencies.discard(op.name)
        elif isinstance(op, DeleteFile):
            files.discard(op.path)
        elif isinstance(op, RewriteScript):
            scripts[op.name] = op.new_command
        else:
            raise TypeError(f"Unsupported operation: {type(op)}")

    return replace(
        state,
        dependencies=frozenset(dependencies),
        files=frozenset(files),
        scripts=MappingProxyType(scripts),
    )
