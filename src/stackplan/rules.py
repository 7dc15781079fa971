"""
Supersession Rule Table and Tool Conflict Resolver.

A SupersessionRule states that selecting one tool makes other tooling
obsolete: tools it replaces, files those tools leave behind, dependency
names to drop and scripts to point at the new tool.

The resolver folds the rules of every selected tool into one
SupersededSet. It is pure: it reads a SelectionSnapshot and a RuleTable
and touches nothing else.

Conflict policy:
    - A replaces B, both selected: B's own rule is excluded (A wins)
    - A replaces B and B replaces A (or any longer loop), both selected:
      ConflictCycle. The table is malformed, not the selection.
    - A and C both replace B: plain set union
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from stackplan.errors import ConflictCycle
from stackplan.selection import SelectionSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SupersessionRule:
    """
    What selecting `tool` makes obsolete, and what it owns.

    Properties:
        tool:
            Tool id, matching an option id in the catalog

        replaced_tools:
            Tools this one supersedes (e.g. biome -> eslint, prettier)

        file_patterns:
            Globs of files left behind by the replaced tools
            (e.g. ".eslintrc*", ".prettierrc*")

        dependency_names:
            Manifest entries to drop (e.g. "eslint", "eslint-config-next")

        script_rewrites:
            Script name -> new command (e.g. "lint" -> "biome check .")

        owned_files:
            Globs of files this tool needs. While the tool is selected
            and not itself superseded, matching files are never deleted.

        owned_dependencies:
            Manifest entries this tool needs; never removed while it is active.
    """

    tool: str
    replaced_tools: tuple = ()
    file_patterns: tuple = ()
    dependency_names: tuple = ()
    script_rewrites: Dict[str, str] = field(default_factory=dict)
    owned_files: tuple = ()
    owned_dependencies: tuple = ()


@dataclass
class RuleTable:
    """Static, versioned collection of SupersessionRules, one per tool."""

    name: str = "rules"
    version: str = "1"
    rules: List[SupersessionRule] = field(default_factory=list)

    def get(self, tool: str) -> Optional[SupersessionRule]:
        for rule in self.rules:
            if rule.tool == tool:
                return rule
        return None

    def tools(self) -> List[str]:
        return [rule.tool for rule in self.rules]

    def replaces_graph(self, tools: Optional[Set[str]] = None) -> Dict[str, List[str]]:
        """
        tool -> tools it replaces.

        If `tools` is given, the graph is restricted to those tools
        (both ends of every edge).
        """
        graph: Dict[str, List[str]] = {}
        for rule in self.rules:
            if tools is not None and rule.tool not in tools:
                continue
            targets = [t for t in rule.replaced_tools if tools is None or t in tools]
            if targets:
                graph[rule.tool] = targets
        return graph


def find_cycle(graph: Dict[str, List[str]], order: Sequence[str] = ()) -> Optional[List[str]]:
    """
    Return one cycle in `graph` as [a, b, ..., a], or None.

    Start nodes are tried in `order` first, then the remaining graph keys,
    so the reported cycle is stable for a given table.
    """
    starts = [n for n in order if n in graph] + [n for n in graph if n not in order]
    visited: Set[str] = set()

    def dfs(node: str, on_path: Set[str], path: List[str]) -> Optional[List[str]]:
        visited.add(node)
        on_path.add(node)
        path.append(node)
        for neighbor in graph.get(node, []):
            if neighbor in on_path:
                return path[path.index(neighbor):] + [neighbor]
            if neighbor not in visited:
                cycle = dfs(neighbor, on_path, path)
                if cycle:
                    return cycle
        on_path.remove(node)
        path.pop()
        return None

    for start in starts:
        if start not in visited:
            cycle = dfs(start, set(), [])
            if cycle:
                return cycle
    return None


@dataclass
class SupersededSet:
    """
    Consolidated removal targets for one selection.

    All lists are deduplicated and in catalog order of the originating
    tool, then in the order the rule declares them.

    Properties:
        active_tools: Selected tools whose rules contributed
        excluded_tools: Selected tool -> selected tools that supersede it
        by_origin: Origin tool -> its rule, for traceability
        replaced_tools / file_patterns / dependency_names / script_rewrites:
            Union of the active rules
        protected_files / protected_dependencies:
            Owned by active selected tools; the planner never removes them
    """

    active_tools: List[str] = field(default_factory=list)
    excluded_tools: Dict[str, List[str]] = field(default_factory=dict)
    by_origin: Dict[str, SupersessionRule] = field(default_factory=dict)
    replaced_tools: List[str] = field(default_factory=list)
    file_patterns: List[str] = field(default_factory=list)
    dependency_names: List[str] = field(default_factory=list)
    script_rewrites: Dict[str, str] = field(default_factory=dict)
    protected_files: List[str] = field(default_factory=list)
    protected_dependencies: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.replaced_tools or self.file_patterns
                    or self.dependency_names or self.script_rewrites)

    def origins_of(self, target: str) -> List[str]:
        """Origin tools whose rule lists `target` in any removal field."""
        found = []
        for tool, rule in self.by_origin.items():
            if (target in rule.replaced_tools or target in rule.file_patterns
                    or target in rule.dependency_names or target in rule.script_rewrites):
                found.append(tool)
        return found


def _extend(target: List[str], values: Sequence[str]) -> None:
    for value in values:
        if value not in target:
            target.append(value)


def resolve_superseded(snapshot: SelectionSnapshot, table: RuleTable) -> SupersededSet:
    """
    Fold the rules of every selected tool into one SupersededSet.

    Args:
        snapshot: Finalized selection
        table: Rule table to apply

    Returns:
        SupersededSet (empty if no selected tool has a rule)

    Raises:
        ConflictCycle: selected tools supersede each other
    """
    selected = snapshot.selected_tools()
    selected_set = set(selected)

    graph = table.replaces_graph(selected_set)
    cycle = find_cycle(graph, selected)
    if cycle:
        raise ConflictCycle(*cycle)

    result = SupersededSet()
    for tool, targets in graph.items():
        for target in targets:
            result.excluded_tools.setdefault(target, []).append(tool)

    for tool in selected:
        rule = table.get(tool)
        if rule is None:
            continue
        if tool in result.excluded_tools:
            logger.debug("Ignoring rule for %s: superseded by %s", tool, result.excluded_tools[tool])
            continue

        result.active_tools.append(tool)
        result.by_origin[tool] = rule
        _extend(result.replaced_tools, rule.replaced_tools)
        _extend(result.file_patterns, rule.file_patterns)
        _extend(result.dependency_names, rule.dependency_names)
        _extend(result.protected_files, rule.owned_files)
        _extend(result.protected_dependencies, rule.owned_dependencies)
        for script, command in rule.script_rewrites.items():
            current = result.script_rewrites.get(script)
            if current is None:
                result.script_rewrites[script] = command
            elif current != command:
                logger.warning(
                    "Script %r: keeping %r, ignoring %r from %s",
                    script, current, command, tool,
                )

    logger.debug("Superseded set: tools=%s deps=%s files=%s scripts=%s",
                 result.replaced_tools, result.dependency_names,
                 result.file_patterns, list(result.script_rewrites))
    return result
