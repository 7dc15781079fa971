"""
Catalog Analyzer: static diagnostics for decision catalogs and rule tables.

This module checks the static tables before anyone walks them:
    - Guard references to unknown nodes
    - Guard references to nodes walked later (or to the node itself)
    - Guard literals that are not options of the referenced node
    - Duplicate node / option ids
    - Required nodes with no options at all
    - Category members unknown to the catalog
    - Rules for unknown tools, and cycles in the replaces relation

IMPORTANT: This module does NOT modify the catalog.
It only produces read-only reports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from stackplan.evaluator import compared_literals, references
from stackplan.model import DecisionCatalog
from stackplan.rules import RuleTable, find_cycle


@dataclass
class CatalogReport:
    """Analysis report for a catalog and, optionally, its rule table."""

    catalog_name: str
    total_nodes: int = 0
    total_options: int = 0
    total_categories: int = 0
    total_rules: int = 0

    # Guard problems
    undefined_references: Dict[str, Set[str]] = field(default_factory=dict)
    forward_references: Dict[str, Set[str]] = field(default_factory=dict)
    unknown_literals: Dict[str, Set[str]] = field(default_factory=dict)
    guarded_options: int = 0

    # Structure problems
    duplicate_nodes: Set[str] = field(default_factory=set)
    duplicate_options: Dict[str, Set[str]] = field(default_factory=dict)
    empty_required_nodes: Set[str] = field(default_factory=set)
    unknown_category_members: Dict[str, Set[str]] = field(default_factory=dict)

    # Rule table problems
    unknown_rule_tools: Set[str] = field(default_factory=set)
    has_rule_cycles: bool = False
    rule_cycle_example: Optional[List[str]] = None

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        if msg not in self.warnings:
            self.warnings.append(msg)

    @property
    def ok(self) -> bool:
        return not self.warnings


def analyze_catalog(catalog: DecisionCatalog, rules: Optional[RuleTable] = None) -> CatalogReport:
    """
    Perform static analysis of a catalog (and rule table).

    Returns a CatalogReport with counts and warnings.
    """
    report = CatalogReport(catalog_name=catalog.name)
    report.total_nodes = len(catalog.nodes)
    report.total_options = sum(len(n.options) for n in catalog.nodes)
    report.total_categories = len(catalog.categories)

    ordered = catalog.ordered_nodes()
    position = {n.id: i for i, n in enumerate(ordered)}
    options_by_node = {n.id: set(n.option_ids()) for n in catalog.nodes}

    # =========================================================================
    # 1. STRUCTURE
    # =========================================================================

    seen: Set[str] = set()
    for node in catalog.nodes:
        if node.id in seen:
            report.duplicate_nodes.add(node.id)
        seen.add(node.id)

        ids = node.option_ids()
        dupes = {i for i in ids if ids.count(i) > 1}
        if dupes:
            report.duplicate_options[node.id] = dupes

        if node.required and not node.options:
            report.empty_required_nodes.add(node.id)

    # =========================================================================
    # 2. GUARDS
    # =========================================================================

    for node in ordered:
        guards = [node.applies_when] + [o.available_when for o in node.options]
        report.guarded_options += sum(1 for o in node.options if o.available_when is not None)
        for guard in guards:
            for ref in references(guard):
                if ref not in position:
                    report.undefined_references.setdefault(node.id, set()).add(ref)
                elif position[ref] >= position[node.id]:
                    report.forward_references.setdefault(node.id, set()).add(ref)
            for ref, value in compared_literals(guard):
                if ref in options_by_node and value not in options_by_node[ref]:
                    report.unknown_literals.setdefault(node.id, set()).add(f"{ref}={value}")

    # =========================================================================
    # 3. CATEGORIES
    # =========================================================================

    tools = catalog.tools()
    for category in catalog.categories:
        unknown = set(category.members) - tools
        if unknown:
            report.unknown_category_members[category.name] = unknown

    # =========================================================================
    # 4. RULE TABLE
    # =========================================================================

    if rules is not None:
        report.total_rules = len(rules.rules)
        report.unknown_rule_tools = set(rules.tools()) - tools
        cycle = find_cycle(rules.replaces_graph(), list(catalog.tool_order()))
        if cycle:
            report.has_rule_cycles = True
            report.rule_cycle_example = cycle

    # =========================================================================
    # 5. WARNING FLAGS
    # =========================================================================

    if report.duplicate_nodes:
        report.add_warning(f"Duplicate node ids: {', '.join(sorted(report.duplicate_nodes))}")

    for node_id, dupes in sorted(report.duplicate_options.items()):
        report.add_warning(f"Duplicate options in {node_id}: {', '.join(sorted(dupes))}")

    if report.empty_required_nodes:
        report.add_warning(
            f"Required nodes without options: {', '.join(sorted(report.empty_required_nodes))}"
        )

    for node_id, refs in sorted(report.undefined_references.items()):
        report.add_warning(f"Guards in {node_id} reference unknown nodes: {', '.join(sorted(refs))}")

    for node_id, refs in sorted(report.forward_references.items()):
        report.add_warning(
            f"Guards in {node_id} reference nodes that are not walked before it: {', '.join(sorted(refs))}"
        )

    for node_id, values in sorted(report.unknown_literals.items()):
        report.add_warning(f"Guards in {node_id} compare against unknown options: {', '.join(sorted(values))}")

    for name, unknown in sorted(report.unknown_category_members.items()):
        report.add_warning(f"Category {name} has unknown members: {', '.join(sorted(unknown))}")

    if report.unknown_rule_tools:
        report.add_warning(f"Rules for unknown tools: {', '.join(sorted(report.unknown_rule_tools))}")

    if report.has_rule_cycles:
        report.add_warning(f"Supersession cycle: {' -> '.join(report.rule_cycle_example)}")

    return report
