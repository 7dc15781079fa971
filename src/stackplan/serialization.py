"""
Serialization helpers for stackplan objects (catalogs, rule tables,
project state, selections, plans).

Provides JSON/YAML conversion via an intermediate dict representation.
Guards are stored in catalog syntax (see `stackplan.guards`) so catalog
files stay readable and hand-editable.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from stackplan.errors import StackPlanError
from stackplan.guards import format_guard, parse_guard
from stackplan.model import ChoiceNode, DecisionCatalog, Exclusivity, Option, ToolCategory
from stackplan.planner import DeleteFile, Operation, OperationPlan, ProjectState, RemoveDependency, RewriteScript
from stackplan.rules import RuleTable, SupersessionRule
from stackplan.selection import SelectionSnapshot


def option_to_dict(o: Option) -> Dict[str, Any]:
    d: Dict[str, Any] = {"id": o.id, "label": o.label}
    if o.available_when is not None:
        d["available_when"] = format_guard(o.available_when)
    return d


def option_from_dict(d: Union[str, Dict[str, Any]]) -> Option:
    if isinstance(d, str):
        return Option(id=d, label=d)
    return Option(id=d["id"], label=d.get("label", d["id"]), available_when=parse_guard(d.get("available_when")))


def node_to_dict(n: ChoiceNode) -> Dict[str, Any]:
    return {
        "id": n.id,
        "category": n.category,
        "text": n.text,
        "multi_select": n.multi_select,
        "required": n.required,
        "applies_when": format_guard(n.applies_when),
        "options": [option_to_dict(o) for o in n.options],
    }


def node_from_dict(d: Dict[str, Any]) -> ChoiceNode:
    return ChoiceNode(
        id=d["id"],
        category=d.get("category", ""),
        text=d.get("text", ""),
        options=[option_from_dict(o) for o in d.get("options", [])],
        multi_select=bool(d.get("multi_select", False)),
        required=bool(d.get("required", True)),
        applies_when=parse_guard(d.get("applies_when")),
    )


def category_to_dict(c: ToolCategory) -> Dict[str, Any]:
    return {"name": c.name, "exclusivity": c.exclusivity.value, "members": list(c.members)}


def category_from_dict(d: Dict[str, Any]) -> ToolCategory:
    return ToolCategory(
        name=d["name"],
        exclusivity=Exclusivity(d.get("exclusivity", Exclusivity.ONE_OF.value)),
        members=tuple(d.get("members", [])),
    )


def catalog_to_dict(c: DecisionCatalog) -> Dict[str, Any]:
    return {
        "name": c.name,
        "version": c.version,
        "nodes": [node_to_dict(n) for n in c.nodes],
        "categories": [category_to_dict(cat) for cat in c.categories],
        "metadata": c.metadata,
    }


def catalog_from_dict(d: Dict[str, Any]) -> DecisionCatalog:
    c = DecisionCatalog(name=d.get("name", ""), version=str(d.get("version", "1")))
    c.nodes = [node_from_dict(n) for n in d.get("nodes", [])]
    c.categories = [category_from_dict(cat) for cat in d.get("categories", [])]
    c.metadata = d.get("metadata", {}) or {}
    return c


def rule_to_dict(r: SupersessionRule) -> Dict[str, Any]:
    return {
        "tool": r.tool,
        "replaced_tools": list(r.replaced_tools),
        "file_patterns": list(r.file_patterns),
        "dependency_names": list(r.dependency_names),
        "script_rewrites": dict(r.script_rewrites),
        "owned_files": list(r.owned_files),
        "owned_dependencies": list(r.owned_dependencies),
    }


def rule_from_dict(d: Dict[str, Any]) -> SupersessionRule:
    return SupersessionRule(
        tool=d["tool"],
        replaced_tools=tuple(d.get("replaced_tools", [])),
        file_patterns=tuple(d.get("file_patterns", [])),
        dependency_names=tuple(d.get("dependency_names", [])),
        script_rewrites=dict(d.get("script_rewrites", {}) or {}),
        owned_files=tuple(d.get("owned_files", [])),
        owned_dependencies=tuple(d.get("owned_dependencies", [])),
    )


def rules_to_dict(t: RuleTable) -> Dict[str, Any]:
    return {"name": t.name, "version": t.version, "rules": [rule_to_dict(r) for r in t.rules]}


def rules_from_dict(d: Dict[str, Any]) -> RuleTable:
    rules = [rule_from_dict(r) for r in d.get("rules", [])]
    tools = [r.tool for r in rules]
    duplicates = sorted({t for t in tools if tools.count(t) > 1})
    if duplicates:
        raise StackPlanError(f"Duplicate rules for: {', '.join(duplicates)}")
    return RuleTable(name=d.get("name", "rules"), version=str(d.get("version", "1")), rules=rules)


def state_to_dict(s: ProjectState) -> Dict[str, Any]:
    return {
        "dependencies": sorted(s.dependencies),
        "files": sorted(s.files),
        "scripts": dict(s.scripts),
    }


def state_from_dict(d: Dict[str, Any]) -> ProjectState:
    return ProjectState.build(
        dependencies=d.get("dependencies", []),
        files=d.get("files", []),
        scripts=d.get("scripts", {}),
    )


def snapshot_to_dict(s: SelectionSnapshot) -> Dict[str, Any]:
    return {"catalog": s.catalog_name, "version": s.catalog_version, "answers": s.as_dict()}


def operation_to_dict(op: Operation) -> Dict[str, Any]:
    if isinstance(op, RemoveDependency):
        return {"op": op.kind, "name": op.name}
    if isinstance(op, DeleteFile):
        return {"op": op.kind, "path": op.path, "pattern": op.pattern}
    if isinstance(op, RewriteScript):
        return {"op": op.kind, "name": op.name, "command": op.new_command, "previous": op.old_command}
    raise TypeError(f"Unsupported operation type: {type(op)}")


def operation_from_dict(d: Dict[str, Any]) -> Operation:
    kind = d.get("op")
    if kind == RemoveDependency.kind:
        return RemoveDependency(d["name"])
    if kind == DeleteFile.kind:
        return DeleteFile(d["path"], d.get("pattern", ""))
    if kind == RewriteScript.kind:
        return RewriteScript(d["name"], d["command"], d.get("previous"))
    raise TypeError(f"Unsupported operation dict type: {kind}")


def plan_to_dict(p: OperationPlan) -> Dict[str, Any]:
    return {
        "catalog": p.catalog_name,
        "version": p.catalog_version,
        "operations": [operation_to_dict(op) for op in p.operations],
    }


def plan_from_dict(d: Dict[str, Any]) -> OperationPlan:
    return OperationPlan(
        operations=[operation_from_dict(op) for op in d.get("operations", [])],
        catalog_name=d.get("catalog", ""),
        catalog_version=str(d.get("version", "")),
    )


def plan_to_json(p: OperationPlan) -> str:
    return json.dumps(plan_to_dict(p), indent=2)


def catalog_to_yaml(c: DecisionCatalog) -> str:
    return yaml.safe_dump(catalog_to_dict(c), sort_keys=False)


def catalog_from_yaml(s: str) -> DecisionCatalog:
    return catalog_from_dict(yaml.safe_load(s) or {})


def rules_to_yaml(t: RuleTable) -> str:
    return yaml.safe_dump(rules_to_dict(t), sort_keys=False)


def rules_from_yaml(s: str) -> RuleTable:
    return rules_from_dict(yaml.safe_load(s) or {})


def _load(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    data = json.loads(text) if path.suffix.lower() == ".json" else yaml.safe_load(text)
    if not isinstance(data, dict):
        raise StackPlanError(f"{path} must contain a mapping")
    return data


def load_catalog(path: Union[str, Path]) -> DecisionCatalog:
    return catalog_from_dict(_load(path))


def load_rules(path: Union[str, Path]) -> RuleTable:
    return rules_from_dict(_load(path))


def load_project_state(path: Union[str, Path]) -> ProjectState:
    return state_from_dict(_load(path))


__all__: List[str] = [
    "catalog_to_dict", "catalog_from_dict", "catalog_to_yaml", "catalog_from_yaml",
    "rules_to_dict", "rules_from_dict", "rules_to_yaml", "rules_from_yaml",
    "state_to_dict", "state_from_dict", "snapshot_to_dict",
    "plan_to_dict", "plan_from_dict", "plan_to_json",
    "load_catalog", "load_rules", "load_project_state",
]
