"""
One reconciliation pass: resolve -> supersede -> plan -> persist.

A pass is a single logical transaction. Everything is computed in
memory first; if any step raises, the caller gets the exception and
nothing has been applied or written. Applying the plan and committing
the document are left to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from stackplan.config import Settings
from stackplan.detection import detect_defaults
from stackplan.model import DecisionCatalog
from stackplan.persister import persist
from stackplan.planner import OperationPlan, ProjectState, plan
from stackplan.rules import RuleTable, SupersededSet, resolve_superseded
from stackplan.selection import SelectionSnapshot
from stackplan.walker import Chooser, Choice, DecisionTreeWalker

logger = logging.getLogger(__name__)


@dataclass
class PassResult:
    snapshot: SelectionSnapshot
    superseded: SupersededSet
    plan: OperationPlan
    config: Dict[str, Any] = field(default_factory=dict)


def run_pass(catalog: DecisionCatalog, rules: RuleTable, chooser: Chooser, project_state: ProjectState,
             existing_config: Optional[Mapping[str, Any]] = None,
             integration_metadata: Optional[Mapping[str, Any]] = None,
             defaults: Optional[Mapping[str, Choice]] = None,
             settings: Optional[Settings] = None) -> PassResult:
    """
    Compute a complete pass without side effects.

    Args:
        catalog / rules: Static tables
        chooser: Stand-in for the conversational collaborator
        project_state: Current project snapshot
        existing_config: Current canonical document, if any
        integration_metadata: Opaque "integrations" / "tooling" payload
        defaults: Walker defaults; detected from `project_state` when None

    Raises:
        Any StackPlanError from the walk, the resolver or the persister.
    """
    settings = settings or Settings()
    if defaults is None:
        defaults = detect_defaults(project_state)

    snapshot = DecisionTreeWalker(catalog, chooser, settings).resolve(defaults)
    superseded = resolve_superseded(snapshot, rules)
    operations = plan(superseded, snapshot, project_state)
    config = persist(existing_config, snapshot, integration_metadata, settings.required_sections)

    logger.info("Pass complete: %d operation(s), stack=%s", len(operations), snapshot.as_dict())
    return PassResult(snapshot=snapshot, superseded=superseded, plan=operations, config=config)
