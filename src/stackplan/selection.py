"""
Selection Model: validated, in-progress answers to a DecisionCatalog.

A SelectionModel is owned exclusively by whoever walks the catalog.
It is mutable until finalize(), which returns an immutable
SelectionSnapshot that the resolver, planner and persister read.

Validation happens at record time, never later:
    - cardinality (single-select holds exactly one id)
    - membership in the node's currently filtered option set
    - one-of tool category constraints across all recorded answers
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from stackplan.errors import (
    CategoryConflict,
    IncompleteSelection,
    InvalidSelection,
    StackPlanError,
)
from stackplan.evaluator import Answer
from stackplan.model import ChoiceNode, DecisionCatalog, Exclusivity, Option

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionSnapshot:
    """
    Immutable record of a finalized selection.

    Properties:
        answers:
            Read-only mapping node id -> option id (single-select)
            or tuple of option ids (multi-select)

        catalog_name / catalog_version:
            Identify the catalog the answers were validated against

        tool_order:
            Walk-order position of every tool, used to keep downstream
            output in catalog order
    """

    answers: Mapping[str, Answer]
    catalog_name: str = ""
    catalog_version: str = ""
    tool_order: Mapping[str, int] = field(default_factory=dict)

    def get(self, node_id: str) -> Optional[Answer]:
        return self.answers.get(node_id)

    def selected_tools(self) -> List[str]:
        """Every chosen option id, in catalog order, without duplicates."""
        seen: Set[str] = set()
        tools: List[str] = []
        for value in self.answers.values():
            for tool in (value if isinstance(value, tuple) else (value,)):
                if tool not in seen:
                    seen.add(tool)
                    tools.append(tool)
        return sorted(tools, key=lambda t: self.tool_order.get(t, len(self.tool_order)))

    def is_selected(self, tool: str) -> bool:
        return tool in self.selected_tools()

    def as_dict(self) -> Dict[str, Union[str, List[str]]]:
        return {k: list(v) if isinstance(v, tuple) else v for k, v in self.answers.items()}


class SelectionModel:
    """
    Mutable, validated answers for one catalog.

    Example:
        model = SelectionModel(catalog)
        model.record("structure", "monorepo")
        model.record("additions", ["biome", "vitest"])
        snapshot = model.finalize()
    """

    def __init__(self, catalog: DecisionCatalog):
        self.catalog = catalog
        self._order = [n.id for n in catalog.ordered_nodes()]
        self._answers: Dict[str, Answer] = {}
        self._offered: Dict[str, Tuple[str, ...]] = {}
        self._skipped: Set[str] = set()

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def get(self, node_id: str) -> Optional[Answer]:
        return self._answers.get(node_id)

    def is_recorded(self, node_id: str) -> bool:
        return node_id in self._answers

    def prior_answers(self, node_id: str) -> Dict[str, Answer]:
        """Answers of the nodes walked before `node_id`; guards see nothing else."""
        if node_id not in self._order:
            return {}
        earlier = self._order[:self._order.index(node_id)]
        return {nid: self._answers[nid] for nid in earlier if nid in self._answers}

    def available_options(self, node_id: str) -> List[Option]:
        """
        Filter a node's options against the answers recorded so far.

        The result is remembered as the node's last-known filtered set;
        record() validates against it.
        """
        node = self._node(node_id)
        prior = self.prior_answers(node_id)
        options = node.filter_options(prior)
        self._offered[node_id] = tuple(o.id for o in options)
        return options

    def _node(self, node_id: str) -> ChoiceNode:
        node = self.catalog.get_node(node_id)
        if node is None:
            raise StackPlanError(f"Unknown node: {node_id}")
        return node

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def record(self, node_id: str, option_ids: Union[str, Iterable[str], None]) -> Answer:
        """
        Validate and store the answer for a node.

        Args:
            node_id: Node being answered
            option_ids: A single id, or an iterable of ids for multi-select

        Returns:
            The stored answer (str or tuple in static option order)

        Raises:
            InvalidSelection: wrong cardinality or id not currently offered
            CategoryConflict: a one-of category would hold two tools
        """
        node = self._node(node_id)
        valid = [o.id for o in self.available_options(node_id)]

        if isinstance(option_ids, str):
            chosen = [option_ids]
        elif option_ids is None:
            chosen = []
        else:
            chosen = list(option_ids)

        if not node.multi_select and len(chosen) != 1:
            raise InvalidSelection(
                node_id, chosen, valid,
                reason=f"'{node_id}' takes exactly one option, got {len(chosen)}",
            )

        for option_id in chosen:
            if option_id not in valid:
                raise InvalidSelection(node_id, option_id, valid)

        # Static option order keeps multi answers deterministic
        unique = [oid for oid in valid if oid in chosen]
        answer: Answer = tuple(unique) if node.multi_select else unique[0]

        previous = self._answers.get(node_id)
        changed = previous is not None and previous != answer
        self.check_categories(node_id, unique, ignore_later=changed)

        if changed:
            self._invalidate_after(node_id)

        self._answers[node_id] = answer
        self._skipped.discard(node_id)
        logger.debug("Recorded %s = %r", node_id, answer)
        return answer

    def skip(self, node_id: str) -> None:
        """Mark a node as not applicable. Any earlier answer is dropped."""
        self._node(node_id)
        if node_id in self._answers:
            self._invalidate_after(node_id)
            del self._answers[node_id]
        self._skipped.add(node_id)

    def clear(self) -> None:
        """Discard everything. Used when a walk is cancelled."""
        self._answers.clear()
        self._offered.clear()
        self._skipped.clear()

    def check_categories(self, node_id: str, new_tools: List[str], ignore_later: bool = False) -> None:
        """
        Raise CategoryConflict if `new_tools`, answered for `node_id`, would
        put a second tool into a one-of category. Nothing is recorded.
        """
        # Answers after a changed node are about to be dropped as stale
        candidates = self._order
        if ignore_later and node_id in self._order:
            candidates = self._order[:self._order.index(node_id)]

        existing: List[str] = []
        for other_id in candidates:
            if other_id == node_id or other_id not in self._answers:
                continue
            value = self._answers[other_id]
            existing.extend(value if isinstance(value, tuple) else (value,))

        for category in self.catalog.categories:
            if category.exclusivity is not Exclusivity.ONE_OF:
                continue
            members = [t for t in existing if t in category.members]
            for tool in new_tools:
                if tool not in category.members:
                    continue
                if members and members[0] != tool:
                    raise CategoryConflict(category.name, members[0], tool)
                members.append(tool)

    def _invalidate_after(self, node_id: str) -> None:
        """Drop answers of every node walked after node_id (they may be stale)."""
        if node_id not in self._order:
            return
        later = self._order[self._order.index(node_id) + 1:]
        for other_id in later:
            if other_id in self._answers:
                logger.debug("Dropping stale answer for %s after %s changed", other_id, node_id)
                del self._answers[other_id]
                self._offered.pop(other_id, None)

    # ------------------------------------------------------------------
    # Finalizing
    # ------------------------------------------------------------------

    def finalize(self) -> SelectionSnapshot:
        """
        Freeze the answers.

        Re-checks that every answer is still in its node's filtered set
        and that every applicable required node is answered.

        Raises:
            IncompleteSelection: a required node has no answer
            InvalidSelection: an answer is no longer offered
        """
        missing: List[str] = []
        for node in self.catalog.ordered_nodes():
            prior = self.prior_answers(node.id)
            if node.id in self._answers:
                valid = {o.id for o in node.filter_options(prior)}
                value = self._answers[node.id]
                for option_id in (value if isinstance(value, tuple) else (value,)):
                    if option_id not in valid:
                        raise InvalidSelection(node.id, option_id, sorted(valid),
                                               reason=f"Stale answer '{option_id}' for '{node.id}'")
            elif node.required and node.id not in self._skipped and node.applies(prior):
                missing.append(node.id)

        if missing:
            raise IncompleteSelection(missing)

        ordered = {nid: self._answers[nid] for nid in self._order if nid in self._answers}
        return SelectionSnapshot(
            answers=MappingProxyType(ordered),
            catalog_name=self.catalog.name,
            catalog_version=self.catalog.version,
            tool_order=MappingProxyType(self.catalog.tool_order()),
        )
