"""
Decision Catalog Model Objects

Defines the static data structures that describe what can be chosen:
    - Options (one answer to a question)
    - ChoiceNodes (questions)
    - ToolCategories (mutual-exclusivity groups)
    - DecisionCatalog (root container)

ARCHITECTURAL RULE:
    These objects:
        - Know nothing about prompting or scaffolding
        - Are not mutated after construction
        - Are fully serializable
        - Hold predicates as guard ASTs, never as callables
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Set

from stackplan.evaluator import Answer, evaluate
from stackplan.expressions import Expression


# Catalog dependency order. Nodes are walked phase by phase; within a
# phase, in declaration order.
PHASE_ORDER = ("structure", "project-type", "language", "framework", "stack-additions")


@dataclass(frozen=True)
class Option:
    """
    One selectable answer of a ChoiceNode.

    Properties:
        id:
            Stable identifier, also the tool identifier used by the
            rule table and tool categories (e.g. "nextjs", "biome")

        label:
            Human-readable text shown by the prompting collaborator

        available_when:
            Guard over prior answers. If None the option is always offered.
            Example: language == 'typescript'
    """

    id: str
    label: str = ""
    available_when: Optional[Expression] = None


@dataclass
class ChoiceNode:
    """
    A single question in the decision tree.

    Properties:
        id:
            Unique identifier, referenced by guards (e.g. "framework")

        category:
            Phase label, one of PHASE_ORDER

        text:
            Question text for the prompting collaborator

        options:
            Ordered static option set

        multi_select:
            True if zero or more options may be chosen

        required:
            A required node must end up with an answer. For multi-select
            nodes "an answer" may be the empty tuple.

        applies_when:
            Guard deciding whether the node is asked at all.
            A node that does not apply is skipped and left unanswered.

    INVARIANT:
        filter_options() always returns a subset of options,
        in the static order.
    """

    id: str
    category: str
    text: str = ""
    options: List[Option] = field(default_factory=list)
    multi_select: bool = False
    required: bool = True
    applies_when: Optional[Expression] = None

    def applies(self, answers: Mapping[str, Answer]) -> bool:
        return bool(evaluate(self.applies_when, answers))

    def filter_options(self, answers: Mapping[str, Answer]) -> List[Option]:
        """Return the options valid given the prior answers."""
        return [opt for opt in self.options if evaluate(opt.available_when, answers)]

    def option_ids(self) -> List[str]:
        return [opt.id for opt in self.options]

    def get_option(self, option_id: str) -> Optional[Option]:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None


class Exclusivity(Enum):
    ONE_OF = "one-of"
    MANY_OF = "many-of"


@dataclass(frozen=True)
class ToolCategory:
    """
    A named group of tools with an exclusivity mode.

    Example:
        ToolCategory("package-manager", Exclusivity.ONE_OF, ("npm", "pnpm", "yarn", "bun"))

    INVARIANT:
        A finalized selection contains at most one member of a ONE_OF category.
    """

    name: str
    exclusivity: Exclusivity = Exclusivity.ONE_OF
    members: tuple = ()


@dataclass
class DecisionCatalog:
    """
    Root container for the static decision tree.

    The catalog is versioned and ships with the implementation;
    it is not edited at runtime.

    INVARIANTS:
        - Node ids are unique
        - Option ids are unique within a node
        - Guards only reference nodes walked earlier
          (checked by stackplan.analyzer)
    """

    name: str
    version: str = "1"
    nodes: List[ChoiceNode] = field(default_factory=list)
    categories: List[ToolCategory] = field(default_factory=list)
    metadata: Dict[str, str] = field(default_factory=dict)

    def get_node(self, node_id: str) -> Optional[ChoiceNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_category(self, name: str) -> Optional[ToolCategory]:
        for category in self.categories:
            if category.name == name:
                return category
        return None

    def categories_for(self, tool: str) -> List[ToolCategory]:
        return [c for c in self.categories if tool in c.members]

    def ordered_nodes(self) -> List[ChoiceNode]:
        """
        Nodes in walk order: by phase, then by declaration order.

        Nodes with a category outside PHASE_ORDER are walked last.
        """
        def rank(node: ChoiceNode) -> int:
            try:
                return PHASE_ORDER.index(node.category)
            except ValueError:
                return len(PHASE_ORDER)

        return sorted(self.nodes, key=rank)

    def tools(self) -> Set[str]:
        """Every option id across all nodes."""
        return {opt.id for node in self.nodes for opt in node.options}

    def tool_order(self) -> Dict[str, int]:
        """Position of each tool in walk order, for deterministic output."""
        order: Dict[str, int] = {}
        for node in self.ordered_nodes():
            for opt in node.options:
                order.setdefault(opt.id, len(order))
        return order
