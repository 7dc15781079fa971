"""
Error taxonomy for the stackplan engine.

Recoverable (the walker re-prompts the same node):
    - InvalidSelection
    - CategoryConflict

Fatal (the whole pass unwinds, nothing is applied or written):
    - UnsatisfiableNode
    - ConflictCycle
    - SchemaValidationError

Fatal errors describe a defect in the static tables, not a user mistake,
so their messages carry the full failure reason.
"""

from typing import Iterable, List, Optional, Sequence


class StackPlanError(Exception):
    """Base class for every error raised by the engine."""
    pass


class UnsatisfiableNode(StackPlanError):
    """A required node has no valid options given the prior answers."""

    def __init__(self, node_id: str, reason: Optional[str] = None):
        self.node_id = node_id
        self.reason = reason
        msg = f"Required node '{node_id}' has no valid options"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidSelection(StackPlanError):
    """The chosen option is not in the node's currently filtered set."""

    def __init__(self, node_id: str, chosen_id: object, options: Sequence[str] = (), reason: Optional[str] = None):
        self.node_id = node_id
        self.chosen_id = chosen_id
        self.options = list(options)
        self.reason = reason
        msg = reason or f"'{chosen_id}' is not a valid choice for '{node_id}'"
        if self.options:
            msg += f" (valid: {', '.join(self.options)})"
        super().__init__(msg)


class CategoryConflict(StackPlanError):
    """A selection would put a second member into a one-of category."""

    def __init__(self, category: str, existing_tool: str, new_tool: str):
        self.category = category
        self.existing_tool = existing_tool
        self.new_tool = new_tool
        super().__init__(
            f"Category '{category}' allows one tool: '{existing_tool}' is already selected, "
            f"cannot add '{new_tool}'"
        )


class ConflictCycle(StackPlanError):
    """Selected tools supersede each other; the rule table is malformed."""

    def __init__(self, *tools: str):
        self.tools = tuple(tools)
        super().__init__(
            "Supersession cycle between selected tools: " + " -> ".join(self.tools)
        )

    @property
    def a(self) -> str:
        return self.tools[0]

    @property
    def b(self) -> str:
        return self.tools[1]


class SchemaValidationError(StackPlanError):
    """The canonical configuration document does not have the required shape."""

    def __init__(self, missing: Iterable[str] = (), reason: Optional[str] = None):
        self.missing: List[str] = sorted(missing)
        if reason is None:
            reason = f"missing required section(s): {', '.join(self.missing)}"
        super().__init__(f"Invalid configuration document: {reason}")


class WalkCancelled(StackPlanError):
    """The chooser aborted the walk. No partial selection survives."""
    pass


class GuardParseError(StackPlanError):
    """Raised when guard text cannot be parsed."""
    pass


class IncompleteSelection(StackPlanError):
    """finalize() was called before every applicable required node was answered."""

    def __init__(self, node_ids: Sequence[str]):
        self.node_ids = list(node_ids)
        super().__init__(f"Unanswered required node(s): {', '.join(self.node_ids)}")
