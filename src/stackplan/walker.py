"""
Decision Tree Walker: drives a DecisionCatalog to a finalized selection.

The walker is a finite traversal over the catalog's nodes in dependency
order (structure -> project-type -> language -> framework ->
stack-additions). It never branches recursively: every node is visited
once, and its guards decide whether it is skipped, auto-resolved or asked.

The conversational layer is out of scope. It is represented by a
`Chooser`: any callable taking a Prompt and returning the chosen id(s).

Error policy:
    - InvalidSelection / CategoryConflict: re-ask the same node,
      up to Settings.max_prompt_attempts times
    - UnsatisfiableNode: abort the walk
    - WalkCancelled / KeyboardInterrupt from the chooser: abort the walk

An aborted walk discards its SelectionModel. Nothing leaves the walker
until finalize() succeeds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Mapping, Optional, Union

from stackplan.config import Settings
from stackplan.errors import (
    CategoryConflict,
    InvalidSelection,
    StackPlanError,
    UnsatisfiableNode,
    WalkCancelled,
)
from stackplan.model import ChoiceNode, DecisionCatalog, Option
from stackplan.selection import SelectionModel, SelectionSnapshot

logger = logging.getLogger(__name__)

Choice = Union[str, Iterable[str], None]


@dataclass(frozen=True)
class Prompt:
    """
    What the chooser is asked.

    Properties:
        node: The node being answered
        options: The filtered options (the only valid answers)
        default: A pre-validated suggestion from environment detection
        attempt: 1 for the first ask, higher after a recoverable error
        error: The recoverable error that caused a re-ask, if any
    """

    node: ChoiceNode
    options: List[Option]
    default: Choice = None
    attempt: int = 1
    error: Optional[StackPlanError] = None

    @property
    def option_ids(self) -> List[str]:
        return [o.id for o in self.options]


Chooser = Callable[[Prompt], Choice]


class ScriptedChooser:
    """
    Chooser that answers from a fixed mapping.

    Falls back to the prompt's default. A single-select node with neither
    an answer nor a default cancels the walk; a multi-select node gets
    an empty answer.
    """

    def __init__(self, answers: Mapping[str, Choice], use_defaults: bool = True):
        self.answers = dict(answers)
        self.use_defaults = use_defaults
        self.asked: List[str] = []

    def __call__(self, prompt: Prompt) -> Choice:
        self.asked.append(prompt.node.id)
        if prompt.node.id in self.answers:
            return self.answers[prompt.node.id]
        if self.use_defaults and prompt.default is not None:
            return prompt.default
        if prompt.node.multi_select or not prompt.node.required:
            return ()
        raise WalkCancelled(f"No answer scripted for '{prompt.node.id}'")


class DecisionTreeWalker:
    """
    Walks one catalog with one chooser.

    Example:
        walker = DecisionTreeWalker(catalog, ScriptedChooser({"structure": "monorepo"}))
        snapshot = walker.resolve(defaults={"language": "typescript"})
    """

    def __init__(self, catalog: DecisionCatalog, chooser: Chooser, settings: Optional[Settings] = None):
        self.catalog = catalog
        self.chooser = chooser
        self.settings = settings or Settings()

    def resolve(self, defaults: Optional[Mapping[str, Choice]] = None) -> SelectionSnapshot:
        """
        Walk every node and return the finalized selection.

        Raises:
            UnsatisfiableNode: a required node has no valid option
            InvalidSelection / CategoryConflict: still invalid after the last attempt
            WalkCancelled: the chooser aborted
        """
        defaults = dict(defaults or {})
        model = SelectionModel(self.catalog)
        try:
            for node in self.catalog.ordered_nodes():
                self._visit(model, node, defaults.get(node.id))
            snapshot = model.finalize()
        except (StackPlanError, KeyboardInterrupt) as exc:
            model.clear()
            logger.info("Walk of '%s' aborted: %s", self.catalog.name, exc)
            raise
        logger.info("Resolved '%s': %s", self.catalog.name, snapshot.as_dict())
        return snapshot

    def _visit(self, model: SelectionModel, node: ChoiceNode, default: Choice) -> None:
        if not node.applies(model.prior_answers(node.id)):
            logger.debug("Skipping %s: not applicable", node.id)
            model.skip(node.id)
            return

        options = model.available_options(node.id)
        if not options:
            if node.required:
                raise UnsatisfiableNode(node.id, "every option is excluded by earlier answers")
            logger.debug("Skipping %s: no options left", node.id)
            model.skip(node.id)
            return

        if len(options) == 1 and node.required and not node.multi_select:
            logger.debug("Auto-resolving %s to its sole option %s", node.id, options[0].id)
            model.record(node.id, options[0].id)
            return

        default = self._valid_default(model, node, options, default)
        error: Optional[StackPlanError] = None
        for attempt in range(1, self.settings.max_prompt_attempts + 1):
            prompt = Prompt(node=node, options=options, default=default, attempt=attempt, error=error)
            choice = self.chooser(prompt)
            if choice is None and not node.required:
                model.skip(node.id)
                return
            try:
                model.record(node.id, choice)
                return
            except (InvalidSelection, CategoryConflict) as exc:
                logger.info("Re-asking %s (attempt %d): %s", node.id, attempt, exc)
                error = exc
                # a failed record re-filters; keep the prompt in step with it
                options = model.available_options(node.id)
        raise error

    def _valid_default(self, model: SelectionModel, node: ChoiceNode, options: List[Option],
                       default: Choice) -> Choice:
        if default is None:
            return None
        valid = {o.id for o in options}
        wanted = [default] if isinstance(default, str) else list(default)
        if node.multi_select:
            offered = [o.id for o in options if o.id in wanted]
            if len(offered) != len(set(wanted)):
                logger.warning("Dropping default(s) %s for %s: not offered",
                               sorted(set(wanted) - valid), node.id)
            # first in catalog order wins a one-of category
            kept: List[str] = []
            for tool in offered:
                try:
                    model.check_categories(node.id, kept + [tool])
                except CategoryConflict as exc:
                    logger.warning("Dropping default %r for %s: %s", tool, node.id, exc)
                    continue
                kept.append(tool)
            return tuple(kept)
        if len(wanted) == 1 and wanted[0] in valid:
            try:
                model.check_categories(node.id, wanted)
            except CategoryConflict as exc:
                logger.warning("Discarding default %r for %s: %s", default, node.id, exc)
                return None
            return wanted[0]
        logger.warning("Discarding default %r for %s: not offered", default, node.id)
        return None


def resolve(catalog: DecisionCatalog, initial_defaults: Optional[Mapping[str, Choice]],
            chooser: Chooser, settings: Optional[Settings] = None) -> SelectionSnapshot:
    """Functional entry point: walk `catalog` with `chooser`, seeded by `initial_defaults`."""
    return DecisionTreeWalker(catalog, chooser, settings).resolve(initial_defaults)
