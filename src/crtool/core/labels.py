"""Label-based cross-referencing between actions and ingredients.

Actions reference ingredients through ``parameters.ingredientIds``. The
references are checked in two passes: first an index from label to the
ingredients carrying it is built, then every reference is looked up. An
action may therefore reference an ingredient declared after it.
"""

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import AmbiguousIngredientReference, UnresolvedIngredientReference
from .types import AssertionSpec, ResolvedIngredient

logger = logging.getLogger(__name__)


def default_label(path: Path) -> str:
    """Label used for an ingredient declared without one: its file name."""
    return path.name


@dataclass
class LabelIndex:
    """Label -> identities of the ingredients carrying it, in declaration order.

    The signer receives every ingredient; a label carried more than once
    simply cannot be referenced.
    """

    entries: dict[str, list[str]] = field(default_factory=dict)

    def add(self, label: str, identity: str) -> None:
        self.entries.setdefault(label, []).append(identity)

    def lookup(self, label: str) -> list[str]:
        return self.entries.get(label, [])

    def duplicates(self) -> dict[str, list[str]]:
        return {label: ids for label, ids in self.entries.items() if len(ids) > 1}


def build_label_index(
    ingredients: Sequence[ResolvedIngredient],
    inline_ingredients: Sequence[dict[str, Any]] = (),
) -> LabelIndex:
    """Index every referenceable ingredient by its label.

    Inline ingredients (the ``ingredients`` list of the description) are
    referenceable by their ``label`` or ``instance_id``.
    """
    index = LabelIndex()
    for ingredient in ingredients:
        index.add(ingredient.instance_id, str(ingredient.path))
    for i, inline in enumerate(inline_ingredients):
        identity = f"ingredients[{i}]"
        labels = {inline.get("label"), inline.get("instance_id")}
        for label in labels:
            if isinstance(label, str) and label:
                index.add(label, identity)
    return index


def iter_ingredient_references(
    assertions: Sequence[AssertionSpec],
) -> Iterator[tuple[str, int, Any]]:
    """Yield (assertion label, action index, referenced label) for every reference."""
    for assertion in assertions:
        data = assertion.data
        if not isinstance(data, dict):
            continue
        actions = data.get("actions")
        if not isinstance(actions, list):
            continue
        for action_index, action in enumerate(actions):
            if not isinstance(action, dict):
                continue
            parameters = action.get("parameters")
            if not isinstance(parameters, dict):
                continue
            ids = parameters.get("ingredientIds")
            if ids is None:
                continue
            if not isinstance(ids, list):
                ids = [ids]
            for label in ids:
                yield assertion.label, action_index, label


def resolve_references(
    assertions: Sequence[AssertionSpec],
    index: LabelIndex,
) -> list[str]:
    """Check that every ingredient reference resolves to exactly one ingredient.

    Duplicate labels that nothing references are tolerated and reported
    as warnings.

    Args:
        assertions: Assertions of the manifest description
        index: Label index built from the resolved ingredients

    Returns:
        Warning messages for unreferenced duplicate labels

    Raises:
        UnresolvedIngredientReference: If a label matches no ingredient
        AmbiguousIngredientReference: If a label matches several ingredients
    """
    referenced: set[str] = set()
    for assertion_label, action_index, label in iter_ingredient_references(assertions):
        if not isinstance(label, str):
            raise UnresolvedIngredientReference(
                str(label),
                assertion_label,
                action_index,
                reason=(
                    f"Action {action_index} in assertion '{assertion_label}' has a "
                    f"non-string ingredient reference: {label!r}"
                ),
            )
        matches = index.lookup(label)
        if not matches:
            raise UnresolvedIngredientReference(label, assertion_label, action_index)
        if len(matches) > 1:
            raise AmbiguousIngredientReference(label, assertion_label, action_index, matches)
        referenced.add(label)

    warnings = []
    for label, identities in index.duplicates().items():
        if label in referenced:
            continue
        message = (
            f"Ingredient label '{label}' is shared by {len(identities)} ingredients "
            f"({', '.join(identities)}); it cannot be referenced from actions"
        )
        logger.warning(message)
        warnings.append(message)
    return warnings
