"""
Identity resolution between BOM references and inventory entries.

Part names drift: one BOM says 'resistor_10k', another '10k Resistor', the
inventory has 'res_10k'. This module decides which inventory entry a given
reference means, using progressively looser comparisons:

1. Exact id.
2. Same normalized id.
3. Normalized ids within a small edit distance.
4. Same normalized display name (only when a name is supplied).
"""

from collections.abc import Mapping
from typing import Any

from src.stock_lib import constants as C
from src.stock_lib.types import PartMatch
from src.stock_lib.utils import normalize

NO_MATCH = PartMatch(None, "none")


def edit_distance(a: str, b: str) -> int:
    """
    Levenshtein distance between two keys.

    Insertions, deletions and substitutions each cost 1. Uses two rolling
    rows, so memory is O(len(b)).

    Args:
        a: First normalized key.
        b: Second normalized key.

    Returns:
        Minimum number of single-character edits turning a into b.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(
                min(
                    previous[j] + 1,  # deletion
                    current[j - 1] + 1,  # insertion
                    previous[j - 1] + cost,  # substitution
                )
            )
        previous = current

    return previous[-1]


def find_part(
    candidate_id: str,
    candidate_name: str | None,
    inventory: Mapping[str, Any],
    threshold: int = C.FUZZY_MATCH_THRESHOLD,
) -> PartMatch:
    """
    Finds the inventory entry a reference most likely points at.

    Read-only. Callers decide what to do with a miss (usually create a part).

    Args:
        candidate_id: The id or key being looked up (e.g., a BOM key).
        candidate_name: Optional display name, used as a last resort.
        inventory: Mapping of part id -> part record.
        threshold: Largest edit distance still accepted as a fuzzy match.

    Returns:
        A PartMatch carrying the matched id and how it was found.
        Ties on fuzzy distance go to the entry seen first in the inventory.
    """
    if candidate_id in inventory:
        return PartMatch(candidate_id, "exact")

    target = normalize(candidate_id)

    if target:
        normalized_ids = [(part_id, normalize(part_id)) for part_id in inventory]

        for part_id, key in normalized_ids:
            if key == target:
                return PartMatch(part_id, "normalized")

        best_id = None
        best_distance = threshold + 1
        for part_id, key in normalized_ids:
            if not key:
                continue
            dist = edit_distance(target, key)
            # Strict '<' keeps the first entry on ties
            if dist < best_distance:
                best_id = part_id
                best_distance = dist

        if best_id is not None:
            return PartMatch(best_id, "fuzzy", best_distance)

    if candidate_name:
        target_name = normalize(candidate_name)
        if target_name:
            for part_id, part in inventory.items():
                if isinstance(part, Mapping) and normalize(part.get("name")) == (
                    target_name
                ):
                    return PartMatch(part_id, "name")

    return NO_MATCH


def resolve_part_id(
    candidate_id: str,
    candidate_name: str | None,
    inventory: Mapping[str, Any],
    threshold: int = C.FUZZY_MATCH_THRESHOLD,
) -> str | None:
    """
    Returns the id of the matching inventory entry, or None.

    See find_part for the matching order.
    """
    return find_part(candidate_id, candidate_name, inventory, threshold).part_id


def find_by_normalized_id(key: str, inventory: Mapping[str, Any]) -> str | None:
    """Exact id, then normalized id. No fuzzy step."""
    if key in inventory:
        return key

    target = normalize(key)
    if not target:
        return None

    for part_id in inventory:
        if normalize(part_id) == target:
            return part_id
    return None
