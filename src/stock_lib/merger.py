"""
Duplicate detection and merging across the whole inventory.

Two entries are duplicates when their display names normalize to the same key
('Resistor 10kΩ' and 'resistor 10k'). Duplicates are folded into a single
canonical entry and every project BOM is re-pointed at the survivor.
"""

import logging
from typing import Any

from src.stock_lib import constants as C
from src.stock_lib.repair import (
    classify_bom_line,
    project_quantities,
    repair_projects,
)
from src.stock_lib.types import InventoryType, MergeReport, ProjectsType
from src.stock_lib.utils import coerce_quantity, normalize

logger = logging.getLogger(__name__)


def _group_by_name(inventory: InventoryType) -> dict[str, list[str]]:
    """Normalized name -> part ids, in inventory order."""
    groups: dict[str, list[str]] = {}
    for part_id, part in inventory.items():
        key = normalize(part.get("name"))
        if not key:
            continue
        groups.setdefault(key, []).append(part_id)
    return groups


def _pick_canonical(ids: list[str], inventory: InventoryType) -> str:
    """
    First id wins unless a later one carries a purchase URL the current
    canonical lacks.
    """
    canonical = ids[0]
    for part_id in ids[1:]:
        if inventory[part_id].get("purchaseUrl") and not inventory[canonical].get(
            "purchaseUrl"
        ):
            canonical = part_id
    return canonical


def _fold_into(canonical: dict[str, Any], duplicate: dict[str, Any]) -> None:
    """Merges one duplicate record into the canonical record."""
    canonical["quantity"] = coerce_quantity(canonical.get("quantity")) + (
        coerce_quantity(duplicate.get("quantity"))
    )

    dup_projects = project_quantities(duplicate.get("projects"))
    if dup_projects:
        merged = project_quantities(canonical.get("projects"))
        for project_id, qty in dup_projects.items():
            merged[project_id] = merged.get(project_id, 0) + qty
        canonical["projects"] = merged

    dup_url = duplicate.get("purchaseUrl") or ""
    own_url = canonical.get("purchaseUrl") or ""
    if dup_url and (not own_url or len(dup_url) > len(own_url)):
        canonical["purchaseUrl"] = dup_url

    dup_type = duplicate.get("type")
    if dup_type and (not canonical.get("type") or dup_type != C.GENERIC_TYPE):
        canonical["type"] = dup_type


def _rewrite_boms(
    projects: ProjectsType,
    inventory: InventoryType,
    replaced: dict[str, str],
    canonical_by_key: dict[str, str],
) -> int:
    """
    Re-points BOM keys at surviving ids and sums lines that collide.

    Returns:
        Number of BOM keys that changed.
    """
    rewritten = 0
    for project in projects.values():
        bom = project.get("bom") if isinstance(project, dict) else None
        if not isinstance(bom, dict):
            continue

        new_bom: dict[str, Any] = {}
        for key, raw in bom.items():
            classified = classify_bom_line(raw)

            target = replaced.get(key)
            if target is None:
                if key in inventory:
                    target = key
                else:
                    target = canonical_by_key.get(normalize(key), key)

            if target != key:
                rewritten += 1

            existing = new_bom.get(target)
            if existing is not None:
                existing["quantity"] += classified.line["quantity"]
            else:
                line = dict(raw)
                line["quantity"] = classified.line["quantity"]
                new_bom[target] = line

        bom.clear()
        bom.update(new_bom)

    return rewritten


def merge_duplicates(inventory: InventoryType, projects: ProjectsType) -> MergeReport:
    """
    Folds entries with the same normalized name into one canonical entry.

    For each group the first entry is kept, unless a later one has a purchase
    URL and the kept one does not. Quantities and per-project needs are
    summed, the longer purchase URL and the more specific type are kept, and
    duplicates are deleted. Project BOMs are then rewritten to the surviving
    ids, summing any lines that land on the same id.

    Damaged BOM lines are repaired first, while the duplicates still carry
    the project tags their quantities are recovered from.

    Safe to run at any time; a second run straight after the first merges
    nothing.

    Args:
        inventory: Mapping of part id -> part. Mutated in place.
        projects: Mapping of project id -> project. BOMs mutated in place.

    Returns:
        A MergeReport. Zero merges is a normal outcome.
    """
    repair_projects(projects, inventory)

    groups: dict[str, list[str]] = {}
    replaced: dict[str, str] = {}
    canonical_by_key: dict[str, str] = {}

    for key, ids in _group_by_name(inventory).items():
        canonical_id = _pick_canonical(ids, inventory)
        canonical_by_key[key] = canonical_id

        for part_id in ids:
            if part_id == canonical_id:
                continue
            _fold_into(inventory[canonical_id], inventory[part_id])
            replaced[part_id] = canonical_id
            groups.setdefault(canonical_id, []).append(part_id)

    for part_id in replaced:
        del inventory[part_id]

    rewritten = _rewrite_boms(projects, inventory, replaced, canonical_by_key)

    if replaced:
        logger.info(
            f"Merged {len(replaced)} duplicate part(s) into {len(groups)} canonical part(s)"
        )

    return {
        "merged": len(replaced),
        "groups": groups,
        "bom_lines_rewritten": rewritten,
    }
