"""
Defensive clean-up of persisted inventory and project data.

Older saves contain a few kinds of damage:
- BOM lines that were stored as a stringified array and later parsed back as a
  character-indexed object ({"0": "0", "1": "[", ...}).
- Parts whose 'projects' field is a list of project ids instead of a mapping.
- Null or nameless inventory entries.

Everything here mutates the passed mappings in place and reports counts, so
callers can decide whether a save is needed.
"""

import logging
from collections.abc import Mapping
from typing import Any

from src.stock_lib.matching import find_by_normalized_id
from src.stock_lib.types import (
    BomLine,
    CorruptedLine,
    InventoryType,
    ProjectsType,
    ValidLine,
)
from src.stock_lib.utils import coerce_quantity, humanize_key

logger = logging.getLogger(__name__)


def is_character_indexed(raw: Any) -> bool:
    """Matches the stringified-array corruption signature."""
    return isinstance(raw, Mapping) and raw.get("0") == "0" and raw.get("1") == "["


def classify_bom_line(raw: Any) -> ValidLine | CorruptedLine:
    """
    Sorts a decoded BOM value into a usable line or a damaged one.

    Args:
        raw: Whatever was stored under a BOM key.

    Returns:
        ValidLine with a coerced {name, quantity} copy, or CorruptedLine
        wrapping the original value. Non-mapping values are always corrupted.
    """
    if not isinstance(raw, Mapping) or is_character_indexed(raw):
        return CorruptedLine(raw)

    name = raw.get("name")
    line: BomLine = {
        "name": str(name) if name is not None else "",
        "quantity": coerce_quantity(raw.get("quantity")),
    }
    return ValidLine(line)


def project_quantities(value: Any) -> dict[str, int]:
    """
    Reads a part's 'projects' field in either of its historical shapes.

    A mapping is read as project id -> quantity. A list is read as project ids,
    each occurrence counting as one unit.
    """
    if isinstance(value, Mapping):
        return {str(pid): coerce_quantity(qty) for pid, qty in value.items()}

    quantities: dict[str, int] = {}
    if isinstance(value, (list, tuple)):
        for pid in value:
            if pid is None:
                continue
            quantities[str(pid)] = quantities.get(str(pid), 0) + 1
    return quantities


def _recover_line(key: str, project_id: str, inventory: InventoryType) -> BomLine:
    """Rebuilds a damaged line from the inventory's project tags."""
    part_id = find_by_normalized_id(key, inventory)
    if part_id is None:
        return {"name": humanize_key(key), "quantity": 0}

    part = inventory[part_id]
    tags = project_quantities(part.get("projects"))
    return {
        "name": part.get("name") or humanize_key(key),
        "quantity": tags.get(project_id, 0),
    }


def repair_projects(projects: ProjectsType, inventory: InventoryType) -> int:
    """
    Replaces damaged BOM lines with well-formed ones.

    The true quantity is recovered from the matching inventory part's
    per-project tag. Without a match, the line becomes a zero-quantity entry
    named after its key. Valid lines are left alone.

    Args:
        projects: Mapping of project id -> project. Mutated in place.
        inventory: Mapping of part id -> part, used read-only.

    Returns:
        Number of lines repaired.
    """
    repaired = 0
    for project_id, project in projects.items():
        bom = project.get("bom") if isinstance(project, dict) else None
        if not isinstance(bom, dict):
            continue

        for key, raw in list(bom.items()):
            if isinstance(classify_bom_line(raw), ValidLine):
                continue
            bom[key] = _recover_line(key, project_id, inventory)
            repaired += 1

    if repaired:
        logger.info(f"Repaired {repaired} damaged BOM line(s)")
    return repaired


def migrate_part_projects(inventory: InventoryType) -> int:
    """
    Converts every part's 'projects' field into a project id -> qty mapping.

    Returns:
        Number of parts whose field changed shape or values.
    """
    migrated = 0
    for part in inventory.values():
        if "projects" not in part:
            continue

        current = part["projects"]
        canonical = project_quantities(current)
        if current != canonical or not isinstance(current, dict):
            part["projects"] = canonical
            migrated += 1

    if migrated:
        logger.info(f"Migrated project tags on {migrated} part(s)")
    return migrated


def cleanup_inventory(inventory: InventoryType) -> int:
    """
    Drops entries that cannot be displayed and coerces quantities.

    Entries that are null, not objects, or have no name are removed.

    Returns:
        Number of entries removed.
    """
    invalid = [
        part_id
        for part_id, part in inventory.items()
        if not isinstance(part, dict) or not str(part.get("name") or "").strip()
    ]
    for part_id in invalid:
        del inventory[part_id]

    for part in inventory.values():
        part["quantity"] = coerce_quantity(part.get("quantity"))

    if invalid:
        logger.warning(f"Removed {len(invalid)} invalid inventory entries")
    return len(invalid)


def cleanup_projects(projects: ProjectsType) -> int:
    """
    Drops non-object projects and fills in missing names and BOMs.

    Returns:
        Number of projects removed.
    """
    invalid = [pid for pid, project in projects.items() if not isinstance(project, dict)]
    for pid in invalid:
        del projects[pid]

    for pid, project in projects.items():
        if not str(project.get("name") or "").strip():
            project["name"] = humanize_key(pid)
        if not isinstance(project.get("bom"), dict):
            project["bom"] = {}

    if invalid:
        logger.warning(f"Removed {len(invalid)} invalid project(s)")
    return len(invalid)


def prepare_state(inventory: InventoryType, projects: ProjectsType) -> dict[str, int]:
    """
    Runs every clean-up step on freshly loaded or imported state.

    Returns:
        Counts per step: 'removed', 'migrated', 'repaired'.
    """
    removed = cleanup_inventory(inventory) + cleanup_projects(projects)
    migrated = migrate_part_projects(inventory)
    repaired = repair_projects(projects, inventory)
    return {"removed": removed, "migrated": migrated, "repaired": repaired}
