"""
High-level inventory management and state mutation logic.

This module acts as the "Controller" for the stock library. It handles:
- Part CRUD and stock adjustments.
- Project creation from a BOM, renaming, deletion and tag removal.
- Applying import payloads.
- Sorting and filtering the inventory for display.

Every mutating operation validates first, then mutates, then persists through
store.save(). Operations that touch many records at once (imports, project
creation) work on a staged copy and swap it in only when everything
succeeded, so a failure leaves the store untouched.
"""

import copy
import logging
from typing import Any

from src.stock_lib import constants as C
from src.stock_lib.errors import (
    DuplicateIdError,
    NotFoundError,
    ValidationError,
)
from src.stock_lib.matching import find_part, resolve_part_id
from src.stock_lib.merger import merge_duplicates
from src.stock_lib.reconciler import aggregate_requirements, reconcile_project
from src.stock_lib.repair import (
    classify_bom_line,
    prepare_state,
    project_quantities,
    repair_projects,
)
from src.stock_lib.storage import InventoryStore
from src.stock_lib.types import (
    ImportPayload,
    ImportStats,
    InventoryType,
    MergeReport,
    PartData,
    ProjectReport,
    ProjectsType,
    Requirement,
    ValidLine,
    create_import_stats,
)
from src.stock_lib.utils import coerce_quantity, humanize_key, make_id, normalize

logger = logging.getLogger(__name__)


# --- Helpers ---


def _require_part(store: InventoryStore, part_id: str) -> PartData:
    part = store.inventory.get(part_id)
    if part is None:
        raise NotFoundError(f"Unknown part: {part_id}")
    return part


def _require_project(store: InventoryStore, project_id: str) -> dict[str, Any]:
    project = store.projects.get(project_id)
    if project is None:
        raise NotFoundError(f"Unknown project: {project_id}")
    return project


def _checked_quantity(quantity: Any) -> int:
    """Rejects negative numbers, coerces everything else."""
    if isinstance(quantity, (int, float)) and not isinstance(quantity, bool):
        if quantity < 0:
            raise ValidationError("Quantity cannot be negative")
    return coerce_quantity(quantity)


def _rekey(mapping: dict[str, Any], old_key: str, new_key: str) -> None:
    """Renames a key in place, keeping its position."""
    items = list(mapping.items())
    mapping.clear()
    for key, value in items:
        mapping[new_key if key == old_key else key] = value


def _add_line(bom: dict[str, Any], key: str, name: str, quantity: int) -> None:
    if key in bom:
        bom[key]["quantity"] = coerce_quantity(bom[key].get("quantity")) + quantity
    else:
        bom[key] = {"name": name, "quantity": quantity}


# --- Parts ---


def add_part(
    store: InventoryStore,
    name: str,
    quantity: Any = 0,
    purchase_url: str = "",
    part_id: str | None = None,
    part_type: str | None = None,
) -> str:
    """
    Adds a new part to the inventory.

    Args:
        store: The application's InventoryStore.
        name: Display name (required).
        quantity: Starting stock.
        purchase_url: Optional reorder link.
        part_id: Optional id. Derived from the name when omitted.
        part_type: Optional classification.

    Returns:
        The id of the new part.

    Raises:
        ValidationError: If the name is empty or the quantity negative.
        DuplicateIdError: If the id is already used.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Please enter a part name")

    part_id = (part_id or "").strip() or make_id(name)
    if part_id in store.inventory:
        raise DuplicateIdError(f"Part ID already exists: {part_id}")

    part: PartData = {
        "name": name,
        "quantity": _checked_quantity(quantity),
        "purchaseUrl": (purchase_url or "").strip(),
        "projects": {},
    }
    if part_type:
        part["type"] = part_type

    store.inventory[part_id] = part
    store.save()
    logger.info(f"Added part {part_id}")
    return part_id


def edit_part(
    store: InventoryStore,
    part_id: str,
    name: str,
    quantity: Any,
    purchase_url: str = "",
    new_id: str | None = None,
    part_type: str | None = None,
) -> str:
    """
    Updates a part, optionally moving it to a new id.

    A rename keeps the part's project tags and re-points every BOM line that
    referenced the old id.

    Args:
        part_type: New classification. None keeps the current one, "" clears it.

    Returns:
        The (possibly new) part id.

    Raises:
        NotFoundError: If the part does not exist.
        ValidationError: If the name or new id is empty.
        DuplicateIdError: If the new id is taken by another part.
    """
    part = _require_part(store, part_id)

    name = (name or "").strip()
    if not name:
        raise ValidationError("Please enter a part name")

    target_id = part_id if new_id is None else new_id.strip()
    if not target_id:
        raise ValidationError("Please enter a part ID")
    if target_id != part_id and target_id in store.inventory:
        raise DuplicateIdError(f"Part ID already exists: {target_id}")

    qty = _checked_quantity(quantity)

    part["name"] = name
    part["quantity"] = qty
    part["purchaseUrl"] = (purchase_url or "").strip()
    part["projects"] = project_quantities(part.get("projects"))
    if part_type is not None:
        if part_type:
            part["type"] = part_type
        else:
            part.pop("type", None)

    if target_id != part_id:
        # Damaged lines recover from tags while the part still has its old id
        repair_projects(store.projects, store.inventory)
        _rekey(store.inventory, part_id, target_id)
        for project in store.projects.values():
            bom = project.get("bom") or {}
            if part_id not in bom:
                continue
            if target_id in bom:
                moved = classify_bom_line(bom.pop(part_id))
                kept = classify_bom_line(bom[target_id])
                bom[target_id] = {
                    **kept.line,
                    "quantity": kept.line["quantity"] + moved.line["quantity"],
                }
            else:
                _rekey(bom, part_id, target_id)
        logger.info(f"Renamed part {part_id} -> {target_id}")

    store.save()
    return target_id


def delete_part(store: InventoryStore, part_id: str) -> None:
    """Removes a part. BOM lines that referenced it become 'missing'."""
    _require_part(store, part_id)
    del store.inventory[part_id]
    store.save()
    logger.info(f"Deleted part {part_id}")


def adjust_quantity(store: InventoryStore, part_id: str, delta: int) -> int:
    """
    Adds (or with a negative delta, removes) stock.

    Returns:
        The new quantity.

    Raises:
        ValidationError: If the result would go below zero.
    """
    part = _require_part(store, part_id)
    current = coerce_quantity(part.get("quantity"))

    if current + delta < 0:
        raise ValidationError(f"No {part.get('name', part_id)} in stock!")

    part["quantity"] = current + delta
    store.save()
    return part["quantity"]


def set_quantity(store: InventoryStore, part_id: str, quantity: Any) -> int:
    """Sets stock to an absolute value. Negative input is clamped to 0."""
    part = _require_part(store, part_id)
    part["quantity"] = coerce_quantity(quantity)
    store.save()
    return part["quantity"]


def use_part(store: InventoryStore, part_id: str) -> int:
    """Takes one unit out of stock (e.g., a quick-remove link)."""
    return adjust_quantity(store, part_id, -1)


# --- Projects ---


def _stage_project(
    inventory: InventoryType,
    projects: ProjectsType,
    project_id: str,
    name: str,
    bom: dict[str, Any],
) -> None:
    """Adds a project to staged state, tagging or creating parts."""
    resolved: dict[str, Any] = {}

    for key, raw in bom.items():
        classified = classify_bom_line(raw)
        if not isinstance(classified, ValidLine):
            continue
        line = classified.line
        qty = line["quantity"]

        match = find_part(key, line["name"] or None, inventory)
        if match.part_id is not None:
            target = match.part_id
            part = inventory[target]
            tags = project_quantities(part.get("projects"))
            tags[project_id] = tags.get(project_id, 0) + qty
            part["projects"] = tags
        else:
            target = key
            inventory[target] = {
                "name": line["name"] or humanize_key(key),
                "quantity": 0,
                "purchaseUrl": str(raw.get("purchaseUrl") or ""),
                "projects": {project_id: qty},
            }

        line_name = line["name"] or inventory[target].get("name") or humanize_key(key)
        _add_line(resolved, target, line_name, qty)

    projects[project_id] = {"name": name, "bom": resolved}


def create_project(
    store: InventoryStore, name: str, bom: dict[str, Any], merge: bool = True
) -> str:
    """
    Creates a project from a BOM and tags the inventory with it.

    Each BOM line is resolved against the inventory (exact id, normalized id,
    fuzzy id, then name). Matched parts get a project tag; unmatched lines
    become new zero-stock parts. BOM keys are stored as the resolved ids.

    Args:
        store: The application's InventoryStore.
        name: Project display name. The id is derived from it.
        bom: Mapping of key -> {name, quantity}.
        merge: Run a duplicate merge afterwards.

    Returns:
        The new project id.

    Raises:
        ValidationError: If the name is empty.
        DuplicateIdError: If a project with the same id exists.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Please enter a project name")

    project_id = make_id(name)
    if project_id in store.projects:
        raise DuplicateIdError(f"Project name already exists: {name}")

    inventory, projects = store.snapshot()
    _stage_project(inventory, projects, project_id, name, bom)
    if merge:
        merge_duplicates(inventory, projects)

    store.replace(inventory, projects)
    store.save()
    logger.info(f"Created project {project_id} with {len(bom)} BOM line(s)")
    return project_id


def rename_project(store: InventoryStore, project_id: str, new_name: str) -> None:
    """Changes a project's display name. The id stays the same."""
    project = _require_project(store, project_id)
    new_name = (new_name or "").strip()
    if not new_name:
        raise ValidationError("Please enter a project name")

    if project.get("name") == new_name:
        return

    project["name"] = new_name
    store.save()


def delete_project(store: InventoryStore, project_id: str) -> None:
    """Deletes a project and strips its tag from every part."""
    _require_project(store, project_id)

    for part in store.inventory.values():
        tags = part.get("projects")
        if isinstance(tags, dict) and project_id in tags:
            del tags[project_id]
            if not tags:
                del part["projects"]

    del store.projects[project_id]
    store.save()
    logger.info(f"Deleted project {project_id}")


def remove_part_from_project(
    store: InventoryStore, part_id: str, project_id: str
) -> None:
    """
    Untags a part from a project and drops the matching BOM line(s).

    BOM keys are matched by exact or normalized id.
    """
    part = _require_part(store, part_id)
    project = _require_project(store, project_id)

    tags = part.get("projects")
    if isinstance(tags, dict):
        tags.pop(project_id, None)
        if not tags:
            del part["projects"]

    bom = project.get("bom") or {}
    target = normalize(part_id)
    for key in list(bom):
        if key == part_id or (target and normalize(key) == target):
            del bom[key]

    store.save()


def add_missing_parts(store: InventoryStore, bom: dict[str, Any]) -> int:
    """
    Creates zero-stock parts for BOM lines with no inventory match.

    Returns:
        Number of parts added.
    """
    added = 0
    for key, raw in bom.items():
        classified = classify_bom_line(raw)
        if not isinstance(classified, ValidLine):
            continue
        line = classified.line

        if resolve_part_id(key, line["name"] or None, store.inventory) is not None:
            continue

        store.inventory[key] = {
            "name": line["name"] or humanize_key(key),
            "quantity": 0,
            "purchaseUrl": str(raw.get("purchaseUrl") or ""),
            "projects": {},
        }
        added += 1

    if added:
        store.save()
        logger.info(f"Added {added} missing part(s) from BOM")
    return added


# --- Reconciliation wrappers ---


def merge_inventory_duplicates(store: InventoryStore) -> MergeReport:
    """Runs a duplicate merge over the store and persists the result."""
    report = merge_duplicates(store.inventory, store.projects)
    store.save()
    return report


def project_report(store: InventoryStore, project_id: str) -> ProjectReport:
    """Stock check for one project."""
    project = _require_project(store, project_id)
    return reconcile_project(project, store.inventory)


def all_project_requirements(store: InventoryStore) -> dict[str, Requirement]:
    """Repairs damaged BOM lines, then totals every project's needs."""
    if repair_projects(store.projects, store.inventory):
        store.save()
    return aggregate_requirements(store.projects, store.inventory)


# --- Imports ---


def _apply_row(inventory: InventoryType, row: dict[str, Any]) -> str:
    """
    Upserts one parsed inventory row.

    Returns:
        "added" or "updated".
    """
    name = row["name"]
    part_id = row.get("id")
    if not part_id:
        key = normalize(name) or make_id(name)
        part_id = resolve_part_id(key, name, inventory) or key

    existing = inventory.get(part_id)
    if existing is None:
        part: PartData = {
            "name": name,
            "quantity": row.get("quantity", 0),
            "purchaseUrl": row.get("purchaseUrl", ""),
            "projects": dict(row.get("projects") or {}),
        }
        if row.get("type"):
            part["type"] = row["type"]
        inventory[part_id] = part
        return "added"

    existing["name"] = name
    if "quantity" in row:
        existing["quantity"] = row["quantity"]
    if "purchaseUrl" in row:
        existing["purchaseUrl"] = row["purchaseUrl"]
    if row.get("type"):
        existing["type"] = row["type"]
    if row.get("projects"):
        tags = project_quantities(existing.get("projects"))
        tags.update(row["projects"])
        existing["projects"] = tags
    return "updated"


def import_inventory(
    store: InventoryStore, payload: ImportPayload, project_name: str | None = None
) -> ImportStats:
    """
    Applies a parsed import to the store, all or nothing.

    - 'snapshot': replaces inventory and projects.
    - 'inventory': replaces the inventory, keeps projects.
    - 'rows': upserts parts (missing ids are resolved by name).
    - 'bom': creates a project (needs a project name).

    Snapshots and row imports are cleaned, repaired and merged before they
    are committed.

    Raises:
        ValidationError: For a BOM payload without a project name.
        StockError: Anything raised leaves the store unchanged.
    """
    stats = create_import_stats()
    stats["rows_skipped"] = payload.get("skipped", 0)
    kind = payload["kind"]

    if kind == "bom":
        name = project_name or payload.get("project_name")
        if not name:
            raise ValidationError("BOM import needs a project name")
        bom = payload.get("bom") or {}
        stats["rows_read"] = len(bom)
        create_project(store, name, bom)
        stats["projects_imported"] = 1
        return stats

    if kind == "snapshot":
        inventory = copy.deepcopy(payload.get("inventory") or {})
        projects = copy.deepcopy(payload.get("projects") or {})
        prepare_state(inventory, projects)
        stats["rows_read"] = len(inventory)
        stats["parts_added"] = len(inventory)
        stats["projects_imported"] = len(projects)

    elif kind == "inventory":
        inventory = copy.deepcopy(payload.get("inventory") or {})
        projects = copy.deepcopy(store.projects)
        prepare_state(inventory, projects)
        stats["rows_read"] = len(inventory)
        stats["parts_added"] = len(inventory)

    elif kind == "rows":
        inventory, projects = store.snapshot()
        for row in payload.get("rows") or []:
            stats["rows_read"] += 1
            if _apply_row(inventory, row) == "added":
                stats["parts_added"] += 1
            else:
                stats["parts_updated"] += 1

    else:
        raise ValidationError(f"Unsupported import: {kind}")

    stats["merged"] = merge_duplicates(inventory, projects)["merged"]
    store.replace(inventory, projects)
    store.save()

    logger.info(
        f"Imported {stats['rows_read']} record(s): {stats['parts_added']} added, "
        f"{stats['parts_updated']} updated, {stats['merged']} merged"
    )
    return stats


# --- Display helpers ---


def sort_inventory(
    inventory: InventoryType, order: str = "name-asc"
) -> list[tuple[str, PartData]]:
    """
    Sorts the inventory for display.

    Orders:
    - 'name-asc' / 'name-desc': case-insensitive name.
    - 'quantity-asc' / 'quantity-desc': stock count.
    - 'stock-status': low stock (< LOW_STOCK_THRESHOLD) first, then name.
    Unknown orders keep insertion order.

    Returns:
        A list of (part_id, part) tuples.
    """
    items = list(inventory.items())

    def name_key(item: tuple[str, PartData]) -> str:
        return str(item[1].get("name", "")).lower()

    def qty_key(item: tuple[str, PartData]) -> int:
        return coerce_quantity(item[1].get("quantity"))

    if order == "name-asc":
        return sorted(items, key=name_key)
    if order == "name-desc":
        return sorted(items, key=name_key, reverse=True)
    if order == "quantity-asc":
        return sorted(items, key=qty_key)
    if order == "quantity-desc":
        return sorted(items, key=qty_key, reverse=True)
    if order == "stock-status":
        return sorted(
            items, key=lambda item: (qty_key(item) >= C.LOW_STOCK_THRESHOLD, name_key(item))
        )
    return items


def filter_inventory(inventory: InventoryType, project_id: str | None) -> InventoryType:
    """Parts tagged with a project. None or 'all' returns everything."""
    if not project_id or project_id == "all":
        return dict(inventory)
    return {
        part_id: part
        for part_id, part in inventory.items()
        if project_quantities(part.get("projects")).get(project_id)
    }


def count_tagged_parts(inventory: InventoryType, project_id: str) -> int:
    """Number of parts carrying a project tag."""
    return len(filter_inventory(inventory, project_id))


def inventory_rows(
    inventory: InventoryType, projects: ProjectsType, order: str = "name-asc"
) -> list[dict[str, Any]]:
    """Flattens the inventory into table rows, with project names resolved."""
    rows = []
    for part_id, part in sort_inventory(inventory, order):
        qty = coerce_quantity(part.get("quantity"))
        tags = project_quantities(part.get("projects"))
        rows.append(
            {
                "Part ID": part_id,
                "Name": part.get("name", ""),
                "Type": part.get("type", ""),
                "Quantity": qty,
                "Low Stock": qty < C.LOW_STOCK_THRESHOLD,
                # Tags for deleted projects are hidden
                "Projects": ", ".join(
                    project_name
                    for pid in tags
                    if (project_name := (projects.get(pid) or {}).get("name"))
                ),
                "Purchase URL": part.get("purchaseUrl", ""),
            }
        )
    return rows
