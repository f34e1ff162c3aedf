"""
Stock sufficiency checks: BOM vs. inventory.

Answers two questions:
- For one project, which lines are missing, low or covered?
- Across every project, how much of each part is needed in total, and does
  the current stock cover it?
"""

from collections.abc import Mapping
from typing import Any

from src.stock_lib import constants as C
from src.stock_lib.matching import find_part
from src.stock_lib.repair import classify_bom_line
from src.stock_lib.types import (
    InventoryType,
    PartStatus,
    ProjectData,
    ProjectReport,
    ProjectsType,
    Requirement,
    ValidLine,
)
from src.stock_lib.utils import coerce_quantity, humanize_key, normalize


def stock_status(have: int, need: int) -> str:
    """
    Classifies a (have, need) pair.

    Zero stock is always 'missing', even when nothing is needed.
    """
    if have == 0:
        return C.STATUS_MISSING
    if have < need:
        return C.STATUS_LOW
    return C.STATUS_SUFFICIENT


def reconcile_project(
    project: ProjectData,
    inventory: InventoryType,
    threshold: int = C.FUZZY_MATCH_THRESHOLD,
) -> ProjectReport:
    """
    Compares one project's BOM against current stock.

    Each line is resolved to an inventory part (exact id, then normalized id,
    then fuzzy id). Lines that are not well-formed are skipped.

    Args:
        project: The project record.
        inventory: Mapping of part id -> part.
        threshold: Largest edit distance accepted for a fuzzy match.

    Returns:
        A ProjectReport with one PartStatus per line, in BOM order, and
        per-status counts.
    """
    parts: list[PartStatus] = []
    counts = {C.STATUS_MISSING: 0, C.STATUS_LOW: 0, C.STATUS_SUFFICIENT: 0}

    bom = project.get("bom") or {}
    for key, raw in bom.items():
        classified = classify_bom_line(raw)
        if not isinstance(classified, ValidLine):
            continue
        line = classified.line

        match = find_part(key, None, inventory, threshold)
        part = inventory.get(match.part_id) if match.part_id is not None else None

        have = coerce_quantity(part.get("quantity")) if part else 0
        need = line["quantity"]
        status = stock_status(have, need)
        counts[status] += 1

        annotated = part is not None and match.kind != "exact"
        parts.append(
            {
                "key": key,
                "name": line["name"] or humanize_key(key),
                "have": have,
                "need": need,
                "status": status,
                "matched_id": match.part_id,
                "matched_name": part.get("name") if annotated and part else None,
            }
        )

    return {
        "parts": parts,
        "missing_count": counts[C.STATUS_MISSING],
        "low_count": counts[C.STATUS_LOW],
        "sufficient_count": counts[C.STATUS_SUFFICIENT],
        "total_count": len(parts),
    }


def summarize_report(report: ProjectReport) -> dict[str, float]:
    """
    Percentage split of a project report, for progress bars.

    Returns:
        {'sufficient': %, 'low': %, 'missing': %}. All zero for an empty BOM.
    """
    total = report["total_count"]
    if total == 0:
        return {C.STATUS_SUFFICIENT: 0.0, C.STATUS_LOW: 0.0, C.STATUS_MISSING: 0.0}

    return {
        C.STATUS_SUFFICIENT: report["sufficient_count"] / total * 100,
        C.STATUS_LOW: report["low_count"] / total * 100,
        C.STATUS_MISSING: report["missing_count"] / total * 100,
    }


def _inventory_quantity(key: str, inventory: InventoryType) -> int:
    """Stock for a normalized key: normalized id first, then normalized name."""
    for part_id, part in inventory.items():
        if normalize(part_id) == key:
            return coerce_quantity(part.get("quantity"))

    for part in inventory.values():
        if normalize(part.get("name")) == key:
            return coerce_quantity(part.get("quantity"))

    return 0


def sort_requirements(
    requirements: Mapping[str, Requirement],
) -> list[tuple[str, Requirement]]:
    """
    Orders requirements for display.

    Sorting hierarchy:
    1. Status (missing, then low, then sufficient).
    2. Case-insensitive name.
    """

    def sort_key(item: tuple[str, Requirement]) -> tuple[int, str]:
        req = item[1]
        return (C.STATUS_PRIORITY.get(req["status"], 99), req["name"].lower())

    return sorted(requirements.items(), key=sort_key)


def aggregate_requirements(
    projects: ProjectsType, inventory: InventoryType
) -> dict[str, Requirement]:
    """
    Totals every project's needs per normalized part key.

    Lines are grouped by the normalized BOM key (or the normalized line name
    when the key is empty after normalization). The display name comes from
    the inventory when a part id normalizes to the same key.

    Run repair_projects first; damaged lines are skipped here.

    Args:
        projects: Mapping of project id -> project.
        inventory: Mapping of part id -> part.

    Returns:
        Mapping of normalized key -> Requirement, ordered by status then name.
    """
    inventory_names: dict[str, str] = {}
    for part_id, part in inventory.items():
        inventory_names.setdefault(normalize(part_id), part.get("name") or part_id)

    totals: dict[str, Requirement] = {}
    for project_id, project in projects.items():
        project_name = project.get("name") or humanize_key(project_id)

        for key, raw in (project.get("bom") or {}).items():
            classified = classify_bom_line(raw)
            if not isinstance(classified, ValidLine):
                continue
            line = classified.line

            norm_key = normalize(key) or normalize(line["name"])
            if not norm_key:
                continue

            if norm_key not in totals:
                totals[norm_key] = {
                    "name": inventory_names.get(norm_key)
                    or line["name"]
                    or humanize_key(key),
                    "total": 0,
                    "projects": [],
                    "inventory_qty": 0,
                    "status": C.STATUS_MISSING,
                }

            entry = totals[norm_key]
            entry["total"] += line["quantity"]
            entry["projects"].append(
                {"project": project_name, "quantity": line["quantity"]}
            )

    for norm_key, entry in totals.items():
        entry["inventory_qty"] = _inventory_quantity(norm_key, inventory)
        entry["status"] = stock_status(entry["inventory_qty"], entry["total"])

    return dict(sort_requirements(totals))


def format_breakdown(requirement: Requirement) -> str:
    """e.g. 'Big Muff (3), Fuzz Face (4)'"""
    return ", ".join(f"{p['project']} ({p['quantity']})" for p in requirement["projects"])


def requirement_rows(requirements: Mapping[str, Requirement]) -> list[dict[str, Any]]:
    """Flattens requirements into table rows for display and CSV export."""
    return [
        {
            "Part": req["name"],
            "Total Needed": req["total"],
            "In Stock": req["inventory_qty"],
            "Status": req["status"],
            "Projects": format_breakdown(req),
        }
        for req in requirements.values()
    ]
