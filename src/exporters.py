import csv
import io
import json
from datetime import datetime, timezone
from typing import Any

from src.stock_lib import constants as C
from src.stock_lib.matching import resolve_part_id
from src.stock_lib.parser import format_projects_field
from src.stock_lib.reconciler import requirement_rows
from src.stock_lib.repair import classify_bom_line, project_quantities
from src.stock_lib.types import (
    InventoryType,
    ProjectData,
    ProjectsType,
    Requirement,
    ValidLine,
)


def _write_csv(fields: list[str], rows: list[dict[str, Any]]) -> bytes:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=fields, extrasaction="ignore")
    writer.writeheader()
    writer.writerows(rows)

    # encode "utf-8-sig" to ensure Excel opens it correctly with special characters
    return buf.getvalue().encode("utf-8-sig")


def export_snapshot_json(inventory: InventoryType, projects: ProjectsType) -> str:
    """
    Serializes the full application state.

    The output is the document accepted back by the JSON import, so an
    export followed by an import reproduces the same inventory and projects.

    Returns:
        str: Pretty-printed JSON `{"inventory": ..., "projects": ...}`.
    """
    return json.dumps(
        {"inventory": inventory, "projects": projects}, indent=2, ensure_ascii=False
    )


def export_inventory_csv(inventory: InventoryType) -> bytes:
    """
    Generates the inventory spreadsheet.

    Project tags are written as 'project_id:qty' pairs joined by ';' in the
    Projects column.

    Returns:
        bytes: The CSV content encoded as utf-8-sig.
    """
    rows = [
        {
            "Part ID": part_id,
            "Name": part.get("name", ""),
            "Type": part.get("type", ""),
            "Quantity": part.get("quantity", 0),
            "Purchase URL": part.get("purchaseUrl", ""),
            "Projects": format_projects_field(project_quantities(part.get("projects"))),
        }
        for part_id, part in inventory.items()
    ]
    return _write_csv(C.INVENTORY_CSV_HEADERS, rows)


def _bom_parts(project: ProjectData, inventory: InventoryType) -> list[dict[str, Any]]:
    """BOM lines with the purchase URL of the part each one resolves to."""
    parts = []
    for key, raw in (project.get("bom") or {}).items():
        classified = classify_bom_line(raw)
        if not isinstance(classified, ValidLine):
            continue
        line = classified.line

        part_id = resolve_part_id(key, None, inventory)
        url = inventory[part_id].get("purchaseUrl", "") if part_id is not None else ""
        parts.append(
            {"name": line["name"], "quantity": line["quantity"], "purchaseUrl": url}
        )
    return parts


def export_project_bom_csv(project: ProjectData, inventory: InventoryType) -> bytes:
    """
    Generates a single project's BOM as CSV.

    Returns:
        bytes: The CSV content encoded as utf-8-sig.
    """
    rows = [
        {
            "Part Name": part["name"],
            "Quantity": part["quantity"],
            "Purchase URL": part["purchaseUrl"],
        }
        for part in _bom_parts(project, inventory)
    ]
    return _write_csv(C.PROJECT_BOM_CSV_HEADERS, rows)


def export_project_bom_json(
    project: ProjectData, inventory: InventoryType, export_date: datetime | None = None
) -> str:
    """
    Generates a single project's BOM as JSON with export metadata.

    The document can be re-imported as a BOM; its projectName is used as the
    default project name.
    """
    export_date = export_date or datetime.now(timezone.utc)
    return json.dumps(
        {
            "projectName": project.get("name", ""),
            "exportDate": export_date.isoformat(),
            "parts": _bom_parts(project, inventory),
        },
        indent=2,
        ensure_ascii=False,
    )


def export_requirements_csv(requirements: dict[str, Requirement]) -> bytes:
    """
    Generates the all-projects requirements table.

    Returns:
        bytes: The CSV content encoded as utf-8-sig.
    """
    return _write_csv(C.REQUIREMENTS_CSV_HEADERS, requirement_rows(requirements))


def build_export_filename(
    prefix: str, extension: str, now: datetime | None = None
) -> str:
    """e.g. 'guitar-pedal-inventory-2024-05-01T12-30-00.csv'"""
    now = now or datetime.now(timezone.utc)
    timestamp = now.strftime("%Y-%m-%dT%H-%M-%S")
    return f"{prefix}-{timestamp}.{extension.lstrip('.')}"
