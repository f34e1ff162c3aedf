"""
File parsing for inventory and BOM imports.

This module turns raw text (CSV with a header row, or JSON) into the canonical
record shapes used by the rest of the library. It does no matching against the
current inventory; that happens when the manager applies the payload.

Any structural problem raises a single ImportFormatError so the caller can
reject the whole import.
"""

import csv
import io
import json
from typing import Any

from src.stock_lib import constants as C
from src.stock_lib.errors import ImportFormatError
from src.stock_lib.types import BomLine, ImportPayload, create_empty_payload
from src.stock_lib.utils import coerce_quantity, normalize


def _canonical_field(header: str) -> str | None:
    """
    Maps a lowercased header to a canonical field name.

    Known aliases first, then loose keyword checks for headers like
    'Qty Needed' or 'Supplier URL'.
    """
    if header in C.COLUMN_ALIASES:
        return C.COLUMN_ALIASES[header]
    if "qty" in header or "quantity" in header:
        return "quantity"
    if "url" in header or "link" in header:
        return "purchaseUrl"
    if "name" in header:
        return "name"
    return None


def read_table(text: str) -> list[dict[str, str]]:
    """
    Splits CSV text into header-keyed records.

    Headers are lowercased and stripped, cell values stripped, blank rows
    dropped.

    Args:
        text: Raw CSV text with a header row.

    Returns:
        A list of row dictionaries in file order.

    Raises:
        ImportFormatError: On an empty file, a missing header, or a row with
            more cells than the header.
    """
    text = text.lstrip("\ufeff")
    if not text.strip():
        raise ImportFormatError("File is empty")

    reader = csv.DictReader(io.StringIO(text))
    rows: list[dict[str, str]] = []

    try:
        if not reader.fieldnames:
            raise ImportFormatError("Missing header row")

        for row in reader:
            if None in row:
                raise ImportFormatError(
                    f"Line {reader.line_num} has more fields than the header"
                )
            row_clean = {
                str(k).lower().strip(): (v or "").strip() for k, v in row.items() if k
            }
            if not any(row_clean.values()):
                continue
            rows.append(row_clean)
    except csv.Error as e:
        raise ImportFormatError(f"CSV error on line {reader.line_num}: {e}") from e

    return rows


def _map_row(row: dict[str, str]) -> dict[str, str]:
    """Renames a row's headers to canonical fields. First alias wins."""
    mapped: dict[str, str] = {}
    for header, value in row.items():
        field = _canonical_field(header)
        if field and field not in mapped:
            mapped[field] = value
    return mapped


def parse_projects_field(value: str) -> dict[str, int]:
    """
    Reads the 'Projects' column.

    e.g. 'big_muff:3;fuzz_face:2' -> {'big_muff': 3, 'fuzz_face': 2}
    A bare project id counts as 1.
    """
    projects: dict[str, int] = {}
    for entry in value.split(C.PROJECT_ENTRY_SEPARATOR):
        entry = entry.strip()
        if not entry:
            continue

        if C.PROJECT_QTY_SEPARATOR in entry:
            pid, _, qty = entry.rpartition(C.PROJECT_QTY_SEPARATOR)
            pid = pid.strip()
            quantity = coerce_quantity(qty)
        else:
            pid, quantity = entry, 1

        if pid:
            projects[pid] = projects.get(pid, 0) + quantity
    return projects


def format_projects_field(projects: dict[str, int]) -> str:
    """Inverse of parse_projects_field."""
    return C.PROJECT_ENTRY_SEPARATOR.join(
        f"{pid}{C.PROJECT_QTY_SEPARATOR}{qty}" for pid, qty in projects.items()
    )


def parse_inventory_table(text: str) -> ImportPayload:
    """
    Parses an inventory CSV into row records.

    Recognised columns: Part ID/ID, Name/Part Name/Component, Type,
    Quantity, Purchase URL, Projects. Only columns present in the file appear
    in the records, so applying them never blanks out fields the file didn't
    mention. Rows without a name are skipped.

    Returns:
        An ImportPayload of kind 'rows'.
    """
    payload = create_empty_payload("rows")

    for raw in read_table(text):
        row = _map_row(raw)
        name = row.get("name", "")
        if not name:
            payload["skipped"] += 1
            continue

        record: dict[str, Any] = {"name": name}
        if row.get("id"):
            record["id"] = row["id"]
        if "quantity" in row:
            record["quantity"] = coerce_quantity(row["quantity"])
        if "purchaseUrl" in row:
            record["purchaseUrl"] = row["purchaseUrl"]
        if "type" in row:
            record["type"] = row["type"]
        if "projects" in row:
            record["projects"] = parse_projects_field(row["projects"])

        payload["rows"].append(record)

    return payload


def _add_bom_line(bom: dict[str, BomLine], key: str, line: BomLine) -> None:
    """Inserts a line, summing quantities when the key repeats."""
    if key in bom:
        bom[key]["quantity"] += line["quantity"]
    else:
        bom[key] = line


def parse_bom_table(text: str) -> ImportPayload:
    """
    Parses a BOM CSV (name + quantity, optional Part ID and Purchase URL).

    Lines are keyed by their Part ID when given, otherwise by the normalized
    name. Rows without a name are skipped.

    Returns:
        An ImportPayload of kind 'bom'.

    Raises:
        ImportFormatError: If the header lacks a name or quantity column.
    """
    rows = read_table(text)
    payload = create_empty_payload("bom")
    bom: dict[str, BomLine] = {}

    if rows:
        fields = {_canonical_field(h) for h in rows[0]}
        if "name" not in fields or "quantity" not in fields:
            raise ImportFormatError("CSV must contain name and quantity columns")

    for raw in rows:
        row = _map_row(raw)
        name = row.get("name", "")
        key = row.get("id") or normalize(name)
        if not name or not key:
            payload["skipped"] += 1
            continue

        line: BomLine = {"name": name, "quantity": coerce_quantity(row.get("quantity"))}
        if row.get("purchaseUrl"):
            line["purchaseUrl"] = row["purchaseUrl"]
        _add_bom_line(bom, key, line)

    payload["bom"] = bom
    return payload


def load_json(text: str) -> Any:
    """json.loads with the library's error type."""
    try:
        return json.loads(text.lstrip("\ufeff"))
    except ValueError as e:
        raise ImportFormatError(f"Invalid JSON: {e}") from e


def _bom_from_parts(parts: list[Any], payload: ImportPayload) -> dict[str, BomLine]:
    """Converts a [{name, quantity}, ...] list into BOM lines keyed by normalized name."""
    bom: dict[str, BomLine] = {}
    for item in parts:
        if not isinstance(item, dict):
            payload["skipped"] += 1
            continue

        name = str(item.get("name") or "").strip()
        key = normalize(name)
        if not key:
            payload["skipped"] += 1
            continue

        line: BomLine = {"name": name, "quantity": coerce_quantity(item.get("quantity"))}
        if item.get("purchaseUrl"):
            line["purchaseUrl"] = str(item["purchaseUrl"])
        _add_bom_line(bom, key, line)
    return bom


def parse_json_import(text: str) -> ImportPayload:
    """
    Parses a JSON import in any of its accepted shapes.

    - {"inventory": {...}, "projects": {...}}  -> 'snapshot'
    - {"parts": [{name, quantity}, ...]}       -> 'bom'
    - {part_id: {name, quantity, ...}, ...}    -> 'inventory' (legacy)

    Raises:
        ImportFormatError: If the document is not a JSON object or a
            snapshot section has the wrong type.
    """
    data = load_json(text)
    if not isinstance(data, dict):
        raise ImportFormatError("Invalid file format: expected a JSON object")

    if "inventory" in data and isinstance(data["inventory"], dict):
        projects = data.get("projects") or {}
        if not isinstance(projects, dict):
            raise ImportFormatError("Invalid file format: 'projects' must be an object")

        payload = create_empty_payload("snapshot")
        payload["inventory"] = data["inventory"]
        payload["projects"] = projects
        return payload

    if isinstance(data.get("parts"), list):
        payload = create_empty_payload("bom")
        payload["bom"] = _bom_from_parts(data["parts"], payload)
        if data.get("projectName"):
            payload["project_name"] = str(data["projectName"])
        return payload

    payload = create_empty_payload("inventory")
    payload["inventory"] = data
    return payload


def parse_json_bom(text: str) -> ImportPayload:
    """
    Parses a JSON BOM.

    Accepts the {"parts": [...]} export shape, or a flat mapping of
    key -> {name, quantity}. In the flat shape, entries without a quantity
    are dropped.
    """
    payload = parse_json_import(text)
    if payload["kind"] == "bom":
        return payload

    if payload["kind"] == "snapshot":
        raise ImportFormatError("Expected a BOM, got a full inventory snapshot")

    bom: dict[str, BomLine] = {}
    flat = payload["inventory"] or {}
    skipped = 0
    for key, item in flat.items():
        if not isinstance(item, dict) or item.get("quantity") is None:
            skipped += 1
            continue

        line: BomLine = {
            "name": str(item.get("name") or key),
            "quantity": coerce_quantity(item["quantity"]),
        }
        if item.get("purchaseUrl"):
            line["purchaseUrl"] = str(item["purchaseUrl"])
        _add_bom_line(bom, str(key), line)

    result = create_empty_payload("bom")
    result["bom"] = bom
    result["skipped"] = skipped
    return result
