"""
Type definitions and shared data structures for the stock library.

This module contains the TypedDicts and small record types passed between the
matching, merging, reconciliation and import stages, so every stage agrees on
the shape of parts, projects and reports.
"""

from typing import Any, NamedTuple, NotRequired, TypedDict


class PartData(TypedDict, total=False):
    """
    A single inventory entry.

    Attributes:
        name: Display name (e.g., "Resistor 10kΩ").
        quantity: Units in stock, never negative.
        purchaseUrl: Optional reorder link.
        type: Optional classification (e.g., "Film", "Other").
        projects: Mapping of project id to the quantity that project needs.
    """

    name: str
    quantity: int
    purchaseUrl: str
    type: str
    projects: dict[str, int]


class BomLine(TypedDict):
    """One line of a project's bill of materials."""

    name: str
    quantity: int
    purchaseUrl: NotRequired[str]


class ProjectData(TypedDict):
    """
    A named build with its own BOM.

    Attributes:
        name: Display name (e.g., "Big Muff").
        bom: Mapping of part key to BOM line. Keys are inventory ids when the
             part is known, or external ids / normalized names otherwise.
    """

    name: str
    bom: dict[str, Any]


InventoryType = dict[str, PartData]
ProjectsType = dict[str, ProjectData]


class ValidLine(NamedTuple):
    """A BOM value that decoded into a usable line."""

    line: BomLine


class CorruptedLine(NamedTuple):
    """A BOM value that must be repaired before use."""

    raw: Any


class PartMatch(NamedTuple):
    """
    Result of an identity lookup.

    ``kind`` is one of "exact", "normalized", "fuzzy", "name" or "none".
    """

    part_id: str | None
    kind: str
    distance: int = 0


class PartStatus(TypedDict):
    """Stock check for one BOM line."""

    key: str
    name: str
    have: int
    need: int
    status: str
    matched_id: str | None
    matched_name: str | None


class ProjectReport(TypedDict):
    """Per-project reconciliation summary."""

    parts: list[PartStatus]
    missing_count: int
    low_count: int
    sufficient_count: int
    total_count: int


class ProjectBreakdown(TypedDict):
    project: str
    quantity: int


class Requirement(TypedDict):
    """Aggregated need for one normalized part across every project."""

    name: str
    total: int
    projects: list[ProjectBreakdown]
    inventory_qty: int
    status: str


class MergeReport(TypedDict):
    """
    Outcome of a duplicate merge pass.

    Attributes:
        merged: Number of duplicate entries folded into a canonical entry.
        groups: Canonical id -> ids merged into it.
        bom_lines_rewritten: BOM keys that were re-pointed at a canonical id.
    """

    merged: int
    groups: dict[str, list[str]]
    bom_lines_rewritten: int


class ImportPayload(TypedDict):
    """
    Canonical shapes produced by the import adapters.

    ``kind`` is "snapshot", "inventory", "rows" or "bom". Only the fields that
    apply to the kind are populated.
    """

    kind: str
    inventory: InventoryType | None
    projects: ProjectsType | None
    rows: list[dict[str, Any]]
    bom: dict[str, BomLine] | None
    project_name: str | None
    skipped: int


class ImportStats(TypedDict):
    """Tracking metrics for a single import."""

    rows_read: int
    parts_added: int
    parts_updated: int
    rows_skipped: int
    projects_imported: int
    merged: int


def create_empty_payload(kind: str) -> ImportPayload:
    """Factory for an import payload with nothing filled in."""
    return {
        "kind": kind,
        "inventory": None,
        "projects": None,
        "rows": [],
        "bom": None,
        "project_name": None,
        "skipped": 0,
    }


def create_import_stats() -> ImportStats:
    """Factory for zeroed import statistics."""
    return {
        "rows_read": 0,
        "parts_added": 0,
        "parts_updated": 0,
        "rows_skipped": 0,
        "projects_imported": 0,
        "merged": 0,
    }
