"""
Pedal Stock Library (Package Entry Point).

Exposes the core logic and data structures for part normalization, identity
matching, duplicate merging, stock reconciliation, persistence and imports.
"""

from .errors import (
    DuplicateIdError,
    ImportFormatError,
    NotFoundError,
    StockError,
    StorageDecodeError,
    ValidationError,
)
from .loader import parse_import_text, process_input_data
from .manager import (
    add_missing_parts,
    add_part,
    adjust_quantity,
    all_project_requirements,
    count_tagged_parts,
    create_project,
    delete_part,
    delete_project,
    edit_part,
    filter_inventory,
    import_inventory,
    inventory_rows,
    merge_inventory_duplicates,
    project_report,
    remove_part_from_project,
    rename_project,
    set_quantity,
    sort_inventory,
    use_part,
)
from .matching import edit_distance, find_part, resolve_part_id
from .merger import merge_duplicates
from .parser import (
    parse_bom_table,
    parse_inventory_table,
    parse_json_bom,
    parse_json_import,
)
from .reconciler import (
    aggregate_requirements,
    reconcile_project,
    requirement_rows,
    stock_status,
    summarize_report,
)
from .repair import classify_bom_line, prepare_state, repair_projects
from .storage import (
    InventoryStore,
    JsonFileStorage,
    MemoryStorage,
    decode_state,
    encode_state,
)
from .types import (
    CorruptedLine,
    ImportPayload,
    ImportStats,
    InventoryType,
    MergeReport,
    PartData,
    PartMatch,
    ProjectData,
    ProjectReport,
    ProjectsType,
    Requirement,
    ValidLine,
)
from .utils import coerce_quantity, humanize_key, make_id, normalize

__all__ = [
    # types
    "PartData",
    "ProjectData",
    "InventoryType",
    "ProjectsType",
    "ValidLine",
    "CorruptedLine",
    "PartMatch",
    "ProjectReport",
    "Requirement",
    "MergeReport",
    "ImportPayload",
    "ImportStats",
    # errors
    "StockError",
    "ValidationError",
    "DuplicateIdError",
    "NotFoundError",
    "ImportFormatError",
    "StorageDecodeError",
    # utils
    "normalize",
    "make_id",
    "humanize_key",
    "coerce_quantity",
    # matching
    "edit_distance",
    "find_part",
    "resolve_part_id",
    # merger / repair
    "merge_duplicates",
    "classify_bom_line",
    "repair_projects",
    "prepare_state",
    # reconciler
    "stock_status",
    "reconcile_project",
    "summarize_report",
    "aggregate_requirements",
    "requirement_rows",
    # storage
    "InventoryStore",
    "MemoryStorage",
    "JsonFileStorage",
    "encode_state",
    "decode_state",
    # parser / loader
    "parse_inventory_table",
    "parse_bom_table",
    "parse_json_import",
    "parse_json_bom",
    "parse_import_text",
    "process_input_data",
    # manager
    "add_part",
    "edit_part",
    "delete_part",
    "adjust_quantity",
    "set_quantity",
    "use_part",
    "create_project",
    "rename_project",
    "delete_project",
    "remove_part_from_project",
    "add_missing_parts",
    "merge_inventory_duplicates",
    "project_report",
    "all_project_requirements",
    "import_inventory",
    "sort_inventory",
    "filter_inventory",
    "count_tagged_parts",
    "inventory_rows",
]
