"""
Persistence for inventory and project state.

This module separates *where* state is kept (a StorageProvider: memory, a
directory of JSON files, a Streamlit session) from *how* it is encoded (plain
JSON, with field names abbreviated for large payloads) and from *who* owns it
(the InventoryStore, one per application context).
"""

import copy
import json
import logging
import os
import tempfile
from typing import Any, Protocol

from src.stock_lib import constants as C
from src.stock_lib.errors import StorageDecodeError
from src.stock_lib.repair import prepare_state
from src.stock_lib.types import InventoryType, ProjectsType

logger = logging.getLogger(__name__)

INVENTORY_KIND = "inventory"
PROJECTS_KIND = "projects"

_EXPANSIONS = {short: full for full, short in C.KEY_ABBREVIATIONS.items()}


class StorageProvider(Protocol):
    """Anything that can store and return strings by key."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    """Dictionary-backed provider, used for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStorage:
    """
    Stores each key as '<key>.json' inside a directory.

    Writes go to a temporary file first and are moved into place, so a crash
    mid-write never leaves a truncated file behind.
    """

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, encoding="utf-8") as f:
            return f.read()

    def set(self, key: str, value: str) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, self._path(key))
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)


# --- Codec ---


def _rename_fields(record: Any, table: dict[str, str]) -> Any:
    if not isinstance(record, dict):
        return record
    return {table.get(field, field): value for field, value in record.items()}


def _transform(kind: str, data: Any, table: dict[str, str]) -> Any:
    """
    Renames field keys at the depth they live at.

    inventory: {part_id: {fields}}
    projects:  {project_id: {fields, bom: {key: {fields}}}}
    """
    if not isinstance(data, dict):
        return data

    out = {}
    bom_field = table.get("bom", "bom")
    for record_id, record in data.items():
        renamed = _rename_fields(record, table)
        if kind == PROJECTS_KIND and isinstance(renamed, dict):
            bom = renamed.get(bom_field)
            if isinstance(bom, dict):
                renamed[bom_field] = {
                    key: _rename_fields(line, table) for key, line in bom.items()
                }
        out[record_id] = renamed
    return out


def encode_state(kind: str, data: Any) -> str:
    """
    Serializes a state record.

    Small payloads are plain JSON. Payloads above COMPRESSION_THRESHOLD have
    their field names abbreviated and are prefixed with COMPRESSED_MARKER.

    Args:
        kind: "inventory" or "projects".
        data: The mapping to store.

    Returns:
        The encoded string.
    """
    plain = json.dumps(data, ensure_ascii=False)
    if len(plain) <= C.COMPRESSION_THRESHOLD:
        return plain

    short = _transform(kind, data, C.KEY_ABBREVIATIONS)
    return C.COMPRESSED_MARKER + json.dumps(
        short, ensure_ascii=False, separators=(",", ":")
    )


def decode_state(kind: str, raw: str) -> Any:
    """
    Reverses encode_state.

    A payload that looks abbreviated but fails to decode is retried as plain
    JSON before giving up.

    Raises:
        StorageDecodeError: If the text is not decodable at all.
    """
    if raw.startswith(C.COMPRESSED_MARKER):
        try:
            short = json.loads(raw[len(C.COMPRESSED_MARKER) :])
            return _transform(kind, short, _EXPANSIONS)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Abbreviated {kind} payload unreadable ({e}); trying plain JSON")

    try:
        return json.loads(raw)
    except ValueError as e:
        raise StorageDecodeError(f"Stored {kind} data is corrupt: {e}") from e


# --- Store ---


class InventoryStore:
    """
    Owns the inventory and projects mappings for one application context.

    The mappings are created once and then only mutated in place, so any
    component holding a reference always sees current state. Every mutating
    manager operation calls save() when it succeeds.
    """

    def __init__(self, storage: StorageProvider):
        self.storage = storage
        self.inventory: InventoryType = {}
        self.projects: ProjectsType = {}

    def _read(self, key: str, kind: str) -> Any:
        raw = self.storage.get(key)
        if raw is None:
            return None

        data = decode_state(kind, raw)
        if not isinstance(data, dict):
            raise StorageDecodeError(f"Stored {kind} data is not an object")
        return data

    def load(self) -> dict[str, int]:
        """
        Reads both records from storage and cleans them up.

        Missing inventory falls back to the sample inventory. Repairs made
        during load are written back immediately.

        Returns:
            Counts from prepare_state.

        Raises:
            StorageDecodeError: If either record is undecodable.
        """
        inventory = self._read(C.INVENTORY_STORAGE_KEY, INVENTORY_KIND)
        projects = self._read(C.PROJECTS_STORAGE_KEY, PROJECTS_KIND)

        seeded = inventory is None
        if seeded:
            inventory = copy.deepcopy(C.DEFAULT_INVENTORY)

        report = prepare_state(inventory, projects or {})
        self.replace(inventory, projects or {})

        if seeded or any(report.values()):
            self.save()

        logger.info(
            f"Loaded {len(self.inventory)} part(s) and {len(self.projects)} project(s)"
        )
        return report

    def save(self) -> None:
        """Writes both records to storage."""
        self.storage.set(
            C.INVENTORY_STORAGE_KEY, encode_state(INVENTORY_KIND, self.inventory)
        )
        self.storage.set(
            C.PROJECTS_STORAGE_KEY, encode_state(PROJECTS_KIND, self.projects)
        )

    def replace(self, inventory: InventoryType, projects: ProjectsType) -> None:
        """Swaps in new state without rebinding the mappings."""
        if inventory is not self.inventory:
            self.inventory.clear()
            self.inventory.update(inventory)
        if projects is not self.projects:
            self.projects.clear()
            self.projects.update(projects)

    def snapshot(self) -> tuple[InventoryType, ProjectsType]:
        """Deep copies of the current state, for staged edits."""
        return copy.deepcopy(self.inventory), copy.deepcopy(self.projects)
