import json
from datetime import datetime, timezone

import pytest
import requests

from src.exporters import (
    build_export_filename,
    export_inventory_csv,
    export_project_bom_csv,
    export_project_bom_json,
    export_requirements_csv,
    export_snapshot_json,
)
from src.stock_lib import (
    ImportFormatError,
    InventoryStore,
    MemoryStorage,
    aggregate_requirements,
    import_inventory,
    parse_bom_table,
    parse_import_text,
    parse_inventory_table,
    parse_json_bom,
    parse_json_import,
    process_input_data,
)
from src.stock_lib.loader import decode_content
from src.stock_lib.parser import format_projects_field, parse_projects_field


# --- Helpers ---
class MockFile:
    """Fake file object to fool the uploader widget."""

    def __init__(self, name, content):
        self.name = name
        self.content = content.encode("utf-8")

    def getvalue(self):
        return self.content


# --- Round Trips ---


def test_json_snapshot_round_trip(stocked_store):
    text = export_snapshot_json(stocked_store.inventory, stocked_store.projects)

    fresh = InventoryStore(MemoryStorage())
    stats = import_inventory(fresh, parse_json_import(text))

    assert fresh.inventory == stocked_store.inventory
    assert fresh.projects == stocked_store.projects
    assert stats["projects_imported"] == 1
    assert stats["merged"] == 0


def test_inventory_csv_round_trip(stocked_store):
    data = export_inventory_csv(stocked_store.inventory)
    assert data.startswith(b"\xef\xbb\xbf")

    fresh = InventoryStore(MemoryStorage())
    stats = import_inventory(fresh, parse_inventory_table(decode_content(data)))

    assert fresh.inventory == stocked_store.inventory
    assert stats["parts_added"] == 3


def test_project_bom_json_can_be_reimported(stocked_store):
    project = stocked_store.projects["fuzz_face"]
    text = export_project_bom_json(
        project,
        stocked_store.inventory,
        export_date=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )

    doc = json.loads(text)
    assert doc["projectName"] == "Fuzz Face"
    assert doc["exportDate"].startswith("2024-05-01")
    assert doc["parts"][0] == {
        "name": "Resistor 10kΩ",
        "quantity": 4,
        "purchaseUrl": "https://example.com/r10k",
    }

    payload = parse_json_bom(text)
    assert payload["project_name"] == "Fuzz Face"
    assert payload["bom"]["res10k"]["quantity"] == 4


# --- CSV Parsing ---


def test_inventory_table_header_aliases():
    text = "Component,Qty,Supplier Link,Notes\n10k Resistor,5 pcs,https://x.io,\n,3,,\n"
    payload = parse_inventory_table(text)

    assert payload["kind"] == "rows"
    assert payload["rows"] == [
        {"name": "10k Resistor", "quantity": 5, "purchaseUrl": "https://x.io"}
    ]
    assert payload["skipped"] == 1


def test_bom_table_sums_repeated_parts():
    text = "Part Name,Quantity\nResistor 10kΩ,2\nresistor 10k,1\nLED,1\n"
    payload = parse_bom_table(text)

    assert payload["bom"] == {
        "res10k": {"name": "Resistor 10kΩ", "quantity": 3},
        "led": {"name": "LED", "quantity": 1},
    }


def test_bom_table_needs_quantity_column():
    with pytest.raises(ImportFormatError):
        parse_bom_table("Part Name,Notes\nLED,red\n")


@pytest.mark.parametrize("text", ["", "   \n", "Name,Quantity\nLED,1,extra\n"])
def test_malformed_csv_is_rejected(text):
    with pytest.raises(ImportFormatError):
        parse_inventory_table(text)


def test_projects_field():
    assert parse_projects_field("big_muff:3; fuzz_face ;x:2;x:1") == {
        "big_muff": 3,
        "fuzz_face": 1,
        "x": 3,
    }
    assert format_projects_field({"a": 1, "b": 2}) == "a:1;b:2"


# --- JSON Parsing ---


def test_json_import_shapes():
    assert parse_json_import('{"inventory": {}, "projects": {}}')["kind"] == "snapshot"
    assert parse_json_import('{"led": {"name": "LED"}}')["kind"] == "inventory"

    bom = parse_json_import('{"projectName": "Muff", "parts": [{"name": "LED"}, 5]}')
    assert bom["kind"] == "bom"
    assert bom["project_name"] == "Muff"
    assert bom["skipped"] == 1


@pytest.mark.parametrize(
    "text", ["{not json", "[1, 2]", '{"inventory": {}, "projects": [1]}']
)
def test_malformed_json_is_rejected(text):
    with pytest.raises(ImportFormatError):
        parse_json_import(text)


def test_flat_json_bom_drops_lines_without_quantity():
    payload = parse_json_bom('{"led": {"name": "LED", "quantity": 2}, "pcb": {"name": "PCB"}}')
    assert payload["bom"] == {"led": {"name": "LED", "quantity": 2}}
    assert payload["skipped"] == 1


def test_json_bom_rejects_snapshots():
    with pytest.raises(ImportFormatError):
        parse_json_bom('{"inventory": {}, "projects": {}}')


# --- Loader ---


def test_parser_dispatch():
    assert parse_import_text("Name,Quantity\nLED,1\n")["kind"] == "rows"
    assert parse_import_text(' \n{"led": {"name": "LED"}}')["kind"] == "inventory"
    assert parse_import_text("Name,Quantity\nLED,1\n", target="bom")["kind"] == "bom"
    # The extension beats content sniffing
    with pytest.raises(ImportFormatError):
        parse_import_text("Name,Quantity\nLED,1\n", filename="parts.json")


def test_process_upload():
    f = MockFile("parts.csv", "\ufeffPart ID,Name,Quantity\nled,LED,4\n")
    payload = process_input_data("Upload File", f, "upload")
    assert payload["rows"] == [{"name": "LED", "id": "led", "quantity": 4}]


def test_process_url(monkeypatch):
    class Response:
        text = '{"led": {"name": "LED", "quantity": 1}}'

        def raise_for_status(self):
            pass

    monkeypatch.setattr(requests, "get", lambda url, timeout: Response())
    payload = process_input_data("From URL", "https://x.io/inv.json?dl=1", "url")
    assert payload["kind"] == "inventory"


def test_process_url_failure(monkeypatch):
    def boom(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(requests, "get", boom)
    with pytest.raises(ImportFormatError, match="offline"):
        process_input_data("From URL", "https://x.io/inv.json", "url")


@pytest.mark.parametrize(
    "method, data",
    [("Paste Text", ""), ("Upload File", "not a file"), ("Carrier Pigeon", "x")],
)
def test_process_bad_input(method, data):
    with pytest.raises(ImportFormatError):
        process_input_data(method, data, "test")


def test_decode_content_rejects_binary():
    with pytest.raises(ImportFormatError):
        decode_content(b"\xff\xfe\x00\x81")


# --- Exports ---


def test_project_bom_csv(stocked_store):
    data = export_project_bom_csv(stocked_store.projects["fuzz_face"], stocked_store.inventory)
    lines = data.decode("utf-8-sig").splitlines()

    assert lines[0] == "Part Name,Quantity,Purchase URL"
    assert lines[1] == "Resistor 10kΩ,4,https://example.com/r10k"
    assert lines[2] == "LED 3mm Red,2,"


def test_requirements_csv(stocked_store):
    requirements = aggregate_requirements(stocked_store.projects, stocked_store.inventory)
    lines = export_requirements_csv(requirements).decode("utf-8-sig").splitlines()

    assert lines[0] == "Part,Total Needed,In Stock,Status,Projects"
    assert lines[1] == "LED 3mm Red,2,1,low,Fuzz Face (2)"


def test_build_export_filename():
    now = datetime(2024, 5, 1, 12, 30, 0)
    assert (
        build_export_filename("guitar-pedal-inventory", ".csv", now=now)
        == "guitar-pedal-inventory-2024-05-01T12-30-00.csv"
    )
