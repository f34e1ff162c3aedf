import json

import pytest

from src.stock_lib import (
    InventoryStore,
    JsonFileStorage,
    MemoryStorage,
    StorageDecodeError,
    decode_state,
    encode_state,
)
from src.stock_lib import constants as C


def _big_inventory(count=200):
    inventory = {
        f"part_{i}": {
            "name": f"Part number {i}",
            "quantity": i,
            "purchaseUrl": f"https://example.com/p/{i}",
            "projects": {"name": i % 3},
        }
        for i in range(count)
    }
    # Ids that look like field names must survive
    inventory["name"] = {"name": "Name", "quantity": 1}
    inventory["q"] = {"name": "Q", "quantity": 2}
    return inventory


# --- Codec ---


def test_small_payload_is_plain_json():
    data = {"led": {"name": "LED", "quantity": 3}}
    raw = encode_state("inventory", data)

    assert not raw.startswith(C.COMPRESSED_MARKER)
    assert json.loads(raw) == data


def test_large_inventory_is_abbreviated_and_restored():
    data = _big_inventory()
    raw = encode_state("inventory", data)

    assert raw.startswith(C.COMPRESSED_MARKER)
    assert len(raw) < len(json.dumps(data, ensure_ascii=False))
    assert decode_state("inventory", raw) == data


def test_large_projects_are_abbreviated_and_restored():
    data = {
        f"project_{i}": {
            "name": f"Project {i}",
            "bom": {
                "name": {"name": "Odd key", "quantity": 1},
                f"part_{i}": {"name": f"Part {i}", "quantity": i},
            },
        }
        for i in range(100)
    }
    raw = encode_state("projects", data)

    assert raw.startswith(C.COMPRESSED_MARKER)
    assert decode_state("projects", raw) == data


def test_plain_json_still_decodes():
    """Data saved before abbreviation existed is read as-is."""
    assert decode_state("inventory", '{"a": {"name": "A"}}') == {"a": {"name": "A"}}


@pytest.mark.parametrize("raw", ["not json", C.COMPRESSED_MARKER + "{broken"])
def test_undecodable_payload_raises(raw):
    with pytest.raises(StorageDecodeError):
        decode_state("inventory", raw)


# --- Providers ---


def test_json_file_storage_round_trip(tmp_path):
    storage = JsonFileStorage(str(tmp_path / "data"))

    assert storage.get("missing") is None
    storage.set("key", '{"a": 1}')
    storage.set("key", '{"a": 2}')

    assert storage.get("key") == '{"a": 2}'
    assert [p.name for p in (tmp_path / "data").iterdir()] == ["key.json"]


# --- Store ---


def test_load_seeds_default_inventory():
    storage = MemoryStorage()
    store = InventoryStore(storage)

    store.load()

    assert set(store.inventory) == set(C.DEFAULT_INVENTORY)
    assert store.projects == {}
    assert C.INVENTORY_STORAGE_KEY in storage.data
    # The defaults are copied, not shared
    store.inventory["led_3mm"]["quantity"] = 0
    assert C.DEFAULT_INVENTORY["led_3mm"]["quantity"] == 12


def test_load_repairs_and_saves():
    storage = MemoryStorage(
        {
            C.INVENTORY_STORAGE_KEY: json.dumps(
                {
                    "led": {"name": "LED", "quantity": 4, "projects": {"p": 2}},
                    "junk": None,
                }
            ),
            C.PROJECTS_STORAGE_KEY: json.dumps(
                {"p": {"name": "P", "bom": {"led": {"0": "0", "1": "["}}}}
            ),
        }
    )
    store = InventoryStore(storage)

    report = store.load()

    assert report == {"removed": 1, "migrated": 0, "repaired": 1}
    assert store.projects["p"]["bom"]["led"] == {"name": "LED", "quantity": 2}
    saved = decode_state("projects", storage.data[C.PROJECTS_STORAGE_KEY])
    assert saved["p"]["bom"]["led"]["quantity"] == 2


def test_load_rejects_non_object_records():
    storage = MemoryStorage({C.INVENTORY_STORAGE_KEY: "[1, 2, 3]"})
    with pytest.raises(StorageDecodeError):
        InventoryStore(storage).load()


def test_save_and_reload(tmp_path, stocked_store):
    file_store = InventoryStore(JsonFileStorage(str(tmp_path)))
    file_store.replace(*stocked_store.snapshot())
    file_store.save()

    reloaded = InventoryStore(JsonFileStorage(str(tmp_path)))
    reloaded.load()

    assert reloaded.inventory == stocked_store.inventory
    assert reloaded.projects == stocked_store.projects


def test_replace_keeps_the_same_mappings(store):
    inventory, projects = store.inventory, store.projects

    store.replace({"a": {"name": "A", "quantity": 1}}, {})
    store.replace(store.inventory, store.projects)

    assert store.inventory is inventory
    assert store.projects is projects
    assert store.inventory == {"a": {"name": "A", "quantity": 1}}
