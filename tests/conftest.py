import pytest

from src.stock_lib import InventoryStore, MemoryStorage


@pytest.fixture
def store():
    """An empty store backed by memory. Nothing is loaded or seeded."""
    return InventoryStore(MemoryStorage())


@pytest.fixture
def stocked_store(store):
    """A store with a few parts and one project that uses some of them.

    Returns:
        InventoryStore: Parts 'resistor_10k', 'capacitor_100nf', 'led_3mm' and
        project 'fuzz_face' (needs 4x resistor_10k and 2x led_3mm).
    """
    store.replace(
        {
            "resistor_10k": {
                "name": "Resistor 10kΩ",
                "quantity": 25,
                "purchaseUrl": "https://example.com/r10k",
                "projects": {"fuzz_face": 4},
            },
            "capacitor_100nf": {
                "name": "Capacitor 100nF",
                "quantity": 15,
                "purchaseUrl": "",
                "projects": {},
            },
            "led_3mm": {
                "name": "LED 3mm Red",
                "quantity": 1,
                "purchaseUrl": "",
                "projects": {"fuzz_face": 2},
            },
        },
        {
            "fuzz_face": {
                "name": "Fuzz Face",
                "bom": {
                    "resistor_10k": {"name": "Resistor 10kΩ", "quantity": 4},
                    "led_3mm": {"name": "LED 3mm Red", "quantity": 2},
                },
            }
        },
    )
    store.save()
    return store
