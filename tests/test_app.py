import os

import pytest
from streamlit.testing.v1 import AppTest

from src.stock_lib import InventoryStore, MemoryStorage

APP_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "app.py")


# --- Fixtures ---
@pytest.fixture
def app(monkeypatch):
    monkeypatch.delenv("PEDAL_STOCK_DATA_DIR", raising=False)
    at = AppTest.from_file(APP_PATH, default_timeout=30)
    at.run()
    return at


# --- Tests ---
def test_smoke_check(app):
    assert not app.exception
    assert app.title[0].value == "🎸 Pedal Parts Inventory"


def test_starts_with_sample_inventory(app):
    store = app.session_state["store"]
    assert len(store.inventory) == 6
    assert app.metric[0].value == "6"


def test_adjust_stock_buttons(app):
    store = app.session_state["store"]
    first_id = list(store.inventory)[0]
    before = store.inventory[first_id]["quantity"]

    app.button(key="adj_add").click().run()

    assert not app.exception
    assert store.inventory[first_id]["quantity"] == before + 1


def test_compare_bom_via_paste(app):
    app.text_area(key="bom_text").set_value(
        "Part Name,Quantity\nResistor 10k,2\nMystery Knob,1\n"
    ).run()
    app.button(key="bom_compare").click().run()

    assert not app.exception
    payload = app.session_state["bom_payload"]
    assert set(payload["bom"]) == {"res10k", "mysteryknob"}

    app.text_input(key="bom_project_name").set_value("Big Muff").run()
    app.button(key="bom_save").click().run()

    assert not app.exception
    store = app.session_state["store"]
    assert "big_muff" in store.projects
    assert store.inventory["resistor_10k"]["projects"] == {"big_muff": 2}


def test_library_errors_become_messages(app):
    store = app.session_state["store"]
    store.inventory["led_3mm"]["quantity"] = 0
    app.selectbox(key="adj_part").set_value("led_3mm").run()
    app.button(key="adj_use").click().run()

    assert not app.exception
    assert any("in stock" in err.value for err in app.error)


def test_injected_store_is_used(app):
    """State injection bypasses the uploader, like a real import would."""
    store = InventoryStore(MemoryStorage())
    store.replace({"led": {"name": "LED", "quantity": 2}}, {})
    app.session_state["store"] = store
    app.run()

    assert not app.exception
    assert app.metric[0].value == "1"
    assert app.metric[2].value == "1"
