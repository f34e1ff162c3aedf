import pytest

from src.stock_lib import (
    aggregate_requirements,
    reconcile_project,
    requirement_rows,
    stock_status,
    summarize_report,
)
from src.stock_lib.reconciler import format_breakdown

INVENTORY = {
    "resistor_10k": {"name": "Resistor 10kΩ", "quantity": 25},
    "led_3mm": {"name": "LED 3mm Red", "quantity": 1},
}


@pytest.mark.parametrize(
    "have, need, expected",
    [
        (0, 0, "missing"),
        (0, 3, "missing"),
        (2, 3, "low"),
        (3, 3, "sufficient"),
        (10, 3, "sufficient"),
    ],
)
def test_stock_status(have, need, expected):
    assert stock_status(have, need) == expected


def test_reconcile_project_statuses():
    project = {
        "name": "Fuzz Face",
        "bom": {
            "res_10k": {"name": "10k", "quantity": 4},
            "led_3mm": {"name": "LED", "quantity": 3},
            "switch_3pdt": {"name": "3PDT Footswitch", "quantity": 1},
        },
    }

    report = reconcile_project(project, INVENTORY)

    assert report["sufficient_count"] == 1
    assert report["low_count"] == 1
    assert report["missing_count"] == 1
    assert report["total_count"] == 3

    by_key = {part["key"]: part for part in report["parts"]}
    assert by_key["res_10k"]["have"] == 25
    assert by_key["res_10k"]["matched_id"] == "resistor_10k"
    # Non-exact matches show which inventory part was used
    assert by_key["res_10k"]["matched_name"] == "Resistor 10kΩ"
    assert by_key["led_3mm"]["status"] == "low"
    assert by_key["led_3mm"]["matched_name"] is None
    assert by_key["switch_3pdt"]["have"] == 0
    assert by_key["switch_3pdt"]["matched_id"] is None


def test_reconcile_skips_damaged_lines():
    project = {
        "name": "P",
        "bom": {
            "resistor_10k": {"0": "0", "1": "["},
            "led_3mm": "garbage",
        },
    }
    report = reconcile_project(project, INVENTORY)
    assert report["total_count"] == 0
    assert summarize_report(report) == {"sufficient": 0.0, "low": 0.0, "missing": 0.0}


def test_summarize_report():
    report = {
        "parts": [],
        "missing_count": 1,
        "low_count": 1,
        "sufficient_count": 2,
        "total_count": 4,
    }
    assert summarize_report(report) == {"sufficient": 50.0, "low": 25.0, "missing": 25.0}


def test_aggregate_sums_across_projects():
    """3 + 4 needed against 5 in stock is 'low'."""
    projects = {
        "big_muff": {
            "name": "Big Muff",
            "bom": {"resistor_10k": {"name": "Resistor 10k", "quantity": 3}},
        },
        "fuzz_face": {
            "name": "Fuzz Face",
            "bom": {"res_10k": {"name": "10k res", "quantity": 4}},
        },
    }
    inventory = {"resistor_10k": {"name": "Resistor 10kΩ", "quantity": 5}}

    requirements = aggregate_requirements(projects, inventory)

    assert list(requirements) == ["res10k"]
    req = requirements["res10k"]
    assert req["total"] == 7
    assert req["inventory_qty"] == 5
    assert req["status"] == "low"
    assert req["name"] == "Resistor 10kΩ"
    assert format_breakdown(req) == "Big Muff (3), Fuzz Face (4)"


def test_aggregate_falls_back_to_inventory_names():
    """Stock is found through the part name when no id normalizes the same."""
    projects = {"p": {"name": "P", "bom": {"led_red": {"name": "LED", "quantity": 2}}}}
    inventory = {"x1": {"name": "LED Red", "quantity": 9}}

    req = aggregate_requirements(projects, inventory)["ledred"]
    assert req["inventory_qty"] == 9
    assert req["status"] == "sufficient"


def test_aggregate_ordering():
    projects = {
        "p": {
            "name": "P",
            "bom": {
                "zener": {"name": "Zener", "quantity": 1},
                "alpha_pot": {"name": "Alpha Pot", "quantity": 1},
                "led_3mm": {"name": "LED", "quantity": 5},
                "resistor_10k": {"name": "Resistor 10k", "quantity": 1},
            },
        }
    }

    requirements = aggregate_requirements(projects, INVENTORY)
    order = [(req["status"], req["name"]) for req in requirements.values()]

    assert order == [
        ("missing", "Alpha Pot"),
        ("missing", "Zener"),
        ("low", "LED 3mm Red"),
        ("sufficient", "Resistor 10kΩ"),
    ]


def test_requirement_rows():
    projects = {
        "p": {"name": "P", "bom": {"led_3mm": {"name": "LED", "quantity": 5}}}
    }
    rows = requirement_rows(aggregate_requirements(projects, INVENTORY))
    assert rows == [
        {
            "Part": "LED 3mm Red",
            "Total Needed": 5,
            "In Stock": 1,
            "Status": "low",
            "Projects": "P (5)",
        }
    ]
