import string

import pytest
from hypothesis import given, strategies as st

from src.stock_lib import coerce_quantity, humanize_key, make_id, normalize

# Standard Unit Tests


@pytest.mark.parametrize(
    "left, right",
    [
        ("Resistor 10kΩ", "resistor_10k"),
        ("Capacitor 100nF", "capacitor_100nf"),
        ("Potentiometer 100kΩ", "pot_100k"),
        ("10R", "10 ohm"),
        ("10 Ohms", "10Ω"),
        ("4.7k", "4K7"),
        ("1 Meg", "1M"),
        ("1MEG", "1m"),
        ("0.1uF", "0u1"),
        ("100µF", "100u"),
        ("100μF", "100uf"),
    ],
)
def test_equivalent_spellings_collapse(left, right):
    """Common ways of writing the same value produce the same key."""
    assert normalize(left) == normalize(right)


def test_known_keys():
    assert normalize("Resistor 10kΩ") == "res10k"
    assert normalize("Capacitor 100nF") == "cap100n"
    assert normalize("op_amp_4558") == "opamp4558"


def test_different_values_stay_apart():
    assert normalize("Resistor 10k") != normalize("Resistor 100k")
    assert normalize("4.7k") != normalize("47k")


def test_empty_inputs():
    assert normalize(None) == ""
    assert normalize("") == ""
    assert normalize("  --  ") == ""


def test_make_id():
    assert make_id("Big Muff Pi") == "big_muff_pi"
    assert make_id("  Fuzz-Face ") == "fuzz_face"


def test_humanize_key():
    assert humanize_key("op_amp_4558") == "Op Amp 4558"
    assert humanize_key("big-muff") == "Big Muff"
    assert humanize_key("___") == "___"


@pytest.mark.parametrize(
    "raw, expected",
    [
        (5, 5),
        (-3, 0),
        (2.9, 2),
        ("12 pcs", 12),
        ("-4", 0),
        ("abc", 0),
        (None, 0),
        (True, 0),
        (float("nan"), 0),
        ([1], 0),
    ],
)
def test_coerce_quantity(raw, expected):
    assert coerce_quantity(raw) == expected


# Property-Based Tests


@given(st.text())
def test_normalize_is_idempotent(text):
    """Normalizing twice never changes the key again."""
    once = normalize(text)
    assert normalize(once) == once


@given(st.text())
def test_normalize_output_is_lowercase_alnum(text):
    key = normalize(text)
    assert all(c in string.ascii_lowercase + string.digits for c in key)


@given(st.text(alphabet=string.ascii_letters + string.digits + " _-.,/\u00b5\u03bc\u039c"))
def test_normalize_ignores_case(text):
    assert normalize(text.upper()) == normalize(text.lower())


@pytest.mark.parametrize("text", ["4.7\u039c", "4.7\u03bc", "4.7\u00b5", "4.7u"])
def test_micro_signs_in_any_case(text):
    assert normalize(text) == "4u7"
    assert normalize(text.upper()) == normalize(text.lower())
