"""
Static configuration for the Pedal Stock engine.

This module serves as the central repository for:
1.  **Matching Policy:** Fuzzy-match thresholds and merge heuristics. These are
    tuned by hand and are meant to be adjusted here, not hard-coded elsewhere.
2.  **Normalization Rules:** Ordered text contractions applied to part names.
3.  **Storage Layout:** Persistence keys and the key-abbreviation table used for
    large payloads.
4.  **Import/Export Columns:** Header aliases recognised in tabular files.
5.  **Sample Data:** The starter inventory shown on first launch.
"""

from typing import Any

# --- Matching Policy ---

# Maximum edit distance between normalized ids for a fuzzy match.
FUZZY_MATCH_THRESHOLD = 2

# Generic classification that never overrides a more specific type on merge.
GENERIC_TYPE = "Other"

# Parts below this count are flagged as low stock in inventory listings.
LOW_STOCK_THRESHOLD = 5

# Reconciliation status labels and their display priority.
STATUS_MISSING = "missing"
STATUS_LOW = "low"
STATUS_SUFFICIENT = "sufficient"

STATUS_PRIORITY = {
    STATUS_MISSING: 0,
    STATUS_LOW: 1,
    STATUS_SUFFICIENT: 2,
}

# --- Normalization Rules ---

# Applied in order on the already lowercased/stripped key.
# "ohms" must go before "ohm" or a dangling "s" is left behind.
DROPPED_WORDS = ("ohms", "ohm")

WORD_CONTRACTIONS = (
    ("resistor", "res"),
    ("capacitor", "cap"),
    ("potentiometer", "pot"),
    ("kilo", "k"),
    ("mega", "m"),
)

# --- Storage ---

INVENTORY_STORAGE_KEY = "guitarPedalInventory"
PROJECTS_STORAGE_KEY = "guitarPedalProjects"

# Payloads longer than this (in characters) are written abbreviated.
COMPRESSION_THRESHOLD = 4096

# Marks an abbreviated payload. Plain JSON can never start with this.
COMPRESSED_MARKER = "~pz1~"

# Field name -> short form. Only applied at the depth where the field lives,
# so part ids and project ids are never rewritten.
KEY_ABBREVIATIONS = {
    "name": "n",
    "quantity": "q",
    "purchaseUrl": "u",
    "type": "t",
    "projects": "p",
    "bom": "b",
}

# --- Import / Export ---

# Lowercased header -> canonical field.
COLUMN_ALIASES = {
    "part id": "id",
    "id": "id",
    "name": "name",
    "part name": "name",
    "component": "name",
    "part": "name",
    "type": "type",
    "quantity": "quantity",
    "qty": "quantity",
    "purchase url": "purchaseUrl",
    "url": "purchaseUrl",
    "projects": "projects",
}

INVENTORY_CSV_HEADERS = [
    "Part ID",
    "Name",
    "Type",
    "Quantity",
    "Purchase URL",
    "Projects",
]

PROJECT_BOM_CSV_HEADERS = ["Part Name", "Quantity", "Purchase URL"]

REQUIREMENTS_CSV_HEADERS = [
    "Part",
    "Total Needed",
    "In Stock",
    "Status",
    "Projects",
]

# Separators for the "Projects" column: "big_muff:3;fuzz_face:2"
PROJECT_ENTRY_SEPARATOR = ";"
PROJECT_QTY_SEPARATOR = ":"

# Seconds to wait when importing from a URL.
URL_FETCH_TIMEOUT = 10

# --- Sample Data ---

DEFAULT_INVENTORY: dict[str, dict[str, Any]] = {
    "resistor_10k": {"name": "Resistor 10kΩ", "quantity": 25},
    "capacitor_100nf": {"name": "Capacitor 100nF", "quantity": 15},
    "op_amp_4558": {"name": "Op-Amp JRC4558", "quantity": 8},
    "led_3mm": {"name": "LED 3mm Red", "quantity": 12},
    "potentiometer_100k": {"name": "Potentiometer 100kΩ", "quantity": 6},
    "switch_3pdt": {"name": "3PDT Footswitch", "quantity": 3},
}
