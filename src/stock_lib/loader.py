"""
Input handling and parsing orchestration.

This module abstracts the source of imported data (pasted text, uploaded file,
URL) from the logic used to parse it. It handles HTTP requests, byte decoding
and parser dispatching. The result is always an ImportPayload; nothing here
touches the inventory.
"""

import logging
import os
from typing import Any

import requests

from src.stock_lib import constants as C
from src.stock_lib.errors import ImportFormatError
from src.stock_lib.parser import (
    parse_bom_table,
    parse_inventory_table,
    parse_json_bom,
    parse_json_import,
)
from src.stock_lib.types import ImportPayload

logger = logging.getLogger(__name__)

TARGET_INVENTORY = "inventory"
TARGET_BOM = "bom"


def decode_content(content: bytes | str) -> str:
    """Decodes uploaded bytes, tolerating an Excel byte-order mark."""
    if isinstance(content, str):
        return content
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ImportFormatError(f"File is not UTF-8 text: {e}") from e


def _looks_like_json(text: str) -> bool:
    return text.lstrip("\ufeff \t\r\n")[:1] in ("{", "[")


def parse_import_text(
    text: str, filename: str | None = None, target: str = TARGET_INVENTORY
) -> ImportPayload:
    """
    Picks the right parser for a block of text.

    The file extension decides when there is one ('.json' vs '.csv');
    otherwise the first non-blank character does.

    Args:
        text: The full file contents.
        filename: Optional original file name.
        target: "inventory" for data imports, "bom" for BOM comparisons.

    Returns:
        The parsed ImportPayload.
    """
    ext = os.path.splitext(filename)[1].lower() if filename else ""

    if ext == ".json":
        is_json = True
    elif ext in (".csv", ".txt"):
        is_json = False
    else:
        is_json = _looks_like_json(text)

    if target == TARGET_BOM:
        return parse_json_bom(text) if is_json else parse_bom_table(text)
    return parse_json_import(text) if is_json else parse_inventory_table(text)


def fetch_remote_text(url: str) -> str:
    """
    Downloads an import file.

    Raises:
        ImportFormatError: On any network or HTTP error.
    """
    try:
        response = requests.get(url, timeout=C.URL_FETCH_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        raise ImportFormatError(f"Could not download {url}: {e}") from e
    return response.text


def process_input_data(
    method: str, data: Any, source_name: str, target: str = TARGET_INVENTORY
) -> ImportPayload:
    """
    Unified handler for Text, File and URL imports.

    Args:
        method: The input method ("Paste Text", "Upload File", "From URL").
        data: The raw data for the method (string, uploaded file, URL).
        source_name: A display name for logging and error messages.
        target: "inventory" or "bom".

    Returns:
        The parsed ImportPayload.

    Raises:
        ImportFormatError: If the input is empty, unreadable or malformed.
    """
    if not data:
        raise ImportFormatError(f"No data provided for {source_name}")

    try:
        # A. PASTE TEXT
        if method == "Paste Text":
            return parse_import_text(str(data), target=target)

        # B. URL
        elif method == "From URL":
            url = str(data).strip()
            text = fetch_remote_text(url)
            filename = url.split("?", 1)[0]
            return parse_import_text(text, filename=filename, target=target)

        # C. UPLOAD FILE
        elif method == "Upload File":
            # data is expected to be a file-like object (Streamlit UploadedFile)
            if hasattr(data, "name") and hasattr(data, "getvalue"):
                text = decode_content(data.getvalue())
                return parse_import_text(text, filename=data.name, target=target)
            raise ImportFormatError("Invalid file object provided.")

    except ImportFormatError as e:
        logger.error(f"Error processing {source_name}: {e}")
        raise

    raise ImportFormatError(f"Unknown input method: {method}")
