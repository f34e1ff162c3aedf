import pytest

from src.stock_lib import (
    DuplicateIdError,
    ImportFormatError,
    NotFoundError,
    StockError,
    StorageDecodeError,
    ValidationError,
    add_part,
    process_input_data,
)


@pytest.mark.parametrize(
    "error_cls, kind",
    [
        (ValidationError, "invalid_input"),
        (DuplicateIdError, "id_collision"),
        (NotFoundError, "not_found"),
        (ImportFormatError, "malformed_import"),
        (StorageDecodeError, "malformed_storage"),
    ],
)
def test_errors_carry_a_kind(error_cls, kind):
    err = error_cls("boom")

    assert isinstance(err, StockError)
    assert err.kind == kind
    assert err.message == "boom"
    assert str(err) == "boom"


def test_front_ends_can_catch_the_base_class(store):
    """
    Verifies that a caller catching StockError sees every library failure
    and can branch on the kind instead of the message.
    """
    add_part(store, "LED", part_id="led")

    with pytest.raises(StockError) as excinfo:
        add_part(store, "LED", part_id="led")
    assert excinfo.value.kind == "id_collision"

    with pytest.raises(StockError) as excinfo:
        process_input_data("Paste Text", "{broken", "paste")
    assert excinfo.value.kind == "malformed_import"


def test_failed_import_is_logged(caplog):
    with caplog.at_level("ERROR", logger="src.stock_lib.loader"):
        with pytest.raises(ImportFormatError):
            process_input_data("Paste Text", "Name,Qty\nLED,1,2\n", "My Upload")

    assert "My Upload" in caplog.text
