"""Tests for the invoice editor: row lifecycle, payments and totals."""

import datetime as dt

import pytest

from hisaab.editor import EditorState, InvoiceEditor
from hisaab.exceptions import ItemIndexError, UnknownFieldError
from hisaab.ids import SequentialIdGenerator
from hisaab.models import InvoiceStatus, LineItem
from hisaab.pricing import NegativeInputPolicy

from conftest import FIXED_NOW_MS


def _priced(editor: InvoiceEditor, index: int, qty, rate, discount=0) -> None:
    editor.update_item(index, "quantity", qty)
    editor.update_item(index, "rate", rate)
    editor.update_item(index, "discount_percent", discount)


def test_new_editor_is_seeded_with_one_blank_row(editor: InvoiceEditor) -> None:
    assert editor.state == EditorState.NEW
    assert len(editor.items) == 1
    row = editor.items[0]
    assert row.id == "id_1"
    assert (row.name, row.quantity, row.rate, row.discount_percent) == ("", 0, 0, 0)
    assert (row.trade_price, row.effective_unit_price, row.line_total) == (0, 0, 0)
    assert editor.payments == ()
    assert editor.status == InvoiceStatus.PENDING


def test_add_item_appends_blank_row(editor: InvoiceEditor) -> None:
    items = editor.add_item()

    assert items is editor.items
    assert [item.id for item in items] == ["id_1", "id_2"]
    assert items[1].line_total == 0
    assert editor.state == EditorState.EDITING


def test_update_numeric_field_rederives_item(editor: InvoiceEditor) -> None:
    _priced(editor, 0, 2, 100)

    row = editor.items[0]
    assert row.trade_price == 85.5
    assert row.effective_unit_price == 85.5
    assert row.line_total == 171.0


def test_update_returns_new_collection(editor: InvoiceEditor) -> None:
    before = editor.items

    after = editor.update_item(0, "rate", 100)

    assert before is not after
    assert before[0].rate == 0
    assert after[0].rate == 100


def test_update_name_bypasses_derivation(editor: InvoiceEditor) -> None:
    _priced(editor, 0, 2, 100)
    editor.update_item(0, "name", "Brufen 400")

    row = editor.items[0]
    assert row.name == "Brufen 400"
    assert row.line_total == 171.0


def test_update_item_accepts_camel_case_field(editor: InvoiceEditor) -> None:
    editor.update_item(0, "rate", 100)
    editor.update_item(0, "qty", 1)
    editor.update_item(0, "discountPercent", -10)

    assert editor.items[0].discount_percent == -10
    assert editor.items[0].line_total == 65.41


def test_blank_numeric_entry_is_coerced_to_zero(editor: InvoiceEditor) -> None:
    _priced(editor, 0, 2, 100)
    editor.update_item(0, "quantity", "")

    assert editor.items[0].quantity == 0
    assert editor.items[0].line_total == 0


@pytest.mark.parametrize("index", [1, -1, 5])
def test_update_item_out_of_range(editor: InvoiceEditor, index: int) -> None:
    before = editor.items

    with pytest.raises(ItemIndexError) as exc_info:
        editor.update_item(index, "rate", 10)

    assert isinstance(exc_info.value, IndexError)
    assert exc_info.value.status_code == 404
    assert editor.items is before


@pytest.mark.parametrize("field", ["line_total", "trade_price", "id", "bogus"])
def test_update_item_rejects_non_raw_fields(editor: InvoiceEditor, field: str) -> None:
    with pytest.raises(UnknownFieldError):
        editor.update_item(0, field, 1)


def test_delete_last_item_is_noop(editor: InvoiceEditor) -> None:
    before = editor.items

    after = editor.delete_item(0)

    assert after == before
    assert len(editor.items) == 1
    assert editor.state == EditorState.NEW


def test_delete_item_removes_row(editor: InvoiceEditor) -> None:
    editor.add_item()
    editor.add_item()

    items = editor.delete_item(1)

    assert [item.id for item in items] == ["id_1", "id_3"]


def test_delete_item_out_of_range(editor: InvoiceEditor) -> None:
    editor.add_item()
    with pytest.raises(ItemIndexError):
        editor.delete_item(2)
    assert len(editor.items) == 2


def test_duplicate_item_inserts_after_source(editor: InvoiceEditor) -> None:
    editor.update_item(0, "name", "Panadol")
    _priced(editor, 0, 2, 100, -10)
    editor.add_item()
    source = editor.items[0]

    items = editor.duplicate_item(0)

    assert [item.id for item in items] == ["id_1", "id_3", "id_2"]
    clone = items[1]
    assert clone.model_dump(exclude={"id"}) == source.model_dump(exclude={"id"})
    assert items[0] == source


def test_duplicate_item_out_of_range(editor: InvoiceEditor) -> None:
    with pytest.raises(ItemIndexError):
        editor.duplicate_item(1)


def test_payment_lifecycle(editor: InvoiceEditor) -> None:
    editor.add_payment()
    editor.update_payment(0, "narration", "Cash")
    editor.update_payment(0, "amount", "50")
    editor.add_payment()
    editor.update_payment(1, "amount", "")

    assert editor.payments[0].narration == "Cash"
    assert editor.payments[0].amount == 50.0
    assert editor.payments[1].amount == 0.0

    payments = editor.delete_payment(0)
    assert len(payments) == 1
    assert payments[0].id == "id_3"


def test_payment_errors(editor: InvoiceEditor) -> None:
    with pytest.raises(ItemIndexError):
        editor.update_payment(0, "amount", 1)
    with pytest.raises(ItemIndexError):
        editor.delete_payment(0)
    editor.add_payment()
    with pytest.raises(UnknownFieldError):
        editor.update_payment(0, "rate", 1)


def test_totals_with_partial_payments(editor: InvoiceEditor) -> None:
    _priced(editor, 0, 2, 100)
    for amount in (50, 30):
        editor.add_payment()
        editor.update_payment(len(editor.payments) - 1, "amount", amount)

    totals = editor.totals()

    assert totals.grand_total == 171.0
    assert totals.total_paid == 80.0
    assert totals.remaining_balance == 91.0


def test_totals_are_order_independent(editor: InvoiceEditor) -> None:
    _priced(editor, 0, 3, 19.99, -5)
    editor.add_item()
    _priced(editor, 1, 7, 3.1)
    editor.add_item()
    _priced(editor, 2, 1, 1234.5, 8)
    expected = sum(item.line_total for item in editor.items)

    forward = editor.totals().grand_total
    editor.items = tuple(reversed(editor.items))
    backward = editor.totals().grand_total

    assert forward == backward
    assert forward == pytest.approx(expected)


def test_overpayment_gives_negative_balance(editor: InvoiceEditor) -> None:
    _priced(editor, 0, 1, 100)
    editor.add_payment()
    editor.update_payment(0, "amount", 100)

    assert editor.totals().remaining_balance == -14.5


def test_to_snapshot_mints_id_and_stamps_created_at(editor: InvoiceEditor) -> None:
    editor.set_name("March")
    editor.set_date("2026-03-12")
    _priced(editor, 0, 2, 100)
    editor.add_payment()
    editor.update_payment(0, "amount", 50)

    invoice = editor.to_snapshot()

    assert invoice.id == "id_3"
    assert invoice.name == "March"
    assert invoice.date == dt.date(2026, 3, 12)
    assert invoice.total_amount == 171.0
    assert invoice.remaining_balance == 121.0
    assert invoice.created_at == FIXED_NOW_MS
    assert invoice.items == editor.items
    assert editor.invoice_id is None


def test_to_snapshot_reuses_ids_and_created_at(editor: InvoiceEditor) -> None:
    editor.set_name("March")
    first = editor.to_snapshot()
    editor.mark_saved(first)

    clock_ticks = [FIXED_NOW_MS + 5000]
    editor._clock = lambda: clock_ticks[0]
    second = editor.to_snapshot()

    assert editor.state == EditorState.SAVED
    assert second.id == first.id
    assert second.created_at == FIXED_NOW_MS
    assert editor.to_snapshot(invoice_id="explicit").id == "explicit"


def test_to_snapshot_overrides_metadata(editor: InvoiceEditor) -> None:
    invoice = editor.to_snapshot(
        name="Override", date=dt.date(2025, 1, 2), status=InvoiceStatus.PAID
    )

    assert invoice.name == "Override"
    assert invoice.date == dt.date(2025, 1, 2)
    assert invoice.status == InvoiceStatus.PAID
    assert editor.name == ""


def test_state_machine_new_editing_saved_editing(editor: InvoiceEditor) -> None:
    assert editor.state == EditorState.NEW
    editor.set_name("A")
    assert editor.state == EditorState.EDITING
    editor.mark_saved(editor.to_snapshot())
    assert editor.state == EditorState.SAVED
    editor.add_item()
    assert editor.state == EditorState.EDITING


def test_from_invoice_resumes_snapshot(editor: InvoiceEditor) -> None:
    editor.set_name("Resume me")
    _priced(editor, 0, 2, 100)
    invoice = editor.to_snapshot()

    resumed = InvoiceEditor.from_invoice(invoice, id_generator=SequentialIdGenerator("new"))

    assert resumed.state == EditorState.SAVED
    assert resumed.invoice_id == invoice.id
    assert resumed.items == invoice.items
    assert resumed.to_snapshot() == invoice
    new_row = resumed.add_item()[-1]
    assert new_row.id == "new_1"


def test_toggle_status(editor: InvoiceEditor) -> None:
    assert editor.toggle_status() == InvoiceStatus.PAID
    assert editor.toggle_status() == InvoiceStatus.PENDING


def test_clamp_policy_applies_to_updates() -> None:
    editor = InvoiceEditor(
        id_generator=SequentialIdGenerator(),
        negative_inputs=NegativeInputPolicy.CLAMP,
    )
    _priced(editor, 0, -3, 100)

    assert editor.items[0].quantity == -3
    assert editor.items[0].line_total == 0.0


def test_editor_seeded_with_items_issues_no_blank_row_id() -> None:
    ids = SequentialIdGenerator("row")
    rows = (LineItem(id="kept"),)

    editor = InvoiceEditor(id_generator=ids, items=rows)

    assert editor.items == rows
    assert ids.new_id() == "row_1"
