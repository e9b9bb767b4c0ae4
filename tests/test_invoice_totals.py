from datetime import UTC, datetime
from decimal import Decimal

import pytest

from tutorbill.app.services.invoice_totals import (
    compute_invoice_totals,
    compute_transfer_fee,
    resolve_hourly_rate,
    resolve_transfer_fee_spec,
)


def _line(day, duration=60, amount=None, rate=None, month=1):
    item = {
        "class_id": f"class-{month}-{day}",
        "date": datetime(2030, month, day, 10, 0, tzinfo=UTC),
        "duration": duration,
    }
    if amount is not None:
        item["amount"] = amount
    if rate is not None:
        item["rate"] = rate
    return item


def _invoice(items=None, **overrides):
    invoice = {"items": items if items is not None else [_line(1, amount=50), _line(2, amount=50)]}
    invoice.update(overrides)
    return invoice


def test_totals_from_class_lines():
    totals = compute_invoice_totals(_invoice())
    assert totals.subtotal == Decimal("100.00")
    assert totals.total == Decimal("100.00")
    assert totals.hours == Decimal("2.000")
    assert totals.paid == Decimal("0.00")
    assert totals.remaining == Decimal("100.00")
    assert totals.transfer_fee == Decimal("0.00")
    assert totals.recomputed


def test_fixed_transfer_fee_added_once():
    invoice = _invoice(
        [_line(1, rate=50)],
        guardian_financial={"transfer_fee": {"mode": "fixed", "value": 5}},
    )
    totals = compute_invoice_totals(invoice)
    assert totals.subtotal == Decimal("50.00")
    assert totals.transfer_fee == Decimal("5.00")
    assert totals.total == Decimal("55.00")


def test_percent_transfer_fee_uses_subtotal():
    invoice = _invoice(
        [_line(1, duration=120, rate=50)],
        guardian_financial={"transfer_fee": {"mode": "percent", "value": 10}},
    )
    totals = compute_invoice_totals(invoice)
    assert totals.subtotal == Decimal("100.00")
    assert totals.transfer_fee == Decimal("10.00")
    assert totals.total == Decimal("110.00")


def test_coverage_waiver_beats_unwaived_fee():
    invoice = _invoice(
        [_line(1, rate=50)],
        guardian_financial={"transfer_fee": {"mode": "fixed", "value": 7, "waived": False}},
        coverage={"waive_transfer_fee": True},
    )
    totals = compute_invoice_totals(invoice)
    assert totals.transfer_fee == Decimal("0.00")
    assert totals.transfer_fee_waived is True
    assert totals.total == Decimal("50.00")


def test_waived_fee_spec_contributes_nothing():
    invoice = _invoice(
        [_line(1, rate=50)],
        guardian_financial={"transfer_fee": {"mode": "fixed", "amount": 7, "waived": True}},
    )
    assert compute_invoice_totals(invoice).transfer_fee == Decimal("0.00")


def test_missing_fee_settings_mean_no_fee():
    invoice = _invoice([_line(1, rate=50)], guardian_financial={})
    totals = compute_invoice_totals(invoice)
    assert totals.transfer_fee == Decimal("0.00")
    assert totals.total == Decimal("50.00")


def test_unknown_fee_mode_is_fixed():
    assert compute_transfer_fee({"mode": "weird", "value": 4}, Decimal("100")) == Decimal("4.00")
    assert compute_transfer_fee({"value": 4}, None) == Decimal("4.00")
    assert compute_transfer_fee({"mode": "fixed", "amount": 3, "value": 9}, None) == Decimal("3.00")
    assert compute_transfer_fee({"mode": "percent", "value": 10}, None) == Decimal("0.00")
    assert compute_transfer_fee(None, Decimal("10")) == Decimal("0.00")


def test_invoice_fee_settings_win_over_guardian_profile():
    guardian = {"guardian_info": {"transfer_fee": {"mode": "fixed", "amount": 3}}}
    assert resolve_transfer_fee_spec({"guardian": guardian}) == {"mode": "fixed", "amount": 3}

    invoice_fee = {"mode": "fixed", "amount": 8}
    invoice = {"guardian": guardian, "guardian_financial": {"transfer_fee": invoice_fee}}
    assert resolve_transfer_fee_spec(invoice) == invoice_fee


def test_stored_total_fallback_prefers_most_specific_field():
    totals = compute_invoice_totals({"adjusted_total": 50, "total": 30, "amount": 20})
    assert totals.total == Decimal("50.00")
    assert totals.subtotal is None
    assert not totals.recomputed

    assert compute_invoice_totals({"total": 30, "amount": 20}).total == Decimal("30.00")
    assert compute_invoice_totals({"adjusted_total": -5, "amount": 20}).total == Decimal("20.00")
    assert compute_invoice_totals({}).total == Decimal("0.00")


def test_stored_subtotal_used_without_class_lines():
    totals = compute_invoice_totals({"subtotal": 80, "discount": 10, "total": 999})
    assert totals.subtotal == Decimal("80.00")
    assert totals.total == Decimal("70.00")


def test_negative_adjustments_never_produce_negative_money():
    invoice = _invoice(
        [_line(1, amount=10)],
        discount=-20,
        late_fee=-5,
        paid_amount=-10,
        remaining_balance=-3,
    )
    totals = compute_invoice_totals(invoice)
    assert totals.total == Decimal("10.00")
    assert totals.paid == Decimal("0.00")
    assert totals.remaining == Decimal("0.00")


def test_discount_larger_than_subtotal_clamps_total():
    totals = compute_invoice_totals(_invoice([_line(1, amount=10)], discount=500))
    assert totals.total == Decimal("0.00")
    assert totals.remaining == Decimal("0.00")


def test_late_fee_and_tip_are_added():
    totals = compute_invoice_totals(_invoice(discount=5, late_fee=2.5, tip=3))
    assert totals.total == Decimal("100.50")


def test_remaining_derived_from_paid():
    totals = compute_invoice_totals(_invoice(paid_amount=40))
    assert totals.paid == Decimal("40.00")
    assert totals.remaining == Decimal("60.00")


def test_stored_remaining_balance_wins_and_rounds_half_up():
    totals = compute_invoice_totals(_invoice(paid_amount="20.005", remaining_balance="12.345"))
    assert totals.paid == Decimal("20.01")
    assert totals.remaining == Decimal("12.35")


def test_line_amounts_round_half_away_from_zero():
    totals = compute_invoice_totals(_invoice([_line(1, amount="10.125")]))
    assert totals.subtotal == Decimal("10.13")


def test_line_without_amount_uses_invoice_rate():
    invoice = _invoice([_line(1, duration=90)], guardian_financial={"hourly_rate": 30})
    assert compute_invoice_totals(invoice).subtotal == Decimal("45.00")


def test_zero_line_amount_is_kept():
    invoice = _invoice([_line(1, amount=0)], guardian_financial={"hourly_rate": 30})
    assert compute_invoice_totals(invoice).subtotal == Decimal("0.00")


def test_hourly_rate_fallback_chain():
    assert resolve_hourly_rate(
        {"guardian_financial": {"hourly_rate": 40}, "guardian": {"guardian_info": {"hourly_rate": 30}}}
    ) == Decimal("40")
    assert resolve_hourly_rate({"guardian": {"guardian_info": {"hourly_rate": 30}}}) == Decimal("30")
    assert resolve_hourly_rate({"items": [_line(1), _line(2, rate=25)]}) == Decimal("25")
    assert resolve_hourly_rate({"items": [_line(1, duration=90, amount=60)]}) == Decimal("40.00")
    assert resolve_hourly_rate({}, default=12) == Decimal("12")


def test_hourly_rate_ignores_refill_lines():
    items = [{"description": "Hours refill", "amount": 500}, _line(1, amount=20)]
    assert resolve_hourly_rate({"items": items}) == Decimal("20.00")


def test_hours_fall_back_to_stored_hours_covered():
    assert compute_invoice_totals({"hours_covered": 3.5}).hours == Decimal("3.500")
    assert compute_invoice_totals({"hours_covered": 3.5, "items": []}).hours == Decimal("3.500")
    assert compute_invoice_totals({"hours_covered": -2}).hours == Decimal("0.000")
    assert compute_invoice_totals({}).hours == Decimal("0.000")


def test_resolved_lines_win_over_stored_hours_covered():
    invoice = _invoice([_line(1, duration=90, amount=30)], hours_covered=10)
    assert compute_invoice_totals(invoice).hours == Decimal("1.500")


def test_hours_summed_from_dynamic_lines_without_declared_totals():
    invoice = {
        "coverage": {"end_date": "2030-01-15"},
        "dynamic_classes": {"items": [_line(1, duration=90, amount=30, month=2)]},
    }
    totals = compute_invoice_totals(invoice)
    assert totals.entries.source == "dynamic_declared"
    assert totals.hours == Decimal("1.500")
    assert totals.subtotal == Decimal("30.00")


def test_dynamic_lines_drive_totals_when_present():
    invoice = _invoice(
        [_line(1, amount=50)],
        dynamic_classes={"items": [_line(1, amount=50), _line(2, amount=50), _line(3, amount=50)]},
    )
    totals = compute_invoice_totals(invoice)
    assert totals.subtotal == Decimal("150.00")
    assert totals.hours == Decimal("3.000")


def test_coverage_cap_limits_billed_lines():
    totals = compute_invoice_totals(_invoice(coverage={"max_hours": 1}))
    assert totals.subtotal == Decimal("50.00")
    assert totals.hours == Decimal("1.000")


@pytest.mark.parametrize(
    "invoice",
    [
        None,
        "not an invoice",
        {"items": "junk", "discount": "abc", "paid_amount": float("nan")},
        {"items": [None, {"duration": "x", "amount": "y"}], "coverage": "bad"},
    ],
)
def test_malformed_invoices_do_not_raise(invoice):
    totals = compute_invoice_totals(invoice)
    assert totals.total >= 0
    assert totals.paid == Decimal("0.00")
    assert totals.remaining >= 0
