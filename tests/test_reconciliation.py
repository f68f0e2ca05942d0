import pytest

from zenith_backend.errors import AuthenticationError, ConflictError, ValidationError
from zenith_backend.models import Payment
from zenith_backend.services import reconciliation
from zenith_backend.services.reconciliation import (
    reconcile,
    open_gateway_intent,
    record_gateway_payment,
    record_gateway_failure,
    record_manual_payment,
    bulk_reconcile,
)
from conftest import sign


@pytest.fixture
def paid_events(monkeypatch):
    calls = []
    monkeypatch.setattr(reconciliation, "dispatch_order_paid", lambda order_id: calls.append(order_id))
    return calls


def _refs(order_id="order_A", payment_id="pay_A", signature=None):
    return {
        "razorpay_order_id": order_id,
        "razorpay_payment_id": payment_id,
        "razorpay_signature": signature if signature is not None else sign(order_id, payment_id),
    }


def _intent(order, gw_order="order_A", kind="full"):
    return open_gateway_intent(order, gw_order, kind)


def test_projection_counts_advance_and_manual(make_order):
    order = make_order()
    b = reconcile(order)
    assert (b.total_paid, b.dues, b.is_fully_paid) == (30000, 70000, False)
    assert b.to_dict() == {"totalPaid": 300.0, "dues": 700.0, "isFullyPaid": False}


def test_projection_of_paid_order_has_no_dues(make_order):
    order = make_order()
    order.payment_status = "Paid"
    b = reconcile(order)
    assert (b.total_paid, b.dues, b.is_fully_paid) == (100000, 0, True)


def test_cash_covering_dues_settles_order(make_order, paid_events):
    order = make_order()

    partial = record_manual_payment("ORD-1", "200", "cash")
    assert partial["transitioned"] is False
    assert partial["order"].payment_status == "Pending"
    assert reconcile(partial["order"]).dues == 50000

    result = record_manual_payment("ORD-1", "500.00", "counterUpi", utr="UTR123")
    order = result["order"]
    assert result["transitioned"] is True
    assert order.payment_status == "Paid"
    assert order.cash_payment == 20000
    assert order.counter_upi_payment == 50000
    assert order.utr == "UTR123"
    assert order.payment_date is not None
    assert paid_events == [order.id]
    assert [p.channel for p in order.payments] == ["cash", "counterUpi"]


def test_overpayment_after_paid_does_not_redispatch(make_order, paid_events):
    make_order()
    record_manual_payment("ORD-1", "700", "cash")
    again = record_manual_payment("ORD-1", "50", "cash")
    assert again["transitioned"] is False
    assert again["order"].cash_payment == 75000
    assert len(paid_events) == 1


@pytest.mark.parametrize("amount,channel", [("0", "cash"), ("-5", "cash"), ("10", "cheque")])
def test_manual_payment_validation(make_order, amount, channel):
    make_order()
    with pytest.raises(ValidationError):
        record_manual_payment("ORD-1", amount, channel)


def test_gateway_full_payment_settles(make_order, paid_events):
    _intent(make_order())
    result = record_gateway_payment("ORD-1", _refs())
    order = result["order"]
    assert result["replay"] is False
    assert result["transitioned"] is True
    assert order.payment_status == "Paid"
    assert order.razorpay_payment_id == "pay_A"
    assert order.payments[0].amount == 70000
    assert paid_events == [order.id]


def test_gateway_forged_signature_rejected(make_order, paid_events):
    order = _intent(make_order())
    with pytest.raises(AuthenticationError):
        record_gateway_payment("ORD-1", _refs(signature="0" * 64))
    assert order.payment_status == "Pending"
    assert Payment.query.count() == 0
    assert paid_events == []


def test_gateway_missing_refs_rejected(make_order):
    _intent(make_order())
    refs = _refs()
    refs["razorpay_signature"] = ""
    with pytest.raises(ValidationError):
        record_gateway_payment("ORD-1", refs)


def test_gateway_replay_is_idempotent(make_order, paid_events):
    _intent(make_order())
    record_gateway_payment("ORD-1", _refs())
    replay = record_gateway_payment("ORD-1", _refs())
    assert replay["replay"] is True
    assert replay["transitioned"] is False
    assert Payment.query.count() == 1
    assert len(paid_events) == 1


def test_gateway_order_settles_only_its_own_order(make_order, paid_events):
    _intent(make_order("ORD-1"), kind="advance")
    other = make_order("ORD-2")
    with pytest.raises(AuthenticationError):
        record_gateway_payment("ORD-2", _refs())
    assert other.payment_status == "Pending"
    assert Payment.query.count() == 0
    assert paid_events == []


def test_gateway_payment_needs_open_intent(make_order, paid_events):
    order = make_order()
    with pytest.raises(AuthenticationError):
        record_gateway_payment("ORD-1", _refs())
    assert order.payment_status == "Pending"


def test_gateway_order_pays_once(make_order, paid_events):
    _intent(make_order(), kind="advance")
    record_gateway_payment("ORD-1", _refs())
    with pytest.raises(ConflictError):
        record_gateway_payment("ORD-1", _refs(payment_id="pay_B"))
    assert Payment.query.count() == 1


def test_intent_rejects_unknown_kind(make_order):
    with pytest.raises(ValidationError):
        open_gateway_intent(make_order(), "order_A", "tip")


def test_gateway_advance_keeps_order_pending(make_order, paid_events):
    order = _intent(make_order(), kind="advance")
    assert (order.gateway_kind, order.gateway_amount) == ("advance", 30000)
    result = record_gateway_payment("ORD-1", _refs())
    order = result["order"]
    assert result["transitioned"] is False
    assert order.payment_status == "Pending"
    assert order.razorpay_order_id == "order_A"
    assert order.payments[0].amount == 30000
    assert paid_events == []


def test_failed_then_paid(make_order, paid_events):
    _intent(make_order())
    order = record_gateway_failure("ORD-1", {"razorpay_order_id": "order_A"}, reason="card declined")
    assert order.payment_status == "Failed"

    result = record_manual_payment("ORD-1", "700", "cash")
    assert result["order"].payment_status == "Paid"
    assert result["transitioned"] is True


def test_failure_never_downgrades_paid(make_order, paid_events):
    _intent(make_order())
    record_gateway_payment("ORD-1", _refs())
    order = record_gateway_failure("ORD-1", {"razorpay_order_id": "order_A", "razorpay_payment_id": "pay_B"})
    assert order.payment_status == "Paid"
    assert order.razorpay_payment_id == "pay_A"


def test_bulk_reconcile_reports_per_order(make_order, paid_events):
    a = make_order("ORD-A")
    b = make_order("ORD-B")
    a_id, b_id = a.id, b.id

    result = bulk_reconcile([a_id, b_id, 9999, "abc"], "Paid", cash_amount="100")

    assert result["summary"] == {"total": 4, "successful": 2, "failed": 2}
    assert {r["id"] for r in result["results"]} == {a_id, b_id}
    assert all(r["previousStatus"] == "Pending" and r["paymentStatus"] == "Paid" for r in result["results"])
    assert all(r["cashPayment"] == 100.0 for r in result["results"])
    assert [e["id"] for e in result["errors"]] == [9999, "abc"]
    assert sorted(paid_events) == sorted([a_id, b_id])


def test_failure_for_other_gateway_order_rejected(make_order, paid_events):
    order = _intent(make_order())
    with pytest.raises(AuthenticationError):
        record_gateway_failure("ORD-1", {"razorpay_order_id": "order_B"})
    assert order.payment_status == "Pending"


@pytest.mark.parametrize("status", ["Pending", "Failed"])
def test_bulk_reconcile_never_reopens_paid(make_order, paid_events, status):
    order = make_order()
    order_id = order.id
    record_manual_payment("ORD-1", "700", "cash")
    result = bulk_reconcile([order_id], status)
    assert result["summary"] == {"total": 1, "successful": 0, "failed": 1}
    assert "already Paid" in result["errors"][0]["error"]
    assert reconcile(order).is_fully_paid is True
    assert order.payment_status == "Paid"
    assert len(paid_events) == 1


def test_bulk_cash_covering_total_settles(make_order, paid_events):
    order = make_order()
    result = bulk_reconcile([order.id], "Pending", cash_amount="700")
    assert result["results"][0]["paymentStatus"] == "Paid"
    assert paid_events == [order.id]


def test_bulk_partial_cash_keeps_requested_status(make_order, paid_events):
    order = make_order()
    result = bulk_reconcile([order.id], "Failed", cash_amount="100")
    assert result["results"][0]["paymentStatus"] == "Failed"
    assert result["results"][0]["cashPayment"] == 100.0
    assert paid_events == []


def test_bulk_reconcile_rejects_huge_cash(make_order):
    order = make_order()
    with pytest.raises(ValidationError):
        bulk_reconcile([order.id], "Paid", cash_amount="1e30")
    assert order.cash_payment == 0


def test_manual_payment_utr_is_stripped_everywhere(make_order, paid_events):
    make_order()
    order = record_manual_payment("ORD-1", "10", "counterUpi", utr="  UTR77 \n")["order"]
    assert order.utr == "UTR77"
    assert order.payments[0].utr == "UTR77"

    blank = record_manual_payment("ORD-1", "10", "counterUpi", utr="   ")["order"]
    assert blank.utr == "UTR77"
    assert blank.payments[1].utr is None


@pytest.mark.parametrize("ids,status", [([], "Paid"), ("1", "Paid"), ([1], "Refunded")])
def test_bulk_reconcile_rejects_bad_input(ctx, ids, status):
    with pytest.raises(ValidationError):
        bulk_reconcile(ids, status)


def test_legacy_done_status_counts_as_settled(make_order, paid_events):
    order = make_order()
    order.payment_status = "Done"
    assert reconcile(order).is_fully_paid is True
    assert reconcile(order).dues == 0
