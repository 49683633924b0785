"""Invoice workflows built on the store and the invoice calculator.

Edits and deletes touch two tables. With ``atomic=True`` every step runs in a
single transaction. With ``atomic=False`` each step is committed as it
completes, so a failure part-way leaves the earlier steps in place; the caller
only sees an ``UpstreamError``.
"""

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ClinicError, UpstreamError, ValidationError
from ..schemas import int_or_none, invoice_status, inventory_updates
from .invoice_calculator import calculate_invoice, to_decimal


def _totals_from_body(body, allow_total_override):
    totals = calculate_invoice(
        body.get("items") or [],
        discount_type=body.get("discount_type"),
        discount_value=body.get("discount_value"),
        subtotal=body.get("subtotal"),
        total_amount=body.get("total_amount"),
        allow_total_override=allow_total_override,
    )
    client_total = to_decimal(body.get("total_amount"))
    if not allow_total_override and client_total > 0 and client_total != totals.total_amount:
        current_app.logger.warning(
            f"Ignoring client-supplied total_amount={client_total}; "
            f"using computed total {totals.total_amount}"
        )
    return totals


def _invoice_columns(totals):
    return {
        "subtotal": totals.subtotal,
        "discount_type": totals.discount_type,
        "discount_value": totals.discount_value,
        "discount_amount": totals.discount_amount,
        "total_amount": totals.total_amount,
    }


def _step(store, atomic, failure_message, action):
    """Run one write step; in step-wise mode commit it straight away."""
    try:
        result = action()
        if not atomic:
            store.commit()
        return result
    except ClinicError as e:
        store.rollback()
        if e.status_code < 500:
            raise
        current_app.logger.error(f"{failure_message} ({e.message})")
        raise UpstreamError(failure_message)
    except SQLAlchemyError as e:
        store.rollback()
        current_app.logger.error(f"{failure_message} ({e})")
        raise UpstreamError(failure_message)


def create_invoice(store, body, allow_total_override=False):
    patient_id = int_or_none(body.get("patientId"), "patientId")
    if not patient_id:
        raise ValidationError("A patient must be selected for the invoice.")

    totals = _totals_from_body(body, allow_total_override)
    store.get_patient(patient_id)

    invoice = store.add_invoice(
        patient_id=patient_id,
        appointment_id=int_or_none(body.get("appointmentId"), "appointmentId"),
        status=invoice_status(body.get("status")) or "Unpaid",
        diagnostic=body.get("diagnostic") or "",
        **_invoice_columns(totals),
    )
    if totals.items:
        store.insert_invoice_items(invoice.id, totals.items)
    store.commit()
    current_app.logger.info(f"Created invoice record with ID: {invoice.id}")

    apply_inventory_updates(store, inventory_updates(body))
    return invoice


def apply_inventory_updates(store, updates):
    """Best-effort stock decrements; a failed line is logged and skipped."""
    failures = 0
    for product_id, quantity in updates:
        try:
            store.decrease_stock(product_id, quantity)
            store.commit()
        except ClinicError as e:
            store.rollback()
            failures += 1
            current_app.logger.error(
                f"Stock update failed for product {product_id}: {e.message}"
            )
    if failures:
        current_app.logger.error(
            f"{failures} stock update(s) failed. This should be investigated."
        )
    return failures


def update_invoice(store, invoice_id, body, atomic=True, allow_total_override=False):
    """Replace an invoice's items and recompute its totals."""
    store.get_invoice(invoice_id)
    totals = _totals_from_body(body, allow_total_override)

    fields = _invoice_columns(totals)
    if body.get("patientId"):
        fields["patient_id"] = int_or_none(body["patientId"], "patientId")
    if "status" in body:
        fields["status"] = invoice_status(body.get("status")) or "Unpaid"
    if "diagnostic" in body:
        fields["diagnostic"] = body.get("diagnostic")

    _step(
        store, atomic, "Could not update invoice items.",
        lambda: store.delete_invoice_items(invoice_id),
    )
    _step(
        store, atomic, "Could not update invoice.",
        lambda: store.update_invoice(invoice_id, fields),
    )
    if totals.items:
        _step(
            store, atomic, "Could not save new invoice items.",
            lambda: store.insert_invoice_items(invoice_id, totals.items),
        )
    if atomic:
        store.commit()
    return totals


def delete_invoice(store, invoice_id, atomic=True):
    store.get_invoice(invoice_id)
    _step(
        store, atomic, "Could not delete invoice items.",
        lambda: store.delete_invoice_items(invoice_id),
    )
    _step(
        store, atomic, "Could not delete invoice.",
        lambda: store.delete_invoice(invoice_id),
    )
    if atomic:
        store.commit()


def mark_paid(store, invoice_id):
    invoice = store.update_invoice(invoice_id, {"status": "Paid"})
    store.commit()
    return invoice
