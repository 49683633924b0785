from flask import Blueprint, current_app, request

from ..errors import ValidationError
from ..schemas import int_or_none, invoice_summary, invoice_to_dict
from ..services import invoices as invoice_service
from ..services.store import get_store
from ..utils.responses import ok

invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def _json_body():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("No valid JSON body found. Ensure Content-Type is application/json.")
    return body


@invoices_bp.route("", methods=["GET"])
def list_invoices():
    """
    List invoices, newest first
    ---
    tags:
      - Invoices
    parameters:
      - in: query
        name: patient_id
        type: integer
        required: false
    responses:
      200:
        description: Invoice summaries with display ids like "#INV-00042"
    """
    patient_id = int_or_none(request.args.get("patient_id"), "patient_id")
    invoices = get_store().list_invoices(patient_id=patient_id)
    return ok([invoice_summary(inv) for inv in invoices])


@invoices_bp.route("", methods=["POST"])
def create_invoice():
    """
    Create an invoice with line items
    ---
    tags:
      - Invoices
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [patientId]
          properties:
            patientId:
              type: integer
            appointmentId:
              type: integer
            status:
              type: string
              enum: [Unpaid, Paid]
            diagnostic:
              type: string
            items:
              type: array
              items:
                type: object
                properties:
                  service_name:
                    type: string
                  quantity:
                    type: number
                  unit_price:
                    type: number
            discount_type:
              type: string
              enum: [none, percent, flat]
            discount_value:
              type: number
            inventoryUpdates:
              type: array
              items:
                type: object
                properties:
                  id:
                    type: integer
                  quantitySold:
                    type: integer
    responses:
      201:
        description: Invoice created, returns its id
      400:
        description: Missing patient or invalid field
      404:
        description: Patient not found
    """
    invoice = invoice_service.create_invoice(
        get_store(),
        _json_body(),
        allow_total_override=current_app.config.get("INVOICE_ALLOW_TOTAL_OVERRIDE", False),
    )
    return ok({"invoiceId": invoice.id}, message="Invoice created successfully!", status=201)


@invoices_bp.route("/<int:invoice_id>", methods=["GET"])
def get_invoice(invoice_id):
    invoice = get_store().get_invoice(invoice_id, with_items=True)
    return ok(invoice_to_dict(invoice))


@invoices_bp.route("/<int:invoice_id>/pay", methods=["PATCH"])
def pay_invoice(invoice_id):
    store = get_store()
    invoice = invoice_service.mark_paid(store, invoice_id)
    current_app.logger.info(f"Invoice {invoice_id} marked as paid")
    return ok(
        invoice_to_dict(invoice, items=store.list_invoice_items(invoice_id)),
        message="Invoice marked as paid!",
    )


@invoices_bp.route("/<int:invoice_id>", methods=["PATCH"])
def update_invoice(invoice_id):
    """
    Replace an invoice's items and recompute its totals
    ---
    tags:
      - Invoices
    parameters:
      - in: path
        name: invoice_id
        type: integer
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            patientId:
              type: integer
            status:
              type: string
            diagnostic:
              type: string
            items:
              type: array
              items:
                type: object
            discount_type:
              type: string
            discount_value:
              type: number
    responses:
      200:
        description: Invoice updated
      404:
        description: Invoice not found
      500:
        description: A write step failed
    """
    store = get_store()
    invoice_service.update_invoice(
        store,
        invoice_id,
        _json_body(),
        atomic=current_app.config.get("INVOICE_ATOMIC_WRITES", True),
        allow_total_override=current_app.config.get("INVOICE_ALLOW_TOTAL_OVERRIDE", False),
    )
    invoice = store.get_invoice(invoice_id)
    return ok(
        invoice_to_dict(invoice, items=store.list_invoice_items(invoice_id)),
        message="Invoice updated successfully!",
    )


@invoices_bp.route("/<int:invoice_id>", methods=["DELETE"])
def delete_invoice(invoice_id):
    invoice_service.delete_invoice(
        get_store(), invoice_id, atomic=current_app.config.get("INVOICE_ATOMIC_WRITES", True)
    )
    current_app.logger.info(f"Deleted invoice {invoice_id}")
    return ok(message="Invoice deleted successfully!")
