# physiocare/api/dashboard/reports.py
from io import BytesIO

import pandas as pd
from flask import Blueprint, request, send_file

from ...schemas import int_or_none
from ...services.store import get_store
from ...utils.timestamps import utcnow

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def patients_frame(store):
    rows = store.list_patients_with_last_visit()
    data = [
        (
            patient.id,
            patient.full_name,
            patient.gender,
            patient.date_of_birth,
            patient.phone_number,
            patient.staff.full_name if patient.staff else "Unassigned",
            last_visit,
        )
        for patient, last_visit in rows
    ]
    return pd.DataFrame(
        data,
        columns=["Patient ID", "Name", "Gender", "Date of Birth", "Phone", "Therapist", "Last Visit"],
    )


def appointments_frame(store, patient_id=None):
    data = [
        (
            a.id,
            a.patient_id,
            a.title,
            a.start_time,
            a.end_time,
            a.status,
            a.staff.full_name if a.staff else "Unassigned",
        )
        for a in store.list_appointments(patient_id=patient_id)
    ]
    return pd.DataFrame(
        data,
        columns=["Appointment ID", "Patient ID", "Title", "Start (UTC)", "End (UTC)", "Status", "Therapist"],
    )


def revenue_frame(store, patient_id=None):
    data = [
        (
            inv.id,
            inv.patient.full_name if inv.patient else "Unknown Patient",
            inv.status,
            float(inv.subtotal or 0),
            float(inv.discount_amount or 0),
            float(inv.total_amount or 0),
            inv.created_at,
        )
        for inv in store.list_invoices(patient_id=patient_id)
    ]
    return pd.DataFrame(
        data,
        columns=["Invoice ID", "Patient", "Status", "Subtotal", "Discount", "Total", "Created At"],
    )


@reports_bp.route("/generate", methods=["POST"])
def generate_report():
    """
    Export clinic data to an Excel workbook
    ---
    tags:
      - Reports
    parameters:
      - in: body
        name: body
        required: false
        schema:
          type: object
          properties:
            patients:
              type: boolean
            appointments:
              type: boolean
            revenue:
              type: boolean
            patient_id:
              type: integer
              description: Limit appointments and revenue to one patient
    produces:
      - application/vnd.openxmlformats-officedocument.spreadsheetml.sheet
    responses:
      200:
        description: Workbook with one sheet per selected section
    """
    selected = request.get_json(silent=True) or {}
    if not any(selected.get(key) for key in ("patients", "appointments", "revenue")):
        selected = {**selected, "patients": True, "appointments": True, "revenue": True}
    patient_id = int_or_none(selected.get("patient_id"), "patient_id")

    store = get_store()
    output = BytesIO()
    with pd.ExcelWriter(output, engine="xlsxwriter") as writer:
        if selected.get("patients"):
            patients_frame(store).to_excel(writer, sheet_name="Patients", index=False)
        if selected.get("appointments"):
            appointments_frame(store, patient_id).to_excel(writer, sheet_name="Appointments", index=False)
        if selected.get("revenue"):
            revenue_frame(store, patient_id).to_excel(writer, sheet_name="Revenue", index=False)

    output.seek(0)
    filename = f"PhysioCare_Report_{utcnow().strftime('%Y%m%d_%H%M%S')}.xlsx"
    return send_file(output, as_attachment=True, download_name=filename, mimetype=XLSX_MIMETYPE)
