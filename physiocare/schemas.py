"""Mapping between database rows and API payloads, one pair per entity.

``*_to_dict`` functions build response bodies; ``*_fields`` functions turn a
request body into column values, validating only what the API promises to
validate (required references, dates, enum values).
"""

from decimal import Decimal

from .errors import ValidationError
from .models import APPOINTMENT_STATUSES, INVOICE_STATUSES
from .services.invoice_calculator import to_decimal
from .utils.timestamps import parse_date, to_iso, to_storage

DEFAULT_AVATAR = "../images/avatar-generic.png"


def _money(value):
    if value is None:
        return None
    return float(value)


def _date(value):
    return value.isoformat() if value else None


def int_or_none(value, field):
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"'{field}' must be an integer.")


def _text(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _pick(body, converters):
    """Apply ``converters`` to the keys present in ``body``; absent keys are skipped."""
    fields = {}
    for key, convert in converters.items():
        if key in body:
            fields[key] = convert(body[key])
    return fields


def _require_body(body):
    if not isinstance(body, dict):
        raise ValidationError("No valid JSON body found. Ensure Content-Type is application/json.")
    return body


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------
def staff_to_dict(staff):
    return {
        "id": staff.id,
        "full_name": staff.full_name,
        "email": staff.email,
        "phone_number": staff.phone_number,
        "role": staff.role,
        "avatar_url": staff.avatar_url,
        "auth_user_id": staff.auth_user_id,
        "created_at": to_iso(staff.created_at),
    }


STAFF_CONVERTERS = {
    "full_name": _text,
    "phone_number": _text,
    "role": _text,
    "avatar_url": _text,
}


def staff_update_fields(body):
    fields = _pick(_require_body(body), STAFF_CONVERTERS)
    if "full_name" in fields and not fields["full_name"]:
        raise ValidationError("Staff name cannot be empty.")
    return fields


# ---------------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------------
def patient_list_item(patient, last_visit):
    return {
        "raw_id": patient.id,
        "display_id": f"#PT-{patient.id:03d}",
        "fullName": patient.full_name,
        "phoneNumber": patient.phone_number,
        "avatarUrl": patient.avatar_url or DEFAULT_AVATAR,
        "lastVisit": last_visit.date().isoformat() if last_visit else "N/A",
        "assignedTherapist": patient.staff.full_name if patient.staff else "Unassigned",
    }


def patient_to_dict(patient):
    return {
        "id": patient.id,
        "full_name": patient.full_name,
        "email": patient.email,
        "phone_number": patient.phone_number,
        "gender": patient.gender,
        "date_of_birth": _date(patient.date_of_birth),
        "address": patient.address,
        "medical_history": patient.medical_history,
        "avatar_url": patient.avatar_url,
        "staff_id": patient.staff_id,
        "auth_user_id": patient.auth_user_id,
        "created_at": to_iso(patient.created_at),
        "staff": (
            {"id": patient.staff.id, "full_name": patient.staff.full_name}
            if patient.staff
            else None
        ),
    }


PATIENT_CONVERTERS = {
    "full_name": _text,
    "email": _text,
    "phone_number": _text,
    "gender": _text,
    "date_of_birth": lambda v: parse_date(v, "date_of_birth"),
    "address": _text,
    "medical_history": _text,
    "avatar_url": _text,
    "staff_id": lambda v: int_or_none(v, "staff_id"),
    "auth_user_id": lambda v: int_or_none(v, "auth_user_id"),
}


def patient_fields(body, partial=False):
    fields = _pick(_require_body(body), PATIENT_CONVERTERS)
    if not partial and not fields.get("full_name"):
        raise ValidationError("Patient full name is required.")
    if partial and "full_name" in fields and not fields["full_name"]:
        raise ValidationError("Patient full name cannot be empty.")
    return fields


# ---------------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------------
def appointment_to_event(appointment):
    """Calendar event shape used by the scheduling screen."""
    staff = appointment.staff
    return {
        "id": appointment.id,
        "title": appointment.title,
        "start": to_iso(appointment.start_time),
        "end": to_iso(appointment.end_time),
        "extendedProps": {
            "status": appointment.status,
            "therapist": staff.full_name if staff else "Unassigned",
            "therapist_id": staff.id if staff else None,
            "patient_id": appointment.patient_id,
        },
    }


def appointment_to_dict(appointment):
    return {
        "id": appointment.id,
        "title": appointment.title,
        "start_time": to_iso(appointment.start_time),
        "end_time": to_iso(appointment.end_time),
        "status": appointment.status,
        "notes": appointment.notes,
        "patient_id": appointment.patient_id,
        "staff_id": appointment.staff_id,
        "created_at": to_iso(appointment.created_at),
    }


def schedule_entry(appointment):
    return {
        "start_time": to_iso(appointment.start_time),
        "title": appointment.title,
        "status": appointment.status,
        "staff": {"full_name": appointment.staff.full_name} if appointment.staff else None,
    }


def portal_appointment(appointment):
    return {
        "id": appointment.id,
        "start_time": to_iso(appointment.start_time),
        "status": appointment.status,
        "staff": {"full_name": appointment.staff.full_name} if appointment.staff else None,
    }


def _status(value):
    if value in (None, ""):
        return "Scheduled"
    if value not in APPOINTMENT_STATUSES:
        raise ValidationError(
            f"Invalid appointment status '{value}'. Allowed: {', '.join(APPOINTMENT_STATUSES)}."
        )
    return value


def appointment_fields(body, clinic_offset, partial=False):
    """Map the calendar payload (start/end/therapist_id) onto appointment columns."""
    body = _require_body(body)
    if not body.get("patient_id"):
        raise ValidationError("A patient must be selected for the appointment.")

    fields = {"patient_id": int_or_none(body["patient_id"], "patient_id")}
    if "title" in body:
        fields["title"] = _text(body["title"])
    if "start" in body:
        fields["start_time"] = to_storage(body["start"], clinic_offset)
    if "end" in body:
        fields["end_time"] = to_storage(body["end"], clinic_offset)
    if "therapist_id" in body:
        fields["staff_id"] = int_or_none(body["therapist_id"], "therapist_id")
    if "notes" in body:
        fields["notes"] = _text(body["notes"])
    if "status" in body or not partial:
        fields["status"] = _status(body.get("status"))

    start, end = fields.get("start_time"), fields.get("end_time")
    if start and end and end < start:
        raise ValidationError("Appointment end time must be after its start time.")
    return fields


# ---------------------------------------------------------------------------
# Invoices
# ---------------------------------------------------------------------------
def invoice_summary(invoice):
    return {
        "id": f"#INV-{invoice.id:05d}",
        "raw_id": invoice.id,
        "patientName": invoice.patient.full_name if invoice.patient else "Unknown Patient",
        "date": invoice.created_at.date().isoformat() if invoice.created_at else None,
        "amount": _money(invoice.total_amount),
        "status": invoice.status,
    }


def invoice_item_to_dict(item):
    return {
        "id": item.id,
        "invoice_id": item.invoice_id,
        "service_name": item.service_name,
        "quantity": _money(item.quantity),
        "unit_price": _money(item.unit_price),
    }


def invoice_to_dict(invoice, items=None):
    patient = invoice.patient
    return {
        "id": invoice.id,
        "patient_id": invoice.patient_id,
        "appointment_id": invoice.appointment_id,
        "status": invoice.status,
        "diagnostic": invoice.diagnostic,
        "subtotal": _money(invoice.subtotal),
        "discount_type": invoice.discount_type,
        "discount_value": _money(invoice.discount_value),
        "discount_amount": _money(invoice.discount_amount),
        "total_amount": _money(invoice.total_amount),
        "created_at": to_iso(invoice.created_at),
        "patients": (
            {"full_name": patient.full_name, "date_of_birth": _date(patient.date_of_birth)}
            if patient
            else None
        ),
        "items": [invoice_item_to_dict(item) for item in (items if items is not None else invoice.items)],
    }


def invoice_status(value):
    if value in (None, ""):
        return None
    if value not in INVOICE_STATUSES:
        raise ValidationError(f"Invalid invoice status '{value}'. Allowed: Unpaid, Paid.")
    return value


def inventory_updates(body):
    """``[{id, quantitySold}]`` entries with positive quantities."""
    updates = []
    for entry in body.get("inventoryUpdates") or []:
        if not isinstance(entry, dict):
            continue
        product_id = int_or_none(entry.get("id"), "inventoryUpdates.id")
        quantity = int(to_decimal(entry.get("quantitySold")))
        if product_id is not None and quantity > 0:
            updates.append((product_id, quantity))
    return updates


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
def product_to_dict(product):
    return {
        "id": product.id,
        "name": product.name,
        "sku": product.sku,
        "category": product.category,
        "unit_price": _money(product.unit_price),
        "stock_level": product.stock_level,
    }


def _stock(value):
    stock = int_or_none(value, "stock_level")
    return 0 if stock is None else stock


PRODUCT_CONVERTERS = {
    "name": _text,
    "sku": _text,
    "category": _text,
    "unit_price": lambda v: to_decimal(v).quantize(Decimal("0.01")),
    "stock_level": _stock,
}


def product_fields(body, partial=False):
    fields = _pick(_require_body(body), PRODUCT_CONVERTERS)
    if not partial and not fields.get("name"):
        raise ValidationError("Product name is required.")
    if partial and "name" in fields and not fields["name"]:
        raise ValidationError("Product name cannot be empty.")
    return fields


# ---------------------------------------------------------------------------
# Exercises
# ---------------------------------------------------------------------------
def exercise_to_dict(exercise):
    return {
        "id": exercise.id,
        "title": exercise.title,
        "description": exercise.description,
        "instructions": exercise.instructions,
        "video_url": exercise.video_url,
    }


EXERCISE_CONVERTERS = {
    "title": _text,
    "description": _text,
    "instructions": _text,
    "video_url": _text,
}


def exercise_fields(body, partial=False):
    fields = _pick(_require_body(body), EXERCISE_CONVERTERS)
    if not partial and not fields.get("title"):
        raise ValidationError("Exercise title is required.")
    if partial and "title" in fields and not fields["title"]:
        raise ValidationError("Exercise title cannot be empty.")
    return fields


def assignment_to_dict(assignment):
    return {
        "id": assignment.id,
        "patient_id": assignment.patient_id,
        "exercise_id": assignment.exercise_id,
        "notes": assignment.notes,
        "frequency_per_week": assignment.frequency_per_week,
        "completed_dates": list(assignment.completed_dates or []),
        "assigned_at": to_iso(assignment.assigned_at),
        "exercises": exercise_to_dict(assignment.exercise) if assignment.exercise else None,
    }


def assignment_fields(body):
    body = _require_body(body)
    exercise_id = int_or_none(body.get("exercise_id"), "exercise_id")
    if exercise_id is None:
        raise ValidationError("An exercise must be selected.")
    return {
        "exercise_id": exercise_id,
        "notes": _text(body.get("notes")),
        "frequency_per_week": int_or_none(body.get("frequency_per_week"), "frequency_per_week"),
        "completed_dates": [],
    }


# ---------------------------------------------------------------------------
# Clinical notes
# ---------------------------------------------------------------------------
def note_to_dict(note):
    return {
        "id": note.id,
        "patient_id": note.patient_id,
        "staff_id": note.staff_id,
        "note_date": _date(note.note_date),
        "title": note.title,
        "content": note.content,
        "created_at": to_iso(note.created_at),
        "staff": {"full_name": note.staff.full_name} if note.staff else None,
    }


NOTE_CONVERTERS = {
    "note_date": lambda v: parse_date(v, "note_date"),
    "title": _text,
    "content": _text,
    "staff_id": lambda v: int_or_none(v, "staff_id"),
}


def note_fields(body, partial=False):
    fields = _pick(_require_body(body), NOTE_CONVERTERS)
    if not partial and not fields.get("content"):
        raise ValidationError("Note content is required.")
    if partial and "content" in fields and not fields["content"]:
        raise ValidationError("Note content cannot be empty.")
    return fields


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
def settings_to_dict(settings):
    return {
        "id": settings.id,
        "clinic_name": settings.clinic_name,
        "phone_number": settings.phone_number,
        "email": settings.email,
        "address": settings.address,
        "currency": settings.currency,
    }


def clinic_info(settings):
    if settings is None:
        return None
    return {
        "clinic_name": settings.clinic_name,
        "phone_number": settings.phone_number,
        "address": settings.address,
    }


SETTINGS_CONVERTERS = {
    "clinic_name": _text,
    "phone_number": _text,
    "email": _text,
    "address": _text,
    "currency": _text,
}


def settings_fields(body):
    fields = _pick(_require_body(body), SETTINGS_CONVERTERS)
    if not fields:
        raise ValidationError("No settings fields to update.")
    return fields
