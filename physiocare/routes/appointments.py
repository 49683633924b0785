from flask import Blueprint, current_app, request

from ..errors import ValidationError
from ..schemas import appointment_fields, appointment_to_dict, appointment_to_event, int_or_none
from ..services.store import get_store
from ..utils.responses import ok

appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")


def _clinic_offset():
    return current_app.config.get("CLINIC_UTC_OFFSET", "+00:00")


@appointments_bp.route("", methods=["GET"])
def list_appointments():
    """
    Calendar events, newest first
    ---
    tags:
      - Appointments
    parameters:
      - in: query
        name: patient_id
        type: integer
        required: false
    responses:
      200:
        description: Events with start/end in UTC and therapist details in extendedProps
    """
    patient_id = int_or_none(request.args.get("patient_id"), "patient_id")
    appointments = get_store().list_appointments(patient_id=patient_id)
    return ok([appointment_to_event(a) for a in appointments])


@appointments_bp.route("/<int:appointment_id>", methods=["GET"])
def get_appointment(appointment_id):
    return ok(appointment_to_dict(get_store().get_appointment(appointment_id)))


@appointments_bp.route("", methods=["POST"])
def create_appointment():
    """
    Book an appointment
    ---
    tags:
      - Appointments
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [patient_id]
          properties:
            title:
              type: string
            start:
              type: string
              example: "2025-06-02T09:00:00"
              description: Naive values are read in the clinic's UTC offset
            end:
              type: string
            therapist_id:
              type: integer
            patient_id:
              type: integer
            status:
              type: string
              enum: [Scheduled, Confirmed, Completed, Cancelled, No Show]
    responses:
      201:
        description: Appointment created
      400:
        description: Missing patient, bad timestamp or end before start
    """
    fields = appointment_fields(request.get_json(silent=True), _clinic_offset())
    store = get_store()
    store.get_patient(fields["patient_id"])
    if fields.get("staff_id"):
        store.get_staff(fields["staff_id"])

    appointment = store.add_appointment(**fields)
    store.commit()
    current_app.logger.info(f"Created appointment {appointment.id} for patient {appointment.patient_id}")
    return ok(appointment_to_dict(appointment), message="Appointment created!", status=201)


@appointments_bp.route("/<int:appointment_id>", methods=["PATCH"])
def update_appointment(appointment_id):
    fields = appointment_fields(request.get_json(silent=True), _clinic_offset(), partial=True)
    store = get_store()
    existing = store.get_appointment(appointment_id)
    store.get_patient(fields["patient_id"])

    start = fields.get("start_time", existing.start_time)
    end = fields.get("end_time", existing.end_time)
    if start and end and end < start:
        raise ValidationError("Appointment end time must be after its start time.")
    if fields.get("staff_id"):
        store.get_staff(fields["staff_id"])

    appointment = store.update_appointment(appointment_id, fields)
    store.commit()
    return ok(appointment_to_dict(appointment), message="Appointment updated!")


@appointments_bp.route("/<int:appointment_id>", methods=["DELETE"])
def delete_appointment(appointment_id):
    store = get_store()
    store.delete_appointment(appointment_id)
    store.commit()
    current_app.logger.info(f"Deleted appointment {appointment_id}")
    return ok(message="Appointment deleted successfully.")
