# physiocare/api/portal/dashboard.py
from flask import Blueprint, current_app, g

from ...auth import require_auth
from ...errors import NotFoundError
from ...schemas import assignment_to_dict, clinic_info, portal_appointment
from ...services.store import get_store
from ...utils.responses import ok
from ...utils.timestamps import utcnow

portal_bp = Blueprint("portal", __name__, url_prefix="/api/portal")


def build_portal_dashboard(store, patient, now=None):
    """Split the patient's appointments around ``now`` and attach exercises and clinic info."""
    now = now or utcnow()
    scope = store.for_patient(patient)

    appointments = scope.appointments()
    upcoming = sorted(
        (a for a in appointments if a.start_time and a.start_time >= now),
        key=lambda a: a.start_time,
    )
    history = [a for a in appointments if a.start_time and a.start_time < now]

    return {
        "profile": {"id": patient.id, "full_name": patient.full_name},
        "nextAppointment": portal_appointment(upcoming[0]) if upcoming else None,
        "appointmentHistory": [portal_appointment(a) for a in history],
        "exercises": [assignment_to_dict(a) for a in scope.assignments()],
        "clinic": clinic_info(store.get_settings()),
    }


@portal_bp.route("/dashboard", methods=["GET"])
@require_auth()
def portal_dashboard():
    """
    Patient portal dashboard
    ---
    tags:
      - Patient Portal
    security:
      - Bearer: []
    responses:
      200:
        description: Profile, next appointment, history, assigned exercises and clinic info
      401:
        description: Missing or invalid token
      404:
        description: Token does not belong to a patient
    """
    store = get_store()
    patient = store.find_patient_by_auth_user(g.principal.user_id)
    if patient is None:
        raise NotFoundError("Patient profile not found.")

    current_app.logger.info(f"Fetching portal dashboard for patient {patient.id}")
    return ok(build_portal_dashboard(store, patient))
