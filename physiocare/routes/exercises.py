from flask import Blueprint, current_app, g, request

from ..auth import require_auth
from ..errors import NotFoundError
from ..schemas import assignment_to_dict, exercise_fields, exercise_to_dict
from ..services.store import get_store
from ..utils.responses import ok
from ..utils.timestamps import utcnow

exercises_bp = Blueprint("exercises", __name__, url_prefix="/api")


@exercises_bp.route("/exercises", methods=["GET"])
def list_exercises():
    return ok([exercise_to_dict(e) for e in get_store().list_exercises()])


@exercises_bp.route("/exercises", methods=["POST"])
def create_exercise():
    """
    Add an exercise to the catalog
    ---
    tags:
      - Exercises
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [title]
          properties:
            title:
              type: string
            description:
              type: string
            instructions:
              type: string
            video_url:
              type: string
    responses:
      201:
        description: Exercise created
      400:
        description: Missing title
    """
    fields = exercise_fields(request.get_json(silent=True))
    store = get_store()
    exercise = store.add_exercise(**fields)
    store.commit()
    return ok(exercise_to_dict(exercise), status=201)


@exercises_bp.route("/exercises/<int:exercise_id>", methods=["GET"])
def get_exercise(exercise_id):
    return ok(exercise_to_dict(get_store().get_exercise(exercise_id)))


@exercises_bp.route("/exercises/<int:exercise_id>", methods=["PATCH"])
def update_exercise(exercise_id):
    fields = exercise_fields(request.get_json(silent=True), partial=True)
    store = get_store()
    exercise = store.update_exercise(exercise_id, fields)
    store.commit()
    return ok(exercise_to_dict(exercise))


@exercises_bp.route("/exercises/<int:exercise_id>", methods=["DELETE"])
def delete_exercise(exercise_id):
    store = get_store()
    store.delete_exercise(exercise_id)
    store.commit()
    return ok(message="Exercise deleted.")


@exercises_bp.route("/assigned-exercises/<int:assignment_id>/complete", methods=["PATCH"])
@require_auth()
def complete_assigned_exercise(assignment_id):
    """
    Mark an assigned exercise as done today
    ---
    tags:
      - Patient Portal
    security:
      - Bearer: []
    parameters:
      - in: path
        name: assignment_id
        type: integer
        required: true
    responses:
      200:
        description: Today's date (UTC) added to completed_dates
      401:
        description: Missing or invalid token
      403:
        description: The exercise is assigned to another patient
    """
    store = get_store()
    principal = g.principal
    if principal.is_admin:
        assignment = store.get_assignment(assignment_id)
    else:
        patient = store.find_patient_by_auth_user(principal.user_id)
        if patient is None:
            raise NotFoundError("Patient profile not found.")
        assignment = store.for_patient(patient).assignment(assignment_id)

    assignment = store.mark_assignment_complete(assignment, utcnow().date())
    store.commit()
    current_app.logger.info(f"Assignment {assignment_id} completed by user {principal.user_id}")
    return ok(assignment_to_dict(assignment))


@exercises_bp.route("/assigned-exercises/<int:assignment_id>", methods=["DELETE"])
def unassign_exercise(assignment_id):
    store = get_store()
    store.delete_assignment(assignment_id)
    store.commit()
    return ok(message="Exercise unassigned.")
