import uuid

from flask import Blueprint, current_app, request

from ..errors import UpstreamError, ValidationError
from ..schemas import (
    assignment_fields,
    assignment_to_dict,
    note_fields,
    note_to_dict,
    patient_fields,
    patient_list_item,
    patient_to_dict,
)
from ..services.identity import get_identity
from ..services.store import get_store
from ..utils.responses import ok
from ..utils.s3_utils import delete_file_from_s3, upload_file_to_s3
from ..utils.timestamps import utcnow

patients_bp = Blueprint("patients", __name__, url_prefix="/api/patients")

ALLOWED_AVATAR_EXTENSIONS = {"png", "jpg", "jpeg", "gif", "webp"}


@patients_bp.route("", methods=["GET"])
def list_patients():
    """
    List patients with their last visit and assigned therapist
    ---
    tags:
      - Patients
    responses:
      200:
        description: Patients ordered by id
        schema:
          type: object
          properties:
            success:
              type: boolean
            data:
              type: array
              items:
                type: object
                properties:
                  raw_id:
                    type: integer
                  display_id:
                    type: string
                    example: "#PT-007"
                  fullName:
                    type: string
                  lastVisit:
                    type: string
                    example: "2025-03-14"
                  assignedTherapist:
                    type: string
    """
    rows = get_store().list_patients_with_last_visit()
    return ok([patient_list_item(patient, last_visit) for patient, last_visit in rows])


@patients_bp.route("/<int:patient_id>", methods=["GET"])
def get_patient(patient_id):
    return ok(patient_to_dict(get_store().get_patient(patient_id)))


@patients_bp.route("", methods=["POST"])
def create_patient():
    """
    Create a patient
    ---
    tags:
      - Patients
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [full_name]
          properties:
            full_name:
              type: string
            email:
              type: string
            date_of_birth:
              type: string
              example: "1990-05-17"
            staff_id:
              type: integer
            password:
              type: string
              description: Optional; creates a patient portal account for ``email``
    responses:
      201:
        description: Patient created
      400:
        description: Missing name or invalid field
    """
    data = request.get_json(silent=True)
    fields = patient_fields(data)
    store = get_store()

    password = data.get("password")
    if password:
        if not fields.get("email"):
            raise ValidationError("An email is required to create a portal account.")
        user = get_identity().create_user(store, fields["email"], password, "PATIENT")
        fields["auth_user_id"] = user.id

    patient = store.add_patient(**fields)
    store.commit()
    current_app.logger.info(f"Created patient {patient.id}")
    return ok(patient_to_dict(patient), message="Patient created successfully!", status=201)


@patients_bp.route("/<int:patient_id>", methods=["PATCH"])
def update_patient(patient_id):
    fields = patient_fields(request.get_json(silent=True), partial=True)
    store = get_store()
    patient = store.update_patient(patient_id, fields)
    store.commit()
    return ok(patient_to_dict(patient), message="Patient updated successfully!")


@patients_bp.route("/<int:patient_id>", methods=["DELETE"])
def delete_patient(patient_id):
    """
    Delete a patient
    ---
    tags:
      - Patients
    parameters:
      - in: path
        name: patient_id
        type: integer
        required: true
    responses:
      200:
        description: Patient deleted
      404:
        description: Patient not found
      409:
        description: Patient still has invoices, appointments or other records
    """
    store = get_store()
    store.delete_patient(patient_id)
    store.commit()
    current_app.logger.info(f"Deleted patient {patient_id}")
    return ok(message="Patient deleted successfully!")


@patients_bp.route("/<int:patient_id>/avatar", methods=["POST"])
def upload_avatar(patient_id):
    """
    Upload a patient avatar to S3
    ---
    tags:
      - Patients
    consumes:
      - multipart/form-data
    parameters:
      - in: path
        name: patient_id
        type: integer
        required: true
      - in: formData
        name: avatar
        type: file
        required: true
    responses:
      200:
        description: Avatar stored, returns the updated patient
      400:
        description: Missing or unsupported file
    """
    image_file = request.files.get("avatar")
    if not image_file or not image_file.filename:
        raise ValidationError("An 'avatar' image file is required.")

    extension = image_file.filename.rsplit(".", 1)[-1].lower() if "." in image_file.filename else ""
    if extension not in ALLOWED_AVATAR_EXTENSIONS:
        raise ValidationError("Avatar must be a png, jpg, jpeg, gif or webp image.")

    bucket_name = current_app.config.get("S3_BUCKET_NAME")
    if not bucket_name:
        raise UpstreamError("S3_BUCKET_NAME is not configured")

    store = get_store()
    patient = store.get_patient(patient_id)
    previous_url = patient.avatar_url

    unique_name = f"avatars/patients/{patient_id}/{uuid.uuid4()}.{extension}"
    avatar_url = upload_file_to_s3(
        image_file,
        unique_name,
        bucket_name,
        base_url=current_app.config.get("S3_BASE_URL"),
        region=current_app.config.get("S3_REGION"),
    )

    patient = store.update_patient(patient_id, {"avatar_url": avatar_url})
    store.commit()

    base_url = current_app.config.get("S3_BASE_URL")
    if previous_url and base_url and previous_url.startswith(base_url):
        delete_file_from_s3(previous_url, bucket_name, region=current_app.config.get("S3_REGION"))

    return ok(patient_to_dict(patient), message="Avatar uploaded successfully")


@patients_bp.route("/<int:patient_id>/exercises", methods=["GET"])
def list_patient_exercises(patient_id):
    store = get_store()
    store.get_patient(patient_id)
    return ok([assignment_to_dict(a) for a in store.list_assignments(patient_id)])


@patients_bp.route("/<int:patient_id>/exercises", methods=["POST"])
def assign_exercise(patient_id):
    """
    Assign a catalog exercise to a patient
    ---
    tags:
      - Exercises
    parameters:
      - in: path
        name: patient_id
        type: integer
        required: true
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [exercise_id]
          properties:
            exercise_id:
              type: integer
            notes:
              type: string
            frequency_per_week:
              type: integer
    responses:
      201:
        description: Exercise assigned
      404:
        description: Patient or exercise not found
    """
    fields = assignment_fields(request.get_json(silent=True))
    store = get_store()
    store.get_patient(patient_id)
    store.get_exercise(fields["exercise_id"])

    assignment = store.add_assignment(patient_id=patient_id, **fields)
    store.commit()
    assignment = store.get_assignment(assignment.id)
    return ok(assignment_to_dict(assignment), status=201)


@patients_bp.route("/<int:patient_id>/notes", methods=["GET"])
def list_patient_notes(patient_id):
    store = get_store()
    store.get_patient(patient_id)
    return ok([note_to_dict(n) for n in store.list_notes(patient_id)])


@patients_bp.route("/<int:patient_id>/notes", methods=["POST"])
def add_patient_note(patient_id):
    fields = note_fields(request.get_json(silent=True))
    if not fields.get("note_date"):
        fields["note_date"] = utcnow().date()
    store = get_store()
    store.get_patient(patient_id)

    note = store.add_note(patient_id=patient_id, **fields)
    store.commit()
    return ok(note_to_dict(store.get_note(note.id)), status=201)
