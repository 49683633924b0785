from flask import Blueprint, current_app, request

from ..errors import ValidationError
from ..schemas import staff_to_dict, staff_update_fields
from ..services.identity import get_identity
from ..services.store import get_store
from ..utils.responses import ok

staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


def _account_role(staff_role):
    return "ADMIN" if (staff_role or "").strip().upper() == "ADMIN" else "STAFF"


@staff_bp.route("", methods=["GET"])
def list_staff():
    """
    List staff members
    ---
    tags:
      - Staff
    responses:
      200:
        description: Staff ordered by full name
    """
    store = get_store()
    return ok([staff_to_dict(s) for s in store.list_staff()])


@staff_bp.route("", methods=["POST"])
def create_staff():
    """
    Create a staff member together with their login account
    ---
    tags:
      - Staff
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [staffName, staffEmail, staffPassword]
          properties:
            staffName:
              type: string
            staffEmail:
              type: string
            staffPhone:
              type: string
            staffRole:
              type: string
              example: Therapist
            staffPassword:
              type: string
    responses:
      201:
        description: Staff member created
      400:
        description: Missing fields or email already registered
    """
    data = request.get_json(silent=True) or {}
    name = (data.get("staffName") or "").strip()
    email = (data.get("staffEmail") or "").strip()
    role = data.get("staffRole")
    if not name or not email:
        raise ValidationError("Staff name and email are required.")

    store = get_store()
    if store.find_staff_by_email(email):
        raise ValidationError("A staff member with this email already exists.")

    user = get_identity().create_user(
        store, email, data.get("staffPassword"), _account_role(role)
    )
    staff = store.add_staff(
        full_name=name,
        email=email,
        phone_number=data.get("staffPhone"),
        role=role,
        auth_user_id=user.id,
    )
    store.commit()
    current_app.logger.info(f"Created staff member {staff.id} with account {user.id}")
    return ok(staff_to_dict(staff), message="Staff member created successfully!", status=201)


@staff_bp.route("/<int:staff_id>", methods=["GET"])
def get_staff(staff_id):
    return ok(staff_to_dict(get_store().get_staff(staff_id)))


@staff_bp.route("/<int:staff_id>", methods=["PATCH"])
def update_staff(staff_id):
    fields = staff_update_fields(request.get_json(silent=True))
    store = get_store()
    staff = store.update_staff(staff_id, fields)
    store.commit()
    return ok(staff_to_dict(staff), message="Staff member updated successfully!")


@staff_bp.route("/<int:staff_id>", methods=["DELETE"])
def delete_staff(staff_id):
    store = get_store()
    store.delete_staff(staff_id)
    store.commit()
    current_app.logger.info(f"Deleted staff member {staff_id}")
    return ok(message="Staff member deleted successfully.")
