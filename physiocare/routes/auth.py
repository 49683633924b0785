from flask import Blueprint, current_app, g, request

from ..auth import require_auth
from ..errors import AuthorizationError
from ..services.identity import get_identity
from ..services.store import get_store
from ..utils.responses import ok

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


@auth_bp.route("/admin/login", methods=["POST"])
def admin_login():
    """
    Staff login
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [username, password]
          properties:
            username:
              type: string
              example: admin@physiocare.com
            password:
              type: string
    responses:
      200:
        description: Login successful, returns a bearer token and the staff profile
      401:
        description: Invalid login credentials
      403:
        description: Account has no staff profile
    """
    data = request.get_json(silent=True) or {}
    email = data.get("username")
    current_app.logger.info(f"Received login attempt for email: {email}")

    store = get_store()
    user, token = get_identity().sign_in(store, email, data.get("password"))

    staff = store.find_staff_for_account(user)
    if staff is None:
        raise AuthorizationError("Authentication successful, but you are not registered as staff.")

    return ok(
        message="Login successful",
        user={"fullName": staff.full_name, "role": staff.role, "email": user.email},
        token=token,
    )


@auth_bp.route("/patient/login", methods=["POST"])
def patient_login():
    """
    Patient portal login
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [email, password]
          properties:
            email:
              type: string
            password:
              type: string
    responses:
      200:
        description: Login successful
      401:
        description: Invalid login credentials
      403:
        description: Account is not linked to a patient
    """
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    current_app.logger.info(f"Received PATIENT login attempt for email: {email}")

    store = get_store()
    user, token = get_identity().sign_in(store, email, data.get("password"))

    patient = store.find_patient_by_auth_user(user.id)
    if patient is None:
        raise AuthorizationError("Authentication successful, but you are not registered as a patient.")

    return ok(message="Login successful", token=token, user={"fullName": patient.full_name})


@auth_bp.route("/user/change-password", methods=["POST"])
@require_auth()
def change_password():
    data = request.get_json(silent=True) or {}
    store = get_store()
    get_identity().change_password(
        store, g.principal.user_id, data.get("currentPassword"), data.get("newPassword")
    )
    store.commit()
    current_app.logger.info(f"Password changed for user {g.principal.user_id}")
    return ok(message="Password updated successfully!")
