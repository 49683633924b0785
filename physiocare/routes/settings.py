from flask import Blueprint, request

from ..errors import NotFoundError
from ..schemas import settings_fields, settings_to_dict
from ..services.store import get_store
from ..utils.responses import ok

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.route("", methods=["GET"])
def get_settings():
    settings = get_store().get_settings()
    if settings is None:
        raise NotFoundError("Settings not found.")
    return ok(settings_to_dict(settings))


@settings_bp.route("", methods=["PATCH"])
def update_settings():
    """
    Update the clinic settings, creating the row on first use
    ---
    tags:
      - Settings
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            clinic_name:
              type: string
            phone_number:
              type: string
            email:
              type: string
            address:
              type: string
            currency:
              type: string
    responses:
      200:
        description: Settings updated
      400:
        description: No known settings fields in the body
    """
    fields = settings_fields(request.get_json(silent=True))
    store = get_store()
    settings = store.upsert_settings(fields)
    store.commit()
    return ok(settings_to_dict(settings), message="Settings updated successfully!")
