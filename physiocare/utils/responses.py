from flask import jsonify


def ok(data=None, message=None, status=200, **extra):
    """Success envelope: ``{"success": true, "message"?, "data"?, ...extra}``."""
    body = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = data
    body.update(extra)
    return jsonify(body), status
