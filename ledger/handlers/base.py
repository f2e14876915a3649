# handlers/base.py
from flask import current_app, jsonify, request

from ledger.errors import ValidationError
from ledger.services.db import run_in_transaction


def run(operation, *args, **kwargs):
    """Execute a service operation in its own database transaction."""
    return run_in_transaction(current_app.config["SESSION_FACTORY"], operation, *args, **kwargs)


def json_body(*required):
    """
    Parsed JSON object of the request; a missing or empty required field is a 400.
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    missing = [field for field in required if body.get(field) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return body


def number_field(body, field):
    value = body.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"Field '{field}' must be a number")
    return value


def envelope(data, status=200):
    return jsonify({"data": data}), status
