from flask import current_app, request

from errors import ValidationError
from storage import Storage


def get_storage() -> Storage:
    return current_app.extensions["storage"]


def parse_id(raw: str, label: str) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {label} ID")


def json_body():
    """Request JSON body; ``{}`` when empty, 400 when malformed."""
    data = request.get_json(silent=True)
    if data is None:
        if request.get_data(cache=True):
            raise ValidationError("Malformed JSON body")
        return {}
    return data
