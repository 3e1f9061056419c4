from flask import Blueprint, jsonify

from config import DEFAULT_USER_ID
from routes.common import get_storage, json_body
from schemas import SettingsUpdate, parse

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
def get_settings():
    return jsonify(get_storage().get_or_create_settings(DEFAULT_USER_ID).to_dict())


@settings_bp.patch("")
def update_settings():
    patch = parse(SettingsUpdate, json_body()).to_patch()
    return jsonify(get_storage().update_settings(DEFAULT_USER_ID, patch).to_dict())
