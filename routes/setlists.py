from flask import Blueprint, jsonify

from config import DEFAULT_USER_ID
from errors import NotFoundError
from routes.common import get_storage, json_body, parse_id
from schemas import SetlistCreate, SetlistItemCreate, SetlistItemMove, SetlistUpdate, parse

setlists_bp = Blueprint("setlists", __name__, url_prefix="/api/setlists")


def _setlist_or_404(raw_id):
    setlist = get_storage().get_setlist(parse_id(raw_id, "setlist"))
    if setlist is None:
        raise NotFoundError("Setlist not found")
    return setlist


def _items_payload(setlist_id):
    return [item.to_dict(sheet) for item, sheet in get_storage().get_setlist_items(setlist_id)]


@setlists_bp.get("")
def list_setlists():
    return jsonify([sl.to_dict() for sl in get_storage().list_setlists()])


@setlists_bp.get("/<setlist_id>")
def get_setlist(setlist_id):
    setlist = _setlist_or_404(setlist_id)
    data = setlist.to_dict()
    data["items"] = _items_payload(setlist.id)
    return jsonify(data)


@setlists_bp.post("")
def create_setlist():
    data = parse(SetlistCreate, json_body())
    setlist = get_storage().create_setlist(
        name=data.name,
        description=data.description,
        user_id=DEFAULT_USER_ID,
    )
    return jsonify(setlist.to_dict()), 201


@setlists_bp.patch("/<setlist_id>")
def update_setlist(setlist_id):
    setlist = _setlist_or_404(setlist_id)
    patch = parse(SetlistUpdate, json_body()).to_patch()
    updated = get_storage().update_setlist(setlist.id, patch)
    if updated is None:
        raise NotFoundError("Setlist not found")
    return jsonify(updated.to_dict())


@setlists_bp.delete("/<setlist_id>")
def delete_setlist(setlist_id):
    setlist = _setlist_or_404(setlist_id)
    get_storage().delete_setlist(setlist.id)
    return "", 204


# --- Setlist items ---

@setlists_bp.post("/<setlist_id>/items")
def add_setlist_item(setlist_id):
    sid = parse_id(setlist_id, "setlist")
    data = parse(SetlistItemCreate, json_body())
    storage = get_storage()
    item = storage.add_item(sid, data.sheet_music_id)
    sheet = storage.get_sheet_music(item.sheet_music_id)
    return jsonify(item.to_dict(sheet)), 201


@setlists_bp.delete("/<setlist_id>/items/<sheet_id>")
def remove_setlist_item(setlist_id, sheet_id):
    sid = parse_id(setlist_id, "setlist")
    sheet_music_id = parse_id(sheet_id, "sheet music")
    if not get_storage().remove_item(sid, sheet_music_id):
        raise NotFoundError("Sheet music not found in setlist")
    return "", 204


@setlists_bp.patch("/<setlist_id>/items/<sheet_id>")
def move_setlist_item(setlist_id, sheet_id):
    sid = parse_id(setlist_id, "setlist")
    sheet_music_id = parse_id(sheet_id, "sheet music")
    data = parse(SetlistItemMove, json_body())
    if not get_storage().reorder_item(sid, sheet_music_id, data.order):
        raise NotFoundError("Sheet music not found in setlist")
    return jsonify(_items_payload(sid))
