from flask import Blueprint, Response, jsonify, request

from config import DEFAULT_USER_ID
from errors import NotFoundError, ValidationError
from routes.common import get_storage, json_body, parse_id
from schemas import SheetMusicUpdate, SheetMusicUpload, parse
from uploads import (
    allowed_mimetype,
    count_pdf_pages,
    decode_file,
    encode_file,
    file_type_for,
    upload_mimetype,
)

sheets_bp = Blueprint("sheets", __name__, url_prefix="/api/sheets")


def _sheet_or_404(raw_id):
    sheet = get_storage().get_sheet_music(parse_id(raw_id, "sheet music"))
    if sheet is None:
        raise NotFoundError("Sheet music not found")
    return sheet


@sheets_bp.get("")
def list_sheets():
    return jsonify([s.to_dict() for s in get_storage().list_sheet_music()])


@sheets_bp.get("/<sheet_id>")
def get_sheet(sheet_id):
    return jsonify(_sheet_or_404(sheet_id).to_dict())


@sheets_bp.get("/<sheet_id>/file")
def get_sheet_file(sheet_id):
    sheet = _sheet_or_404(sheet_id)
    raw, mimetype = decode_file(sheet)
    resp = Response(raw, mimetype=mimetype)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@sheets_bp.post("")
def upload_sheet():
    f = request.files.get("file")
    if not f or (f.filename or "").strip() == "":
        raise ValidationError("No file uploaded")

    mimetype = upload_mimetype(f)
    if not allowed_mimetype(mimetype):
        raise ValidationError("Only PDF or image files are allowed")

    # blank form fields count as missing
    form = {k: v for k, v in request.form.items() if v.strip()}
    data = parse(SheetMusicUpload, form)

    raw = f.read()
    if not raw:
        raise ValidationError("Uploaded file is empty")

    file_type = file_type_for(mimetype)
    pages = data.pages
    if pages is None:
        pages = count_pdf_pages(raw) if file_type == "pdf" else 1

    sheet = get_storage().create_sheet_music(
        title=data.title,
        artist=data.artist,
        genre=data.genre,
        pages=pages,
        file_type=file_type,
        file_data=encode_file(raw),
        user_id=DEFAULT_USER_ID,
    )
    return jsonify(sheet.to_dict()), 201


@sheets_bp.patch("/<sheet_id>")
def update_sheet(sheet_id):
    sheet = _sheet_or_404(sheet_id)
    patch = parse(SheetMusicUpdate, json_body()).to_patch()
    updated = get_storage().update_sheet_music(sheet.id, patch)
    if updated is None:
        raise NotFoundError("Sheet music not found")
    return jsonify(updated.to_dict())


@sheets_bp.delete("/<sheet_id>")
def delete_sheet(sheet_id):
    sheet = _sheet_or_404(sheet_id)
    get_storage().delete_sheet_music(sheet.id)
    return "", 204
