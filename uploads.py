import base64
import binascii
import logging
import mimetypes
from io import BytesIO

from PyPDF2 import PdfReader

from config import ALLOWED_MIME_PREFIXES
from errors import InternalError

logger = logging.getLogger(__name__)

# Leading bytes of the image formats browsers commonly upload
_IMAGE_SIGNATURES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
)


def upload_mimetype(file_storage) -> str:
    mt = (file_storage.mimetype or "").lower()
    # Fallback: guess from filename if mimetype missing
    if not mt or mt == "application/octet-stream":
        mt = mimetypes.guess_type(file_storage.filename or "")[0] or mt
    return mt


def allowed_mimetype(mimetype: str) -> bool:
    return any(mimetype.startswith(prefix) for prefix in ALLOWED_MIME_PREFIXES)


def file_type_for(mimetype: str) -> str:
    return "pdf" if mimetype.startswith("application/pdf") else "image"


def count_pdf_pages(raw: bytes) -> int:
    """Number of pages in a PDF, or 1 when PyPDF2 can't read it."""
    try:
        reader = PdfReader(BytesIO(raw), strict=False)
        return max(len(reader.pages), 1)
    except Exception as e:  # PyPDF2 raises many error types on damaged files
        logger.warning("could not count PDF pages: %s", e)
        return 1


def encode_file(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def decode_file(sheet) -> tuple[bytes, str]:
    """Stored base64 payload of ``sheet`` as (bytes, mimetype)."""
    try:
        raw = base64.b64decode(sheet.file_data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InternalError("Stored file is corrupt") from e
    if sheet.is_pdf:
        return raw, "application/pdf"
    for magic, mimetype in _IMAGE_SIGNATURES:
        if raw.startswith(magic):
            return raw, mimetype
    if raw[:4] == b"RIFF" and raw[8:12] == b"WEBP":
        return raw, "image/webp"
    return raw, "application/octet-stream"
