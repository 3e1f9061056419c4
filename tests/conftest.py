import base64
import io

import pytest

from app import create_app
from storage import MemStorage

# Blank three-page PDF
THREE_PAGE_PDF = base64.b64decode(
    "JVBERi0xLjQKMSAwIG9iago8PCAvVHlwZSAvQ2F0YWxvZyAvUGFnZXMgMiAwIFIgPj4KZW5kb2JqCjIgMCBvYmoKPDwg"
    "L1R5cGUgL1BhZ2VzIC9LaWRzIFszIDAgUiA0IDAgUiA1IDAgUl0gL0NvdW50IDMgPj4KZW5kb2JqCjMgMCBvYmoKPDwg"
    "L1R5cGUgL1BhZ2UgL1BhcmVudCAyIDAgUiAvTWVkaWFCb3ggWzAgMCA1OTUgODQyXSA+PgplbmRvYmoKNCAwIG9iago8"
    "PCAvVHlwZSAvUGFnZSAvUGFyZW50IDIgMCBSIC9NZWRpYUJveCBbMCAwIDU5NSA4NDJdID4+CmVuZG9iago1IDAgb2Jq"
    "Cjw8IC9UeXBlIC9QYWdlIC9QYXJlbnQgMiAwIFIgL01lZGlhQm94IFswIDAgNTk1IDg0Ml0gPj4KZW5kb2JqCnhyZWYK"
    "MCA2CjAwMDAwMDAwMDAgNjU1MzUgZiAKMDAwMDAwMDAwOSAwMDAwMCBuIAowMDAwMDAwMDU4IDAwMDAwIG4gCjAwMDAw"
    "MDAxMjcgMDAwMDAgbiAKMDAwMDAwMDE5OCAwMDAwMCBuIAowMDAwMDAwMjY5IDAwMDAwIG4gCnRyYWlsZXIKPDwgL1Np"
    "emUgNiAvUm9vdCAxIDAgUiA+PgpzdGFydHhyZWYKMzQwCiUlRU9GCg=="
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _make_app(backend):
    overrides = {"TESTING": True, "STORAGE_BACKEND": backend, "SEED_DEMO_DATA": False}
    if backend == "sql":
        overrides["SQLALCHEMY_DATABASE_URI"] = "sqlite://"
    return create_app(overrides)


@pytest.fixture(params=["memory", "sql"])
def app(request):
    return _make_app(request.param)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    if request.param == "memory":
        yield MemStorage()
        return
    app = _make_app("sql")
    with app.app_context():
        yield app.extensions["storage"]


def new_sheet(store, title="Autumn Leaves", **kw):
    fields = {
        "title": title,
        "artist": "Joseph Kosma",
        "genre": "Jazz",
        "file_type": "pdf",
        "file_data": "JVBERi0=",
    }
    fields.update(kw)
    return store.create_sheet_music(**fields)


def upload(client, title="Autumn Leaves", data=THREE_PAGE_PDF, filename="leaves.pdf",
           mimetype="application/pdf", **form):
    payload = {"title": title, "artist": "Joseph Kosma", "genre": "Jazz"}
    payload.update(form)
    payload["file"] = (io.BytesIO(data), filename, mimetype)
    return client.post("/api/sheets", data=payload, content_type="multipart/form-data")
