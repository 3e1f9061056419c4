from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

# sqlite reuses the highest rowid after a delete unless AUTOINCREMENT is set
_NO_ID_REUSE = {"sqlite_autoincrement": True}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# --- User model ---
class User(db.Model):
    __tablename__ = "users"
    __table_args__ = _NO_ID_REUSE

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username}


# --- Sheet music model ---
class SheetMusic(db.Model):
    __tablename__ = "sheet_music"
    __table_args__ = _NO_ID_REUSE

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.Text, nullable=False)
    artist = db.Column(db.Text, nullable=False)
    genre = db.Column(db.Text, nullable=False)
    pages = db.Column(db.Integer, nullable=False, default=1)
    upload_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    file_type = db.Column(db.String(10), nullable=False)  # "pdf" or "image"
    file_data = db.Column(db.Text, nullable=False)        # base64 encoded file
    is_favorite = db.Column(db.Boolean, nullable=False, default=False)

    @property
    def is_pdf(self) -> bool:
        return self.file_type == "pdf"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "genre": self.genre,
            "pages": self.pages,
            "uploadDate": _iso(self.upload_date),
            "userId": self.user_id,
            "fileType": self.file_type,
            "fileData": self.file_data,
            "isFavorite": bool(self.is_favorite),
        }

    def __repr__(self) -> str:
        return f"<SheetMusic id={self.id} title={self.title!r} type={self.file_type}>"


# --- Setlist + junction table ---
class Setlist(db.Model):
    __tablename__ = "setlists"
    __table_args__ = _NO_ID_REUSE

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "userId": self.user_id,
            "createdAt": _iso(self.created_at),
        }


class SetlistItem(db.Model):
    __tablename__ = "setlist_items"
    __table_args__ = (
        db.UniqueConstraint("setlist_id", "sheet_music_id", name="uq_setlist_sheet"),
        _NO_ID_REUSE,
    )

    id = db.Column(db.Integer, primary_key=True)
    setlist_id = db.Column(db.Integer, db.ForeignKey("setlists.id", ondelete="CASCADE"),
                           nullable=False, index=True)
    sheet_music_id = db.Column(db.Integer, db.ForeignKey("sheet_music.id", ondelete="CASCADE"),
                               nullable=False, index=True)
    order = db.Column(db.Integer, nullable=False)

    def to_dict(self, sheet: SheetMusic | None = None) -> dict:
        data = {
            "id": self.id,
            "setlistId": self.setlist_id,
            "sheetMusicId": self.sheet_music_id,
            "order": self.order,
        }
        if sheet is not None:
            data["sheet"] = sheet.to_dict()
        return data

    def __repr__(self) -> str:
        return f"<SetlistItem setlist={self.setlist_id} sheet={self.sheet_music_id} order={self.order}>"


# --- Viewer settings (one row per user) ---
class Settings(db.Model):
    __tablename__ = "settings"
    __table_args__ = _NO_ID_REUSE

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=True)
    dark_mode = db.Column(db.Boolean, nullable=False, default=False)
    default_zoom = db.Column(db.Integer, nullable=False, default=100)
    default_scroll_speed = db.Column(db.Integer, nullable=False, default=5)
    default_brightness = db.Column(db.Integer, nullable=False, default=100)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "darkMode": bool(self.dark_mode),
            "defaultZoom": self.default_zoom,
            "defaultScrollSpeed": self.default_scroll_speed,
            "defaultBrightness": self.default_brightness,
        }
