import logging
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

import ordering
from config import DEFAULT_SETTINGS
from errors import InternalError, NotFoundError, ValidationError
from models import db, SheetMusic, Setlist, SetlistItem, Settings, User, utcnow
from storage import Storage

logger = logging.getLogger(__name__)


class SqlStorage(Storage):
    """Tables from models.py through the Flask-SQLAlchemy session.

    Needs an app context; every mutating call commits (or rolls back) before
    returning.
    """

    name = "sql"

    @contextmanager
    def _critical(self):
        """Global lock plus rollback, so a failed step leaves no half-written order."""
        with self._lock:
            try:
                yield
            except Exception:
                db.session.rollback()
                raise

    def _commit(self, what: str) -> None:
        try:
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            logger.warning("integrity error while %s: %s", what, e.orig)
            raise ValidationError(f"Conflicting data while {what}") from e
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception("database error while %s", what)
            raise InternalError(f"Database error while {what}") from e

    def create_all(self) -> None:
        db.create_all()

    def healthy(self) -> bool:
        # quick DB ping; never crash health
        try:
            db.session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    # --- Users ---
    def get_user(self, user_id):
        return db.session.get(User, user_id)

    def get_user_by_username(self, username):
        return User.query.filter_by(username=username).first()

    def create_user(self, username, password):
        with self._critical():
            if self.get_user_by_username(username):
                raise ValidationError("Username already taken")
            user = User(username=username)
            user.set_password(password)
            db.session.add(user)
            self._commit("creating user")
            return user

    # --- Sheet music ---
    def list_sheet_music(self):
        return SheetMusic.query.order_by(SheetMusic.id.asc()).all()

    def get_sheet_music(self, sheet_id):
        return db.session.get(SheetMusic, sheet_id)

    def create_sheet_music(self, *, title, artist, genre, file_type, file_data, pages=1,
                           user_id=None, is_favorite=False):
        sheet = SheetMusic(
            title=title,
            artist=artist,
            genre=genre,
            pages=pages,
            upload_date=utcnow(),
            user_id=user_id,
            file_type=file_type,
            file_data=file_data,
            is_favorite=is_favorite,
        )
        db.session.add(sheet)
        self._commit("uploading sheet music")
        logger.debug("created sheet music %s", sheet.id)
        return sheet

    def update_sheet_music(self, sheet_id, patch):
        sheet = self.get_sheet_music(sheet_id)
        if sheet is None:
            return None
        patch.apply_to(sheet)
        self._commit("updating sheet music")
        return sheet

    def delete_sheet_music(self, sheet_id):
        with self._critical():
            sheet = self.get_sheet_music(sheet_id)
            if sheet is None:
                db.session.rollback()
                return False
            orphans = SetlistItem.query.filter_by(sheet_music_id=sheet_id).all()
            touched = sorted({it.setlist_id for it in orphans})
            for setlist_id in touched:
                self._lock_setlist(setlist_id)
            for it in orphans:
                db.session.delete(it)
            db.session.delete(sheet)
            db.session.flush()
            for setlist_id in touched:
                ordering.reindex(self._items_of(setlist_id))
            self._commit("deleting sheet music")
            if orphans:
                logger.info("sheet %s removed from %d setlist(s)", sheet_id, len(touched))
            return True

    # --- Setlists ---
    def list_setlists(self):
        return Setlist.query.order_by(Setlist.id.asc()).all()

    def get_setlist(self, setlist_id):
        return db.session.get(Setlist, setlist_id)

    def create_setlist(self, *, name, description=None, user_id=None):
        setlist = Setlist(name=name, description=description, user_id=user_id, created_at=utcnow())
        db.session.add(setlist)
        self._commit("creating setlist")
        logger.debug("created setlist %s", setlist.id)
        return setlist

    def update_setlist(self, setlist_id, patch):
        setlist = self.get_setlist(setlist_id)
        if setlist is None:
            return None
        patch.apply_to(setlist)
        self._commit("updating setlist")
        return setlist

    def delete_setlist(self, setlist_id):
        with self._critical():
            setlist = self._lock_setlist(setlist_id)
            if setlist is None:
                db.session.rollback()
                return False
            removed = SetlistItem.query.filter_by(setlist_id=setlist_id).delete(synchronize_session="fetch")
            db.session.delete(setlist)
            self._commit("deleting setlist")
            logger.info("deleted setlist %s with %d item(s)", setlist_id, removed)
            return True

    # --- Setlist items ---
    def _items_of(self, setlist_id):
        return SetlistItem.query.filter_by(setlist_id=setlist_id).all()

    def _lock_setlist(self, setlist_id):
        # row lock (FOR UPDATE) serializes item edits across processes; sqlite ignores it
        return db.session.get(Setlist, setlist_id, with_for_update=True)

    def _require_setlist(self, setlist_id):
        if self._lock_setlist(setlist_id) is None:
            raise NotFoundError("Setlist not found")

    def get_setlist_items(self, setlist_id):
        rows = (db.session.query(SetlistItem, SheetMusic)
                .join(SheetMusic, SheetMusic.id == SetlistItem.sheet_music_id)
                .filter(SetlistItem.setlist_id == setlist_id)
                .order_by(SetlistItem.order.asc(), SetlistItem.id.asc())
                .all())
        return [(item, sheet) for item, sheet in rows]

    def add_item(self, setlist_id, sheet_music_id):
        with self._critical():
            self._require_setlist(setlist_id)
            if self.get_sheet_music(sheet_music_id) is None:
                raise NotFoundError("Sheet music not found")
            items = self._items_of(setlist_id)
            if any(it.sheet_music_id == sheet_music_id for it in items):
                raise ValidationError("Sheet music is already in this setlist")
            item = SetlistItem(
                setlist_id=setlist_id,
                sheet_music_id=sheet_music_id,
                order=ordering.next_order(items),
            )
            db.session.add(item)
            self._commit("adding sheet to setlist")
            return item

    def remove_item(self, setlist_id, sheet_music_id):
        with self._critical():
            self._require_setlist(setlist_id)
            items = self._items_of(setlist_id)
            item = next((it for it in items if it.sheet_music_id == sheet_music_id), None)
            if item is None:
                db.session.rollback()
                return False
            db.session.delete(item)
            items.remove(item)
            ordering.reindex(items)
            self._commit("removing sheet from setlist")
            return True

    def reorder_item(self, setlist_id, sheet_music_id, new_order):
        with self._critical():
            self._require_setlist(setlist_id)
            items = self._items_of(setlist_id)
            item = next((it for it in items if it.sheet_music_id == sheet_music_id), None)
            if item is None:
                db.session.rollback()
                return False
            ordering.move(items, item, new_order)
            self._commit("reordering setlist")
            return True

    # --- Settings ---
    def get_settings(self, user_id):
        return Settings.query.filter_by(user_id=user_id).first()

    def update_settings(self, user_id, patch):
        with self._critical():
            settings = self.get_settings(user_id)
            if settings is None:
                settings = Settings(user_id=user_id, **DEFAULT_SETTINGS)
                db.session.add(settings)
            patch.apply_to(settings)
            self._commit("saving settings")
            return settings
