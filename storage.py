"""Entity store for sheet music, setlists, setlist items, settings and users.

``Storage`` is the interface the API layer talks to. ``MemStorage`` keeps
every table in a dict for the lifetime of the process; ``SqlStorage`` (in
``sql_storage.py``) keeps them in the Flask-SQLAlchemy tables from
``models.py``. Both hand out the same model classes.
"""
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from typing import Optional

import ordering
from config import DEFAULT_SETTINGS, DEFAULT_USER_ID, DEFAULT_USERNAME, DEFAULT_PASSWORD
from errors import NotFoundError, ValidationError
from models import SheetMusic, Setlist, SetlistItem, Settings, User, utcnow

logger = logging.getLogger(__name__)


# --- Patch structs (partial updates) ---

class _Unset:
    def __repr__(self):
        return "UNSET"


# Field left out of a patch. An explicit None is a real value (clears the field).
UNSET = _Unset()


@dataclass
class _Patch:
    def changes(self) -> dict:
        """Only the fields the caller actually set."""
        out = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not UNSET:
                out[f.name] = value
        return out

    def apply_to(self, entity) -> None:
        for name, value in self.changes().items():
            setattr(entity, name, value)


@dataclass
class SheetMusicPatch(_Patch):
    title: Optional[str] = UNSET
    artist: Optional[str] = UNSET
    genre: Optional[str] = UNSET
    is_favorite: Optional[bool] = UNSET


@dataclass
class SetlistPatch(_Patch):
    name: Optional[str] = UNSET
    description: Optional[str] = UNSET


@dataclass
class SettingsPatch(_Patch):
    dark_mode: Optional[bool] = UNSET
    default_zoom: Optional[int] = UNSET
    default_scroll_speed: Optional[int] = UNSET
    default_brightness: Optional[int] = UNSET


class Storage(ABC):
    """Operations shared by every backend."""

    name = "abstract"

    def __init__(self):
        # One global lock: multi-step ops (reindex, cascades, get-or-create)
        # must not interleave with other requests.
        self._lock = threading.RLock()

    # Users
    @abstractmethod
    def get_user(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[User]: ...

    @abstractmethod
    def create_user(self, username: str, password: str) -> User: ...

    # Sheet music
    @abstractmethod
    def list_sheet_music(self) -> list[SheetMusic]: ...

    @abstractmethod
    def get_sheet_music(self, sheet_id: int) -> Optional[SheetMusic]: ...

    @abstractmethod
    def create_sheet_music(self, *, title: str, artist: str, genre: str, file_type: str,
                           file_data: str, pages: int = 1, user_id: Optional[int] = None,
                           is_favorite: bool = False) -> SheetMusic: ...

    @abstractmethod
    def update_sheet_music(self, sheet_id: int, patch: SheetMusicPatch) -> Optional[SheetMusic]: ...

    @abstractmethod
    def delete_sheet_music(self, sheet_id: int) -> bool: ...

    # Setlists
    @abstractmethod
    def list_setlists(self) -> list[Setlist]: ...

    @abstractmethod
    def get_setlist(self, setlist_id: int) -> Optional[Setlist]: ...

    @abstractmethod
    def create_setlist(self, *, name: str, description: Optional[str] = None,
                       user_id: Optional[int] = None) -> Setlist: ...

    @abstractmethod
    def update_setlist(self, setlist_id: int, patch: SetlistPatch) -> Optional[Setlist]: ...

    @abstractmethod
    def delete_setlist(self, setlist_id: int) -> bool: ...

    # Setlist items
    @abstractmethod
    def get_setlist_items(self, setlist_id: int) -> list[tuple[SetlistItem, SheetMusic]]: ...

    @abstractmethod
    def add_item(self, setlist_id: int, sheet_music_id: int) -> SetlistItem: ...

    @abstractmethod
    def remove_item(self, setlist_id: int, sheet_music_id: int) -> bool: ...

    @abstractmethod
    def reorder_item(self, setlist_id: int, sheet_music_id: int, new_order: int) -> bool: ...

    # Settings
    @abstractmethod
    def get_settings(self, user_id: int) -> Optional[Settings]: ...

    @abstractmethod
    def update_settings(self, user_id: int, patch: SettingsPatch) -> Settings: ...

    def get_or_create_settings(self, user_id: int) -> Settings:
        with self._lock:
            settings = self.get_settings(user_id)
            if settings is None:
                settings = self.update_settings(user_id, SettingsPatch())
            return settings

    def ensure_default_user(self) -> User:
        user = self.get_user_by_username(DEFAULT_USERNAME) or self.get_user(DEFAULT_USER_ID)
        if user is None:
            user = self.create_user(DEFAULT_USERNAME, DEFAULT_PASSWORD)
        return user

    def healthy(self) -> bool:
        return True


class MemStorage(Storage):
    """In-process tables. Lost when the process exits."""

    name = "memory"

    def __init__(self):
        super().__init__()
        self._users: dict[int, User] = {}
        self._sheets: dict[int, SheetMusic] = {}
        self._setlists: dict[int, Setlist] = {}
        self._items: dict[int, SetlistItem] = {}
        self._settings: dict[int, Settings] = {}
        self._ids = {
            table: itertools.count(1)
            for table in ("users", "sheets", "setlists", "items", "settings")
        }

    def _next_id(self, table: str) -> int:
        return next(self._ids[table])

    # --- Users ---
    def get_user(self, user_id):
        return self._users.get(user_id)

    def get_user_by_username(self, username):
        with self._lock:
            return next((u for u in self._users.values() if u.username == username), None)

    def create_user(self, username, password):
        with self._lock:
            if self.get_user_by_username(username):
                raise ValidationError("Username already taken")
            user = User(id=self._next_id("users"), username=username)
            user.set_password(password)
            self._users[user.id] = user
            return user

    # --- Sheet music ---
    def list_sheet_music(self):
        with self._lock:
            return list(self._sheets.values())

    def get_sheet_music(self, sheet_id):
        return self._sheets.get(sheet_id)

    def create_sheet_music(self, *, title, artist, genre, file_type, file_data, pages=1,
                           user_id=None, is_favorite=False):
        with self._lock:
            sheet = SheetMusic(
                id=self._next_id("sheets"),
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
            self._sheets[sheet.id] = sheet
            logger.debug("created sheet music %s", sheet.id)
            return sheet

    def update_sheet_music(self, sheet_id, patch):
        with self._lock:
            sheet = self._sheets.get(sheet_id)
            if sheet is None:
                return None
            patch.apply_to(sheet)
            return sheet

    def delete_sheet_music(self, sheet_id):
        with self._lock:
            if self._sheets.pop(sheet_id, None) is None:
                return False
            orphans = [it for it in self._items.values() if it.sheet_music_id == sheet_id]
            touched = {it.setlist_id for it in orphans}
            for it in orphans:
                del self._items[it.id]
            for setlist_id in touched:
                ordering.reindex(self._items_of(setlist_id))
            if orphans:
                logger.info("sheet %s removed from %d setlist(s)", sheet_id, len(touched))
            return True

    # --- Setlists ---
    def list_setlists(self):
        with self._lock:
            return list(self._setlists.values())

    def get_setlist(self, setlist_id):
        return self._setlists.get(setlist_id)

    def create_setlist(self, *, name, description=None, user_id=None):
        with self._lock:
            setlist = Setlist(
                id=self._next_id("setlists"),
                name=name,
                description=description,
                user_id=user_id,
                created_at=utcnow(),
            )
            self._setlists[setlist.id] = setlist
            logger.debug("created setlist %s", setlist.id)
            return setlist

    def update_setlist(self, setlist_id, patch):
        with self._lock:
            setlist = self._setlists.get(setlist_id)
            if setlist is None:
                return None
            patch.apply_to(setlist)
            return setlist

    def delete_setlist(self, setlist_id):
        with self._lock:
            if self._setlists.pop(setlist_id, None) is None:
                return False
            doomed = [it.id for it in self._items.values() if it.setlist_id == setlist_id]
            for item_id in doomed:
                del self._items[item_id]
            logger.info("deleted setlist %s with %d item(s)", setlist_id, len(doomed))
            return True

    # --- Setlist items ---
    def _items_of(self, setlist_id):
        return [it for it in self._items.values() if it.setlist_id == setlist_id]

    def _require_setlist(self, setlist_id):
        if setlist_id not in self._setlists:
            raise NotFoundError("Setlist not found")

    def _find_item(self, items, sheet_music_id):
        return next((it for it in items if it.sheet_music_id == sheet_music_id), None)

    def get_setlist_items(self, setlist_id):
        with self._lock:
            rows = ordering.sort_by_order(self._items_of(setlist_id))
            return [(it, self._sheets[it.sheet_music_id]) for it in rows]

    def add_item(self, setlist_id, sheet_music_id):
        with self._lock:
            self._require_setlist(setlist_id)
            if sheet_music_id not in self._sheets:
                raise NotFoundError("Sheet music not found")
            items = self._items_of(setlist_id)
            if self._find_item(items, sheet_music_id):
                raise ValidationError("Sheet music is already in this setlist")
            item = SetlistItem(
                id=self._next_id("items"),
                setlist_id=setlist_id,
                sheet_music_id=sheet_music_id,
                order=ordering.next_order(items),
            )
            self._items[item.id] = item
            return item

    def remove_item(self, setlist_id, sheet_music_id):
        with self._lock:
            self._require_setlist(setlist_id)
            items = self._items_of(setlist_id)
            item = self._find_item(items, sheet_music_id)
            if item is None:
                return False
            del self._items[item.id]
            items.remove(item)
            ordering.reindex(items)
            return True

    def reorder_item(self, setlist_id, sheet_music_id, new_order):
        with self._lock:
            self._require_setlist(setlist_id)
            items = self._items_of(setlist_id)
            item = self._find_item(items, sheet_music_id)
            if item is None:
                return False
            ordering.move(items, item, new_order)
            return True

    # --- Settings ---
    def get_settings(self, user_id):
        with self._lock:
            return next((s for s in self._settings.values() if s.user_id == user_id), None)

    def update_settings(self, user_id, patch):
        with self._lock:
            settings = self.get_settings(user_id)
            if settings is None:
                settings = Settings(id=self._next_id("settings"), user_id=user_id, **DEFAULT_SETTINGS)
                self._settings[settings.id] = settings
            patch.apply_to(settings)
            return settings
