"""
Request schemas

Pydantic models for the JSON and form bodies the API accepts. Field aliases
carry the camelCase names the browser client sends; ``to_patch`` turns an
update body into the storage layer's patch struct.
"""

from typing import Optional

from pydantic import BaseModel, Field, StrictBool, StrictInt, field_validator
from pydantic import ValidationError as SchemaError

from errors import ValidationError
from storage import SheetMusicPatch, SetlistPatch, SettingsPatch


class SheetMusicUpload(BaseModel):
    """Form fields sent alongside an uploaded file"""
    title: str = Field(..., min_length=1, description="Song title")
    artist: str = Field(..., min_length=1, description="Composer or performer")
    genre: str = Field(..., min_length=1, description="Genre label")
    pages: Optional[int] = Field(None, ge=1, description="Page count; counted from the PDF when omitted")


def _reject_null(value):
    if value is None:
        raise ValueError("may not be null")
    return value


class SheetMusicUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    artist: Optional[str] = Field(None, min_length=1)
    genre: Optional[str] = Field(None, min_length=1)
    is_favorite: Optional[StrictBool] = Field(None, alias="isFavorite")

    not_null = field_validator("title", "artist", "genre", "is_favorite")(_reject_null)

    def to_patch(self) -> SheetMusicPatch:
        return SheetMusicPatch(**self.model_dump(exclude_unset=True))


class SetlistCreate(BaseModel):
    name: str = Field(..., min_length=1, description="Setlist name")
    description: Optional[str] = Field(None, description="Free-form notes")


class SetlistUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    # null clears the description
    description: Optional[str] = None

    not_null = field_validator("name")(_reject_null)

    def to_patch(self) -> SetlistPatch:
        return SetlistPatch(**self.model_dump(exclude_unset=True))


class SetlistItemCreate(BaseModel):
    sheet_music_id: StrictInt = Field(..., alias="sheetMusicId")


class SetlistItemMove(BaseModel):
    order: StrictInt = Field(..., description="New 0-based position")


class SettingsUpdate(BaseModel):
    dark_mode: Optional[StrictBool] = Field(None, alias="darkMode")
    default_zoom: Optional[StrictInt] = Field(None, alias="defaultZoom", ge=50, le=200)
    default_scroll_speed: Optional[StrictInt] = Field(None, alias="defaultScrollSpeed", ge=1, le=10)
    default_brightness: Optional[StrictInt] = Field(None, alias="defaultBrightness", ge=0, le=100)

    not_null = field_validator(
        "dark_mode", "default_zoom", "default_scroll_speed", "default_brightness"
    )(_reject_null)

    def to_patch(self) -> SettingsPatch:
        return SettingsPatch(**self.model_dump(exclude_unset=True))


def _describe(err: SchemaError) -> str:
    parts = []
    for e in err.errors():
        loc = ".".join(str(p) for p in e.get("loc", ()))
        parts.append(f"{e['msg']} at \"{loc}\"" if loc else e["msg"])
    return "Validation error: " + "; ".join(parts)


def parse(schema, data):
    """Validate ``data`` against ``schema`` or raise the API's ValidationError."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError("Expected a JSON object")
    try:
        return schema.model_validate(data)
    except SchemaError as e:
        raise ValidationError(_describe(e)) from e
