"""
Normalized artwork record shared by every museum source.
"""
from dataclasses import dataclass, fields
from typing import Optional, Union

UNTITLED = "Untitled"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_DATE = "Date unknown"
UNKNOWN_MEDIUM = "Unknown medium"

# Placeholders, not real data: leave them out of any statistics
SENTINELS = frozenset([UNTITLED, UNKNOWN_ARTIST, UNKNOWN_DATE, UNKNOWN_MEDIUM])

MISSING_IMAGE = "missing image"
MISSING_TITLE = "missing title"

# JSON names that differ from the attribute names
_JSON_KEYS = {
    "image_url": "imageUrl",
    "thumbnail_url": "thumbnailUrl",
    "source_url": "sourceUrl",
    "credit_line": "creditLine",
}

OPTIONAL_FIELDS = (
    "department", "culture", "classification",
    "description", "dimensions", "credit_line",
)


@dataclass(frozen=True)
class Artwork:
    id: str
    title: str
    artist: str
    year: str
    medium: str
    image_url: str
    thumbnail_url: str
    source: str
    source_url: str
    department: Optional[str] = None
    culture: Optional[str] = None
    classification: Optional[str] = None
    description: Optional[str] = None
    dimensions: Optional[str] = None
    credit_line: Optional[str] = None

    def to_dict(self):
        """Serialize for the HTTP API; unset optional fields are omitted."""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            data[_JSON_KEYS.get(f.name, f.name)] = value
        return data


@dataclass(frozen=True)
class Rejected:
    """A raw record that could not become an Artwork."""
    source: str
    native_id: str
    reason: str


def _clean(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def make_artwork(source, native_id, image_url, *, title=None, artist=None,
                 year=None, medium=None, thumbnail_url=None, source_url=None,
                 require_title=False, **optional) -> Union[Artwork, Rejected]:
    """Build an Artwork, or a Rejected when the record has no usable image.

    Missing display strings fall back to the sentinel values. Any keyword in
    OPTIONAL_FIELDS may be passed; blanks become None.
    """
    native_id = str(native_id)
    image_url = _clean(image_url)
    if not image_url:
        return Rejected(source, native_id, MISSING_IMAGE)

    title = _clean(title)
    if not title and require_title:
        return Rejected(source, native_id, MISSING_TITLE)

    unknown = set(optional) - set(OPTIONAL_FIELDS)
    if unknown:
        raise TypeError(f"unexpected artwork fields: {sorted(unknown)}")

    return Artwork(
        id=f"{source}-{native_id}",
        title=title or UNTITLED,
        artist=_clean(artist) or UNKNOWN_ARTIST,
        year=_clean(year) or UNKNOWN_DATE,
        medium=_clean(medium) or UNKNOWN_MEDIUM,
        image_url=image_url,
        thumbnail_url=_clean(thumbnail_url) or image_url,
        source=source,
        source_url=_clean(source_url) or "",
        **{name: _clean(value) for name, value in optional.items()}
    )
