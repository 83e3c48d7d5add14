from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote
from uuid import uuid4

PLACEHOLDER_COVER = "https://picsum.photos/seed/{seed}/96/96"

# Optional string fields, in the order the catalog service documents them.
_OPTIONAL_TEXT = ("album", "genre", "cover_url", "listen_url")


def _clean_text(value: Any) -> str | None:
    """Return *value* stripped, or None when it is missing or blank."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_year(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float) and value.is_integer():
        return int(value) if value > 0 else None
    if isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        year = int(value.strip())
        return year or None
    return None


@dataclass(frozen=True)
class SongRecord:
    """A single catalog entry as held by the client.

    ``id`` is None for records the service has not assigned an id to; such
    records get a temporary :meth:`display_key` that never takes part in
    equality.
    """

    title: str
    artist: str
    id: str | None = None
    album: str | None = None
    genre: str | None = None
    year: int | None = None
    cover_url: str | None = None
    listen_url: str | None = None
    is_free: bool = True
    _temp_key: str = field(
        default_factory=lambda: f"tmp-{uuid4().hex}", compare=False, repr=False
    )

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> "SongRecord":
        """Build a record from a JSON object returned by the catalog service.

        Raises ValueError if *payload* is not an object or lacks a title or
        artist.
        """
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")

        title = _clean_text(payload.get("title"))
        artist = _clean_text(payload.get("artist"))
        if not title or not artist:
            raise ValueError("song record requires a non-empty title and artist")

        raw_id = payload.get("id", payload.get("_id"))
        return cls(
            title=title,
            artist=artist,
            id=str(raw_id) if raw_id not in (None, "") else None,
            year=_coerce_year(payload.get("year")),
            is_free=bool(payload.get("is_free", True)),
            **{name: _clean_text(payload.get(name)) for name in _OPTIONAL_TEXT},
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON body for ``POST /api/songs``.

        Unset optional fields are left out entirely.
        """
        body: dict[str, Any] = {"title": self.title, "artist": self.artist}
        for name in _OPTIONAL_TEXT:
            value = getattr(self, name)
            if value:
                body[name] = value
        if self.year is not None:
            body["year"] = self.year
        body["is_free"] = self.is_free
        return body

    def cover_image(self) -> str:
        """Return the cover URL, or a placeholder image seeded by title."""
        if self.cover_url:
            return self.cover_url
        return PLACEHOLDER_COVER.format(seed=quote(self.title, safe=""))

    def display_key(self) -> str:
        return self.id if self.id else self._temp_key


@dataclass(frozen=True)
class Filter:
    """The (query, genre) pair constraining a catalog read.

    Empty strings mean "unconstrained".
    """

    query: str = ""
    genre: str = ""

    def to_params(self) -> dict[str, str]:
        params = {}
        if self.query:
            params["q"] = self.query
        if self.genre:
            params["genre"] = self.genre
        return params
