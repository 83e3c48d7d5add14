"""Async HTTP client for the song catalog service.

Endpoints (relative to the configured base URL):

    GET  /api/songs?q=<text>&genre=<name>   -> JSON array of song objects
    POST /api/songs                         -> echoed song object, or
                                               {"detail": "..."} on rejection

Empty filter fields are never sent; an absent parameter means
"unconstrained" to the service.
"""

import logging

import httpx

from .exceptions import PayloadError, TransportError, ValidationError
from .models import Filter, SongRecord

logger = logging.getLogger(__name__)

SONGS_PATH = "/api/songs"

UNKNOWN_ERROR = "Unknown error"
GENERIC_FAILURE = "Failed to add song"

_HEADERS = {"Accept": "application/json"}


def _error_detail(response: httpx.Response) -> str:
    """Pull a human-readable message out of a rejected write.

    Handles ``{"detail": "..."}`` and FastAPI's list-of-errors form.
    """
    try:
        body = response.json()
    except ValueError:
        return UNKNOWN_ERROR

    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str) and detail.strip():
        return detail
    if isinstance(detail, list):
        messages = [
            str(item["msg"]) for item in detail if isinstance(item, dict) and item.get("msg")
        ]
        if messages:
            return "; ".join(messages)
    return GENERIC_FAILURE


class CatalogClient:
    """Read and write song records against the catalog service."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers=_HEADERS,
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def songs_url(self) -> str:
        return f"{self.base_url}{SONGS_PATH}"

    async def list(self, filter: Filter) -> list[SongRecord]:
        """Return the songs matching *filter*, in the order the service sent them.

        Raises TransportError on network failure or a non-success status, and
        PayloadError if the body is not a JSON array.
        """
        params = filter.to_params()
        logger.debug("GET %s params=%s", self.songs_url, params)
        try:
            resp = await self._http.get(SONGS_PATH, params=params)
        except httpx.RequestError as exc:
            logger.warning("Catalog read failed: %s", exc)
            raise TransportError(self.songs_url, 0, str(exc) or type(exc).__name__) from exc
        if not resp.is_success:
            logger.warning("Catalog read returned HTTP %s", resp.status_code)
            raise TransportError(self.songs_url, resp.status_code)

        try:
            data = resp.json()
        except ValueError as exc:
            raise PayloadError(self.songs_url, "response is not valid JSON") from exc
        if not isinstance(data, list):
            raise PayloadError(self.songs_url, "expected a JSON array of songs")

        songs = []
        for item in data:
            try:
                songs.append(SongRecord.from_wire(item))
            except ValueError as exc:
                logger.warning("Skipping malformed song record: %s", exc)
        logger.debug("Received %d songs", len(songs))
        return songs

    async def create(self, record: SongRecord) -> SongRecord | None:
        """Submit *record* as a new catalog entry.

        Returns the record echoed by the service, or None if the service does
        not echo one. Raises ValidationError carrying the service's detail
        message when the entry is rejected, and TransportError when the
        service cannot be reached.
        """
        payload = record.to_payload()
        logger.debug("POST %s body=%s", self.songs_url, payload)
        try:
            resp = await self._http.post(SONGS_PATH, json=payload)
        except httpx.RequestError as exc:
            logger.warning("Catalog write failed: %s", exc)
            raise TransportError(self.songs_url, 0, str(exc) or type(exc).__name__) from exc
        if not resp.is_success:
            detail = _error_detail(resp)
            logger.warning("Catalog rejected song (HTTP %s): %s", resp.status_code, detail)
            raise ValidationError(detail)

        try:
            return SongRecord.from_wire(resp.json())
        except ValueError:
            return None
