"""Keeps the local song collection in step with the catalog service.

The controller owns a single :class:`CatalogState` snapshot. Every change
(starting a read, installing its result, recording a failure) swaps in a
whole new snapshot, so observers always see the collection and the loading
flag as a consistent pair.

Overlapping refreshes are resolved with a generation counter: each refresh
takes the next number, and a response is applied only if its number is still
the latest when it arrives. Earlier responses that turn up late are dropped.
A failed read leaves the previous collection in place and records the error.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from functools import cached_property

from .exceptions import TransportError
from .filters import derive_genres
from .models import Filter, SongRecord

logger = logging.getLogger(__name__)

StateListener = Callable[["CatalogState"], None]


@dataclass(frozen=True)
class CatalogState:
    """An immutable view of the collection and its loading status."""

    songs: tuple[SongRecord, ...] = ()
    loading: bool = False
    error: str | None = None
    generation: int = 0

    @cached_property
    def genres(self) -> tuple[str, ...]:
        return derive_genres(self.songs)

    def evolve(self, **changes) -> "CatalogState":
        """Return a copy with *changes* applied.

        The cached genre set carries over unless the songs are replaced.
        """
        state = replace(self, **changes)
        if "songs" not in changes and "genres" in self.__dict__:
            state.__dict__["genres"] = self.__dict__["genres"]
        return state


class SyncController:
    """Owns the song collection and decides when it is re-read."""

    def __init__(self, client):
        self._client = client
        # The startup read is always issued, so begin in the loading state.
        self._state = CatalogState(loading=True)
        self._listeners: list[StateListener] = []
        self._started = False
        self._pending: asyncio.Task | None = None

    # --- read-only accessors ---

    @property
    def state(self) -> CatalogState:
        return self._state

    @property
    def songs(self) -> tuple[SongRecord, ...]:
        return self._state.songs

    @property
    def loading(self) -> bool:
        return self._state.loading

    @property
    def error(self) -> str | None:
        return self._state.error

    @property
    def genres(self) -> tuple[str, ...]:
        return self._state.genres

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call *listener* with every new state. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, state: CatalogState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)

    # --- refresh triggers ---

    async def start(self) -> None:
        """Issue the initial unfiltered read. Later calls do nothing."""
        if self._started:
            return
        self._started = True
        await self.refresh(Filter())

    async def refresh(self, filter: Filter) -> None:
        """Replace the collection with a fresh read under *filter*.

        Never raises TransportError: a failed read clears the loading flag,
        keeps the previous songs and records the message in ``error``.
        """
        await self._complete(self._begin(filter), filter)

    def request_refresh(self, filter: Filter) -> asyncio.Task:
        """Schedule a refresh on the running loop and return its task.

        The loading state is entered immediately. A previously requested
        refresh that has not finished is cancelled, since its result could
        only be discarded as stale.
        """
        loop = asyncio.get_running_loop()
        generation = self._begin(filter)
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = loop.create_task(self._complete(generation, filter))
        return self._pending

    async def wait_idle(self) -> None:
        """Wait for the most recently requested refresh, if any."""
        pending = self._pending
        if pending is None:
            return
        try:
            await pending
        except asyncio.CancelledError:
            if not pending.cancelled():
                raise

    def _begin(self, filter: Filter) -> int:
        generation = self._state.generation + 1
        self._publish(self._state.evolve(loading=True, generation=generation))
        logger.debug("Refresh #%d with %s", generation, filter)
        return generation

    async def _complete(self, generation: int, filter: Filter) -> None:
        try:
            songs = await self._client.list(filter)
        except TransportError as exc:
            if self._is_stale(generation):
                logger.debug("Dropping failure of superseded refresh #%d", generation)
                return
            logger.warning("Refresh failed, keeping %d cached songs: %s", len(self.songs), exc)
            self._publish(self._state.evolve(loading=False, error=str(exc)))
            return
        except asyncio.CancelledError:
            if not self._is_stale(generation):
                self._publish(self._state.evolve(loading=False))
            raise

        if self._is_stale(generation):
            logger.debug("Dropping stale response of refresh #%d", generation)
            return
        self._publish(
            CatalogState(songs=tuple(songs), loading=False, error=None, generation=generation)
        )
        logger.info("Loaded %d songs", len(songs))

    def _is_stale(self, generation: int) -> bool:
        return generation != self._state.generation
