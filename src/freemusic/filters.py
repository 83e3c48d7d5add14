import logging
from collections.abc import Callable, Iterable

from .models import Filter, SongRecord

logger = logging.getLogger(__name__)

FilterHandler = Callable[[Filter], object]


def derive_genres(songs: Iterable[SongRecord]) -> tuple[str, ...]:
    """Return the sorted, de-duplicated non-empty genres present in *songs*."""
    return tuple(sorted({song.genre for song in songs if song.genre}))


class FilterState:
    """The user's current query and genre selection.

    Changing the genre, or committing the query, publishes the combined
    :class:`~freemusic.models.Filter` to every subscriber. Typing into the
    query alone publishes nothing.

    *collection_source* returns the controller's current state; it is used
    only to read the genres on offer.
    """

    def __init__(self, collection_source: Callable[[], object] | None = None):
        self._query = ""
        self._genre = ""
        self._collection_source = collection_source
        self._handlers: list[FilterHandler] = []

    @property
    def query(self) -> str:
        return self._query

    @property
    def genre(self) -> str:
        return self._genre

    @property
    def current(self) -> Filter:
        return Filter(query=self._query, genre=self._genre)

    @property
    def known_genres(self) -> tuple[str, ...]:
        if self._collection_source is None:
            return ()
        return self._collection_source().genres

    def subscribe(self, handler: FilterHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def set_query(self, text: str) -> None:
        self._query = text

    def set_genre(self, value: str) -> None:
        self._genre = value
        self._publish()

    def commit_search(self) -> None:
        self._publish()

    def _publish(self) -> None:
        current = self.current
        logger.debug("Filter changed: %s", current)
        for handler in list(self._handlers):
            handler(current)
