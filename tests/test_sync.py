import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from freemusic.exceptions import TransportError
from freemusic.models import Filter, SongRecord
from freemusic.sync import CatalogState, SyncController


def _song(title, genre=None):
    return SongRecord(title=title, artist="Artist", genre=genre)


def _client(*results):
    client = MagicMock()
    client.list = AsyncMock(side_effect=list(results))
    return client


class GatedCatalog:
    """A client whose reads resolve only when the test releases them."""

    def __init__(self):
        self.calls: list[Filter] = []
        self._gates: dict[Filter, asyncio.Future] = {}

    async def list(self, filter):
        self.calls.append(filter)
        gate = asyncio.get_running_loop().create_future()
        self._gates[filter] = gate
        return await gate

    def resolve(self, filter, songs):
        self._gates[filter].set_result(songs)

    def fail(self, filter, exc):
        self._gates[filter].set_exception(exc)


async def _settle():
    for _ in range(5):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


def test_initial_state_is_loading_and_empty():
    controller = SyncController(_client())
    assert controller.loading is True
    assert controller.songs == ()
    assert controller.error is None


def test_start_issues_one_unfiltered_read():
    client = _client([_song("A")])
    controller = SyncController(client)

    async def scenario():
        await controller.start()
        await controller.start()

    asyncio.run(scenario())
    client.list.assert_awaited_once_with(Filter())
    assert controller.loading is False
    assert [s.title for s in controller.songs] == ["A"]


def test_loading_true_until_startup_read_resolves():
    catalog = GatedCatalog()
    controller = SyncController(catalog)

    async def scenario():
        task = asyncio.create_task(controller.start())
        await _settle()
        assert controller.loading is True
        assert catalog.calls == [Filter()]
        catalog.resolve(Filter(), [_song("A")])
        await task

    asyncio.run(scenario())
    assert controller.loading is False


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


def test_refresh_replaces_collection_in_server_order():
    client = _client([_song("Old")], [_song("Zed"), _song("Abe")])
    controller = SyncController(client)

    async def scenario():
        await controller.refresh(Filter())
        await controller.refresh(Filter(genre="Rock"))

    asyncio.run(scenario())
    assert [s.title for s in controller.songs] == ["Zed", "Abe"]


def test_refresh_with_empty_result_clears_collection():
    client = _client([_song("A")], [])
    controller = SyncController(client)

    async def scenario():
        await controller.refresh(Filter())
        await controller.refresh(Filter(query="nothing"))

    asyncio.run(scenario())
    assert controller.songs == ()
    assert controller.loading is False


def test_collection_and_loading_flag_change_together():
    client = _client([_song("Old")], [_song("New")])
    controller = SyncController(client)
    seen: list[CatalogState] = []
    controller.subscribe(seen.append)

    async def scenario():
        await controller.refresh(Filter())
        await controller.refresh(Filter(query="new"))

    asyncio.run(scenario())
    for state in seen:
        titles = [s.title for s in state.songs]
        if state.loading:
            # while loading, only the previous collection is ever visible
            assert titles in ([], ["Old"])
    assert [s.title for s in seen[-1].songs] == ["New"]
    assert seen[-1].loading is False
    assert [s.loading for s in seen] == [True, False, True, False]


def test_failed_refresh_keeps_previous_songs_and_records_error():
    client = _client([_song("A")], TransportError("http://catalog.test/api/songs", 502))
    controller = SyncController(client)

    async def scenario():
        await controller.refresh(Filter())
        await controller.refresh(Filter(genre="Jazz"))

    asyncio.run(scenario())
    assert controller.loading is False
    assert [s.title for s in controller.songs] == ["A"]
    assert "502" in controller.error


def test_successful_refresh_clears_previous_error():
    client = _client(TransportError("http://catalog.test/api/songs", 0), [_song("A")])
    controller = SyncController(client)

    async def scenario():
        await controller.refresh(Filter())
        assert controller.error is not None
        await controller.refresh(Filter())

    asyncio.run(scenario())
    assert controller.error is None


def test_stale_response_is_discarded():
    catalog = GatedCatalog()
    controller = SyncController(catalog)
    rock, jazz = Filter(genre="Rock"), Filter(genre="Jazz")

    async def scenario():
        first = asyncio.create_task(controller.refresh(rock))
        second = asyncio.create_task(controller.refresh(jazz))
        await _settle()
        catalog.resolve(jazz, [_song("Jazz song", "Jazz")])
        await second
        assert [s.title for s in controller.songs] == ["Jazz song"]
        catalog.resolve(rock, [_song("Rock song", "Rock")])
        await first

    asyncio.run(scenario())
    assert [s.title for s in controller.songs] == ["Jazz song"]
    assert controller.loading is False


def test_loading_stays_true_until_latest_request_resolves():
    catalog = GatedCatalog()
    controller = SyncController(catalog)
    rock, jazz = Filter(genre="Rock"), Filter(genre="Jazz")

    async def scenario():
        first = asyncio.create_task(controller.refresh(rock))
        second = asyncio.create_task(controller.refresh(jazz))
        await _settle()
        catalog.resolve(rock, [_song("Rock song")])
        await first
        assert controller.loading is True
        assert controller.songs == ()
        catalog.resolve(jazz, [_song("Jazz song")])
        await second

    asyncio.run(scenario())
    assert controller.loading is False


def test_stale_failure_is_ignored():
    catalog = GatedCatalog()
    controller = SyncController(catalog)
    rock, jazz = Filter(genre="Rock"), Filter(genre="Jazz")

    async def scenario():
        first = asyncio.create_task(controller.refresh(rock))
        second = asyncio.create_task(controller.refresh(jazz))
        await _settle()
        catalog.resolve(jazz, [_song("Jazz song")])
        await second
        catalog.fail(rock, TransportError("http://catalog.test/api/songs", 500))
        await first

    asyncio.run(scenario())
    assert controller.error is None
    assert [s.title for s in controller.songs] == ["Jazz song"]


# ---------------------------------------------------------------------------
# request_refresh
# ---------------------------------------------------------------------------


def test_request_refresh_enters_loading_immediately():
    catalog = GatedCatalog()
    controller = SyncController(catalog)

    async def scenario():
        controller.request_refresh(Filter(genre="Rock"))
        assert controller.loading is True
        await _settle()
        catalog.resolve(Filter(genre="Rock"), [_song("R")])
        await controller.wait_idle()

    asyncio.run(scenario())
    assert controller.loading is False


def test_request_refresh_cancels_superseded_request():
    catalog = GatedCatalog()
    controller = SyncController(catalog)
    rock, jazz = Filter(genre="Rock"), Filter(genre="Jazz")
    seen: list[CatalogState] = []

    async def scenario():
        first = controller.request_refresh(rock)
        await _settle()
        controller.subscribe(seen.append)
        controller.request_refresh(jazz)
        await _settle()
        assert first.cancelled()
        catalog.resolve(jazz, [_song("Jazz song")])
        await controller.wait_idle()

    asyncio.run(scenario())
    assert [s.title for s in controller.songs] == ["Jazz song"]
    # the cancelled request never flips the loading flag off on its own
    assert [s.loading for s in seen] == [True, False]


def test_wait_idle_without_pending_request():
    asyncio.run(SyncController(_client()).wait_idle())


# ---------------------------------------------------------------------------
# Derived genres
# ---------------------------------------------------------------------------


def test_genres_derived_from_collection():
    client = _client([_song("a", "Rock"), _song("b", "Jazz"), _song("c", ""), _song("d", "Rock")])
    controller = SyncController(client)
    asyncio.run(controller.refresh(Filter()))
    assert controller.genres == ("Jazz", "Rock")


def test_genre_projection_is_cached_until_collection_changes():
    state = CatalogState(songs=(_song("a", "Rock"),))
    first = state.genres
    assert state.genres is first
    assert state.evolve(loading=True).genres is first
    assert state.evolve(songs=(_song("b", "Jazz"),)).genres == ("Jazz",)


def test_unsubscribed_listener_not_called():
    controller = SyncController(_client([]))
    listener = MagicMock()
    controller.subscribe(listener)()
    asyncio.run(controller.refresh(Filter()))
    listener.assert_not_called()


def test_request_refresh_outside_event_loop_leaves_state_untouched():
    controller = SyncController(_client([_song("A")]))
    asyncio.run(controller.refresh(Filter()))
    before = controller.state

    with pytest.raises(RuntimeError):
        controller.request_refresh(Filter(genre="Rock"))

    assert controller.state is before
    assert controller.loading is False
