import json

import httpx
import pytest

from freemusic.client import CatalogClient

BASE_URL = "http://catalog.test"


class FakeCatalogService:
    """Records requests and answers them from canned responses."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.songs: list[dict] = []
        self.list_reply: tuple[int, dict] | None = None
        self.create_reply: tuple[int, dict] | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            if self.list_reply is not None:
                status, kwargs = self.list_reply
                return httpx.Response(status, **kwargs)
            return httpx.Response(200, json=self._matching(request.url.params))
        if self.create_reply is not None:
            status, kwargs = self.create_reply
            return httpx.Response(status, **kwargs)
        body = json.loads(request.content)
        created = {"id": str(len(self.songs) + 1), **body}
        self.songs.append(created)
        return httpx.Response(201, json=created)

    def _matching(self, params) -> list[dict]:
        q = params.get("q", "").lower()
        genre = params.get("genre", "")
        return [
            s for s in self.songs
            if (not q or q in s["title"].lower() or q in s["artist"].lower())
            and (not genre or s.get("genre") == genre)
        ]

    @property
    def gets(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "GET"]

    @property
    def posts(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]


@pytest.fixture
def service() -> FakeCatalogService:
    return FakeCatalogService()


@pytest.fixture
def make_client(service):
    def factory(handler=None) -> CatalogClient:
        return CatalogClient(BASE_URL, transport=httpx.MockTransport(handler or service))

    return factory
