from .client import CatalogClient
from .config import Settings, load_settings
from .filters import FilterState
from .submission import SubmissionWorkflow
from .sync import SyncController


class CatalogSession:
    """Wires the client, controller, filter and submission form together.

    Use as an async context manager: entering performs the startup read
    (skipped when *autostart* is False, for write-only use), leaving waits
    for any requested refresh and closes the HTTP client.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client: CatalogClient | None = None,
        on_error=None,
        autostart: bool = True,
    ):
        self.autostart = autostart
        self.settings = settings or load_settings()
        self.client = client or CatalogClient(self.settings.base_url, timeout=self.settings.timeout)
        self.controller = SyncController(self.client)
        self.filters = FilterState(lambda: self.controller.state)
        self.filters.subscribe(self.controller.request_refresh)
        self.submission = SubmissionWorkflow(
            self.client, self.controller, self.filters, on_error=on_error
        )

    async def __aenter__(self) -> "CatalogSession":
        if self.autostart:
            await self.controller.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        try:
            await self.controller.wait_idle()
        finally:
            await self.client.aclose()
