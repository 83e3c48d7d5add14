"""Form state machine for contributing a new song.

    EDITING --submit--> SUBMITTING --ok--> SUBMITTED --> EDITING (fields cleared)
                                    \\-fail--> EDITING (fields kept)

Title and artist must be non-empty before a request is made. The year field
is optional; when filled in it must be a positive whole number, otherwise the
submission is rejected locally rather than sending a bad value.

After a successful write the collection is refreshed with the filter that is
active at that moment, so a new song only shows up if it matches it.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, fields
from enum import Enum, auto

from .exceptions import FreeMusicError, ValidationError
from .models import SongRecord

logger = logging.getLogger(__name__)


class SubmissionState(Enum):
    EDITING = auto()
    SUBMITTING = auto()
    SUBMITTED = auto()


@dataclass
class SongForm:
    """Raw text of the contribution form, exactly as typed."""

    title: str = ""
    artist: str = ""
    album: str = ""
    genre: str = ""
    year: str = ""
    cover_url: str = ""
    listen_url: str = ""

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))


def parse_year(text: str) -> int | None:
    """Return the year typed in *text*, or None if it was left blank.

    Raises ValidationError for anything that is not a positive whole number.
    """
    text = text.strip()
    if not text:
        return None
    if not (text.isascii() and text.isdigit()) or int(text) == 0:
        raise ValidationError(f"Year must be a positive whole number, got {text!r}")
    return int(text)


class SubmissionWorkflow:
    """Collects, validates and submits a new song entry."""

    def __init__(self, client, controller, filter_state, *, on_error: Callable[[str], None] | None = None):
        self._client = client
        self._controller = controller
        self._filter_state = filter_state
        self._on_error = on_error
        self.form = SongForm()
        self.state = SubmissionState.EDITING
        self.error: str | None = None

    @property
    def can_submit(self) -> bool:
        return self.state is SubmissionState.EDITING

    def set_field(self, name: str, value: str) -> None:
        if name not in SongForm.field_names():
            raise KeyError(name)
        if self.state is SubmissionState.SUBMITTING:
            return
        setattr(self.form, name, value)

    def build_record(self) -> SongRecord:
        """Validate the form and return the record that would be submitted."""
        title = self.form.title.strip()
        artist = self.form.artist.strip()
        if not title:
            raise ValidationError("Title is required")
        if not artist:
            raise ValidationError("Artist is required")

        return SongRecord(
            title=title,
            artist=artist,
            album=self.form.album.strip() or None,
            genre=self.form.genre.strip() or None,
            year=parse_year(self.form.year),
            cover_url=self.form.cover_url.strip() or None,
            listen_url=self.form.listen_url.strip() or None,
            is_free=True,
        )

    async def submit(self) -> bool:
        """Submit the form. Returns True if the song was accepted."""
        if not self.can_submit:
            logger.debug("Ignoring submit while %s", self.state.name)
            return False

        try:
            record = self.build_record()
        except ValidationError as exc:
            self._surface(exc.detail)
            return False

        self.state = SubmissionState.SUBMITTING
        try:
            await self._client.create(record)
        except FreeMusicError as exc:
            message = exc.detail if isinstance(exc, ValidationError) else str(exc)
            self._surface(message)
            self.state = SubmissionState.EDITING
            return False
        except BaseException:
            # cancelled or crashed: the form stays filled in and usable
            self.state = SubmissionState.EDITING
            raise

        self.state = SubmissionState.SUBMITTED
        logger.info('Added "%s" by %s', record.title, record.artist)
        self.form = SongForm()
        self.error = None
        self.state = SubmissionState.EDITING

        # Read the filter now, not when the submission started.
        await self._controller.refresh(self._filter_state.current)
        return True

    def _surface(self, message: str) -> None:
        logger.info("Submission rejected: %s", message)
        self.error = message
        if self._on_error is not None:
            self._on_error(message)
