"""
Analysis session state machine.

One `AnalysisSession` owns the single live session:

    Idle -> Submitting -> Completed | Failed -> (reset) -> Idle
                              Failed -> (retry) -> Submitting

State is an explicit tagged value (`Idle | Submitting | Completed | Failed`)
replaced wholesale on every transition.

Every submission, retry, reset or history selection bumps a generation
counter. Work that was started under an older generation has been abandoned
(no cancellation happens mid-flight) and its late result or error is dropped.
"""

import logging
from typing import Callable, List, Optional

from diso.core.error_classifier import classify
from diso.core.exceptions import (
    FileTooLargeError,
    HistoryRecordNotFoundError,
    RetryNotAvailableError,
)
from diso.core.media_encoder import RawFile, check_size, encode
from diso.history.store import HistoryStore
from diso.integrations.gemini.client import InferenceClient
from diso.schemas.errors import ErrorCategory
from diso.schemas.history import HistoryRecord
from diso.schemas.session import (
    Completed,
    Failed,
    Idle,
    SessionSnapshot,
    SessionState,
    Submitting,
    UploadedMedia,
)

logger = logging.getLogger(__name__)

Listener = Callable[[SessionState], None]


class AnalysisSession:
    def __init__(
        self,
        inference: InferenceClient,
        history: HistoryStore,
        max_upload_bytes: Optional[int] = None,
    ):
        self._inference = inference
        self._history = history
        self._max_upload_bytes = max_upload_bytes
        self._state: SessionState = Idle()
        self._generation = 0
        # File handle of the current attempt; only re-read when no payload was ever captured
        self._raw_file: Optional[RawFile] = None
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------ #
    # Observation                                                         #
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def history(self) -> HistoryStore:
        return self._history

    @property
    def can_retry(self) -> bool:
        state = self._state
        if not isinstance(state, Failed) or not state.error.retryable:
            return False
        if state.media is not None:
            return not state.media.from_history
        raw_file = self._raw_file
        return (
            state.error.category is ErrorCategory.READ_FAILURE
            and raw_file is not None
            and raw_file.reopenable
        )

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot.from_state(self._state, can_retry=self.can_retry)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state listener. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _transition(self, state: SessionState) -> None:
        logger.info(f"[SESSION] {self._state.status} -> {state.status} (gen {self._generation})")
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"[SESSION] State listener failed: {e}")

    def _is_stale(self, generation: int) -> bool:
        if generation != self._generation:
            logger.info(f"[SESSION] Discarding result of abandoned request (gen {generation}, now {self._generation})")
            return True
        return False

    # ------------------------------------------------------------------ #
    # Inbound calls                                                       #
    # ------------------------------------------------------------------ #
    async def submit_file(self, raw_file: RawFile) -> SessionState:
        """Start a new analysis. A no-op while a submission is already in flight."""
        if isinstance(self._state, Submitting):
            logger.warning(f"[SESSION] Ignoring {raw_file.name}: a submission is already in flight")
            return self._state

        self._generation += 1
        generation = self._generation
        self._raw_file = raw_file

        try:
            check_size(raw_file, self._max_upload_bytes)
        except FileTooLargeError as e:
            self._transition(Failed(error=classify(e)))
            return self._state

        # The previous media stays visible (dimmed) until the new one is encoded
        self._transition(Submitting(media=getattr(self._state, "media", None)))
        return await self._encode_and_submit(generation, raw_file)

    async def retry(self) -> SessionState:
        """
        Re-submit the payload captured by the failed attempt without re-encoding.

        After a read failure no payload exists, so the same file handle is read again.
        """
        state = self._state
        if isinstance(state, Submitting):
            return state
        if not self.can_retry:
            raise RetryNotAvailableError(f"Retry is not available from state '{state.status}'")

        self._generation += 1
        generation = self._generation

        if state.media is None:
            self._transition(Submitting())
            return await self._encode_and_submit(generation, self._raw_file)

        return await self._submit(generation, state.media)

    def reset(self) -> SessionState:
        """Back to Idle. Any in-flight request is abandoned; history is untouched."""
        self._generation += 1
        self._raw_file = None
        self._transition(Idle())
        return self._state

    def select_history(self, record_id: str) -> SessionState:
        """Re-display an archived verdict as a Completed session."""
        record = self._history.get(record_id)
        if record is None:
            raise HistoryRecordNotFoundError(f"No history record with id {record_id}")

        self._generation += 1
        self._raw_file = None
        self._transition(Completed(media=media_from_record(record), verdict=record.verdict))
        return self._state

    def delete_history(self, record_id: str) -> bool:
        return self._history.remove(record_id)

    # ------------------------------------------------------------------ #
    # Internals                                                           #
    # ------------------------------------------------------------------ #
    async def _encode_and_submit(self, generation: int, raw_file: RawFile) -> SessionState:
        try:
            media = await encode(raw_file, self._max_upload_bytes)
        except Exception as e:
            if not self._is_stale(generation):
                self._transition(Failed(error=classify(e)))
            return self._state

        if self._is_stale(generation):
            return self._state
        return await self._submit(generation, media)

    async def _submit(self, generation: int, media: UploadedMedia) -> SessionState:
        self._transition(Submitting(media=media))
        try:
            verdict = await self._inference.submit(media.encoded_payload, media.content_type)
        except Exception as e:
            logger.error(f"[SESSION] Analysis of {media.file_name} failed: {type(e).__name__}: {e}")
            if not self._is_stale(generation):
                self._transition(Failed(media=media, error=classify(e)))
            return self._state

        if self._is_stale(generation):
            return self._state

        self._transition(Completed(media=media, verdict=verdict))
        # Archived after the transition; a failed save never undoes Completed
        self._history.append(media, verdict)
        return self._state


def media_from_record(record: HistoryRecord) -> UploadedMedia:
    """Placeholder media for a history record: the original file is gone."""
    return UploadedMedia(
        file_name=record.file_name,
        file_size=0,
        preview=record.preview,
        encoded_payload="",
        content_type=record.file_type,
        from_history=True,
    )
