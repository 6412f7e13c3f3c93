"""
Unit tests for diso/session/controller.py, the analysis session state machine.

The inference collaborator is an AsyncMock; history uses an in-memory store.
"""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from diso.core.exceptions import HistoryRecordNotFoundError, RetryNotAvailableError
from diso.core.media_encoder import RawFile
from diso.history.store import HistoryStore
from diso.integrations.storage import FileKeyValueStore, InMemoryKeyValueStore
from diso.schemas.errors import ErrorCategory
from diso.schemas.session import Completed, Failed, Idle, Submitting
from diso.session.controller import AnalysisSession
from tests.conftest import AUTHENTIC_VERDICT, SYNTHETIC_VERDICT, make_padded_jpeg, make_tiny_jpeg


class CountingReader:
    """Async reader that records how many times the file was read."""

    def __init__(self, data: bytes, failures: int = 0):
        self.data = data
        self.reads = 0
        self._failures = failures

    async def __call__(self) -> bytes:
        self.reads += 1
        if self._failures > 0:
            self._failures -= 1
            raise OSError("permission revoked")
        return self.data


def _jpeg_file(name: str = "photo.jpg", size: int = 2 * 1024 * 1024) -> RawFile:
    return RawFile.from_bytes(name, make_padded_jpeg(size), declared_type="image/jpeg")


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------


async def test_successful_analysis_completes_and_archives(session, mock_inference, history_store):
    state = await session.submit_file(_jpeg_file())

    assert isinstance(state, Completed)
    assert state.verdict.is_synthetic is True
    assert state.verdict.confidence_score == 87
    assert state.verdict.verdict_summary == "Likely AI-generated"

    records = history_store.list()
    assert len(records) == 1
    assert records[0].verdict.is_synthetic is True
    assert records[0].file_name == "photo.jpg"
    assert records[0].file_type == "image/jpeg"

    payload, content_type = mock_inference.submit.await_args.args
    assert payload == state.media.encoded_payload
    assert content_type == "image/jpeg"


async def test_oversized_file_fails_immediately(session, mock_inference, history_store):
    reader = AsyncMock(return_value=b"")
    state = await session.submit_file(RawFile(name="movie.mp4", size=25 * 1024 * 1024, reader=reader))

    assert isinstance(state, Failed)
    assert state.error.category == ErrorCategory.FILE_TOO_LARGE
    assert state.error.retryable is False
    assert session.can_retry is False
    reader.assert_not_awaited()
    mock_inference.submit.assert_not_awaited()
    assert history_store.list() == []


async def test_network_failure_then_retry_reuses_payload(session, mock_inference, history_store):
    reader = CountingReader(make_tiny_jpeg())
    raw = RawFile(name="photo.jpg", size=len(reader.data), reader=reader, declared_type="image/jpeg")
    mock_inference.submit.side_effect = [httpx.ConnectError("offline"), SYNTHETIC_VERDICT]

    failed = await session.submit_file(raw)
    assert isinstance(failed, Failed)
    assert failed.error.category == ErrorCategory.NETWORK_UNAVAILABLE
    assert history_store.list() == []
    assert session.can_retry is True

    completed = await session.retry()

    assert isinstance(completed, Completed)
    assert reader.reads == 1
    first_call, second_call = mock_inference.submit.await_args_list
    assert first_call.args == second_call.args
    assert len(history_store.list()) == 1


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


async def test_transitions_are_observable(session):
    seen = []
    session.subscribe(lambda state: seen.append(state.status))

    await session.submit_file(_jpeg_file())
    session.reset()

    assert seen == ["submitting", "submitting", "completed", "idle"]


async def test_unsubscribe_stops_notifications(session):
    seen = []
    unsubscribe = session.subscribe(lambda state: seen.append(state.status))
    unsubscribe()

    session.reset()

    assert seen == []


async def test_failing_listener_does_not_break_session(session):
    def _boom(state):
        raise RuntimeError("listener bug")

    session.subscribe(_boom)
    state = await session.submit_file(_jpeg_file())

    assert isinstance(state, Completed)


async def test_inference_error_is_classified(session, mock_inference, history_store):
    mock_inference.submit.side_effect = RuntimeError("API key not valid")

    state = await session.submit_file(_jpeg_file())

    assert isinstance(state, Failed)
    assert state.error.category == ErrorCategory.AUTHENTICATION
    assert state.media is not None
    assert history_store.list() == []


async def test_unknown_error_still_yields_failed_state(session, mock_inference):
    mock_inference.submit.side_effect = ValueError("weird")

    state = await session.submit_file(_jpeg_file())

    assert isinstance(state, Failed)
    assert state.error.category == ErrorCategory.UNKNOWN
    assert state.error.message == "An unexpected error occurred during analysis. Please try again."


async def test_new_submission_clears_previous_result(session, mock_inference):
    await session.submit_file(_jpeg_file("first.jpg"))
    mock_inference.submit.return_value = AUTHENTIC_VERDICT

    state = await session.submit_file(_jpeg_file("second.jpg"))

    assert isinstance(state, Completed)
    assert state.media.file_name == "second.jpg"
    assert state.verdict.is_synthetic is False


async def test_previous_media_stays_visible_while_encoding(session):
    await session.submit_file(_jpeg_file("first.jpg"))
    submitting_media = []
    session.subscribe(
        lambda state: submitting_media.append(state.media.file_name if state.media else None)
        if isinstance(state, Submitting) else None
    )

    await session.submit_file(_jpeg_file("second.jpg"))

    assert submitting_media == ["first.jpg", "second.jpg"]


async def test_reset_clears_media_but_not_history(session, history_store):
    await session.submit_file(_jpeg_file())

    state = session.reset()

    assert isinstance(state, Idle)
    assert session.snapshot().media is None
    assert len(history_store.list()) == 1


async def test_archival_failure_does_not_roll_back_completed(mock_inference):
    tiny = HistoryStore(InMemoryKeyValueStore(capacity_bytes=16))
    session = AnalysisSession(inference=mock_inference, history=tiny)

    state = await session.submit_file(_jpeg_file())

    assert isinstance(state, Completed)
    assert tiny.list() == []


async def test_unreadable_storage_directory_does_not_escape_completed(tmp_path, mock_inference):
    (tmp_path / "other.txt").write_bytes(b"\xff\xfe\x00not utf-8")
    history = HistoryStore(FileKeyValueStore(tmp_path, capacity_bytes=1024 * 1024))
    session = AnalysisSession(inference=mock_inference, history=history)

    state = await session.submit_file(RawFile.from_bytes("photo.jpg", make_tiny_jpeg(), declared_type="image/jpeg"))

    assert isinstance(state, Completed)
    assert history.list() == []


# ---------------------------------------------------------------------------
# Retry rules
# ---------------------------------------------------------------------------


async def test_retry_after_read_failure_rereads_same_handle(session, mock_inference):
    reader = CountingReader(make_tiny_jpeg(), failures=1)
    raw = RawFile(name="photo.jpg", size=len(reader.data), reader=reader, declared_type="image/jpeg")

    failed = await session.submit_file(raw)
    assert isinstance(failed, Failed)
    assert failed.error.category == ErrorCategory.READ_FAILURE
    assert failed.media is None
    assert session.can_retry is True
    mock_inference.submit.assert_not_awaited()

    state = await session.retry()

    assert isinstance(state, Completed)
    assert reader.reads == 2


async def test_read_failure_on_one_shot_reader_offers_no_retry(session):
    reader = CountingReader(make_tiny_jpeg(), failures=1)
    raw = RawFile(name="upload.jpg", size=len(reader.data), reader=reader, reopenable=False)

    failed = await session.submit_file(raw)

    assert isinstance(failed, Failed)
    assert failed.error.category == ErrorCategory.READ_FAILURE
    assert session.can_retry is False
    with pytest.raises(RetryNotAvailableError):
        await session.retry()
    assert reader.reads == 1


async def test_retry_not_available_when_idle(session):
    with pytest.raises(RetryNotAvailableError):
        await session.retry()


async def test_retry_not_available_after_file_too_large(session):
    await session.submit_file(RawFile(name="big.mp4", size=30 * 1024 * 1024, reader=AsyncMock()))

    with pytest.raises(RetryNotAvailableError):
        await session.retry()


async def test_retry_not_available_when_completed(session):
    await session.submit_file(_jpeg_file())

    with pytest.raises(RetryNotAvailableError):
        await session.retry()


# ---------------------------------------------------------------------------
# Concurrency: idempotency and stale responses
# ---------------------------------------------------------------------------


def _gated_inference(verdict=SYNTHETIC_VERDICT):
    gate = asyncio.Event()

    async def _submit(payload, content_type):
        await gate.wait()
        return verdict

    inference = AsyncMock()
    inference.submit = AsyncMock(side_effect=_submit)
    return inference, gate


async def _wait_for_submission(session, inference):
    for _ in range(100):
        if inference.submit.await_count:
            return
        await asyncio.sleep(0)
    raise AssertionError("submission never started")


async def test_second_submit_while_in_flight_is_noop(history_store):
    inference, gate = _gated_inference()
    session = AnalysisSession(inference=inference, history=history_store)

    task = asyncio.create_task(session.submit_file(_jpeg_file("first.jpg")))
    await _wait_for_submission(session, inference)

    again = await session.submit_file(_jpeg_file("second.jpg"))
    assert isinstance(again, Submitting)
    assert again.media.file_name == "first.jpg"

    gate.set()
    final = await task

    assert isinstance(final, Completed)
    assert final.media.file_name == "first.jpg"
    assert inference.submit.await_count == 1


async def test_late_result_after_reset_is_discarded(history_store):
    inference, gate = _gated_inference()
    session = AnalysisSession(inference=inference, history=history_store)

    task = asyncio.create_task(session.submit_file(_jpeg_file()))
    await _wait_for_submission(session, inference)

    session.reset()
    gate.set()
    await task

    assert isinstance(session.state, Idle)
    assert history_store.list() == []


async def test_late_result_does_not_overwrite_newer_session(history_store):
    inference, gate = _gated_inference()
    session = AnalysisSession(inference=inference, history=history_store)

    stale = asyncio.create_task(session.submit_file(_jpeg_file("stale.jpg")))
    await _wait_for_submission(session, inference)
    session.reset()

    inference.submit = AsyncMock(return_value=AUTHENTIC_VERDICT)
    fresh = await session.submit_file(_jpeg_file("fresh.jpg"))
    gate.set()
    await stale

    assert isinstance(session.state, Completed)
    assert session.state.media.file_name == "fresh.jpg"
    assert session.state.verdict == AUTHENTIC_VERDICT
    assert fresh.media.file_name == "fresh.jpg"
    assert [r.file_name for r in history_store.list()] == ["fresh.jpg"]


async def test_late_error_after_reset_is_discarded(history_store):
    gate = asyncio.Event()

    async def _submit(payload, content_type):
        await gate.wait()
        raise httpx.ConnectError("offline")

    inference = AsyncMock()
    inference.submit = AsyncMock(side_effect=_submit)
    session = AnalysisSession(inference=inference, history=history_store)

    task = asyncio.create_task(session.submit_file(_jpeg_file()))
    await _wait_for_submission(session, inference)
    session.reset()
    gate.set()
    await task

    assert isinstance(session.state, Idle)


# ---------------------------------------------------------------------------
# History selection / deletion
# ---------------------------------------------------------------------------


async def test_select_history_rebuilds_completed_session(session, history_store):
    await session.submit_file(_jpeg_file("archived.jpg"))
    record = history_store.list()[0]
    session.reset()

    state = session.select_history(record.id)

    assert isinstance(state, Completed)
    assert state.verdict == record.verdict
    assert state.media.preview == record.preview
    assert state.media.file_name == "archived.jpg"
    assert state.media.file_size == 0
    assert state.media.encoded_payload == ""
    assert state.media.from_history is True
    assert session.can_retry is False


async def test_select_unknown_history_raises(session):
    with pytest.raises(HistoryRecordNotFoundError):
        session.select_history("missing")


async def test_delete_history_is_idempotent(session, history_store):
    await session.submit_file(_jpeg_file())
    record_id = history_store.list()[0].id

    assert session.delete_history(record_id) is True
    assert session.delete_history(record_id) is False
    assert history_store.list() == []


async def test_snapshot_omits_encoded_payload(session):
    await session.submit_file(_jpeg_file())

    snapshot = session.snapshot().model_dump()

    assert snapshot["status"] == "completed"
    assert "encoded_payload" not in snapshot["media"]
    assert snapshot["media"]["preview"].startswith("data:image/jpeg;base64,")
