"""
History Store: newest-first log of completed analyses, persisted as one JSON
list under a single storage key.

Appending walks an ordered list of persistence strategies (full record, then
the record with its preview elided) and keeps the first one the storage
accepts. When every strategy fails the record is dropped; the in-memory list
always mirrors what was persisted. Storage failures are logged, never raised.

The storage backend is the only shared mutable resource; every
read-modify-write runs under the store's lock.
"""

import logging
import threading
import time
import uuid
from typing import Callable, List, Optional

from pydantic import TypeAdapter, ValidationError

from diso.config import settings
from diso.core.exceptions import StorageError, StorageQuotaExceededError
from diso.integrations.storage import KeyValueStore
from diso.schemas.analysis import AnalysisVerdict
from diso.schemas.history import HistoryRecord
from diso.schemas.session import UploadedMedia

logger = logging.getLogger(__name__)

ELIDED_PREVIEW = ""

_RECORDS = TypeAdapter(List[HistoryRecord])


def keep_full(record: HistoryRecord) -> HistoryRecord:
    return record


def elide_preview(record: HistoryRecord) -> HistoryRecord:
    return record.model_copy(update={"preview": ELIDED_PREVIEW})


# Tried in order until one persists.
PERSISTENCE_STRATEGIES: tuple[tuple[str, Callable[[HistoryRecord], HistoryRecord]], ...] = (
    ("full", keep_full),
    ("without_preview", elide_preview),
)


def create_record(media: UploadedMedia, verdict: AnalysisVerdict) -> HistoryRecord:
    return HistoryRecord(
        id=uuid.uuid4().hex,
        timestamp=int(time.time() * 1000),
        file_name=media.file_name,
        file_type=media.content_type,
        preview=media.preview,
        verdict=verdict,
    )


class HistoryStore:
    def __init__(self, storage: KeyValueStore, key: str = settings.history_storage_key):
        self._storage = storage
        self._key = key
        self._records: List[HistoryRecord] = []
        self._lock = threading.RLock()

    def load(self) -> List[HistoryRecord]:
        """Read the persisted list. Unreadable or malformed content yields an empty history."""
        with self._lock:
            try:
                raw = self._storage.get(self._key)
            except StorageError as e:
                logger.error(f"[HISTORY] Failed to read history: {e}")
                raw = None

            records: List[HistoryRecord] = []
            if raw:
                try:
                    records = _RECORDS.validate_json(raw)
                except (ValidationError, ValueError) as e:
                    logger.error(f"[HISTORY] Failed to parse history, starting empty: {e}")

            self._records = sorted(records, key=lambda r: r.timestamp, reverse=True)
            logger.info(f"[HISTORY] Loaded {len(self._records)} records")
            return list(self._records)

    def list(self) -> List[HistoryRecord]:
        with self._lock:
            return list(self._records)

    def get(self, record_id: str) -> Optional[HistoryRecord]:
        with self._lock:
            return next((r for r in self._records if r.id == record_id), None)

    def _persist(self, records: List[HistoryRecord]) -> None:
        self._storage.set(self._key, _RECORDS.dump_json(records).decode("utf-8"))

    def append_record(self, record: HistoryRecord) -> Optional[HistoryRecord]:
        """
        Persist `record` at the head of the list, replacing any entry with the same id.

        Returns the record as stored (possibly with an elided preview), or None
        when no strategy could persist it.
        """
        with self._lock:
            for name, strategy in PERSISTENCE_STRATEGIES:
                candidate = strategy(record)
                updated = [candidate] + [r for r in self._records if r.id != record.id]
                try:
                    self._persist(updated)
                except StorageQuotaExceededError as e:
                    logger.warning(f"[HISTORY] Storage quota exceeded with strategy '{name}': {e}")
                    continue
                except StorageError as e:
                    logger.error(f"[HISTORY] Storage write failed with strategy '{name}': {e}")
                    continue

                self._records = updated
                if name != "full":
                    logger.warning(f"[HISTORY] Saved {record.id} using fallback strategy '{name}'")
                return candidate

            logger.error(f"[HISTORY] Failed to save history item {record.id}; record dropped")
            return None

    def append(self, media: UploadedMedia, verdict: AnalysisVerdict) -> Optional[HistoryRecord]:
        return self.append_record(create_record(media, verdict))

    def remove(self, record_id: str) -> bool:
        """Delete by id and re-persist. Removing an absent id is a no-op."""
        with self._lock:
            updated = [r for r in self._records if r.id != record_id]
            if len(updated) == len(self._records):
                return False

            self._records = updated
            try:
                self._persist(updated)
            except StorageError as e:
                logger.error(f"[HISTORY] Failed to persist deletion of {record_id}: {e}")
            return True
