from diso.history.store import HistoryStore, create_record, ELIDED_PREVIEW

__all__ = ["HistoryStore", "create_record", "ELIDED_PREVIEW"]
