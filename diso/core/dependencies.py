"""
Session wiring and the FastAPI dependency that hands it to route handlers.

`build_session` assembles the live session from the storage, history and
inference integrations; the app lifespan calls it once and keeps the result
on `app.state.session`.
"""

import logging

from fastapi import HTTPException, Request

from diso.history.store import HistoryStore
from diso.integrations import storage as storage_module
from diso.integrations.gemini.client import GeminiInferenceClient
from diso.session.controller import AnalysisSession

logger = logging.getLogger(__name__)


def build_session() -> AnalysisSession:
    if storage_module.store is None:
        storage_module.initialize()

    history = HistoryStore(storage_module.store)
    history.load()
    return AnalysisSession(inference=GeminiInferenceClient(), history=history)


def get_session(request: Request) -> AnalysisSession:
    session = getattr(request.app.state, "session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Session not initialized.")
    return session
