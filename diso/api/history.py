"""
History routes: list, re-display and delete archived analyses.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from diso.core.dependencies import get_session
from diso.core.exceptions import HistoryRecordNotFoundError
from diso.schemas.history import HistoryRecord
from diso.schemas.session import SessionSnapshot
from diso.session.controller import AnalysisSession

router = APIRouter(tags=["History"])


@router.get("/api/v1/history", response_model=List[HistoryRecord])
async def list_history(session: AnalysisSession = Depends(get_session)):
    """Newest first."""
    return session.history.list()


@router.post("/api/v1/history/{record_id}/select", response_model=SessionSnapshot)
async def select_history(record_id: str, session: AnalysisSession = Depends(get_session)):
    try:
        session.select_history(record_id)
    except HistoryRecordNotFoundError:
        raise HTTPException(status_code=404, detail="History item not found.")
    return session.snapshot()


@router.delete("/api/v1/history/{record_id}", status_code=204)
async def delete_history(record_id: str, session: AnalysisSession = Depends(get_session)):
    """Idempotent: deleting an unknown id still returns 204."""
    session.delete_history(record_id)
    return Response(status_code=204)
