"""
Session routes: the presentation surface's inbound calls for the live session.

  GET  /api/v1/session          current snapshot
  POST /api/v1/session/analyze  submit a file (multipart 'file')
  POST /api/v1/session/retry    re-submit the failed attempt
  POST /api/v1/session/reset    back to idle
"""

import logging
import os

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from diso.core.dependencies import get_session
from diso.core.exceptions import RetryNotAvailableError
from diso.core.media_encoder import RawFile
from diso.schemas.session import SessionSnapshot
from diso.session.controller import AnalysisSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Session"])


def _upload_size(file: UploadFile) -> int:
    if file.size is not None:
        return file.size
    file.file.seek(0, os.SEEK_END)
    size = file.file.tell()
    file.file.seek(0)
    return size


@router.get("/api/v1/session", response_model=SessionSnapshot)
async def get_session_route(session: AnalysisSession = Depends(get_session)):
    return session.snapshot()


@router.post("/api/v1/session/analyze", response_model=SessionSnapshot)
async def analyze(file: UploadFile = File(...), session: AnalysisSession = Depends(get_session)):
    """
    Runs the whole analysis for one file and returns the terminal snapshot.
    Analysis failures are reported in the snapshot, not as HTTP errors.
    """
    raw_file = RawFile(
        name=file.filename or "upload",
        size=_upload_size(file),
        reader=file.read,
        declared_type=file.content_type or None,
        # The upload is closed once the response is sent
        reopenable=False,
    )
    await session.submit_file(raw_file)
    return session.snapshot()


@router.post("/api/v1/session/retry", response_model=SessionSnapshot)
async def retry(session: AnalysisSession = Depends(get_session)):
    try:
        await session.retry()
    except RetryNotAvailableError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return session.snapshot()


@router.post("/api/v1/session/reset", response_model=SessionSnapshot)
async def reset(session: AnalysisSession = Depends(get_session)):
    session.reset()
    return session.snapshot()
