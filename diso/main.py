"""
Local presentation API.

Bound to localhost by default: this is the UI seam of a single-user client,
not a hosted service. Run with `python -m diso` or `uvicorn diso.main:app`.
"""

import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables at the very beginning
load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

from diso.api import history, session, system  # noqa: E402
from diso.core import dependencies  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: load history once and create the live session."""
    app.state.session = dependencies.build_session()
    logger.info(f"[STARTUP] Session ready, {len(app.state.session.history.list())} history records")
    yield
    logger.info("[SHUTDOWN] Session closed")


app = FastAPI(title="DISO - Detect & Inspect Synthetic Output", lifespan=lifespan)

# ---- CORS ----
# The UI is served from a local dev server on another port
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://127.0.0.1"],
    allow_origin_regex=r"http://(localhost|127\.0\.0\.1)(:\d+)?",
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(system.router)
app.include_router(session.router)
app.include_router(history.router)
