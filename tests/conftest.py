"""
Shared pytest fixtures for all test modules.

The Gemini client is never built for real: the inference collaborator is an
AsyncMock and the app's `build_session` is patched to return the test session.
"""

import io
import os

# Keep a developer's real key out of the test run
os.environ.pop("GEMINI_API_KEY", None)

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from diso.history.store import HistoryStore
from diso.integrations.storage import InMemoryKeyValueStore
from diso.schemas.analysis import AnalysisVerdict, TechnicalFindings
from diso.session.controller import AnalysisSession
from tests.mocks.storage_mock import MockStorage

from diso.main import app  # noqa: E402


# ---------------------------------------------------------------------------
# Shared test-data helpers
# ---------------------------------------------------------------------------


def make_tiny_jpeg() -> bytes:
    """Create a minimal 10×10 JPEG in memory, fast and valid."""
    buf = io.BytesIO()
    Image.new("RGB", (10, 10), color=(128, 128, 128)).save(buf, format="JPEG")
    return buf.getvalue()


def make_padded_jpeg(total_bytes: int) -> bytes:
    """A valid JPEG header followed by padding, `total_bytes` long."""
    head = make_tiny_jpeg()
    return head + b"\x00" * max(0, total_bytes - len(head))


def make_verdict(**overrides) -> AnalysisVerdict:
    data = {
        "is_synthetic": True,
        "confidence_score": 87,
        "verdict_summary": "Likely AI-generated",
        "reasoning_points": ["Waxy skin texture", "Shadows disagree with the key light"],
        "artifacts_found": ["Melted earring"],
        "technical_findings": TechnicalFindings(
            lighting_consistency="Inconsistent shadow directions",
            texture_quality="Over-smoothed skin",
            anatomical_accuracy="Six fingers on the left hand",
        ),
    }
    data.update(overrides)
    return AnalysisVerdict(**data)


SYNTHETIC_VERDICT = make_verdict()

AUTHENTIC_VERDICT = make_verdict(
    is_synthetic=False,
    confidence_score=92,
    verdict_summary="Likely authentic",
    reasoning_points=["Natural sensor noise"],
    artifacts_found=[],
)


# ---------------------------------------------------------------------------
# Core infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def memory_storage():
    return InMemoryKeyValueStore(capacity_bytes=50 * 1024 * 1024)


@pytest.fixture
def mock_storage():
    """Store whose writes can be made to fail with a quota error on demand."""
    return MockStorage()


@pytest.fixture
def history_store(memory_storage):
    store = HistoryStore(memory_storage)
    store.load()
    return store


@pytest.fixture
def mock_inference():
    inference = AsyncMock()
    inference.submit = AsyncMock(return_value=SYNTHETIC_VERDICT)
    return inference


@pytest.fixture
def session(mock_inference, history_store):
    return AnalysisSession(inference=mock_inference, history=history_store)


@pytest.fixture
def client(session):
    """FastAPI TestClient whose lifespan wires in the test session."""
    with patch("diso.core.dependencies.build_session", return_value=session):
        with TestClient(app, raise_server_exceptions=False) as c:
            yield c
