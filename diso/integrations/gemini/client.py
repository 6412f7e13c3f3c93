"""
Gemini inference collaborator.

`GeminiInferenceClient.submit` takes the base64 payload and MIME type produced
by the media encoder and returns a validated `AnalysisVerdict`. It performs no
retry or back-off; retrying is a user action handled by the session.

Failures are raised, never swallowed: the session classifies them.
"""

import base64
import json
import logging
import os
import time
from typing import Optional, Protocol

from google import genai
from google.genai import types
from pydantic import ValidationError

from diso.config import settings
from diso.core.exceptions import MalformedResponseError, MissingApiKeyError
from diso.integrations.gemini.prompts import get_system_instruction
from diso.schemas.analysis import AnalysisVerdict

logger = logging.getLogger(__name__)


class InferenceClient(Protocol):
    async def submit(self, encoded_payload: str, content_type: str) -> AnalysisVerdict: ...


class GeminiInferenceClient:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.model = model or settings.gemini_model
        api_key = api_key or os.getenv("GEMINI_API_KEY")
        self._client = None
        if api_key:
            self._client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(timeout=settings.gemini_http_timeout_ms),
            )
        else:
            logger.warning("[STARTUP] GEMINI_API_KEY not set. Every analysis will fail with an auth error.")

    async def submit(self, encoded_payload: str, content_type: str) -> AnalysisVerdict:
        if self._client is None:
            raise MissingApiKeyError()

        is_video = content_type.startswith("video/")
        config = types.GenerateContentConfig(
            system_instruction=get_system_instruction(is_video),
            temperature=settings.gemini_temperature,
            response_mime_type="application/json",
            response_schema=AnalysisVerdict,
        )
        execution_query = (
            f"Carefully analyze this {'video' if is_video else 'image'} for generative AI artifacts, "
            "strictly following the system instructions."
        )

        start = time.perf_counter()
        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=[
                types.Part.from_bytes(data=base64.b64decode(encoded_payload), mime_type=content_type),
                execution_query,
            ],
            config=config,
        )
        elapsed_ms = (time.perf_counter() - start) * 1000

        if getattr(response, "usage_metadata", None):
            logger.info(
                f"[GEMINI] {content_type} analyzed in {elapsed_ms:.0f} ms | "
                f"tokens: {response.usage_metadata.total_token_count}"
            )

        return parse_verdict(response)


def parse_verdict(response) -> AnalysisVerdict:
    """Extract the structured verdict from a Gemini response, or raise MalformedResponseError."""
    parsed = getattr(response, "parsed", None)
    if isinstance(parsed, AnalysisVerdict):
        return parsed

    text = getattr(response, "text", None)
    if not text:
        raise MalformedResponseError()

    try:
        return AnalysisVerdict.model_validate_json(text)
    except ValidationError as e:
        logger.error(f"[GEMINI] Response did not match the verdict schema: {e}")
        raise MalformedResponseError(f"NO_RESPONSE_TEXT: {e.error_count()} schema errors") from e


if __name__ == "__main__":
    import asyncio
    import sys

    from diso.core.media_encoder import RawFile, encode

    if len(sys.argv) > 1:
        path = sys.argv[1]
        print(f"Analyzing: {path}...")
        start = time.perf_counter()
        media = asyncio.run(encode(RawFile.from_path(path)))
        verdict = asyncio.run(GeminiInferenceClient().submit(media.encoded_payload, media.content_type))
        end = time.perf_counter()
        print(f"Result: {json.dumps(verdict.model_dump(), indent=2)}")
        print(f"Latency: {end - start:.4f}s")
