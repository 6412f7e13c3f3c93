"""
Media Encoder: raw file handle -> data-URI preview + base64 payload + MIME type.

The size ceiling is enforced synchronously by `check_size` before any byte is
read. The read itself is the only suspension point before submission and is
always a full read; there is no streamed or partial encoding.

The content type is taken from the data-URI envelope. The envelope MIME is the
handle's declared type when it has one, otherwise it is sniffed from the
bytes. File names and extensions are never consulted.
"""

import asyncio
import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional

from PIL import Image, UnidentifiedImageError

from diso.config import settings
from diso.core.error_classifier import file_too_large_message
from diso.core.exceptions import FileTooLargeError, ReadFailureError
from diso.schemas.session import UploadedMedia

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class RawFile:
    """
    Opaque binary handle produced by the file picker: a name, a byte length
    and a way to read the full content. `declared_type` mirrors the MIME type
    a picker attaches to a file, if any. `reopenable` is False when the reader
    only works once, like a request upload that is closed after the response.
    """
    name: str
    size: int
    reader: Callable[[], Awaitable[bytes]]
    declared_type: Optional[str] = None
    reopenable: bool = True

    @classmethod
    def from_path(cls, path, declared_type: Optional[str] = None) -> "RawFile":
        path = Path(path)

        async def _read() -> bytes:
            return await asyncio.to_thread(path.read_bytes)

        return cls(name=path.name, size=path.stat().st_size, reader=_read, declared_type=declared_type)

    @classmethod
    def from_bytes(cls, name: str, data: bytes, declared_type: Optional[str] = None) -> "RawFile":
        async def _read() -> bytes:
            return data

        return cls(name=name, size=len(data), reader=_read, declared_type=declared_type)


def check_size(raw_file: RawFile, max_bytes: Optional[int] = None) -> None:
    """Reject oversized input before any encoding work begins."""
    limit = settings.max_upload_bytes if max_bytes is None else max_bytes
    if raw_file.size >= limit:
        logger.warning(f"[ENCODER] Rejected {raw_file.name}: {raw_file.size} bytes >= {limit}")
        raise FileTooLargeError(file_too_large_message())


def _sniff_video_type(head: bytes) -> Optional[str]:
    if head[4:8] == b"ftyp":
        return "video/quicktime" if head[8:12] == b"qt  " else "video/mp4"
    if head[:4] == b"\x1a\x45\xdf\xa3":
        return "video/webm"
    if head[:4] == b"RIFF" and head[8:12] == b"AVI ":
        return "video/x-msvideo"
    return None


def sniff_mime_type(data: bytes) -> str:
    """Best-effort MIME detection from content: Pillow for images, container signatures for video."""
    video_type = _sniff_video_type(data[:16])
    if video_type:
        return video_type
    try:
        with Image.open(io.BytesIO(data)) as img:
            mime = Image.MIME.get(img.format or "")
            if mime:
                return mime
    except UnidentifiedImageError:
        pass
    except Exception as e:
        logger.debug(f"[ENCODER] Pillow could not identify content: {e}")
    return DEFAULT_MIME_TYPE


def normalize_mime_type(declared: Optional[str]) -> Optional[str]:
    """Bare `type/subtype` from a declared type, or None when it is unusable."""
    if not declared:
        return None
    mime_type = declared.split(";", 1)[0].strip().lower()
    if mime_type.count("/") != 1 or any(c in mime_type for c in ",; \t"):
        return None
    return mime_type


def build_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def split_data_uri(data_uri: str) -> tuple[str, str]:
    """Split `data:<mime>;base64,<body>` into (mime, body)."""
    meta, body = data_uri.split(",", 1)
    mime_type = meta.split(":", 1)[1].split(";", 1)[0]
    return mime_type, body


async def encode(raw_file: RawFile, max_bytes: Optional[int] = None) -> UploadedMedia:
    """
    Read the whole file and produce its preview, transport payload and content type.

    Raises:
        FileTooLargeError: before any read, when the file is at or over the ceiling.
        ReadFailureError: when the handle cannot be read.
    """
    check_size(raw_file, max_bytes)

    try:
        data = await raw_file.reader()
    except Exception as e:
        logger.error(f"[ENCODER] Failed to read {raw_file.name}: {e}")
        raise ReadFailureError(f"Failed to read file: {e}") from e

    envelope_type = normalize_mime_type(raw_file.declared_type) or await asyncio.to_thread(sniff_mime_type, data)
    preview = build_data_uri(data, envelope_type)
    content_type, payload = split_data_uri(preview)

    logger.info(f"[ENCODER] Encoded {raw_file.name} ({len(data)} bytes, {content_type})")
    return UploadedMedia(
        file_name=raw_file.name,
        file_size=raw_file.size,
        preview=preview,
        encoded_payload=payload,
        content_type=content_type,
    )
