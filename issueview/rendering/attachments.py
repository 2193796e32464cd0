"""
Attachment resolution for inline embedding.

Downloads every attachment of a content item through the caller-supplied
`FetchBytes` capability and turns each into a self-contained data URI. Design:
  - one result per descriptor: ResolvedAttachment on success, FailureNotice on
    any failure; a failed fetch never affects its siblings
  - fetches for one document run concurrently (asyncio.gather), optionally
    bounded by a semaphore
  - AttachmentSet indexes the results by id for O(1) lookup while rendering
"""

from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from ..domain import (
    AttachmentDescriptor,
    AttachmentResult,
    FailureNotice,
    ResolvedAttachment,
)
from ..errors import AttachmentFetchFailure
from .options import RenderConfig
from .renderer_iface import FetchBytes

LOGGER = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"

_MIME_TYPES: Dict[str, str] = {
    # Images
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "tiff": "image/tiff",
    "tif": "image/tiff",
    # Documents
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    # Text
    "txt": "text/plain",
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "text/javascript",
    "json": "application/json",
    "xml": "text/xml",
    # Archives
    "zip": "application/zip",
    "rar": "application/x-rar-compressed",
    "7z": "application/x-7z-compressed",
    "tar": "application/x-tar",
    "gz": "application/gzip",
}


def mime_type_for(name: Optional[str]) -> str:
    """Infer a MIME type from the lowercase file extension of ``name``."""
    if not name or "." not in name:
        return DEFAULT_MIME_TYPE
    ext = name.lower().rsplit(".", 1)[-1]
    return _MIME_TYPES.get(ext, DEFAULT_MIME_TYPE)


def inline_reference(mime_type: str, data: bytes) -> str:
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


@dataclass
class AttachmentSet:
    """Resolution results indexed by attachment id."""

    resolved: Dict[int, ResolvedAttachment] = field(default_factory=dict)
    failures: Dict[int, FailureNotice] = field(default_factory=dict)

    @classmethod
    def from_results(cls, results: Iterable[AttachmentResult]) -> "AttachmentSet":
        out = cls()
        for r in results:
            if isinstance(r, ResolvedAttachment):
                out.resolved[r.id] = r
            else:
                out.failures[r.id] = r
        return out

    def get(self, attachment_id: int) -> Optional[ResolvedAttachment]:
        return self.resolved.get(attachment_id)

    def failure_for(self, attachment_id: int) -> Optional[FailureNotice]:
        return self.failures.get(attachment_id)

    def notices(self) -> List[FailureNotice]:
        return list(self.failures.values())

    def __len__(self) -> int:
        return len(self.resolved) + len(self.failures)


class AttachmentResolver:
    def __init__(self, config: Optional[RenderConfig] = None):
        self.config = config or RenderConfig()

    async def resolve(
        self,
        document_id: str,
        descriptors: Sequence[AttachmentDescriptor],
        fetch_bytes: FetchBytes,
    ) -> List[AttachmentResult]:
        """Resolve every descriptor; results keep the descriptor order."""
        if not descriptors:
            return []
        limit = self.config.max_concurrent_fetches
        sem = asyncio.Semaphore(limit) if limit and limit > 0 else None

        async def _one(desc: AttachmentDescriptor) -> AttachmentResult:
            if sem is None:
                return await self._resolve_one(document_id, desc, fetch_bytes)
            async with sem:
                return await self._resolve_one(document_id, desc, fetch_bytes)

        results = await asyncio.gather(*(_one(d) for d in descriptors))
        LOGGER.debug(
            "issueview.attachments.resolved doc=%s total=%d failed=%d",
            document_id,
            len(results),
            sum(1 for r in results if isinstance(r, FailureNotice)),
        )
        return list(results)

    async def _resolve_one(
        self,
        document_id: str,
        desc: AttachmentDescriptor,
        fetch_bytes: FetchBytes,
    ) -> AttachmentResult:
        try:
            data = await fetch_bytes(document_id, desc.id)
            if not isinstance(data, (bytes, bytearray, memoryview)):
                raise AttachmentFetchFailure(
                    desc.id,
                    f"unexpected payload type {type(data).__name__}",
                    name=desc.name,
                )
        except Exception as e:
            reason = e.reason if isinstance(e, AttachmentFetchFailure) else str(e)
            LOGGER.warning(
                "issueview.attachments.fetch_fail id=%s name=%s err=%s",
                desc.id,
                desc.name,
                reason or type(e).__name__,
            )
            return FailureNotice(
                id=desc.id, name=desc.name, reason=reason or type(e).__name__
            )
        mime = mime_type_for(desc.name)
        return ResolvedAttachment(
            id=desc.id,
            name=desc.name,
            mime_type=mime,
            inline_reference=inline_reference(mime, bytes(data)),
        )
