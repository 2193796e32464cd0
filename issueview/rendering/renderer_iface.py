"""
Transport-agnostic seams for the rendering pipeline.

Defines the byte-fetch capability (`FetchBytes`) through which attachment
payloads are obtained. The renderers never perform I/O themselves; the
pipeline awaits this callable once per attachment descriptor.
"""

from __future__ import annotations

from typing import Awaitable, Protocol


class FetchBytes(Protocol):
    """Asynchronous attachment download: ``(document_id, attachment_id) -> bytes``.

    Implementations may raise any exception to signal failure; the resolver
    converts it into a failure notice for that attachment only.
    """

    def __call__(self, document_id: str, attachment_id: int) -> Awaitable[bytes]: ...
