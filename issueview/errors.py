"""Error taxonomy for content rendering.

Renderers recover from all of these locally; they exist so that collaborators
(fetch implementations, payload loaders) can signal failures precisely and so
that recovered failures carry a typed reason into logs and failure notices.
"""

from __future__ import annotations

from typing import Optional


class RenderError(Exception):
    """Base content-rendering error."""


class ParseFailure(RenderError):
    """Markup or structured input is too malformed to render."""


class AttachmentFetchFailure(RenderError):
    def __init__(
        self, attachment_id: int, reason: str, *, name: Optional[str] = None
    ) -> None:
        super().__init__(f"Failed to fetch attachment {attachment_id}: {reason}")
        self.attachment_id = attachment_id
        self.name = name
        self.reason = reason


class MalformedAttachmentReference(RenderError):
    def __init__(self, reference: str) -> None:
        super().__init__(f"Malformed attachment reference: {reference}")
        self.reference = reference


class PayloadError(RenderError):
    """A content payload could not be loaded or validated."""
