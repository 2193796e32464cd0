"""Public exports for tracker payload models."""

from __future__ import annotations

from .payloads import (
    ActivityPayload,
    AttachmentPayload,
    ChangeLogPayload,
    ContentPayload,
    MarkPayload,
    NodePayload,
)

__all__ = [
    "ActivityPayload",
    "AttachmentPayload",
    "ChangeLogPayload",
    "ContentPayload",
    "MarkPayload",
    "NodePayload",
]
