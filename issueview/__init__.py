"""Public API for issueview."""

from .domain import (
    ActivityEntry,
    ActivityLog,
    AttachmentDescriptor,
    ContentItem,
    FailureNotice,
    FieldChange,
    Mark,
    Markup,
    NodeKind,
    RenderResult,
    ResolvedAttachment,
    RichContent,
    StructuredDocument,
    StructuredNode,
)
from .rendering.attachments import AttachmentResolver, AttachmentSet
from .rendering.changes import ChangeHistoryDiffer
from .rendering.document import StructuredDocumentRenderer
from .rendering.markup import MarkupRenderer
from .rendering.options import RenderConfig
from .rendering.pipeline import ContentPipeline, render_page
from .rendering.sanitize import escape_html, sanitize_url

__all__ = [
    "ActivityEntry",
    "ActivityLog",
    "AttachmentDescriptor",
    "AttachmentResolver",
    "AttachmentSet",
    "ChangeHistoryDiffer",
    "ContentItem",
    "ContentPipeline",
    "FailureNotice",
    "FieldChange",
    "Mark",
    "Markup",
    "MarkupRenderer",
    "NodeKind",
    "RenderConfig",
    "RenderResult",
    "ResolvedAttachment",
    "RichContent",
    "StructuredDocument",
    "StructuredDocumentRenderer",
    "StructuredNode",
    "escape_html",
    "render_page",
    "sanitize_url",
]
