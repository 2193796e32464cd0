# issueview/domain.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple, Union


class NodeKind(str, Enum):
    DOC = "doc"
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    BULLET_LIST = "bulletList"
    ORDERED_LIST = "orderedList"
    LIST_ITEM = "listItem"
    TABLE = "table"
    TABLE_ROW = "tableRow"
    TABLE_CELL = "tableCell"
    TABLE_HEADER = "tableHeader"
    BLOCKQUOTE = "blockquote"
    CODE_BLOCK = "codeBlock"
    HARD_BREAK = "hardBreak"
    HORIZONTAL_RULE = "horizontalRule"
    IMAGE = "image"
    TEXT = "text"


# Kinds that never carry children
LEAF_KINDS = frozenset(
    k.value
    for k in (NodeKind.TEXT, NodeKind.HARD_BREAK, NodeKind.HORIZONTAL_RULE, NodeKind.IMAGE)
)


class MarkKind(str, Enum):
    STRONG = "strong"
    EMPHASIS = "em"
    CODE = "code"
    UNDERLINE = "underline"
    STRIKETHROUGH = "strike"
    LINK = "link"


@dataclass(frozen=True)
class Mark:
    kind: str
    href: Optional[str] = None


@dataclass(frozen=True)
class StructuredNode:
    """One node of a structured rich-text tree.

    ``kind`` is kept as a plain string so that node kinds unknown to the
    renderer survive parsing; known kinds compare equal to ``NodeKind`` members.
    ``text`` and ``marks`` are only meaningful for text nodes.
    """

    kind: str
    attributes: Mapping[str, Any] = field(default_factory=dict)
    children: Tuple["StructuredNode", ...] = ()
    text: Optional[str] = None
    marks: Tuple[Mark, ...] = ()

    @classmethod
    def text_node(cls, text: str, marks: Tuple[Mark, ...] = ()) -> "StructuredNode":
        return cls(kind=NodeKind.TEXT.value, text=text, marks=tuple(marks))

    @classmethod
    def container(
        cls,
        kind: Union[NodeKind, str],
        *children: "StructuredNode",
        **attributes: Any,
    ) -> "StructuredNode":
        k = kind.value if isinstance(kind, NodeKind) else kind
        return cls(kind=k, attributes=dict(attributes), children=tuple(children))

    def attr(self, name: str, default: Any = None) -> Any:
        value = self.attributes.get(name) if self.attributes else None
        return default if value is None else value


# --------------------------- Content variants -------------------------------


@dataclass(frozen=True)
class Markup:
    text: str


@dataclass(frozen=True)
class StructuredDocument:
    root: StructuredNode


RichContent = Union[Markup, StructuredDocument]


@dataclass(frozen=True)
class FieldChange:
    field: str
    original_value: Optional[str] = None
    new_value: Optional[str] = None


@dataclass(frozen=True)
class ActivityEntry:
    author: str
    timestamp: Optional[datetime] = None
    body: Optional[str] = None
    field_changes: Tuple[FieldChange, ...] = ()


@dataclass(frozen=True)
class ActivityLog:
    entries: Tuple[ActivityEntry, ...]


@dataclass(frozen=True)
class ContentItem:
    document_id: str
    content: Union[RichContent, ActivityLog]


# ------------------------------ Attachments ---------------------------------


@dataclass(frozen=True)
class AttachmentDescriptor:
    id: int
    name: str


@dataclass(frozen=True)
class ResolvedAttachment:
    id: int
    name: str
    mime_type: str
    inline_reference: str


@dataclass(frozen=True)
class FailureNotice:
    id: int
    name: str
    reason: str


AttachmentResult = Union[ResolvedAttachment, FailureNotice]


# -------------------------------- Changes -----------------------------------


class DiffKind(str, Enum):
    REMOVED = "removed"
    ADDED = "added"


@dataclass(frozen=True)
class DiffLine:
    kind: DiffKind
    content: str

    @property
    def is_blank(self) -> bool:
        return not self.content.strip()


@dataclass(frozen=True)
class CollapsedBlank:
    """Stands in for a run of consecutive blank diff lines."""

    count: int


@dataclass(frozen=True)
class ClassifiedActivity:
    remarks: List[ActivityEntry]
    changes: List[ActivityEntry]


@dataclass(frozen=True)
class RenderResult:
    html: str
    failures: List[FailureNotice] = field(default_factory=list)
