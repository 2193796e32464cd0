"""
Tracker "wire" models for content payloads.

Validates the JSON shapes an issue tracker hands to the viewer (documents with
a structured `json` tree and/or `plain` markup, comment/activity lists with
change logs, attachment descriptors) and converts them to domain values.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import Field, ValidationError, field_validator, model_validator

from ..domain import (
    ActivityEntry,
    ActivityLog,
    AttachmentDescriptor,
    ContentItem,
    FieldChange,
    LEAF_KINDS,
    Mark,
    Markup,
    NodeKind,
    StructuredDocument,
    StructuredNode,
)
from ..errors import PayloadError
from ._base import PayloadModel


def _str_or_none(v: Any) -> Optional[str]:
    if v is None:
        return None
    if isinstance(v, str):
        return v
    return str(v)


class MarkPayload(PayloadModel):
    type: str
    attrs: Optional[Dict[str, Any]] = None

    def to_domain(self) -> Mark:
        href = (self.attrs or {}).get("href")
        return Mark(kind=self.type, href=_str_or_none(href))


class NodePayload(PayloadModel):
    """One node of a ProseMirror-style document tree."""

    type: str
    attrs: Optional[Dict[str, Any]] = None
    content: Optional[List[NodePayload]] = None
    text: Optional[str] = None
    marks: Optional[List[MarkPayload]] = None

    def to_domain(self) -> StructuredNode:
        if self.type == NodeKind.TEXT.value:
            return StructuredNode.text_node(
                self.text or "", tuple(m.to_domain() for m in self.marks or [])
            )
        children: Tuple[StructuredNode, ...] = ()
        if self.type not in LEAF_KINDS:
            children = tuple(c.to_domain() for c in self.content or [])
        return StructuredNode(
            kind=self.type,
            attributes=dict(self.attrs or {}),
            children=children,
        )


NodePayload.model_rebuild()


class AttachmentPayload(PayloadModel):
    id: int
    name: str = ""

    def to_domain(self) -> AttachmentDescriptor:
        return AttachmentDescriptor(id=self.id, name=self.name)


class UserPayload(PayloadModel):
    name: str = ""


class ChangeLogPayload(PayloadModel):
    field: str
    original_value: Optional[str] = Field(None, alias="originalValue")
    new_value: Optional[str] = Field(None, alias="newValue")

    @field_validator("original_value", "new_value", mode="before")
    @classmethod
    def _coerce_str(cls, v):
        return _str_or_none(v)

    def to_domain(self) -> FieldChange:
        return FieldChange(
            field=self.field,
            original_value=self.original_value,
            new_value=self.new_value,
        )


class ActivityPayload(PayloadModel):
    """A comment or activity entry, optionally carrying a change log."""

    content: Optional[str] = None
    created: Optional[datetime] = None
    created_user: Optional[UserPayload] = Field(None, alias="createdUser")
    change_log: List[ChangeLogPayload] = Field(default_factory=list, alias="changeLog")

    def to_domain(self) -> ActivityEntry:
        author = self.created_user.name if self.created_user else ""
        return ActivityEntry(
            author=author or "Unknown",
            timestamp=self.created,
            body=self.content,
            field_changes=tuple(c.to_domain() for c in self.change_log),
        )


class ContentPayload(PayloadModel):
    """A renderable content item plus its attachment descriptors.

    Trackers may send both a structured tree (`json`) and its `plain` markup
    rendition; the tree wins when present.
    """

    document_id: str = Field("", alias="documentId")
    plain: Optional[str] = None
    tree: Optional[NodePayload] = Field(None, alias="json")
    activities: Optional[List[ActivityPayload]] = None
    attachments: List[AttachmentPayload] = Field(default_factory=list)

    @field_validator("document_id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        return _str_or_none(v) or ""

    @field_validator("tree", mode="before")
    @classmethod
    def _decode_tree(cls, v):
        # Some endpoints deliver the tree as a JSON-encoded string
        if isinstance(v, str):
            return json.loads(v) if v.strip() else None
        return v

    @model_validator(mode="after")
    def _has_content(self) -> "ContentPayload":
        if self.tree is None and self.plain is None and self.activities is None:
            raise ValueError("payload needs one of 'json', 'plain' or 'activities'")
        return self

    def to_domain(self) -> Tuple[ContentItem, List[AttachmentDescriptor]]:
        content: Union[StructuredDocument, Markup, ActivityLog]
        if self.tree is not None:
            content = StructuredDocument(root=self.tree.to_domain())
        elif self.plain is not None:
            content = Markup(text=self.plain)
        else:
            content = ActivityLog(
                entries=tuple(a.to_domain() for a in self.activities or [])
            )
        item = ContentItem(document_id=self.document_id, content=content)
        return item, [a.to_domain() for a in self.attachments]

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ContentPayload":
        try:
            return cls.model_validate_json(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValidationError, ValueError) as e:
            raise PayloadError(f"Invalid content payload {path}: {e}") from e
