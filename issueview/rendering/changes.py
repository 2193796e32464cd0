"""
Change-history rendering for issue activity.

Splits activity entries into human remarks and system change records, and
renders change records field by field:
  - identical values: a "no change" marker
  - long-form text (description) over the length threshold: a line-presence
    diff (set membership, not an edit script) with blank-run collapsing and a
    collapsible, truncated detail section for large diffs
  - everything else: a two-line removed/added block

Change records are recognized with a versioned table of announcement phrasings
(English and Japanese). This is a heuristic: a remark that happens to read like
"Status changed to ..." is classified as a change record.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple, Union

from tinyhtml import frag, h, raw

from ..domain import (
    ActivityEntry,
    ClassifiedActivity,
    CollapsedBlank,
    DiffKind,
    DiffLine,
    FieldChange,
)
from .options import RenderConfig
from .sanitize import escape_html

LOGGER = logging.getLogger(__name__)

DiffItem = Union[DiffLine, CollapsedBlank]

NO_CHANGE_TEXT = "(no change)"
EMPTY_DIFF_TEXT = "(only line order or whitespace changed)"


# --------------------------- Change announcements ---------------------------


@dataclass(frozen=True)
class ChangePattern:
    field: str
    locale: str
    regex: Pattern[str]

    def matches(self, body: str) -> bool:
        return bool(self.regex.search(body))


def _en(field: str, subject: str) -> ChangePattern:
    verbs = r"(?:changed|updated|set|removed|cleared)"
    return ChangePattern(
        field,
        "en",
        re.compile(
            rf"^\s*(?:{subject}\s+(?:was\s+|has\s+been\s+)?{verbs}\b"
            rf"|{verbs}\s+(?:the\s+)?{subject}\b)",
            re.IGNORECASE,
        ),
    )


def _ja(field: str, subject: str) -> ChangePattern:
    return ChangePattern(
        field,
        "ja",
        re.compile(rf"^\s*{subject}(?:を|が).*(?:変更|設定|削除)"),
    )


# Bump when phrasing entries change; tests pin one case per entry.
CHANGE_PATTERNS_VERSION = 1

CHANGE_PATTERNS: Tuple[ChangePattern, ...] = (
    _en("status", "status"),
    _en("assignee", "assignee"),
    _en("priority", "priority"),
    _en("due-date", r"due\s+date"),
    _en("category", r"categor(?:y|ies)"),
    _ja("status", "状態"),
    _ja("assignee", "担当者"),
    _ja("priority", "優先度"),
    _ja("due-date", "期限日"),
    _ja("category", "カテゴリー?"),
)


# ------------------------------- Field styles -------------------------------


@dataclass(frozen=True)
class FieldStyle:
    key: str
    icon: str
    keywords: Tuple[str, ...] = ()

    @property
    def css_class(self) -> str:
        return f"change-{self.key}"


_STYLES: Tuple[FieldStyle, ...] = (
    FieldStyle("assignee", "\U0001f464", ("assignee", "担当者")),
    FieldStyle("status", "\U0001f504", ("status", "状態")),
    FieldStyle("priority", "⚡", ("priority", "優先度")),
    FieldStyle("due-date", "\U0001f4c5", ("due date", "期限")),
    FieldStyle("summary", "\U0001f4dd", ("summary", "件名")),
    FieldStyle("description", "\U0001f4c4", ("description", "詳細")),
)
OTHER_STYLE = FieldStyle("other", "✏️")
_STYLE_BY_KEY = {s.key: s for s in _STYLES}

# Normalized field name (lowercase, no spaces/underscores/hyphens) -> style key
_FIELD_ALIASES = {
    "assignee": "assignee",
    "assigner": "assignee",
    "担当者": "assignee",
    "status": "status",
    "状態": "status",
    "priority": "priority",
    "優先度": "priority",
    "duedate": "due-date",
    "limitdate": "due-date",
    "期限日": "due-date",
    "summary": "summary",
    "件名": "summary",
    "description": "description",
    "詳細": "description",
}

LONG_FORM_FIELDS = frozenset({"description"})


def field_style(field: Optional[str]) -> FieldStyle:
    norm = re.sub(r"[\s_-]+", "", (field or "").lower())
    key = _FIELD_ALIASES.get(norm)
    return _STYLE_BY_KEY[key] if key else OTHER_STYLE


def style_from_body(body: Optional[str]) -> FieldStyle:
    text = (body or "").lower()
    for style in _STYLES:
        if any(k in text for k in style.keywords):
            return style
    return OTHER_STYLE


# ---------------------------------- Diffs -----------------------------------


def _lines(value: str) -> List[str]:
    return value.replace("\r\n", "\n").split("\n")


def line_presence_diff(original: str, new: str) -> List[DiffLine]:
    """Removed lines (absent from ``new``) followed by added lines.

    Presence is set membership; positions and repeats are not aligned.
    """
    old_lines = _lines(original)
    new_lines = _lines(new)
    old_set = set(old_lines)
    new_set = set(new_lines)
    out = [DiffLine(DiffKind.REMOVED, ln) for ln in old_lines if ln not in new_set]
    out.extend(DiffLine(DiffKind.ADDED, ln) for ln in new_lines if ln not in old_set)
    return out


def collapse_blank_runs(lines: Sequence[DiffLine], limit: int = 2) -> List[DiffItem]:
    """Replace each run of more than ``limit`` blank diff lines with one marker."""
    out: List[DiffItem] = []
    run: List[DiffLine] = []

    def _flush() -> None:
        if len(run) > limit:
            out.append(CollapsedBlank(len(run)))
        else:
            out.extend(run)
        run.clear()

    for ln in lines:
        if ln.is_blank:
            run.append(ln)
            continue
        _flush()
        out.append(ln)
    _flush()
    return out


def _diff_line_html(item: DiffItem) -> str:
    if isinstance(item, CollapsedBlank):
        return h("div", **{"class": "diff-line diff-collapsed"})(
            f"… {item.count} blank lines …"
        ).render()
    sign = "-" if item.kind == DiffKind.REMOVED else "+"
    return h("div", **{"class": f"diff-line diff-{item.kind.value}"})(
        h("span", **{"class": "diff-sign"})(sign), item.content
    ).render()


def _marker(css_class: str, text: str) -> str:
    return h("span", **{"class": css_class})(text).render()


# --------------------------------- Differ -----------------------------------


class ChangeHistoryDiffer:
    def __init__(self, config: Optional[RenderConfig] = None):
        self.config = config or RenderConfig()

    def is_change_record(self, entry: ActivityEntry) -> bool:
        body = (entry.body or "").strip()
        if not body:
            return True
        return any(p.matches(body) for p in CHANGE_PATTERNS)

    def classify(self, entries: Iterable[ActivityEntry]) -> ClassifiedActivity:
        remarks: List[ActivityEntry] = []
        changes: List[ActivityEntry] = []
        for entry in entries:
            (changes if self.is_change_record(entry) else remarks).append(entry)
        LOGGER.debug(
            "issueview.changes.classified remarks=%d changes=%d",
            len(remarks),
            len(changes),
        )
        return ClassifiedActivity(remarks=remarks, changes=changes)

    def format_change(self, entry: ActivityEntry) -> str:
        if entry.field_changes:
            return "".join(self.format_field_change(fc) for fc in entry.field_changes)
        return self._format_body(entry.body)

    def format_field_change(self, change: FieldChange) -> str:
        style = field_style(change.field)
        original = change.original_value or ""
        new = change.new_value or ""
        if original == new:
            body = _marker("change-none", NO_CHANGE_TEXT)
        elif style.key in LONG_FORM_FIELDS and (
            len(original) > self.config.diff_length_threshold
            or len(new) > self.config.diff_length_threshold
        ):
            body = self._long_diff(original, new)
        else:
            body = self._short_diff(original, new)
        return (
            f'<div class="change-item {style.css_class}">'
            f'<span class="change-icon">{style.icon}</span>'
            f'<span class="change-field">{escape_html(change.field)}</span>'
            f'<div class="change-body">{body}</div>'
            "</div>"
        )

    def _short_diff(self, original: str, new: str) -> str:
        lines: List[DiffItem] = []
        if original:
            lines.append(DiffLine(DiffKind.REMOVED, original))
        if new:
            lines.append(DiffLine(DiffKind.ADDED, new))
        return self._block(lines)

    def _long_diff(self, original: str, new: str) -> str:
        diff = line_presence_diff(original, new)
        items = collapse_blank_runs(diff, self.config.diff_blank_run_limit)
        if not items:
            return _marker("change-none diff-empty", EMPTY_DIFF_TEXT)
        if len(items) <= self.config.diff_summary_threshold:
            return self._block(items)

        removed = sum(1 for d in diff if d.kind == DiffKind.REMOVED)
        added = len(diff) - removed
        summary = h("div", **{"class": "diff-summary"})(
            f"{len(original)} → {len(new)} characters "
            f"(-{removed} / +{added} lines)"
        ).render()
        cap = self.config.diff_max_shown_lines
        shown = items[:cap]
        hidden = len(items) - len(shown)
        notice = ""
        if hidden > 0:
            notice = _marker("diff-truncated", f"… {hidden} more lines not shown")
        details = h("details", **{"class": "diff-details"})(
            h("summary")("Show changes"),
            raw(self._block(shown)),
            raw(notice),
        ).render()
        return summary + details

    def _block(self, items: Sequence[DiffItem]) -> str:
        return h("div", **{"class": "diff-block"})(
            frag(*(raw(_diff_line_html(i)) for i in items))
        ).render()

    def _format_body(self, body: Optional[str]) -> str:
        style = style_from_body(body)
        text = escape_html(body) if body and body.strip() else "(no details)"
        return (
            f'<div class="change-item {style.css_class}">'
            f'<span class="change-icon">{style.icon}</span>'
            f'<span class="change-text">{text}</span>'
            "</div>"
        )
