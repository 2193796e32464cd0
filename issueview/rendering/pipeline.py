"""
Content pipeline: attachments in, one HTML fragment out.

Resolves a content item's attachments, dispatches to the renderer matching the
content variant (markup, structured document, activity log) and surfaces
attachment failures next to the content instead of failing the render.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from rich.console import Console
from tinyhtml import h

from ..domain import (
    ActivityEntry,
    ActivityLog,
    AttachmentDescriptor,
    ContentItem,
    FailureNotice,
    Markup,
    RenderResult,
    StructuredDocument,
    StructuredNode,
)
from ..errors import ParseFailure
from .attachments import AttachmentResolver, AttachmentSet
from .changes import ChangeHistoryDiffer
from .document import StructuredDocumentRenderer, extract_text
from .markup import NO_CONTENT_HTML, MarkupRenderer
from .options import RenderConfig
from .renderer_iface import FetchBytes
from .sanitize import escape_html

console = Console(stderr=True)

LOGGER = logging.getLogger(__name__)


def failures_html(notices: Iterable[FailureNotice]) -> str:
    items = [
        h("li")(f"Failed to load attachment {n.name} (#{n.id}): {n.reason}")
        for n in notices
    ]
    if not items:
        return ""
    return h("ul", **{"class": "attachment-failures"})(*items).render()


def _format_timestamp(ts: Optional[datetime]) -> str:
    return ts.strftime("%Y-%m-%d %H:%M") if ts else ""


class ContentPipeline:
    def __init__(self, config: Optional[RenderConfig] = None):
        self.config = config or RenderConfig()
        self.resolver = AttachmentResolver(self.config)
        self.markup = MarkupRenderer(self.config)
        self.document = StructuredDocumentRenderer(self.config)
        self.differ = ChangeHistoryDiffer(self.config)

    async def render_content_item(
        self,
        item: ContentItem,
        descriptors: Sequence[AttachmentDescriptor],
        fetch_bytes: FetchBytes,
    ) -> RenderResult:
        results = await self.resolver.resolve(item.document_id, descriptors, fetch_bytes)
        atts = AttachmentSet.from_results(results)
        if self.config.debug:
            console.rule(f"attachments doc={item.document_id}")
            console.print(results)

        content = item.content
        if isinstance(content, Markup):
            html_text = self.markup.render(content.text, atts) + failures_html(
                atts.notices()
            )
        elif isinstance(content, StructuredDocument):
            html_text = self._render_document(content.root, item.document_id, atts)
        elif isinstance(content, ActivityLog):
            html_text = self._render_activity(content.entries, atts)
        else:
            raise TypeError(f"Unsupported content type: {type(content).__name__}")

        failures = [r for r in results if isinstance(r, FailureNotice)]
        LOGGER.debug(
            "issueview.pipeline.rendered doc=%s bytes=%d failures=%d",
            item.document_id,
            len(html_text),
            len(failures),
        )
        return RenderResult(html=html_text, failures=failures)

    def render_content_item_sync(
        self,
        item: ContentItem,
        descriptors: Sequence[AttachmentDescriptor],
        fetch_bytes: FetchBytes,
    ) -> RenderResult:
        """Blocking wrapper for callers without a running event loop."""
        return asyncio.run(self.render_content_item(item, descriptors, fetch_bytes))

    # ------------------------------------------------------------- documents

    def _render_document(
        self, root: StructuredNode, document_id: str, atts: AttachmentSet
    ) -> str:
        try:
            body = self.document.render(root, document_id, atts)
        except ParseFailure as e:
            LOGGER.warning("issueview.pipeline.parse_fail doc=%s %s", document_id, e)
            return self._document_fallback(root, atts)
        except Exception as e:
            LOGGER.exception("issueview.pipeline.document_fail doc=%s %s", document_id, e)
            return self._document_fallback(root, atts)
        inline = self.document.referenced_attachment_ids(root)
        leftover = [n for n in atts.notices() if n.id not in inline]
        return body + failures_html(leftover)

    def _document_fallback(self, root: StructuredNode, atts: AttachmentSet) -> str:
        try:
            body = self.markup.render_plain(extract_text(root))
        except Exception as e:
            LOGGER.exception("issueview.pipeline.fallback_fail %s", e)
            body = NO_CONTENT_HTML
        return (
            '<div class="render-error">'
            "<p>Failed to render document content.</p>"
            f"{body}</div>"
        ) + failures_html(atts.notices())

    # -------------------------------------------------------------- activity

    def _render_activity(
        self, entries: Sequence[ActivityEntry], atts: AttachmentSet
    ) -> str:
        classified = self.differ.classify(entries)
        change_ids = {id(e) for e in classified.changes}
        parts: List[str] = [
            h("p", **{"class": "activity-summary"})(
                f"{len(classified.remarks)} comments, "
                f"{len(classified.changes)} changes"
            ).render()
        ]
        for entry in entries:
            is_change = id(entry) in change_ids
            if is_change:
                body = self.differ.format_change(entry)
            else:
                body = self.markup.render(entry.body, atts)
                if entry.field_changes:
                    body += self.differ.format_change(entry)
            kind = "change" if is_change else "remark"
            header = h("div", **{"class": "activity-header"})(
                h("span", **{"class": "activity-author"})(entry.author),
                " ",
                h("span", **{"class": "activity-date"})(
                    _format_timestamp(entry.timestamp)
                ),
            ).render()
            parts.append(
                f'<div class="activity activity-{kind}">{header}'
                f'<div class="activity-body">{body}</div></div>'
            )
        parts.append(failures_html(atts.notices()))
        return '<div class="activity-log">' + "".join(parts) + "</div>"


def render_page(title: str, html_fragment: str, extra_css: str = "") -> str:
    """Wrap a fragment in a standalone page with the viewer styles."""
    return (
        '<!doctype html><meta charset="utf-8">'
        '<meta name="color-scheme" content="light dark">'
        f"<title>{escape_html(title)}</title>"
        "<style>"
        "body{font-family:-apple-system,BlinkMacSystemFont,Segoe UI,Roboto,Helvetica,Arial,sans-serif;line-height:1.6;background:#fff;color:#000;padding:20px}"
        "pre{white-space:pre-wrap;background:#f6f8fa;padding:12px;border-radius:6px}"
        "blockquote{margin:.5em 0 .5em 1em;padding-left:.8em;border-left:3px solid #ddd}"
        "img{max-width:100%;height:auto}"
        "table{border-collapse:collapse;margin:.5rem 0}"
        "td,th{border:1px solid #ccc;padding:.25rem .5rem;vertical-align:top}"
        ".issue-mention,.user-mention{background:#e8f0fe;border-radius:3px;padding:0 2px}"
        ".no-content{color:#777;font-style:italic}"
        ".render-error,.attachment-error,.attachment-failures{color:#b00020}"
        ".diff-removed{background:#ffebe9}"
        ".diff-added{background:#e6ffec}"
        ".diff-collapsed,.diff-truncated,.change-none{color:#777;font-style:italic}"
        ".activity{border-top:1px solid #ddd;padding:.5rem 0}"
        ".activity-header{color:#555;font-size:.9em}"
        "@media (prefers-color-scheme: dark){"
        "body{background:#111;color:#eee}"
        "a{color:#8ab4f8}"
        "pre{background:#1b1b1b;color:#eee}"
        "td,th{border-color:#555}"
        ".diff-removed{background:#4b1d1d}"
        ".diff-added{background:#1d3b24}"
        "}"
        f'{extra_css}</style><div class="content">{html_fragment}</div>'
    )
