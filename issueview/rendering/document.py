"""
Pure renderer for structured (tree-shaped) rich-text documents.

Converts a StructuredNode tree into HTML by depth-first recursion. Node kinds
dispatch through an exact handler map, then a table of plain containers;
unknown kinds render their children. Embedded images that reference tracker attachments
are resolved against an AttachmentSet; anything unresolvable becomes a visible
inline placeholder instead of a broken image.

Mark nesting: the first mark in a text node's list is the outermost element,
e.g. marks [strong, em] render as <strong><em>text</em></strong>.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Optional, Set, Union

from tinyhtml import h

from ..domain import Mark, MarkKind, NodeKind, StructuredNode
from ..errors import MalformedAttachmentReference, ParseFailure
from .attachments import AttachmentSet
from .options import RenderConfig
from .sanitize import escape_html, sanitize_url

LOGGER = logging.getLogger(__name__)

# Attachment references written by the markup flavor of the same tracker
_FILE_REF_RE = re.compile(r"/file/(?P<id>[^/?#]+)$")

_SIMPLE_CONTAINERS: Dict[str, str] = {
    NodeKind.PARAGRAPH.value: "p",
    NodeKind.BULLET_LIST.value: "ul",
    NodeKind.LIST_ITEM.value: "li",
    NodeKind.BLOCKQUOTE.value: "blockquote",
    NodeKind.TABLE_ROW.value: "tr",
}


def _int_attr(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def error_placeholder(message: str) -> str:
    return h("span", **{"class": "attachment-error"})(message).render()


def extract_text(node: Optional[StructuredNode]) -> str:
    """Plain-text content of a tree; paragraphs are followed by a blank line."""
    out: List[str] = []
    stack: List[Union[StructuredNode, str]] = [node] if node is not None else []
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            out.append(item)
            continue
        if not isinstance(item, StructuredNode):
            continue
        if item.text:
            out.append(item.text)
        for child in reversed(item.children):
            if getattr(child, "kind", None) == NodeKind.PARAGRAPH.value:
                stack.append("\n\n")
            stack.append(child)
    return "".join(out)


def tree_depth(node: Optional[StructuredNode]) -> int:
    """Nesting depth of a tree (a lone root is 1), computed without recursion."""
    depth = 0
    stack = [(node, 1)] if node is not None else []
    while stack:
        item, level = stack.pop()
        depth = max(depth, level)
        if isinstance(item, StructuredNode):
            stack.extend((child, level + 1) for child in item.children)
    return depth


class StructuredDocumentRenderer:
    def __init__(self, config: Optional[RenderConfig] = None):
        self.config = config or RenderConfig()
        self._handlers: Dict[str, Callable[[StructuredNode, AttachmentSet], str]] = {
            NodeKind.TEXT.value: self._text,
            NodeKind.HEADING.value: self._heading,
            NodeKind.ORDERED_LIST.value: self._ordered_list,
            NodeKind.TABLE.value: self._table,
            NodeKind.TABLE_CELL.value: self._cell,
            NodeKind.TABLE_HEADER.value: self._cell,
            NodeKind.CODE_BLOCK.value: self._code_block,
            NodeKind.HARD_BREAK.value: lambda node, atts: "<br>",
            NodeKind.HORIZONTAL_RULE.value: lambda node, atts: "<hr>",
            NodeKind.IMAGE.value: self._image,
        }

    def render(
        self,
        root: Optional[StructuredNode],
        document_id: str = "",
        attachments: Optional[AttachmentSet] = None,
    ) -> str:
        """Render the tree rooted at ``root`` to an HTML fragment."""
        if root is None:
            return ""
        LOGGER.debug("issueview.document.render doc=%s", document_id)
        limit = self.config.max_document_depth
        if limit and tree_depth(root) > limit:
            raise ParseFailure(f"document nesting exceeds {limit} levels")
        return self._node(root, attachments or AttachmentSet())

    # ------------------------------------------------------------------ nodes

    def _node(self, node: StructuredNode, atts: AttachmentSet) -> str:
        if not isinstance(node, StructuredNode):
            raise ParseFailure(f"unexpected node of type {type(node).__name__}")
        kind = node.kind
        handler = self._handlers.get(kind)
        if handler is not None:
            return handler(node, atts)
        tag = _SIMPLE_CONTAINERS.get(kind)
        if tag is not None:
            return f"<{tag}>{self._children(node, atts)}</{tag}>"
        # doc and unknown kinds: children only
        return self._children(node, atts)

    def _children(self, node: StructuredNode, atts: AttachmentSet) -> str:
        return "".join(self._node(child, atts) for child in node.children)

    def _text(self, node: StructuredNode, atts: AttachmentSet) -> str:
        out = escape_html(node.text or "")
        for mark in reversed(node.marks):
            out = self._apply_mark(mark, out)
        return out

    def _apply_mark(self, mark: Mark, inner: str) -> str:
        kind = mark.kind
        if kind == MarkKind.STRONG.value:
            return f"<strong>{inner}</strong>"
        if kind == MarkKind.EMPHASIS.value:
            return f"<em>{inner}</em>"
        if kind == MarkKind.CODE.value:
            return f"<code>{inner}</code>"
        if kind == MarkKind.UNDERLINE.value:
            return f"<u>{inner}</u>"
        if kind == MarkKind.STRIKETHROUGH.value:
            return f"<del>{inner}</del>"
        if kind == MarkKind.LINK.value:
            href = sanitize_url(mark.href)
            return f'<a href="{href}"{self.config.link_attrs()}>{inner}</a>'
        return inner

    def _heading(self, node: StructuredNode, atts: AttachmentSet) -> str:
        level = min(max(_int_attr(node.attr("level", 1), 1), 1), 6)
        return f"<h{level}>{self._children(node, atts)}</h{level}>"

    def _ordered_list(self, node: StructuredNode, atts: AttachmentSet) -> str:
        start = _int_attr(node.attr("start", 1), 1)
        start_attr = f' start="{start}"' if start != 1 else ""
        return f"<ol{start_attr}>{self._children(node, atts)}</ol>"

    def _table(self, node: StructuredNode, atts: AttachmentSet) -> str:
        return f'<table class="document-table">{self._children(node, atts)}</table>'

    def _cell(self, node: StructuredNode, atts: AttachmentSet) -> str:
        tag = "th" if node.kind == NodeKind.TABLE_HEADER.value else "td"
        attrs = ""
        colspan = _int_attr(node.attr("colspan", 1), 1)
        rowspan = _int_attr(node.attr("rowspan", 1), 1)
        if colspan > 1:
            attrs += f' colspan="{colspan}"'
        if rowspan > 1:
            attrs += f' rowspan="{rowspan}"'
        return f"<{tag}{attrs}>{self._children(node, atts)}</{tag}>"

    def _code_block(self, node: StructuredNode, atts: AttachmentSet) -> str:
        language = escape_html(str(node.attr("language", "") or "text"))
        body = escape_html(extract_text(node))
        return f'<pre><code class="language-{language}">{body}</code></pre>'

    # ----------------------------------------------------------------- images

    def attachment_id_for(self, src: str) -> Optional[int]:
        """Return the attachment id referenced by ``src``, or None if external.

        Raises MalformedAttachmentReference when ``src`` is an attachment
        reference whose id is not numeric.
        """
        path = src
        base = self.config.normalized_base_url()
        if base and path.startswith(base):
            path = path[len(base) :]
        prefix = self.config.attachment_path_prefix
        if prefix and path.startswith(prefix):
            raw = path[len(prefix) :].split("?", 1)[0].strip("/")
        elif path.startswith("/"):
            m = _FILE_REF_RE.search(path)
            if not m:
                return None
            raw = m.group("id")
        else:
            return None
        if not (raw.isascii() and raw.isdecimal()):
            raise MalformedAttachmentReference(src)
        return int(raw)

    def referenced_attachment_ids(self, node: StructuredNode) -> Set[int]:
        """Ids of attachments embedded as images anywhere under ``node``."""
        ids: Set[int] = set()
        stack = [node]
        while stack:
            item = stack.pop()
            if not isinstance(item, StructuredNode):
                continue
            if item.kind == NodeKind.IMAGE.value:
                try:
                    att_id = self.attachment_id_for(str(item.attr("src", "") or ""))
                except MalformedAttachmentReference:
                    att_id = None
                if att_id is not None:
                    ids.add(att_id)
            stack.extend(item.children)
        return ids

    def _image(self, node: StructuredNode, atts: AttachmentSet) -> str:
        src = str(node.attr("src", "") or "")
        if not src:
            return ""
        alt = escape_html(str(node.attr("alt", "") or ""))
        title = escape_html(str(node.attr("title", "") or ""))
        try:
            att_id = self.attachment_id_for(src)
        except MalformedAttachmentReference as e:
            LOGGER.warning("issueview.document.bad_reference %s", e.reference)
            return error_placeholder("Invalid attachment ID in image source")
        if att_id is None:
            return (
                f'<img src="{sanitize_url(src)}" alt="{alt}" title="{title}"'
                ' class="embedded-image">'
            )
        resolved = atts.get(att_id)
        if resolved is not None:
            return (
                f'<img src="{sanitize_url(resolved.inline_reference)}" alt="{alt}"'
                f' title="{title}" class="embedded-image">'
            )
        failed = atts.failure_for(att_id)
        if failed is not None:
            return error_placeholder(f"Failed to load image attachment: {failed.name}")
        LOGGER.warning("issueview.document.missing_attachment id=%s", att_id)
        return error_placeholder("Image attachment not found in document attachments")
