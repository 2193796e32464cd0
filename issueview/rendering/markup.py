"""
Markup (Markdown) renderer for tracker descriptions, comments and documents.

Parsing is delegated to markdown-it-py with raw HTML disabled; the link, image,
code and table rules are overridden so every URL goes through `sanitize_url`
and every code body is escaped. After rendering, tracker-specific text is
decorated: issue-key and user mentions become styled spans and parenthesized
emoticon tokens become glyphs.
"""

from __future__ import annotations

import functools
import logging
import re
from typing import Iterable, List, Mapping, Optional, Union

from markdown_it import MarkdownIt

from ..domain import ResolvedAttachment
from .attachments import AttachmentSet
from .options import RenderConfig
from .sanitize import escape_html, sanitize_url

LOGGER = logging.getLogger(__name__)

NO_CONTENT_HTML = '<p class="no-content">No content available.</p>'

EMOTICONS: Mapping[str, str] = {
    "(smile)": "\U0001f60a",
    "(sad)": "\U0001f622",
    "(wink)": "\U0001f609",
    "(tongue)": "\U0001f61b",
    "(laugh)": "\U0001f604",
    "(cool)": "\U0001f60e",
    "(angry)": "\U0001f620",
    "(surprised)": "\U0001f632",
    "(confused)": "\U0001f615",
    "(heart)": "❤️",
    "(star)": "⭐",
    "(thumbsup)": "\U0001f44d",
    "(thumbsdown)": "\U0001f44e",
}

# ![alt](.../file/123) and [text](.../file/123)
_ATTACHMENT_REF_RE = re.compile(
    r"(?P<bang>!?)\[(?P<label>[^\]]*)\]\([^)]*/file/(?P<id>\d+)\)"
)

# #PROJ-123 (issue key) or @handle (user)
_MENTION_RE = re.compile(
    r"#(?P<issue>[A-Z][A-Z0-9_]*-\d+)|@(?P<user>[a-zA-Z0-9_.-]+)"
)

_TAG_SPLIT_RE = re.compile(r"(<[^>]*>)")

Attachments = Union[AttachmentSet, Iterable[ResolvedAttachment], None]


# ------------------------------ Configuration -------------------------------


def _render_link_open(config: RenderConfig):
    extra = config.link_attrs()

    def rule(self, tokens, idx, options, env) -> str:
        token = tokens[idx]
        href = sanitize_url(token.attrGet("href"))
        title = token.attrGet("title")
        title_attr = f' title="{escape_html(title)}"' if title else ""
        return f'<a href="{href}"{title_attr}{extra}>'

    return rule


def _render_image(self, tokens, idx, options, env) -> str:
    token = tokens[idx]
    src = sanitize_url(token.attrGet("src"))
    alt = self.renderInlineAsText(token.children or [], options, env)
    title = token.attrGet("title")
    title_attr = f' title="{escape_html(title)}"' if title else ""
    alt_attr = f' alt="{escape_html(alt)}"' if alt else ""
    return f'<img src="{src}"{title_attr}{alt_attr} class="markdown-image">'


def _code_html(content: str, lang: Optional[str]) -> str:
    language = escape_html(lang or "text")
    return (
        f'<pre><code class="language-{language}">{escape_html(content)}</code></pre>\n'
    )


def _render_fence(self, tokens, idx, options, env) -> str:
    token = tokens[idx]
    info = (token.info or "").strip()
    lang = info.split()[0] if info else None
    return _code_html(token.content, lang)


def _render_code_block(self, tokens, idx, options, env) -> str:
    return _code_html(tokens[idx].content, None)


def _render_table_open(self, tokens, idx, options, env) -> str:
    return '<table class="markdown-table">\n'


@functools.lru_cache(maxsize=None)
def configure(config: RenderConfig = RenderConfig()) -> MarkdownIt:
    """Build the shared markdown parser; computed once per config value.

    The returned instance is treated as immutable after construction and is
    shared read-only by every render call.
    """
    md = MarkdownIt("commonmark", {"html": False, "breaks": True}).enable(
        ["table", "strikethrough"]
    )
    # Targets are allow-listed at render time (sanitize_url); accepting every
    # URL here keeps inlined data URIs of any MIME type as links/images.
    md.validateLink = lambda url: True
    md.add_render_rule("link_open", _render_link_open(config))
    md.add_render_rule("image", _render_image)
    md.add_render_rule("fence", _render_fence)
    md.add_render_rule("code_block", _render_code_block)
    md.add_render_rule("table_open", _render_table_open)
    LOGGER.debug("issueview.markup.configured")
    return md


# ------------------------------ Post-processing -----------------------------


def _mention_html(match: "re.Match[str]") -> str:
    issue = match.group("issue")
    if issue:
        return f'<span class="issue-mention" title="Issue: {issue}">#{issue}</span>'
    user = match.group("user")
    return f'<span class="user-mention" title="User: {user}">@{user}</span>'


def decorate_text(text: str) -> str:
    """Apply mention and emoticon substitution to an HTML text run."""
    out = _MENTION_RE.sub(_mention_html, text)
    for token, glyph in EMOTICONS.items():
        out = out.replace(token, glyph)
    return out


def post_process(html_text: str) -> str:
    """Decorate text runs of rendered HTML, leaving tags and code untouched."""
    parts: List[str] = []
    code_depth = 0
    for piece in _TAG_SPLIT_RE.split(html_text):
        if not piece:
            continue
        if piece.startswith("<"):
            lowered = piece.lower()
            if lowered.startswith("<code"):
                code_depth += 1
            elif lowered.startswith("</code"):
                code_depth = max(0, code_depth - 1)
            parts.append(piece)
        elif code_depth:
            parts.append(piece)
        else:
            parts.append(decorate_text(piece))
    return "".join(parts)


# -------------------------------- Renderer ----------------------------------


def _by_id(attachments: Attachments) -> Mapping[int, ResolvedAttachment]:
    if attachments is None:
        return {}
    if isinstance(attachments, AttachmentSet):
        return attachments.resolved
    return {a.id: a for a in attachments}


def replace_attachment_references(
    text: str, attachments: Mapping[int, ResolvedAttachment]
) -> str:
    """Point `.../file/<id>` image and link targets at inline references."""
    if not attachments:
        return text

    def _sub(m: "re.Match[str]") -> str:
        att = attachments.get(int(m.group("id")))
        if att is None:
            return m.group(0)
        return f"{m.group('bang')}[{m.group('label')}]({att.inline_reference})"

    return _ATTACHMENT_REF_RE.sub(_sub, text)


def render_error_html(text: str) -> str:
    return (
        '<div class="render-error">'
        "<p>Failed to render markdown content.</p>"
        f"<pre>{escape_html(text)}</pre>"
        "</div>"
    )


class MarkupRenderer:
    """Class-based interface for markup rendering."""

    def __init__(self, config: Optional[RenderConfig] = None):
        self.config = config or RenderConfig()

    @property
    def md(self) -> MarkdownIt:
        return configure(self.config)

    def render(self, markup_text: Optional[str], attachments: Attachments = None) -> str:
        """Render markup to an HTML fragment. Never raises."""
        if not markup_text:
            return NO_CONTENT_HTML
        try:
            processed = replace_attachment_references(
                markup_text, _by_id(attachments)
            )
            html_text = self.md.render(processed)
            return self._post_process(html_text)
        except Exception as e:
            LOGGER.warning("issueview.markup.render_fail %s", e)
            return render_error_html(markup_text)

    def render_plain(self, text: Optional[str]) -> str:
        """Escaped verbatim fallback for content that is not markup."""
        if not text:
            return NO_CONTENT_HTML
        return f'<pre class="plain-text-content">{escape_html(text)}</pre>'

    def _post_process(self, html_text: str) -> str:
        return post_process(html_text)
