import unittest

from issueview.domain import FailureNotice, Mark, NodeKind, ResolvedAttachment
from issueview.domain import StructuredNode as N
from issueview.errors import MalformedAttachmentReference, ParseFailure
from issueview.rendering.attachments import AttachmentSet
from issueview.rendering.document import (
    StructuredDocumentRenderer,
    extract_text,
    tree_depth,
)
from issueview.rendering.options import RenderConfig


def doc(*children):
    return N.container(NodeKind.DOC, *children)


def para(*children):
    return N.container(NodeKind.PARAGRAPH, *children)


def text(value, *marks):
    return N.text_node(value, tuple(marks))


def image(src, **attrs):
    return N.container(NodeKind.IMAGE, src=src, **attrs)


class TestStructuredDocumentRenderer(unittest.TestCase):
    def setUp(self):
        self.renderer = StructuredDocumentRenderer()
        self.atts = AttachmentSet.from_results(
            [
                ResolvedAttachment(5, "a.png", "image/png", "data:image/png;base64,QQ=="),
                FailureNotice(6, "broken.png", "HTTP 500"),
            ]
        )

    def test_heading_with_strong_text(self):
        root = doc(
            N.container(NodeKind.HEADING, text("Hi ", Mark("strong")), level=2)
        )
        self.assertEqual(self.renderer.render(root), "<h2><strong>Hi </strong></h2>")

    def test_heading_level_is_clamped(self):
        self.assertEqual(
            self.renderer.render(N.container(NodeKind.HEADING, text("x"), level=9)),
            "<h6>x</h6>",
        )
        self.assertEqual(
            self.renderer.render(N.container(NodeKind.HEADING, text("x"))),
            "<h1>x</h1>",
        )

    def test_first_mark_is_outermost(self):
        root = para(text("x", Mark("strong"), Mark("em")))
        self.assertEqual(self.renderer.render(root), "<p><strong><em>x</em></strong></p>")

    def test_all_marks(self):
        out = self.renderer.render(
            para(
                text("c", Mark("code")),
                text("u", Mark("underline")),
                text("s", Mark("strike")),
                text("?", Mark("sparkle")),
            )
        )
        self.assertEqual(out, "<p><code>c</code><u>u</u><del>s</del>?</p>")

    def test_link_mark_is_sanitized(self):
        ok = self.renderer.render(text("a", Mark("link", "https://example.com")))
        self.assertEqual(
            ok,
            '<a href="https://example.com" target="_blank"'
            ' rel="noopener noreferrer">a</a>',
        )
        bad = self.renderer.render(text("a", Mark("link", "javascript:alert(1)")))
        self.assertIn('href="#"', bad)

    def test_text_is_escaped(self):
        self.assertEqual(
            self.renderer.render(para(text("<b>&"))), "<p>&lt;b&gt;&amp;</p>"
        )

    def test_lists_blockquote_breaks_and_rules(self):
        root = doc(
            N.container(
                NodeKind.BULLET_LIST, N.container(NodeKind.LIST_ITEM, para(text("a")))
            ),
            N.container(
                NodeKind.ORDERED_LIST,
                N.container(NodeKind.LIST_ITEM, para(text("b"))),
                start=3,
            ),
            N.container(NodeKind.ORDERED_LIST, N.container(NodeKind.LIST_ITEM)),
            N.container(NodeKind.BLOCKQUOTE, para(text("q"))),
            para(text("x"), N.container(NodeKind.HARD_BREAK), text("y")),
            N.container(NodeKind.HORIZONTAL_RULE),
        )
        self.assertEqual(
            self.renderer.render(root),
            "<ul><li><p>a</p></li></ul>"
            '<ol start="3"><li><p>b</p></li></ol>'
            "<ol><li></li></ol>"
            "<blockquote><p>q</p></blockquote>"
            "<p>x<br>y</p>"
            "<hr>",
        )

    def test_table_with_spans(self):
        root = N.container(
            NodeKind.TABLE,
            N.container(
                NodeKind.TABLE_ROW,
                N.container(NodeKind.TABLE_HEADER, para(text("h")), colspan=2),
            ),
            N.container(
                NodeKind.TABLE_ROW,
                N.container(NodeKind.TABLE_CELL, para(text("c")), rowspan=3),
                N.container(NodeKind.TABLE_CELL, para(text("d")), colspan=1),
            ),
        )
        self.assertEqual(
            self.renderer.render(root),
            '<table class="document-table">'
            '<tr><th colspan="2"><p>h</p></th></tr>'
            '<tr><td rowspan="3"><p>c</p></td><td><p>d</p></td></tr>'
            "</table>",
        )

    def test_code_block(self):
        root = N.container(NodeKind.CODE_BLOCK, text("if a < b:"), language="python")
        self.assertEqual(
            self.renderer.render(root),
            '<pre><code class="language-python">if a &lt; b:</code></pre>',
        )
        plain = N.container(NodeKind.CODE_BLOCK, text("x"))
        self.assertIn('class="language-text"', self.renderer.render(plain))

    def test_unknown_kind_renders_children(self):
        root = doc(N.container("mysteryBox", para(text("inside"))))
        self.assertEqual(self.renderer.render(root), "<p>inside</p>")

    def test_empty_root(self):
        self.assertEqual(self.renderer.render(None), "")
        self.assertEqual(self.renderer.render(doc()), "")

    def test_resolved_image_is_inlined(self):
        out = self.renderer.render(
            image("/api/v2/attachments/5", alt="pic", title="t"), "D", self.atts
        )
        self.assertEqual(
            out,
            '<img src="data:image/png;base64,QQ==" alt="pic" title="t"'
            ' class="embedded-image">',
        )

    def test_failed_image_shows_placeholder(self):
        out = self.renderer.render(image("/api/v2/attachments/6"), "D", self.atts)
        self.assertIn('class="attachment-error"', out)
        self.assertIn("Failed to load image attachment: broken.png", out)
        self.assertNotIn("<img", out)

    def test_unknown_attachment_shows_placeholder(self):
        out = self.renderer.render(image("/api/v2/attachments/77"), "D", self.atts)
        self.assertIn("Image attachment not found in document attachments", out)

    def test_malformed_attachment_reference(self):
        out = self.renderer.render(image("/api/v2/attachments/abc"), "D", self.atts)
        self.assertIn("Invalid attachment ID in image source", out)

    def test_non_decimal_attachment_id_keeps_document(self):
        root = doc(para(text("keep me")), image("/api/v2/attachments/²"))
        out = self.renderer.render(root, "D", self.atts)
        self.assertTrue(out.startswith("<p>keep me</p>"))
        self.assertIn("Invalid attachment ID in image source", out)
        with self.assertRaises(MalformedAttachmentReference):
            self.renderer.attachment_id_for("/d/file/٣")

    def test_deep_nesting_raises_parse_failure(self):
        root = para(text("bottom"))
        for _ in range(3000):
            root = N.container(NodeKind.BLOCKQUOTE, root)
        self.assertEqual(tree_depth(root), 3002)
        with self.assertRaises(ParseFailure):
            self.renderer.render(root)
        self.assertEqual(extract_text(root), "bottom\n\n")
        self.assertEqual(self.renderer.referenced_attachment_ids(root), set())

    def test_depth_limit_comes_from_config(self):
        root = doc(N.container(NodeKind.BLOCKQUOTE, para(text("x"))))
        self.assertEqual(self.renderer.render(root), "<blockquote><p>x</p></blockquote>")
        shallow = StructuredDocumentRenderer(RenderConfig(max_document_depth=3))
        with self.assertRaises(ParseFailure):
            shallow.render(root)

    def test_markup_style_file_reference(self):
        out = self.renderer.render(image("/document/D/file/5"), "D", self.atts)
        self.assertIn('src="data:image/png;base64,QQ=="', out)

    def test_external_image_is_sanitized(self):
        out = self.renderer.render(image("https://cdn.example.com/x.png"))
        self.assertIn('src="https://cdn.example.com/x.png"', out)
        bad = self.renderer.render(image("javascript:alert(1)"))
        self.assertIn('src="#"', bad)

    def test_non_node_child_raises_parse_failure(self):
        root = doc(para(text("ok")), "not a node")
        with self.assertRaises(ParseFailure):
            self.renderer.render(root)
        self.assertEqual(extract_text(root), "ok\n\n")

    def test_image_without_src_is_dropped(self):
        self.assertEqual(self.renderer.render(image("")), "")

    def test_absolute_attachment_reference_with_base_url(self):
        renderer = StructuredDocumentRenderer(
            RenderConfig(base_url="example.backlog.com/api/v2/")
        )
        out = renderer.render(
            image("https://example.backlog.com/api/v2/attachments/5"), "D", self.atts
        )
        self.assertIn('src="data:image/png;base64,QQ=="', out)


class TestAttachmentReferences(unittest.TestCase):
    def setUp(self):
        self.renderer = StructuredDocumentRenderer()

    def test_attachment_id_for(self):
        self.assertEqual(self.renderer.attachment_id_for("/api/v2/attachments/12"), 12)
        self.assertEqual(self.renderer.attachment_id_for("/x/file/3"), 3)
        self.assertIsNone(self.renderer.attachment_id_for("https://example.com/a.png"))
        with self.assertRaises(MalformedAttachmentReference):
            self.renderer.attachment_id_for("/api/v2/attachments/12a")

    def test_referenced_attachment_ids(self):
        root = doc(
            para(image("/api/v2/attachments/1")),
            image("/api/v2/attachments/bad"),
            image("https://example.com/x.png"),
            image("/d/file/4"),
        )
        self.assertEqual(self.renderer.referenced_attachment_ids(root), {1, 4})


class TestExtractText(unittest.TestCase):
    def test_paragraphs_are_separated(self):
        root = doc(para(text("one")), para(text("two"), text("!")))
        self.assertEqual(extract_text(root), "one\n\ntwo!\n\n")

    def test_none(self):
        self.assertEqual(extract_text(None), "")


if __name__ == "__main__":
    unittest.main()
