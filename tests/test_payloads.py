import json
import os
import unittest
from unittest.mock import patch

from pydantic import ValidationError

from issueview.domain import (
    ActivityLog,
    AttachmentDescriptor,
    Mark,
    Markup,
    StructuredDocument,
)
from issueview.errors import PayloadError
from issueview.models import ContentPayload, NodePayload
from issueview.models._base import _env_extra_mode

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")


def fixture(name):
    return os.path.join(FIXTURES, name)


class TestContentPayload(unittest.TestCase):
    def test_document_payload(self):
        payload = ContentPayload.load(fixture("document_payload.json"))
        item, descriptors = payload.to_domain()

        self.assertEqual(item.document_id, "0192f4c2e7a1")
        # The tree wins over its plain rendition
        self.assertIsInstance(item.content, StructuredDocument)
        root = item.content.root
        self.assertEqual(root.kind, "doc")
        heading = root.children[0]
        self.assertEqual(heading.attr("level"), 2)
        self.assertEqual(heading.children[0].marks, (Mark("strong"),))
        link = root.children[1].children[1]
        self.assertEqual(link.marks, (Mark("link", "https://example.com/wiki"),))
        self.assertEqual(
            descriptors,
            [
                AttachmentDescriptor(11, "diagram.png"),
                AttachmentDescriptor(12, "screenshot.png"),
            ],
        )

    def test_tree_as_json_string(self):
        tree = {"type": "doc", "content": [{"type": "paragraph"}]}
        payload = ContentPayload.model_validate(
            {"documentId": 5, "json": json.dumps(tree)}
        )
        item, descriptors = payload.to_domain()
        self.assertEqual(item.document_id, "5")
        self.assertEqual(item.content.root.children[0].kind, "paragraph")
        self.assertEqual(descriptors, [])

    def test_markup_payload(self):
        item, descriptors = ContentPayload.load(fixture("markup_payload.json")).to_domain()
        self.assertIsInstance(item.content, Markup)
        self.assertIn("#PROJ-6", item.content.text)
        self.assertEqual(descriptors, [AttachmentDescriptor(21, "screen.png")])

    def test_activity_payload(self):
        item, _ = ContentPayload.load(fixture("activity_payload.json")).to_domain()
        self.assertIsInstance(item.content, ActivityLog)
        entries = item.content.entries
        self.assertEqual([e.author for e in entries], ["Alice", "Bot", "Unknown"])
        self.assertEqual(entries[0].timestamp.year, 2024)
        changes = entries[1].field_changes
        self.assertEqual(changes[0].field, "status")
        self.assertEqual(changes[0].new_value, "Closed")
        self.assertIsNone(changes[1].original_value)
        self.assertEqual(changes[1].new_value, "20240601")

    def test_populate_by_field_name(self):
        payload = ContentPayload(document_id="D", plain="x")
        self.assertEqual(payload.to_domain()[0].content, Markup("x"))

    def test_payload_without_content_is_rejected(self):
        with self.assertRaises(ValidationError):
            ContentPayload.model_validate({"documentId": "D"})

    def test_load_wraps_errors(self):
        with self.assertRaises(PayloadError):
            ContentPayload.load(fixture("does_not_exist.json"))


class TestNodePayload(unittest.TestCase):
    def test_text_node_defaults(self):
        node = NodePayload.model_validate({"type": "text"}).to_domain()
        self.assertEqual(node.text, "")
        self.assertEqual(node.marks, ())

    def test_unknown_kind_is_kept(self):
        node = NodePayload.model_validate(
            {"type": "mention", "attrs": {"id": 1}, "content": [{"type": "text", "text": "x"}]}
        ).to_domain()
        self.assertEqual(node.kind, "mention")
        self.assertEqual(node.children[0].text, "x")


    def test_leaf_kinds_drop_children(self):
        node = NodePayload.model_validate(
            {"type": "image", "attrs": {"src": "x"}, "content": [{"type": "text", "text": "x"}]}
        ).to_domain()
        self.assertEqual(node.children, ())
        self.assertEqual(node.attr("src"), "x")


class TestExtraMode(unittest.TestCase):
    def test_env_values(self):
        cases = {
            "forbid": "forbid",
            "ALLOW": "allow",
            "strict": "forbid",
            "off": "allow",
            "bogus": "ignore",
        }
        for raw, expected in cases.items():
            with patch.dict(os.environ, {"ISSUEVIEW_EXTRA": raw}):
                self.assertEqual(_env_extra_mode(), expected, raw)

    def test_default(self):
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(_env_extra_mode(), "ignore")


if __name__ == "__main__":
    unittest.main()
