"""Rendering support for issue-tracker content, transport-agnostic.

Contains:
- sanitize: HTML escaping and URL allow-listing
- attachments: attachment download, MIME inference and data-URI inlining
- markup: Markdown renderer with mention/emoticon decoration
- document: structured document tree renderer
- changes: activity classification and field-level change diffs
- pipeline: orchestrator producing one HTML fragment per content item
"""
