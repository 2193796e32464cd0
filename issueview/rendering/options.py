"""
Render configuration for issue-tracker content.

Centralizes behavior flags and thresholds so callers can tune defaults without
touching core logic. Changing the change-diff thresholds changes what viewers see.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _env_flag(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RenderConfig:
    # Logging/debug
    debug: bool = False

    # Tracker base URL (e.g. "https://example.backlog.com"). Only used to
    # recognize absolute attachment references; never trusted for sanitization.
    base_url: Optional[str] = None

    # Path prefix of attachment references embedded in structured documents
    attachment_path_prefix: str = "/api/v2/attachments/"

    # Link behavior
    link_target_blank: bool = True
    link_rel: str = "noopener noreferrer"

    # Change-history diff behavior
    diff_length_threshold: int = 50
    diff_summary_threshold: int = 10
    diff_max_shown_lines: int = 20
    diff_blank_run_limit: int = 2

    # Upper bound on concurrent attachment fetches per render (None = unbounded)
    max_concurrent_fetches: Optional[int] = None

    # Deeper structured documents are rejected and shown as escaped text
    max_document_depth: int = 100

    @classmethod
    def from_env(cls) -> "RenderConfig":
        base = (os.getenv("ISSUEVIEW_BASE_URL") or "").strip() or None
        return cls(debug=_env_flag("ISSUEVIEW_DEBUG"), base_url=base)

    def normalized_base_url(self) -> Optional[str]:
        if not self.base_url:
            return None
        base = self.base_url.rstrip("/")
        if base.endswith("/api/v2"):
            base = base[: -len("/api/v2")]
        if not base.startswith("http"):
            base = f"https://{base}"
        return base

    def link_attrs(self) -> str:
        """Extra attributes appended to every emitted <a> tag."""
        parts = []
        if self.link_target_blank:
            parts.append(' target="_blank"')
        if self.link_rel:
            parts.append(f' rel="{self.link_rel}"')
        return "".join(parts)
