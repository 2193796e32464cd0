from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict


def _env_extra_mode(default: str = "ignore") -> str:
    """
    Determine the extra-mode from environment vars.

    ISSUEVIEW_EXTRA: allow|forbid|ignore
    Convenience booleans: "true/1/on" -> forbid (strict), "false/0/off" -> allow
    """
    raw = (os.getenv("ISSUEVIEW_EXTRA") or default).strip().lower()

    if raw in {"allow", "forbid", "ignore"}:
        return raw

    if raw in {"1", "true", "yes", "on", "strict"}:
        return "forbid"
    if raw in {"0", "false", "no", "off", "lenient"}:
        return "allow"

    return default


_EXTRA = _env_extra_mode()


class PayloadModel(BaseModel):
    """
    Project-wide base model for tracker payloads.

    Default is extra='ignore': tracker responses carry many fields the renderer
    never reads. Set before import to validate strictly:
      export ISSUEVIEW_EXTRA=forbid
    """

    model_config = ConfigDict(
        extra=_EXTRA,
        populate_by_name=True,
        frozen=True,
    )


__all__ = ["PayloadModel", "_env_extra_mode"]
