"""Command modules for the issueview CLI."""

from issueview.cli.commands import content

__all__ = ["content"]
