#!/usr/bin/env python
"""Command line interface for issueview."""

import typer

from issueview.cli.commands import content

app = typer.Typer(help="Render issue-tracker content to sanitized HTML")
app.command("render")(content.render)
app.command("classify")(content.classify)


@app.callback()
def callback():
    """Render tracker payloads (markup, documents, activity) for offline viewing."""
    pass


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
