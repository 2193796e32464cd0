"""Content rendering commands for the issueview CLI."""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from issueview.cli.utils.fetch import DirectoryFetcher
from issueview.domain import ActivityLog
from issueview.errors import PayloadError
from issueview.models import ContentPayload
from issueview.rendering.changes import ChangeHistoryDiffer
from issueview.rendering.options import RenderConfig
from issueview.rendering.pipeline import ContentPipeline, render_page

# Diagnostics go to stderr so rendered HTML can be piped from stdout
console = Console(stderr=True)
out = Console()


def _setup_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[
            RichHandler(
                console=console,
                rich_tracebacks=True,
                show_time=True,
                log_time_format="%H:%M:%S",
            )
        ],
        force=True,
    )


def _load(payload: Path) -> ContentPayload:
    try:
        return ContentPayload.load(payload)
    except PayloadError as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        raise typer.Exit(1)


def render(
    payload: Path = typer.Argument(..., help="Content payload (JSON)"),
    attachments_dir: Optional[Path] = typer.Option(
        None, "--attachments-dir", "-a", help="Directory holding attachment files"
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write HTML here instead of stdout"
    ),
    page: bool = typer.Option(
        False, "--page", help="Wrap the fragment in a standalone HTML page"
    ),
    title: str = typer.Option("Content", "--title", help="Page title for --page"),
    base_url: Optional[str] = typer.Option(
        None, "--base-url", help="Tracker base URL used in attachment references"
    ),
    debug: bool = typer.Option(False, "--debug", help="Verbose logs and dumps"),
):
    """Render a content payload to an HTML fragment."""
    _setup_logging(debug)
    config = RenderConfig.from_env()
    config = replace(
        config, debug=debug or config.debug, base_url=base_url or config.base_url
    )

    data = _load(payload)
    item, descriptors = data.to_domain()
    fetcher = DirectoryFetcher(attachments_dir, descriptors)

    try:
        result = ContentPipeline(config).render_content_item_sync(
            item, descriptors, fetcher
        )
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {str(e)}")
        raise typer.Exit(1)

    html_text = render_page(title, result.html) if page else result.html
    if output is not None:
        output.write_text(html_text, encoding="utf-8")
        console.print(f"Wrote [bold]{output}[/bold]")
    else:
        typer.echo(html_text)

    if result.failures:
        table = Table("ID", "Name", "Reason", title="Attachment failures")
        for notice in result.failures:
            table.add_row(str(notice.id), notice.name, notice.reason)
        console.print(table)


def classify(
    payload: Path = typer.Argument(..., help="Activity payload (JSON)"),
):
    """List activity entries as remarks or change records."""
    data = _load(payload)
    item, _ = data.to_domain()
    if not isinstance(item.content, ActivityLog):
        console.print("[bold red]Error:[/bold red] payload has no activities")
        raise typer.Exit(1)

    differ = ChangeHistoryDiffer()
    entries = item.content.entries
    if not entries:
        console.print("No activity found")
        return

    table = Table("Author", "Date", "Kind", "Fields")
    for entry in entries:
        kind = "change" if differ.is_change_record(entry) else "remark"
        table.add_row(
            entry.author,
            entry.timestamp.strftime("%Y-%m-%d %H:%M") if entry.timestamp else "",
            kind,
            ", ".join(c.field for c in entry.field_changes),
        )
    out.print(table)
