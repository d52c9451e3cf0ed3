"""
Display Utilities Module

Handles formatting and displaying sfind reports in a readable way.
"""
import json
from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from .report import EntityRef, RawRecord, Report


console = Console()
err_console = Console(stderr=True)

MISSING = "[dim]<missing>[/dim]"

KIND_STYLES = {
    'Account': 'bold white',
    'Contact': 'magenta',
    'Asset': 'yellow',
    'Opportunity': 'green',
}


def make_id_clickable(salesforce_id: str, instance_url: Optional[str] = None) -> str:
    """
    Create a clickable link for a Salesforce ID.

    Args:
        salesforce_id: Salesforce record ID
        instance_url: Base URL of the Salesforce instance, if known

    Returns:
        Formatted link string for terminal
    """
    if instance_url and salesforce_id and len(salesforce_id) in [15, 18]:
        url = f"{instance_url.rstrip('/')}/{salesforce_id}"
        # Rich supports clickable links with [link=URL]text[/link] syntax
        return f"[link={url}]{salesforce_id}[/link]"
    return escape(salesforce_id or '')


def format_value(key: str, value: Any, instance_url: Optional[str] = None) -> str:
    """Format a single field value as rich markup."""
    if value is None or value == '':
        return MISSING
    if isinstance(value, bool):
        return "[green]✓[/green]" if value else "[red]✗[/red]"
    if isinstance(value, (int, float)):
        return f"[blue]{value}[/blue]"
    value_str = str(value)
    if key == 'Id' or key.endswith('Id'):
        return make_id_clickable(value_str, instance_url)
    if key.endswith('Date'):
        value_str = value_str.replace('.000+0000', '').replace('T', ' ')
        return f"[yellow]{escape(value_str)}[/yellow]"
    return f"[green]{escape(value_str)}[/green]"


def display_record(record: RawRecord, title: str, style: str = 'green',
                   instance_url: Optional[str] = None, out: Optional[Console] = None):
    """
    Display a single record with all its configured fields.

    Args:
        record: Record fields, in configured order
        title: Panel title
        style: Panel border style
        instance_url: Base URL used for clickable ids
        out: Console to print to (default: stdout console)
    """
    out = out or console
    width = max([len(k) for k in record] + [20])
    lines = [
        f"[cyan]{escape(key):{width}}[/cyan]  {format_value(key, value, instance_url)}"
        for key, value in record.items()
    ]

    panel = Panel(
        "\n".join(lines),
        title=title,
        title_align='left',
        border_style=style,
        box=box.ROUNDED,
        padding=(0, 1)
    )
    out.print(panel)


def _title(ref: EntityRef, label: str) -> str:
    style = KIND_STYLES.get(ref.kind.value, 'white')
    return f"[{style}]{label}[/{style}] [white]{escape(ref.id)}[/white]"


def display_report(report: Report, instance_url: Optional[str] = None,
                   out: Optional[Console] = None):
    """
    Display a report: the root record, warnings, then related records
    grouped by relationship.
    """
    out = out or console
    out.print()
    display_record(report.record, _title(report.root, report.root.kind.value),
                   style='green', instance_url=instance_url, out=out)

    for warning in report.warnings:
        display_warning(warning, out=out)

    for label in report.relationships:
        related = report.related_to(label)
        out.print()
        out.rule(f"[bold cyan]{label.capitalize()}[/bold cyan] [dim]({len(related)})[/dim]",
                 align='left')
        if not related:
            out.print(f"[yellow]No {label} found[/yellow]")
            continue
        for num, entity in enumerate(related, 1):
            ref = entity.ref
            display_record(entity.record, _title(ref, f"{ref.kind.value} #{num}"),
                           style=KIND_STYLES.get(ref.kind.value, 'white'),
                           instance_url=instance_url, out=out)
    out.print()


def report_json(report: Report) -> str:
    """Serialize a report to JSON."""
    return json.dumps(report.to_dict(), indent=2, default=str)


def display_json(report: Report, out: Optional[Console] = None):
    """Print a report as highlighted JSON."""
    out = out or console
    out.print_json(report_json(report))


def display_error(message: str, out: Optional[Console] = None):
    """Display an error message on a single line."""
    (out or err_console).print(f"[bold red]Error:[/bold red] {escape(message)}", soft_wrap=True)


def display_success(message: str, out: Optional[Console] = None):
    """Display a success message."""
    (out or err_console).print(f"[bold green]✓[/bold green] {escape(message)}", soft_wrap=True)


def display_warning(message: str, out: Optional[Console] = None):
    """Display a warning message."""
    (out or console).print(f"[yellow]⚠[/yellow] {escape(message)}")
