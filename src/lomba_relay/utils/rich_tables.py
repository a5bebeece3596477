# ABOUTME: Rich table builders for CLI run summaries
# ABOUTME: Ingestion, batch extraction, model usage, delivery, and logging status displays

from typing import Any

from rich.box import ROUNDED, SIMPLE
from rich.console import Console
from rich.table import Table


def create_key_value_table(
    title: str,
    data: dict[str, Any],
    title_style: str = "bold cyan",
    key_style: str = "bold blue",
    value_style: str = "green",
    box_style=ROUNDED,
) -> Table:
    """Create a two-column key-value table.

    Args:
        title: Table title with emoji/styling
        data: Dictionary of key-value pairs to display
        title_style: Style for the table title
        key_style: Style for the key column
        value_style: Style for the value column
        box_style: Border style for the table

    Returns:
        Formatted Rich table ready for printing
    """
    table = Table(
        title=f"[{title_style}]{title}[/{title_style}]",
        box=box_style,
        show_header=True,
        header_style="bold magenta",
        border_style="cyan",
        title_justify="left",
        expand=False,
    )

    table.add_column("Field", style=key_style, no_wrap=False)
    table.add_column("Value", style=value_style, no_wrap=False)

    for key, value in data.items():
        table.add_row(key, str(value))

    return table


def create_multi_column_table(
    title: str,
    columns: list[tuple[str, str]],
    rows: list[list[str]],
    title_style: str = "bold cyan",
    box_style=ROUNDED,
) -> Table:
    """Create a table with one styled column per (name, style) pair."""
    table = Table(
        title=f"[{title_style}]{title}[/{title_style}]",
        box=box_style,
        show_header=True,
        header_style="bold magenta",
        border_style="cyan",
        title_justify="left",
    )

    for name, style in columns:
        table.add_column(name, style=style)
    for row in rows:
        table.add_row(*row)

    return table


def create_ingest_summary_table(summary: Any) -> Table:
    """Counts from one ingestion run."""
    data = {
        "🕷️ Scraped": summary.scraped_count,
        "💾 Inserted": summary.inserted_count,
        "🆔 New Record IDs": ", ".join(str(i) for i in summary.new_record_ids) or "-",
        "🔗 Skipped (known URL)": summary.skipped_url,
        "📝 Skipped (known description)": summary.skipped_description,
        "♻️ Skipped (duplicate in batch)": summary.skipped_duplication,
        "☁️ Posters Relocated": summary.uploaded,
        "🚀 Extraction Triggered": "Yes" if summary.triggered else "No",
        "⚠️ Errors": len(summary.errors),
    }
    return create_key_value_table(title="📥 Ingestion Summary", data=data, title_style="bold green")


def create_batch_summary_table(summary: Any) -> Table:
    data = {
        "📦 Groups": summary.groups,
        "🔄 Processed": summary.processed,
        "✅ Updated": summary.updated,
        "➖ Nothing Extracted": summary.empty,
        "❌ Failed": summary.failed,
    }
    return create_key_value_table(title="🧠 Extraction Summary", data=data, title_style="bold green")


def create_field_sources_table(field_sources: dict[int, str]) -> Table:
    rows = [[str(record_id), sources] for record_id, sources in sorted(field_sources.items())]
    return create_multi_column_table(
        title="🏷️ Field Sources",
        columns=[("Record", "bold blue"), ("Fields by provider", "white")],
        rows=rows,
        box_style=SIMPLE,
    )


def create_model_usage_table(usage: Any) -> Table:
    rows = [
        [provider, str(attempted), str(usage.succeeded[provider]), str(usage.failed[provider])]
        for provider, attempted in usage.attempted.items()
    ]
    return create_multi_column_table(
        title="🤖 Model Usage",
        columns=[("Provider", "bold blue"), ("Attempted", "white"), ("Succeeded", "green"), ("Failed", "red")],
        rows=rows,
    )


def create_delivery_table(report: Any) -> Table:
    data = {
        "🎯 Selected": report.selected,
        "📨 Sent": report.sent,
        "❌ Failed": report.failed,
        "⏭️ Skipped": report.skipped,
    }
    return create_key_value_table(title="💬 Delivery Summary", data=data, title_style="bold green", box_style=SIMPLE)


def create_logging_status_table(status: dict[str, Any]) -> Table:
    """Create a logging configuration status table.

    Args:
        status: Logging status dictionary

    Returns:
        Styled logging configuration table
    """
    logging_data = {
        "🔧 Mode": status["mode"].title(),
        "📁 Log Directory": status["log_directory"] or "N/A (production mode)",
        "🔇 Suppressed Libraries": ", ".join(status["third_party_suppressed"]),
    }

    for key, label in (("main", "📝 Main Log"), ("json", "📊 JSON Log"), ("errors", "🚨 Error Log")):
        if status["log_files"][key]:
            logging_data[label] = status["log_files"][key]

    return create_key_value_table(
        title="🔍 Logging Configuration",
        data=logging_data,
        title_style="bold green",
        key_style="blue",
        value_style="white",
    )


def print_rich_table(console: Console, table: Table) -> None:
    console.print()
    console.print(table)
    console.print()
