# ABOUTME: Main CLI application entry point using asyncclick for native async support
# ABOUTME: Commands for the scheduled ingestion run, batch extraction, and channel delivery

import asyncclick as click
from rich.console import Console
from rich.panel import Panel

from lomba_relay.config import Config, get_config
from lomba_relay.core import (
    AdmissionGate,
    BatchScheduler,
    EventTrigger,
    FanOutCollector,
    IngestionPipeline,
    build_relocator,
    build_trigger,
)
from lomba_relay.delivery import DeliveryGate, DeliveryReport
from lomba_relay.extraction import build_orchestrator
from lomba_relay.persistence import DatabaseManager
from lomba_relay.sources import build_adapters
from lomba_relay.utils.logging import (
    LoggingMode,
    RunContext,
    configure_logging,
    get_logging_status,
    with_pipeline_context,
)
from lomba_relay.utils.retry import PipelineError
from lomba_relay.utils.rich_tables import (
    create_batch_summary_table,
    create_delivery_table,
    create_field_sources_table,
    create_ingest_summary_table,
    create_logging_status_table,
    create_model_usage_table,
    print_rich_table,
)

console = Console()


def _build_scheduler(config: Config, database: DatabaseManager) -> BatchScheduler:
    return BatchScheduler(
        database=database,
        orchestrator=build_orchestrator(config),
        delivery=DeliveryGate(database, config=config),
        batch_size=config.batch_size,
    )


def _display_delivery(report: DeliveryReport) -> None:
    print_rich_table(console, create_delivery_table(report))
    for error in report.errors:
        console.print(f"[red]❌ {error}[/red]")


def _display_batch(summary) -> None:
    print_rich_table(console, create_batch_summary_table(summary))
    if summary.field_sources:
        print_rich_table(console, create_field_sources_table(summary.field_sources))
    print_rich_table(console, create_model_usage_table(summary.usage))
    if summary.delivery:
        _display_delivery(summary.delivery)


@click.command()
@click.pass_context
async def run(ctx):
    """
    🕷️ Scrape all sources, store new competitions, and start extraction.

    New records are handed to the batch extractor by event when an event key
    is configured, otherwise extraction and delivery run in this process.
    """
    await _run_async(ctx.obj["json_output"])


async def _run_async(json_output: bool):
    config = get_config()
    database = DatabaseManager()
    adapters = build_adapters(config)
    relocator = build_relocator(config)
    scheduler = _build_scheduler(config, database)
    trigger = build_trigger(config, scheduler)

    with with_pipeline_context("ingestion", sources=config.enabled_sources) as logger:
        try:
            await database.create_tables()
            pipeline = IngestionPipeline(
                collector=FanOutCollector(adapters, config),
                admission=AdmissionGate(database),
                relocator=relocator,
                trigger=trigger,
            )
            if not json_output:
                console.print(Panel.fit("🏆 [bold cyan]Lomba Relay Ingestion[/bold cyan] 🏆", border_style="magenta"))
            summary = await pipeline.run(RunContext(pipeline="ingestion"))
        except PipelineError as e:
            logger.error("Ingestion run aborted", error=str(e), error_type=type(e).__name__)
            raise click.ClickException(str(e)) from e
        finally:
            for adapter in adapters:
                await adapter.aclose()
            await relocator.aclose()
            if isinstance(trigger, EventTrigger):
                await trigger.aclose()
            await scheduler.aclose()
            await database.close()

    if json_output:
        click.echo(summary.model_dump_json(indent=2))
        return

    print_rich_table(console, create_ingest_summary_table(summary))
    for error in summary.errors:
        console.print(f"[yellow]⚠️ {error}[/yellow]")
    if summary.batch:
        _display_batch(summary.batch)


@click.command()
@click.argument("record_ids", type=int, nargs=-1, required=True)
@click.option("--source", default="cli", help="Label recorded with the batch run")
@click.pass_context
async def extract(ctx, record_ids: tuple[int, ...], source: str):
    """
    🧠 Run AI extraction over existing records, then deliver what became eligible.
    """
    await _extract_async(list(record_ids), source, ctx.obj["json_output"])


async def _extract_async(record_ids: list[int], source: str, json_output: bool):
    config = get_config()
    database = DatabaseManager()
    scheduler = _build_scheduler(config, database)

    with with_pipeline_context("batches", records=len(record_ids)) as logger:
        try:
            await database.create_tables()
            summary = await scheduler.run(record_ids, source, RunContext(pipeline="batches"))
        except PipelineError as e:
            logger.error("Batch run aborted", error=str(e), error_type=type(e).__name__)
            raise click.ClickException(str(e)) from e
        finally:
            await scheduler.aclose()
            await database.close()

    if json_output:
        click.echo(summary.model_dump_json(indent=2))
        return
    _display_batch(summary)


@click.command()
@click.pass_context
async def deliver(ctx):
    """
    💬 Send every eligible, undelivered competition to the configured channels.
    """
    await _deliver_async(None, ctx.obj["json_output"])


@click.command(name="deliver-random")
@click.option("--limit", "-n", default=5, show_default=True, help="How many competitions to send")
@click.pass_context
async def deliver_random(ctx, limit: int):
    """
    🎲 Send a random subset of eligible, undelivered competitions.
    """
    await _deliver_async(limit, ctx.obj["json_output"])


async def _deliver_async(limit: int | None, json_output: bool):
    config = get_config()
    database = DatabaseManager()
    gate = DeliveryGate(database, config=config)

    with with_pipeline_context("delivery", limit=limit) as logger:
        try:
            await database.create_tables()
            run_ctx = RunContext(pipeline="delivery")
            if limit is None:
                report = await gate.deliver_pending(run_ctx)
            else:
                report = await gate.send_random(limit, run_ctx)
        except PipelineError as e:
            logger.error("Delivery run aborted", error=str(e), error_type=type(e).__name__)
            raise click.ClickException(str(e)) from e
        finally:
            await gate.aclose()
            await database.close()

    if json_output:
        click.echo(report.model_dump_json(indent=2))
        return
    _display_delivery(report)


def _initialize_logging(json_output: bool, log_level: str | None = None, log_file: str | None = None) -> None:
    """Initialize logging configuration."""
    config = get_config()
    mode = LoggingMode.PRODUCTION if json_output else LoggingMode.INTERACTIVE

    # CLI options win over config values
    final_log_level = log_level or config.log_level
    final_log_file = log_file or (str(config.log_file) if config.log_file else None)

    try:
        configure_logging(mode=mode, log_level=final_log_level, log_file=final_log_file)
    except (FileNotFoundError, PermissionError, OSError):
        configure_logging(mode=LoggingMode.PRODUCTION, log_level=final_log_level)


@click.command(name="logging-status")
def logging_status():
    """
    📊 Show current logging configuration and status.
    """
    status = get_logging_status()
    print_rich_table(console, create_logging_status_table(status))


@click.group(invoke_without_command=True)
@click.option("--json", is_flag=True, help="Output structured JSON instead of rich tables")
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--log-file", help="Custom log file path")
@click.pass_context
def app(ctx, json: bool, log_level: str | None, log_file: str | None):
    """
    🏆 Lomba Relay - competition announcements from scrape to WhatsApp

    Collects student competition posts from Instagram and web listings,
    extracts structured details with AI, and publishes them to chat channels.
    """
    ctx.ensure_object(dict)
    ctx.obj["json_output"] = json

    _initialize_logging(json, log_level, log_file)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


app.add_command(run)
app.add_command(extract)
app.add_command(deliver)
app.add_command(deliver_random)
app.add_command(logging_status)


if __name__ == "__main__":
    app()
