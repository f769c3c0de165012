"""CLI entry point for the trading-opportunity journal."""

from __future__ import annotations

import contextlib
import json
from pathlib import Path
from typing import Any, Callable, Iterator

import click

from .core.enums import Direction, ReferenceKind, TradeResult
from .core.errors import JournalError
from .core.result import attempt
from .journal.record import ChanceRecord

_DIRECTIONS = [d.value for d in Direction]
_RESULTS = [r.value for r in TradeResult] + ["none"]
_KINDS = [k.value for k in ReferenceKind]


@contextlib.contextmanager
def _journal_errors() -> Iterator[None]:
    """Turn store errors into a one-line message and exit status 1."""
    try:
        yield
    except JournalError as exc:
        raise click.ClickException(str(exc)) from exc


def _run(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call a store operation, failing the command on a journal error."""
    outcome = attempt(fn, *args, **kwargs)
    if not outcome.ok:
        raise click.ClickException(str(outcome.error)) from outcome.error
    return outcome.value


def _filter_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    options = [
        click.option("--pair", default=None, help="Currency pair, e.g. USD/JPY"),
        click.option("--timeframe", default=None, help="Timeframe, e.g. 1H"),
        click.option("--pattern", default=None, help="Chart pattern name"),
        click.option("--direction", type=click.Choice(_DIRECTIONS), default=None),
        click.option("--min-confidence", type=click.IntRange(1, 5), default=None),
        click.option("--executed/--not-executed", "executed", default=None,
                     help="Only executed / only skipped opportunities"),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


def _filter_spec(
    pair: str | None,
    timeframe: str | None,
    pattern: str | None,
    direction: str | None,
    min_confidence: int | None,
    executed: bool | None,
) -> dict[str, Any]:
    """Filter mapping in the same shape a preset stores."""
    spec = {
        "currencyPair": pair,
        "timeframe": timeframe,
        "pattern": pattern,
        "direction": direction,
        "minConfidence": min_confidence,
        "tradeExecuted": executed,
    }
    return {k: v for k, v in spec.items() if v is not None}


def _format_record(record: ChanceRecord) -> str:
    executed = "executed" if record.trade_executed else "skipped"
    result = record.trade_result.value if record.trade_result else "-"
    line = (
        f"{record.id}  {record.created_at:%Y-%m-%d %H:%M}  {record.currency_pair:<8} "
        f"{record.timeframe:<4} {record.direction.value:<5} "
        f"{'*' * record.confidence:<5}  {record.pattern}  [{executed}/{result}]"
    )
    if record.memo:
        line += f"  {record.memo}"
    return line


def _echo_records(records: list[ChanceRecord], as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps([r.to_document() for r in records], ensure_ascii=False, indent=2))
        return
    for record in records:
        click.echo(_format_record(record))
    click.echo(f"{len(records)} record(s)")


@click.group()
@click.option("--config", default="chance_journal.toml", help="Config file path")
@click.option("--data-dir", default=None, help="Override the storage directory")
@click.pass_context
def main(ctx: click.Context, config: str, data_dir: str | None) -> None:
    """Trading-opportunity journal."""
    from .app import open_journal
    from .core.config import load_settings
    from .observability.logger import get_logger, setup_logging

    overrides: dict = {}
    if data_dir:
        overrides["storage"] = {"backend": "file", "data_dir": data_dir}

    with _journal_errors():
        settings = load_settings(config_path=config, overrides=overrides)
        setup_logging(
            level=settings.observability.log_level,
            format=settings.observability.log_format,
        )
        ctx.obj = open_journal(settings)

    get_logger(__name__).debug(
        "journal_opened",
        backend=settings.storage.backend.value,
        records=len(ctx.obj.records),
        presets=len(ctx.obj.presets),
    )


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@main.command()
@click.argument("pair")
@click.argument("timeframe")
@click.argument("pattern")
@click.argument("direction", type=click.Choice(_DIRECTIONS))
@click.option("--confidence", default=3, help="Conviction from 1 to 5")
@click.option("--memo", default="", help="Free-text note (200 characters max)")
@click.option("--chart-url", default="", help="Link to a chart screenshot")
@click.pass_obj
def add(journal, pair, timeframe, pattern, direction, confidence, memo, chart_url) -> None:
    """Record a new trading opportunity."""
    record = _run(
        journal.records.add,
        {
            "currency_pair": pair,
            "timeframe": timeframe,
            "pattern": pattern,
            "direction": direction,
            "confidence": confidence,
            "memo": memo,
            "chart_url": chart_url,
        },
    )
    click.echo(f"Recorded {record.id}")


@main.command()
@click.argument("record_id")
@click.option("--pair", default=None)
@click.option("--timeframe", default=None)
@click.option("--pattern", default=None)
@click.option("--direction", type=click.Choice(_DIRECTIONS), default=None)
@click.option("--confidence", type=int, default=None)
@click.option("--memo", default=None)
@click.option("--chart-url", default=None)
@click.option("--executed/--not-executed", "executed", default=None)
@click.option("--result", type=click.Choice(_RESULTS), default=None,
              help="Outcome of an executed trade; 'none' clears it")
@click.pass_obj
def update(journal, record_id, pair, timeframe, pattern, direction, confidence,
           memo, chart_url, executed, result) -> None:
    """Change fields of an existing record."""
    patch = {
        "currency_pair": pair,
        "timeframe": timeframe,
        "pattern": pattern,
        "direction": direction,
        "confidence": confidence,
        "memo": memo,
        "chart_url": chart_url,
        "trade_executed": executed,
    }
    patch = {k: v for k, v in patch.items() if v is not None}
    if result is not None:
        patch["trade_result"] = None if result == "none" else result
    if not patch:
        raise click.UsageError("Nothing to update")

    record = _run(journal.records.update, record_id, patch)
    click.echo(_format_record(record))


@main.command()
@click.argument("record_id")
@click.pass_obj
def delete(journal, record_id) -> None:
    """Delete a record (unknown ids are ignored)."""
    _run(journal.records.remove, record_id)
    click.echo(f"Deleted {record_id}")


@main.command("list")
@_filter_options
@click.option("--search", "term", default=None, help="Search pair, pattern and memo")
@click.option("--today", is_flag=True, help="Only records created today")
@click.option("--preset", "preset_name", default=None, help="Apply a saved filter preset")
@click.option("--json", "as_json", is_flag=True, help="Print JSON instead of text")
@click.pass_obj
def list_records(journal, pair, timeframe, pattern, direction, min_confidence,
                 executed, term, today, preset_name, as_json) -> None:
    """List records, newest first."""
    with _journal_errors():
        if today:
            records = journal.records.todays_records()
        elif preset_name:
            preset = journal.presets.find_by_name(preset_name)
            if preset is None:
                raise click.ClickException(f"No filter preset named '{preset_name}'")
            journal.presets.apply_usage(preset.id)
            records = journal.records.query(preset.filters)
        else:
            spec = _filter_spec(pair, timeframe, pattern, direction, min_confidence, executed)
            records = journal.records.find(spec, term)
    _echo_records(records, as_json)


@main.command()
@click.option("--top", default=5, help="How many pairs/patterns to rank")
@click.option("--json", "as_json", is_flag=True)
@click.pass_obj
def stats(journal, top, as_json) -> None:
    """Show aggregate statistics."""
    from .journal.statistics import monthly_comparison, top_counts

    summary = journal.records.statistics()
    monthly = monthly_comparison(journal.records.records, journal.clock.now().astimezone())

    if as_json:
        payload = summary.model_dump()
        payload["monthly"] = monthly.model_dump()
        click.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    rate = f"{summary.success_rate}%" if summary.executed_trades else "-"
    click.echo(f"Records:        {summary.total_records}")
    click.echo(f"Executed:       {summary.executed_trades}")
    click.echo(f"Successful:     {summary.successful_trades}")
    click.echo(f"Success rate:   {rate}")
    click.echo(
        f"This month:     {monthly.this_month} ({monthly.change:+d} vs last month)"
    )
    for title, counts in (
        ("Top pairs", summary.currency_pair_counts),
        ("Top patterns", summary.pattern_counts),
        ("Directions", summary.direction_counts),
    ):
        ranked = top_counts(counts, limit=top)
        if ranked:
            click.echo(f"{title}: " + ", ".join(f"{k} ({v})" for k, v in ranked))


# ---------------------------------------------------------------------------
# Filter presets
# ---------------------------------------------------------------------------

@main.group()
def presets() -> None:
    """Manage saved filter presets."""


@presets.command("save")
@click.argument("name")
@_filter_options
@click.pass_obj
def presets_save(journal, name, pair, timeframe, pattern, direction,
                 min_confidence, executed) -> None:
    """Save filter options under NAME."""
    spec = _filter_spec(pair, timeframe, pattern, direction, min_confidence, executed)
    preset = _run(journal.presets.save, name, spec)
    click.echo(f"Saved preset '{preset.name}'")


@presets.command("list")
@click.option("--sort", type=click.Choice(["saved", "used", "recent"]), default="saved")
@click.option("--limit", default=None, type=int)
@click.pass_obj
def presets_list(journal, sort, limit) -> None:
    """List saved presets."""
    store = journal.presets
    if sort == "used":
        items = store.most_used(limit or store.max_presets)
    elif sort == "recent":
        items = store.most_recent(limit or store.max_presets)
    else:
        items = store.presets[:limit] if limit else store.presets
    for preset in items:
        criteria = ", ".join(f"{k}={v}" for k, v in preset.filters.items())
        click.echo(f"{preset.name:<20} used {preset.usage_count:>3}x  {criteria}")
    click.echo(f"{len(store)}/{store.max_presets} presets")


@presets.command("delete")
@click.argument("name")
@click.pass_obj
def presets_delete(journal, name) -> None:
    """Delete the preset called NAME."""
    preset = journal.presets.find_by_name(name)
    if preset is None:
        raise click.ClickException(f"No filter preset named '{name}'")
    _run(journal.presets.remove, preset.id)
    click.echo(f"Deleted preset '{preset.name}'")


@presets.command("export")
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), default=None)
@click.pass_obj
def presets_export(journal, output) -> None:
    """Export all presets as JSON."""
    document = journal.presets.export_document()
    if output is None:
        click.echo(document)
    else:
        output.write_text(document, encoding="utf-8")
        click.echo(f"Exported {len(journal.presets)} presets to {output}")


@presets.command("import")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def presets_import(journal, source) -> None:
    """Import presets from an exported JSON file."""
    count = _run(journal.presets.import_document, source.read_text(encoding="utf-8"))
    click.echo(f"Imported {count} presets")


# ---------------------------------------------------------------------------
# Reference catalogs
# ---------------------------------------------------------------------------

@main.group()
def reference() -> None:
    """Currency pairs, timeframes and patterns offered for new records."""


@reference.command("list")
@click.argument("kind", type=click.Choice(_KINDS))
@click.option("--category", default=None)
@click.pass_obj
def reference_list(journal, kind, category) -> None:
    """List active entries of a catalog."""
    catalog = journal.catalogs[ReferenceKind(kind)]
    entries = catalog.by_category(category) if category else catalog.active_entries()
    for entry in entries:
        click.echo(f"{entry.id:>3}  {entry.name:<28} {entry.category}")


@reference.command("add")
@click.argument("kind", type=click.Choice(_KINDS))
@click.argument("name")
@click.option("--display-name", default=None)
@click.option("--minutes", type=int, default=None)
@click.option("--category", default=None)
@click.option("--description", default=None)
@click.option("--reliability", type=int, default=None)
@click.pass_obj
def reference_add(journal, kind, name, **attrs) -> None:
    """Add a custom catalog entry."""
    attrs = {k: v for k, v in attrs.items() if v is not None}
    entry = _run(journal.catalogs[ReferenceKind(kind)].add, name, **attrs)
    click.echo(f"Added {kind} {entry.name} (id {entry.id})")


if __name__ == "__main__":
    main()
