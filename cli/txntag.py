# cli/txntag.py
# Command-line front end for the transaction tagger.
# - Categorize a batch of transactions against a taxonomy folder (categorize)
# - Query a batch with the filter DSL (filter)
# - Tally, bucket and merge batches (counts, group, merge)
# - Write a CSV for spreadsheets/plotting (export)
#
# Examples:
#   txntag categorize data/chase-checking.json --taxonomy config/taxonomy
#   txntag filter data/out.jsonl --tag food --amount withdrawal --date 30d
#   txntag counts data/out.jsonl --key name
#   txntag group data/out.jsonl --bucket month
#   txntag merge data/old.jsonl data/new.jsonl
#   txntag export data/out.jsonl data/out.csv
#
# Input files hold transaction mappings, either one JSON array or JSON lines.

from __future__ import annotations

import json
import logging
from decimal import Decimal
from pathlib import Path
from typing import Any, List, Optional, Tuple

import click

from categorizer.service import Categorizer
from config.loader import load_config
from query.filters import tfilter
from query.ops import tcounts, tgroup, tmerge, tsort
from txn_core.errors import ConfigError, FilterArgumentError
from txn_core.frame import to_dataframe
from txn_core.models import Transaction
from txn_utils.logging_setup import setup_logging

LOGGER = logging.getLogger("txntag")

EXIT_BAD_INPUT = 2
EXIT_CONFIG = 3


# ----------------------------- Helpers -----------------------------
def read_transactions(path: str) -> List[Transaction]:
    """
    Load a JSON array or JSON-lines file of transaction mappings.
    Raises ValueError on malformed content.
    """
    text = Path(path).read_text(encoding="utf-8").strip()
    if not text:
        return []
    if text.startswith("["):
        rows = json.loads(text)
    else:
        rows = [json.loads(line) for line in text.splitlines() if line.strip()]
    if not all(isinstance(r, dict) for r in rows):
        raise ValueError(f"{path}: expected transaction objects")
    return [Transaction.from_mapping(r) for r in rows]


def _load_or_exit(ctx: click.Context, path: str) -> List[Transaction]:
    try:
        return read_transactions(path)
    except (OSError, ValueError) as e:
        LOGGER.error("Cannot read transactions from %s: %s", path, e)
        ctx.exit(EXIT_BAD_INPUT)


def _emit(txns: List[Transaction], as_array: bool = False) -> None:
    rows = [t.to_mapping() for t in txns]
    if as_array:
        click.echo(json.dumps(rows, ensure_ascii=True))
        return
    for row in rows:
        click.echo(json.dumps(row, ensure_ascii=True))


def _amount_arg(raw: Optional[str]) -> Any:
    """'withdrawal' stays a keyword; 'LO:HI' becomes a numeric range."""
    if raw is None or ":" not in raw:
        return raw
    lo, hi = raw.split(":", 1)
    try:
        return (Decimal(lo), Decimal(hi))
    except ArithmeticError:
        raise click.BadParameter(f"not a numeric range: {raw}", param_hint="--amount")


def _date_arg(raw: Optional[str]) -> Any:
    """'30d' -> last 30 days, 'D1:D2' -> range, anything else -> date string."""
    if raw is None:
        return None
    if raw[:-1].isdigit() and raw[-1:].lower() == "d":
        return int(raw[:-1])
    if ":" in raw:
        start, end = raw.split(":", 1)
        return (start, end)
    return raw


# ----------------------------- CLI -----------------------------
@click.group()
@click.option("--quiet", is_flag=True, help="Suppress info logs; only warnings/errors.")
@click.option("--verbose", is_flag=True, help="Verbose logging.")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="config.toml path (default: repository config.toml).",
)
@click.pass_context
def cli(ctx: click.Context, quiet: bool, verbose: bool, config_path: Optional[str]) -> None:
    """Transaction tagger CLI."""
    cfg = None
    try:
        cfg = load_config(Path(config_path) if config_path else None)
    except FileNotFoundError as e:
        if config_path:
            raise click.BadParameter(str(e), param_hint="--config")

    level = (cfg or {}).get("logging", {}).get("level", "INFO")
    if quiet:
        level = "WARNING"
    if verbose:
        level = "DEBUG"
    setup_logging(level, force=True)
    ctx.obj = {"cfg": cfg}


@cli.command("categorize")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--taxonomy",
    "taxonomy_dir",
    default=None,
    type=click.Path(file_okay=False),
    help="Taxonomy folder (default: [taxonomy] dir from config.toml).",
)
@click.option("--micro/--no-micro", default=True, show_default=True, help="Tag tiny amounts.")
@click.option("--macro/--no-macro", default=True, show_default=True, help="Tag large amounts.")
@click.option("--json", "as_array", is_flag=True, help="Print one JSON array instead of JSON lines.")
@click.pass_context
def categorize_cmd(
    ctx: click.Context,
    path: str,
    taxonomy_dir: Optional[str],
    micro: bool,
    macro: bool,
    as_array: bool,
) -> None:
    """Name and tag every transaction in PATH."""
    cfg = ctx.obj["cfg"]
    try:
        if taxonomy_dir:
            svc = Categorizer(taxonomy_dir)
        elif cfg:
            svc = Categorizer.from_config(cfg)
        else:
            raise click.UsageError("No config.toml found; pass --taxonomy.")
    except ConfigError as e:
        LOGGER.error("Taxonomy failed to load: %s", e)
        ctx.exit(EXIT_CONFIG)

    txns = _load_or_exit(ctx, path)
    svc.categorize_transactions(txns, macro=macro, micro=micro)
    LOGGER.info("Categorized %d transactions with %d rules", len(txns), svc.rule_count)
    _emit(txns, as_array)


@cli.command("filter")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option("--bank", default=None, help="Exact bank name (case-insensitive).")
@click.option("--account", default=None, help="Exact account name (case-insensitive).")
@click.option("--tag", "tags", multiple=True, help="Tag; repeat to match any of several.")
@click.option("--name", default=None, help="Substring of the categorized name.")
@click.option("--description", default=None, help="Substring of the bank description.")
@click.option("--notes", default=None, help="Substring of the notes.")
@click.option("--amount", default=None, help="deposit|withdrawal|d|w|+|- or LO:HI.")
@click.option(
    "--date",
    "date_",
    default=None,
    help="Nd for the last N days (e.g. 30d), YYYY[-MM[-DD]] or D1:D2.",
)
@click.option("--negate", is_flag=True, help="Keep transactions failing the criteria.")
@click.option("--sort", "sort_key", default=None, help="Sort output by this field.")
@click.option("--reverse", is_flag=True, help="Reverse the sort order.")
@click.pass_context
def filter_cmd(
    ctx: click.Context,
    path: str,
    bank: Optional[str],
    account: Optional[str],
    tags: Tuple[str, ...],
    name: Optional[str],
    description: Optional[str],
    notes: Optional[str],
    amount: Optional[str],
    date_: Optional[str],
    negate: bool,
    sort_key: Optional[str],
    reverse: bool,
) -> None:
    """Print transactions in PATH that match every given criterion."""
    txns = _load_or_exit(ctx, path)
    tag_arg: Any = None
    if len(tags) == 1:
        tag_arg = tags[0]
    elif tags:
        tag_arg = list(tags)

    try:
        out = tfilter(
            txns,
            negate=negate,
            bank=bank,
            account=account,
            tags=tag_arg,
            name=name,
            description=description,
            notes=notes,
            amount=_amount_arg(amount),
            date=_date_arg(date_),
        )
        if sort_key:
            out = tsort(out, key=sort_key, reverse=reverse)
    except FilterArgumentError as e:
        raise click.UsageError(str(e))
    LOGGER.info("%d of %d transactions matched", len(out), len(txns))
    _emit(out)


@cli.command("counts")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option("--key", default="name", show_default=True, help="Field to tally.")
@click.pass_context
def counts_cmd(ctx: click.Context, path: str, key: str) -> None:
    """Print how often each value of a field occurs."""
    txns = _load_or_exit(ctx, path)
    try:
        counts = tcounts(txns, key)
    except FilterArgumentError as e:
        raise click.UsageError(str(e))
    for value, n in counts.items():
        click.echo(f"{value}\t{n}")


@cli.command("group")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.option(
    "--bucket",
    type=click.Choice(["day", "week", "month", "year"]),
    default="month",
    show_default=True,
)
@click.pass_context
def group_cmd(ctx: click.Context, path: str, bucket: str) -> None:
    """Print count and net amount per calendar period."""
    txns = _load_or_exit(ctx, path)
    for period, members in tgroup(txns, bucket=bucket).items():
        total = sum((t.amount for t in members), Decimal("0"))
        click.echo(f"{period.isoformat()}\t{len(members)}\t{total}")


@cli.command("merge")
@click.argument("first", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.argument("second", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.pass_context
def merge_cmd(ctx: click.Context, first: str, second: str) -> None:
    """Merge two files, dropping duplicate transactions."""
    a = _load_or_exit(ctx, first)
    b = _load_or_exit(ctx, second)
    out = tmerge(a, b)
    LOGGER.info("Merged %d + %d -> %d transactions", len(a), len(b), len(out))
    _emit(out)


@cli.command("export")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, readable=True))
@click.argument("out", type=click.Path(dir_okay=False, writable=True))
@click.pass_context
def export_cmd(ctx: click.Context, path: str, out: str) -> None:
    """Write transactions in PATH to a CSV file."""
    txns = _load_or_exit(ctx, path)
    to_dataframe(txns).to_csv(out, index=False)
    click.echo(f"[info] Wrote {len(txns)} rows -> {out}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
