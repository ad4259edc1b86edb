"""Command-line interface for the finance importer."""

import argparse
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from finance_importer import __version__
from finance_importer.config import Config, ConfigError, load_config, load_holdings
from finance_importer.models.holding import HoldingCandidate
from finance_importer.models.report import ImportResult
from finance_importer.models.transaction import TransactionCandidate, TransactionType
from finance_importer.output.csv_exporter import CSVExporter, CSVLedger
from finance_importer.output.excel_writer import ExcelWriter
from finance_importer.parsers.base import ColumnMapping, ParseError
from finance_importer.parsers.broker_mapper import BrokerStatementMapper, ReportKind
from finance_importer.parsers.csv_mapper import CSVColumnMapper
from finance_importer.parsers.csv_reader import read_csv_rows
from finance_importer.parsers.sms_parser import SMSParser, split_messages
from finance_importer.processing.importer import import_holdings, import_transactions
from finance_importer.processing.rule_engine import RuleEngine
from finance_importer.utils.decimal_utils import format_currency
from finance_importer.utils.logging_config import get_logger, setup_logging

# Load environment variables from .env file (if it exists)
load_dotenv()

console = Console()
logger = get_logger(__name__)

OUTPUT_SUFFIXES = (".csv", ".xlsx")

# Rows shown in the review table unless --limit says otherwise
DEFAULT_DISPLAY_LIMIT = 50


def default_config_dir() -> Path:
    """Config directory from FINANCE_IMPORTER_CONFIG_DIR, else ./config."""
    return Path(os.environ.get("FINANCE_IMPORTER_CONFIG_DIR", "config"))


def parse_map_option(value: str) -> tuple[str, str]:
    """Parse a ``field=Header`` mapping override.

    Args:
        value: Raw option text.

    Returns:
        Tuple of (field, header).

    Raises:
        argparse.ArgumentTypeError: If the text has no '=' or no field.
    """
    field_name, sep, header = value.partition("=")
    if not sep or not field_name.strip():
        raise argparse.ArgumentTypeError(
            f"Invalid mapping '{value}': expected field=Header (e.g. amount=Debit)"
        )
    return field_name.strip(), header.strip()


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser.
    """
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to settings.yaml (default: <config-dir>/settings.yaml)",
    )
    common.add_argument(
        "--rules",
        type=Path,
        default=None,
        help="Path to rules.yaml (default: <config-dir>/rules.yaml)",
    )
    common.add_argument(
        "--config-dir",
        type=Path,
        default=default_config_dir(),
        help="Base config directory (default: ./config or $FINANCE_IMPORTER_CONFIG_DIR)",
    )
    common.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase output verbosity (-v, -vv)",
    )

    review = argparse.ArgumentParser(add_help=False)
    review.add_argument(
        "input",
        type=Path,
        help="File to import",
    )
    review.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Export reviewed candidates (.csv or .xlsx)",
    )
    review.add_argument(
        "--ledger",
        type=Path,
        default=None,
        help="Append selected candidates to this CSV ledger",
    )
    review.add_argument(
        "--limit",
        type=int,
        default=DEFAULT_DISPLAY_LIMIT,
        help=f"Rows to show in the review table (default: {DEFAULT_DISPLAY_LIMIT})",
    )

    mapping = argparse.ArgumentParser(add_help=False)
    mapping.add_argument(
        "--map",
        dest="mappings",
        type=parse_map_option,
        action="append",
        default=[],
        metavar="FIELD=HEADER",
        help="Override a detected column mapping (repeatable; empty header unmaps)",
    )

    parser = argparse.ArgumentParser(
        prog="finance-importer",
        description=(
            "Import personal finance transactions from bank SMS text, "
            "CSV exports and broker statements"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s sms messages.txt --output review.xlsx
  %(prog)s csv statement.csv --map amount=Debit --ledger ledger.csv
  %(prog)s broker holdings.csv --existing portfolio.yaml
  %(prog)s validate --config-dir ./config
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    sms = subparsers.add_parser(
        "sms",
        parents=[common, review],
        help="Parse bank SMS messages (blank-line separated text file, or - for stdin)",
    )
    sms.add_argument(
        "--min-confidence",
        type=int,
        default=0,
        help="Deselect messages parsed with lower confidence (0-100)",
    )
    sms.add_argument(
        "--no-rules",
        action="store_true",
        help="Do not apply categorization rules",
    )

    csv_cmd = subparsers.add_parser(
        "csv",
        parents=[common, review, mapping],
        help="Import a generic transaction CSV",
    )
    csv_cmd.add_argument(
        "--no-rules",
        action="store_true",
        help="Do not apply categorization rules",
    )

    broker = subparsers.add_parser(
        "broker",
        parents=[common, review, mapping],
        help="Import a broker holdings or tradebook CSV",
    )
    broker.add_argument(
        "--kind",
        choices=[kind.value for kind in ReportKind],
        default=None,
        help="Statement kind (default: from settings, usually holdings)",
    )
    broker.add_argument(
        "--existing",
        type=Path,
        default=None,
        help="Existing holdings (.yaml or .csv) for duplicate flags",
    )

    subparsers.add_parser(
        "validate",
        parents=[common],
        help="Validate configuration files only",
    )

    return parser


def get_log_level(verbosity: int) -> str:
    """Convert verbosity count to log level.

    Args:
        verbosity: Number of -v flags.

    Returns:
        Log level string.
    """
    if verbosity >= 2:
        return "DEBUG"
    elif verbosity >= 1:
        return "INFO"
    else:
        return "WARNING"


def validate_output_path(path: Path, base_dir: Path | None = None) -> Path:
    """Validate that output path is within allowed directory.

    Prevents path traversal by ensuring the resolved path is within the base
    directory (defaults to current working directory).

    Args:
        path: The path to validate.
        base_dir: Base directory to constrain paths within (default: cwd).

    Returns:
        The resolved, validated path.

    Raises:
        ValueError: If the path escapes the allowed directory.
    """
    if base_dir is None:
        base_dir = Path.cwd()

    resolved_base = base_dir.resolve()
    resolved_path = (base_dir / path).resolve()

    try:
        resolved_path.relative_to(resolved_base)
    except ValueError:
        raise ValueError(
            f"Invalid path: '{path}' escapes the allowed directory. "
            f"Paths must be within '{resolved_base}'"
        ) from None

    return resolved_path


def apply_mapping_overrides(
    mapping: ColumnMapping,
    overrides: Sequence[tuple[str, str]],
    headers: Sequence[str],
) -> ColumnMapping:
    """Apply --map overrides on top of a detected mapping.

    Args:
        mapping: Detected mapping (modified in place).
        overrides: (field, header) pairs in command-line order.
        headers: Headers present in the file.

    Returns:
        The same mapping.

    Raises:
        ValueError: If a field is not part of the mapping.
    """
    for field_name, header in overrides:
        if header and header not in headers:
            console.print(
                f"[yellow]Warning: header '{header}' not found in file; "
                f"'{field_name}' will be empty[/yellow]"
            )
        mapping.override(field_name, header)
    return mapping


def display_mapping(mapping: ColumnMapping) -> None:
    """Print the effective column mapping."""
    console.print("\n[bold]Column mapping[/bold]")
    for field_name in mapping.fields:
        header = mapping.header_for(field_name)
        shown = header if header else "[dim](not mapped)[/dim]"
        console.print(f"  {field_name:<13} <- {shown}")


def display_transactions(candidates: Sequence[TransactionCandidate], limit: int) -> None:
    """Show transaction candidates in a review table."""
    table = Table(title=f"Transactions ({len(candidates)})")
    table.add_column("#", justify="right")
    table.add_column("Date")
    table.add_column("Type")
    table.add_column("Amount", justify="right")
    table.add_column("Source")
    table.add_column("Category")
    table.add_column("Conf.", justify="right")
    table.add_column("Sel.")

    for c in candidates[:limit]:
        style = "green" if c.type == TransactionType.INCOME else "red"
        category = f"{c.category} (EMI)" if c.is_emi and c.category != "EMI" else c.category
        table.add_row(
            "" if c.row_index is None else str(c.row_index),
            c.date.isoformat(),
            c.type.value,
            f"[{style}]{format_currency(c.amount)}[/{style}]",
            c.source,
            category,
            "" if c.confidence is None else str(c.confidence),
            "✓" if c.selected else "",
        )

    console.print(table)
    if len(candidates) > limit:
        console.print(f"[dim]... and {len(candidates) - limit} more[/dim]")


def display_holdings(candidates: Sequence[HoldingCandidate], limit: int) -> None:
    """Show holding candidates in a review table."""
    table = Table(title=f"Holdings ({len(candidates)})")
    table.add_column("#", justify="right")
    table.add_column("Symbol")
    table.add_column("Qty", justify="right")
    table.add_column("Avg Price", justify="right")
    table.add_column("Status")

    for c in candidates[:limit]:
        if not c.is_importable:
            status = "[dim]skip[/dim]"
        elif c.is_duplicate:
            status = "[yellow]merge[/yellow]"
        else:
            status = "[green]new[/green]"
        table.add_row(
            str(c.row_index),
            c.symbol or "[dim]-[/dim]",
            str(c.quantity),
            format_currency(c.avg_price),
            status,
        )

    console.print(table)
    if len(candidates) > limit:
        console.print(f"[dim]... and {len(candidates) - limit} more[/dim]")


def display_result(result: ImportResult, include_skipped: bool) -> None:
    """Print import counts."""
    counts = result.as_dict(include_skipped=include_skipped)
    summary = ", ".join(f"{name}: {count}" for name, count in counts.items())
    colour = "green" if result.failed == 0 else "yellow"
    console.print(f"\n[{colour}]Import finished ({summary})[/{colour}]")


def export_transactions(
    path: Path, candidates: Sequence[TransactionCandidate], config: Config
) -> Path:
    """Export transaction candidates by file extension."""
    if path.suffix.lower() == ".xlsx":
        return ExcelWriter(config).write_transactions(path, candidates)
    return CSVExporter(config).export_transactions(path, candidates)


def export_holdings(
    path: Path, candidates: Sequence[HoldingCandidate], config: Config
) -> Path:
    """Export holding candidates by file extension."""
    if path.suffix.lower() == ".xlsx":
        return ExcelWriter(config).write_holdings(path, candidates)
    return CSVExporter(config).export_holdings(path, candidates)


def resolve_paths(args: argparse.Namespace) -> None:
    """Validate --output and --ledger in place.

    Raises:
        ValueError: If a path escapes the working directory or has an
            unsupported extension.
    """
    if args.output is not None:
        if args.output.suffix.lower() not in OUTPUT_SUFFIXES:
            raise ValueError(
                f"Unsupported output format '{args.output.suffix}'. "
                f"Use one of: {', '.join(OUTPUT_SUFFIXES)}"
            )
        args.output = validate_output_path(args.output)
    if args.ledger is not None:
        args.ledger = validate_output_path(args.ledger)


def read_input_text(path: Path) -> str:
    """Read SMS text from a file, or stdin when the path is '-'."""
    if str(path) == "-":
        return sys.stdin.read()
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    return path.read_text(encoding="utf-8")


def finish_transactions(
    args: argparse.Namespace, config: Config, candidates: list[TransactionCandidate]
) -> int:
    """Apply rules, review, export and optionally import transactions."""
    if config.rules and not args.no_rules:
        candidates = RuleEngine(config.rules).categorize(candidates)

    display_transactions(candidates, args.limit)

    if args.output is not None:
        with console.status("[bold green]Writing output..."):
            output_path = export_transactions(args.output, candidates, config)
        console.print(f"[green]Output written to {output_path}[/green]")

    if args.ledger is not None:
        result = import_transactions(candidates, CSVLedger.for_transactions(args.ledger))
        display_result(result, include_skipped=False)

    return 0


def sms_command(args: argparse.Namespace, config: Config) -> int:
    """Parse SMS messages and review the resulting transactions.

    Args:
        args: Parsed command-line arguments.
        config: Loaded configuration.

    Returns:
        Exit code.
    """
    text = read_input_text(args.input)
    parser = SMSParser(category_keywords=config.sms_category_keywords)

    with console.status("[bold green]Parsing messages..."):
        message_count = len(split_messages(text))
        results = parser.parse_bulk(text)

    console.print(f"Parsed {len(results)} of {message_count} messages")
    if not results:
        console.print("[yellow]No transactions found in input.[/yellow]")
        return 0

    candidates = parser.to_candidates(results)
    if args.min_confidence:
        candidates = [
            c if (c.confidence or 0) >= args.min_confidence else c.with_changes(selected=False)
            for c in candidates
        ]

    return finish_transactions(args, config, candidates)


def csv_command(args: argparse.Namespace, config: Config) -> int:
    """Map a generic CSV onto transactions and review them.

    Args:
        args: Parsed command-line arguments.
        config: Loaded configuration.

    Returns:
        Exit code.
    """
    table = read_csv_rows(
        args.input,
        max_size=config.imports.max_file_size,
        max_rows=config.imports.max_rows,
    )
    mapper = CSVColumnMapper()
    mapping = apply_mapping_overrides(
        mapper.detect_mapping(table.headers), args.mappings, table.headers
    )
    display_mapping(mapping)

    if not mapping.is_mapped("amount"):
        console.print("[yellow]No amount column detected; use --map amount=<Header>.[/yellow]")

    candidates = mapper.normalize_rows(table.rows, mapping)
    console.print(f"{len(candidates)} of {len(table.rows)} rows have a usable amount")
    if not candidates:
        return 0

    return finish_transactions(args, config, candidates)


def broker_command(args: argparse.Namespace, config: Config) -> int:
    """Map a broker statement onto holdings and review them.

    Args:
        args: Parsed command-line arguments.
        config: Loaded configuration.

    Returns:
        Exit code.
    """
    existing = load_holdings(args.existing) if args.existing else []

    table = read_csv_rows(
        args.input,
        max_size=config.imports.max_file_size,
        max_rows=config.imports.max_rows,
    )
    mapper = BrokerStatementMapper(args.kind or config.imports.report_kind)
    mapping = apply_mapping_overrides(
        mapper.detect_mapping(table.headers), args.mappings, table.headers
    )
    display_mapping(mapping)

    candidates = mapper.build_candidates(table.rows, mapping, existing)
    display_holdings(candidates, args.limit)

    duplicates = sum(1 for c in candidates if c.is_duplicate)
    if duplicates:
        console.print(f"[yellow]{duplicates} symbols already held; they will be merged[/yellow]")

    if args.output is not None:
        with console.status("[bold green]Writing output..."):
            output_path = export_holdings(args.output, candidates, config)
        console.print(f"[green]Output written to {output_path}[/green]")

    if args.ledger is not None:
        result = import_holdings(
            candidates,
            CSVLedger.for_holdings(args.ledger),
            source=config.imports.holding_source,
        )
        display_result(result, include_skipped=True)

    return 0


def validate_config(args: argparse.Namespace) -> int:
    """Validate configuration files.

    Args:
        args: Parsed command-line arguments.

    Returns:
        0 if valid, 1 if errors found.
    """
    console.print("[bold]Validating configuration files...[/bold]\n")

    errors = []
    warnings = []

    config_dir = args.config_dir
    if not config_dir.exists():
        warnings.append(f"Config directory not found: {config_dir}")

    settings_path = args.config or (config_dir / "settings.yaml")
    if settings_path.exists():
        console.print(f"[green]✓[/green] Settings: {settings_path}")
    else:
        warnings.append(f"Settings file not found: {settings_path}")

    rules_path = args.rules or (config_dir / "rules.yaml")
    if rules_path.exists():
        console.print(f"[green]✓[/green] Rules: {rules_path}")
    else:
        warnings.append(f"Rules file not found: {rules_path}")

    try:
        config = load_config(
            settings_path=args.config,
            rules_path=args.rules,
            config_dir=config_dir,
        )
        console.print("\n[green]✓[/green] Configuration loaded successfully")
        console.print(f"  - {len(config.rules)} rules")
        keyword_source = "custom" if config.sms_category_keywords else "built-in"
        console.print(f"  - {keyword_source} SMS category keywords")
        console.print(f"  - max import size {config.imports.max_file_size_mb:g} MB")
        try:
            ReportKind.from_value(config.imports.report_kind)
        except ValueError as e:
            errors.append(str(e))
    except (ConfigError, yaml.YAMLError) as e:
        errors.append(f"Failed to load configuration: {e}")

    if warnings:
        console.print("\n[yellow]Warnings:[/yellow]")
        for w in warnings:
            console.print(f"  - {w}")

    if errors:
        console.print("\n[red]Errors:[/red]")
        for err in errors:
            console.print(f"  - {err}")
        return 1

    console.print("\n[green]Configuration is valid.[/green]")
    return 0


COMMANDS = {
    "sms": sms_command,
    "csv": csv_command,
    "broker": broker_command,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Arguments to parse (default: sys.argv[1:]).

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    log_level = get_log_level(args.verbose)
    setup_logging(level=log_level, console_output=args.verbose > 0)

    if args.command == "validate":
        return validate_config(args)

    try:
        config = load_config(
            settings_path=args.config,
            rules_path=args.rules,
            config_dir=args.config_dir,
        )
    except (ConfigError, yaml.YAMLError) as e:
        console.print(f"[red]Error: {e}[/red]")
        console.print("Run 'finance-importer validate' to check configuration files.")
        return 1

    # Settings decide the log file, and its level unless -v was given
    setup_logging(
        level=log_level if args.verbose else config.logging.level,
        log_file=config.logging.file,
        console_output=args.verbose > 0,
    )

    try:
        resolve_paths(args)
        console.print(f"[bold]Finance Importer v{__version__}[/bold]\n")
        return COMMANDS[args.command](args, config)
    except ParseError as e:
        logger.error(f"Import failed: {e}")
        console.print(f"[red]Error: {e}[/red]")
        return 1
    except (ConfigError, FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
