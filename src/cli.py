"""CLI entry point for the report export pipeline.

Loads rows from a data file, resolves the report template and settings,
renders the requested formats, runs QA on the output and writes the files.

Usage::

    # Export a feuille de caisse as PDF and Excel
    python -m src.cli export \\
        --report feuille_caisse --data data/octobre.csv \\
        --title "Feuille de caisse" --subtitle "Octobre 2025" \\
        --format pdf excel --output-dir output/ --opening-balance 30000

    # Use a custom YAML template and stored settings
    python -m src.cli export \\
        --template templates/custom.yaml --settings config/settings.yaml \\
        --data data/rows.xlsx --format word

    # Inspect a template (columns, totals, summary)
    python -m src.cli inspect --report sommaire -v

    # Show, initialise or edit the stored report settings
    python -m src.cli settings show --settings config/settings.yaml
    python -m src.cli settings set --settings config/settings.yaml filigrane_actif=false

    # Write amounts in words
    python -m src.cli words 1250000 "4/500/00"
"""

import argparse
import datetime
import logging
import sys
from pathlib import Path

import yaml

from src.domain.amounts import montant_en_lettres, parse_montant
from src.errors import (
    ReportExportError,
    SettingsError,
    TemplateError,
)
from src.export.orchestrator import (
    ExportOptions,
    FileSink,
    MemorySink,
    ReportExporter,
)
from src.processor.ingestion import load_rows
from src.qa.validator import ExportValidator
from src.schema.loader import load_template, save_template
from src.schema.models import ExportFormat, ReportKind
from src.schema.templates import get_template
from src.settings.models import DEFAULT_REPORT_SETTINGS
from src.settings.resolver import resolve_settings
from src.settings.store import YamlSettingsStore, save_settings

_REPORT_CHOICES = [k.value for k in ReportKind if k != ReportKind.CUSTOM]
_FORMAT_CHOICES = [f.value for f in ExportFormat]


# ---------------------------------------------------------------------------
# Template and settings loading
# ---------------------------------------------------------------------------

def _load_template(args):
    """Load a ReportTemplate from CLI args (--template or --report)."""
    if getattr(args, "template", None):
        path = Path(args.template)
        if not path.exists():
            _error(f"Template file not found: {path}")
        try:
            return load_template(path)
        except TemplateError as exc:
            _error(str(exc))
    return get_template(getattr(args, "report", ReportKind.FEUILLE_CAISSE.value))


def _load_settings(args):
    """Stored ReportSettings, or None to render with the defaults."""
    if not getattr(args, "settings", None):
        return None
    try:
        settings = YamlSettingsStore(args.settings).get_settings()
    except SettingsError as exc:
        _error(str(exc))
    if settings is None:
        _warn(f"No settings found in {args.settings}; using default settings")
    return settings


class _CliNotifier:
    def notify_success(self, message):
        _info(message)

    def notify_failure(self, message):
        _warn(message)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def cmd_export(args):
    """Render the data file in each requested format."""
    template = _load_template(args)
    _info(f"Template: {template.name} ({len(template.columns)} columns)")

    data_path = Path(args.data)
    if not data_path.exists():
        _error(f"Data file not found: {data_path}")
    amount_columns = [c.key for c in template.columns if c.is_numeric]
    _info(f"Loading rows from {data_path}")
    rows = load_rows(data_path, amount_columns=amount_columns)
    if not rows:
        _warn("Data file has no rows; exporting an empty table")

    settings = _load_settings(args)
    options = ExportOptions(
        title=args.title or template.name,
        subtitle=args.subtitle or "",
        rows=rows,
        report_kind=template.kind,
        custom_template=template if args.template else None,
        sort_solde_first=args.sort_solde_first,
        opening_balance=args.opening_balance,
        generated_at=datetime.datetime.now(),
    )

    exporter = ReportExporter(settings=settings, notifier=_CliNotifier(), sink=MemorySink())
    sink = FileSink(args.output_dir)

    for fmt in dict.fromkeys(args.format):
        try:
            result = exporter.export_report(fmt, options)
        except ReportExportError as exc:
            _error(str(exc))

        if not args.skip_qa:
            content = exporter.build_report_content(options)
            qa_result = ExportValidator(content).validate(result.content, result.format)
            if qa_result.passed:
                _info(qa_result.summary())
            else:
                _warn(qa_result.summary())
                if args.verbose:
                    print(qa_result.report(), file=sys.stderr)
                if not args.force:
                    _error("QA validation failed. Use --force to write anyway, "
                           "or --skip-qa to skip validation.")
        else:
            _info("QA validation skipped (--skip-qa)")

        path = sink.write(result.filename, result.content)
        _info(f"Written: {path} ({result.size:,} bytes)")


def cmd_inspect(args):
    """Show template information."""
    template = _load_template(args)

    print(f"Template:    {template.name} ({template.id})")
    print(f"Kind:        {template.kind.value}")
    print(f"Orientation: {template.orientation.value}")
    print(f"Columns:     {len(template.columns)}")
    totals = [c.key for c in template.columns if c.aggregate is not None]
    print(f"Totals:      {', '.join(totals) if totals else '-'}")
    if template.summary:
        print(f"Summary:     {template.summary.column_key} in words")
    if template.balance:
        b = template.balance
        print(f"Balance:     {b.credit_key} - {b.debit_key} -> {b.column_key or '-'}")

    if args.verbose:
        print()
        for col in template.columns:
            agg = f" [{col.aggregate.value}]" if col.aggregate else ""
            print(f"  {col.key:<16} {col.header:<16} {col.column_type.value:<8}"
                  f" {col.effective_alignment.value:<6} w={col.width:g}{agg}")

    if args.save:
        save_template(template, args.save)
        _info(f"Template written to {args.save}")


def _parse_assignment(text):
    key, sep, raw = text.partition("=")
    if not sep or not key:
        _error(f"Expected key=value, got {text!r}")
    # Colours ("#1e40af") would read as YAML comments
    if not raw or raw.startswith("#"):
        return key.strip(), raw
    try:
        return key.strip(), yaml.safe_load(raw)
    except yaml.YAMLError:
        return key.strip(), raw


def cmd_settings(args):
    """Show, initialise or update the stored report settings."""
    if args.action == "show":
        settings = _load_settings(args)
        effective = resolve_settings(settings)
        print(yaml.dump(effective.to_dict(), default_flow_style=False, sort_keys=False,
                        allow_unicode=True, width=120), end="")
        return

    if not args.settings:
        _error(f"'settings {args.action}' needs --settings PATH")

    if args.action == "init":
        path = Path(args.settings)
        if path.exists() and not args.force:
            _error(f"{path} already exists. Use --force to overwrite.")
        save_settings(DEFAULT_REPORT_SETTINGS, path)
        _info(f"Default settings written to {path}")
        return

    partial = dict(_parse_assignment(a) for a in args.assignments)
    try:
        YamlSettingsStore(args.settings).update_settings(partial)
    except ReportExportError as exc:
        _error(str(exc))
    _info(f"Updated {', '.join(sorted(partial))} in {args.settings}")


def cmd_words(args):
    """Print amounts in French words."""
    for text in args.amounts:
        amount = parse_montant(text)
        try:
            print(montant_en_lettres(amount))
        except ValueError as exc:
            _error(str(exc))


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def _info(msg):
    print(f"  {msg}", file=sys.stderr)


def _warn(msg):
    print(f"  WARNING: {msg}", file=sys.stderr)


def _error(msg):
    print(f"  ERROR: {msg}", file=sys.stderr)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def build_parser():
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="rapport-export",
        description="Export cash-office reports to PDF, Excel and Word.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---- export ----
    exp = subparsers.add_parser(
        "export",
        help="Render a data file as PDF / Excel / Word reports.",
    )
    _add_template_args(exp)
    _add_settings_arg(exp)
    exp.add_argument(
        "--data",
        required=True,
        help="Row data file (.csv, .xlsx, .xlsm or .json).",
    )
    exp.add_argument(
        "-f", "--format",
        nargs="+",
        choices=_FORMAT_CHOICES,
        default=["pdf"],
        help="Output format(s) (default: pdf).",
    )
    exp.add_argument("--title", help="Report title (default: template name).")
    exp.add_argument("--subtitle", help="Report subtitle, e.g. the period.")
    exp.add_argument(
        "-o", "--output-dir",
        default="output",
        help="Directory for the generated files (default: output).",
    )
    exp.add_argument(
        "--sort-solde-first",
        action="store_true",
        default=False,
        help="Put the prior-month balance line first.",
    )
    exp.add_argument(
        "--opening-balance",
        type=float,
        default=0.0,
        metavar="AMOUNT",
        help="Cash on hand before the first row, for the running balance (default: 0).",
    )
    exp.add_argument(
        "--skip-qa",
        action="store_true",
        default=False,
        help="Skip QA validation after generation.",
    )
    exp.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Write output even if QA validation fails.",
    )
    exp.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Show detailed output (debug logging, full QA report on failure).",
    )
    exp.set_defaults(func=cmd_export)

    # ---- inspect ----
    insp = subparsers.add_parser(
        "inspect",
        help="Show template structure.",
    )
    _add_template_args(insp)
    insp.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Show per-column detail.",
    )
    insp.add_argument(
        "--save",
        help="Write the template to a YAML file (starting point for a custom one).",
    )
    insp.set_defaults(func=cmd_inspect)

    # ---- settings ----
    sett = subparsers.add_parser(
        "settings",
        help="Show, initialise or update report settings.",
    )
    actions = sett.add_subparsers(dest="action", required=True)

    show = actions.add_parser("show", help="Print the effective settings as YAML.")
    _add_settings_arg(show)
    show.set_defaults(func=cmd_settings)

    init = actions.add_parser("init", help="Write the default settings to --settings.")
    _add_settings_arg(init)
    init.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Overwrite an existing file.",
    )
    init.set_defaults(func=cmd_settings)

    update = actions.add_parser("set", help="Update fields of the --settings file.")
    _add_settings_arg(update)
    update.add_argument("assignments", nargs="+", metavar="key=value",
                        help="Fields to update.")
    update.set_defaults(func=cmd_settings)

    # ---- words ----
    words = subparsers.add_parser(
        "words",
        help="Write amounts in French words.",
    )
    words.add_argument("amounts", nargs="+", help="Amounts, e.g. 1250000 or 4/500/00.")
    words.set_defaults(func=cmd_words)

    return parser


def _add_template_args(parser):
    """Add --report / --template args to a subparser."""
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--report",
        choices=_REPORT_CHOICES,
        default=ReportKind.FEUILLE_CAISSE.value,
        help="Built-in report template (default: feuille_caisse).",
    )
    group.add_argument(
        "--template",
        help="Path to a custom YAML template file.",
    )


def _add_settings_arg(parser):
    parser.add_argument(
        "--settings",
        help="Report settings YAML file (default settings when omitted).",
    )


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv=None):
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if getattr(args, "verbose", False) else logging.WARNING,
        format="  %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    args.func(args)


if __name__ == "__main__":
    main()
