"""Command line interface for importing, exporting, and templating lead spreadsheets."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Tuple

from .config import ConfigurationError, build_assignee_directory, default_assignee, load_configuration
from .ingestion import (
    ExportError,
    SpreadsheetReadError,
    UnsupportedFileTypeError,
    export_file_name,
    export_leads,
    export_template,
    import_leads,
)
from .ingestion.exporters import TEMPLATE_FILE_NAME
from .models import AssigneeDirectory, ImportResult, Lead
from .registry import FieldRegistry, RegistryError, registry_from_config

LOGGER = logging.getLogger(__name__)

_HANDLED_ERRORS = (
    ConfigurationError,
    RegistryError,
    UnsupportedFileTypeError,
    SpreadsheetReadError,
    ExportError,
    OSError,
)


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Group lead spreadsheets by company and export them one row per director",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Group a spreadsheet into leads and save them as JSON")
    import_parser.add_argument("input", help="Path to the input spreadsheet (CSV, XLSX or XLS)")
    import_parser.add_argument("output", help="Path where the grouped leads should be written as JSON")
    _add_common_options(import_parser)
    import_parser.set_defaults(handler=_run_import)

    export_parser = subparsers.add_parser("export", help="Write leads saved as JSON to a workbook")
    export_parser.add_argument("input", help="Path to a JSON file produced by the import command")
    export_parser.add_argument("output", help="Workbook path, or a directory for a dated file name")
    _add_common_options(export_parser)
    export_parser.set_defaults(handler=_run_export)

    normalise_parser = subparsers.add_parser(
        "normalise", help="Import a spreadsheet and immediately export it in the standard layout"
    )
    normalise_parser.add_argument("input", help="Path to the input spreadsheet (CSV, XLSX or XLS)")
    normalise_parser.add_argument("output", help="Workbook path, or a directory for a dated file name")
    _add_common_options(normalise_parser)
    normalise_parser.set_defaults(handler=_run_normalise)

    template_parser = subparsers.add_parser("template", help="Write a sample import template")
    template_parser.add_argument(
        "output",
        nargs="?",
        default=TEMPLATE_FILE_NAME,
        help=f"Path of the template workbook (default: {TEMPLATE_FILE_NAME})",
    )
    _add_common_options(template_parser)
    template_parser.set_defaults(handler=_run_template)

    return parser


def _add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        help="Path to a configuration file (YAML or JSON) with field overrides and users",
    )
    parser.add_argument(
        "--assignee",
        help="User id assigned to imported leads (overrides 'default_assignee' in the configuration)",
    )


def main(argv: List[str] | None = None, *, prog: str | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    parser = build_parser(prog=prog)
    if not argv:
        parser.print_help()
        return 2

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        return args.handler(args)
    except _HANDLED_ERRORS as exc:
        LOGGER.error("%s", exc)
        return 1


def _load_settings(args: argparse.Namespace) -> Tuple[FieldRegistry, AssigneeDirectory, str]:
    config: Dict[str, Any] = load_configuration(args.config) if args.config else {}
    registry = registry_from_config(config)
    directory = build_assignee_directory(config)
    assignee = args.assignee if args.assignee is not None else default_assignee(config)
    return registry, directory, assignee


def _import(args: argparse.Namespace) -> Tuple[ImportResult, FieldRegistry, AssigneeDirectory]:
    registry, directory, assignee = _load_settings(args)
    result = import_leads(args.input, registry, assignee, assignees=directory if len(directory) else None)
    print(result.summary.message())
    return result, registry, directory


def _export_path(output: str) -> Path:
    path = Path(output)
    if path.is_dir():
        return path / export_file_name()
    return path


def _run_import(args: argparse.Namespace) -> int:
    result, _, _ = _import(args)
    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(
        json.dumps([lead.to_dict() for lead in result.leads], indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    LOGGER.info("Leads written to %s", output.resolve())
    return 0


def _run_export(args: argparse.Namespace) -> int:
    registry, directory, _ = _load_settings(args)
    leads = _read_leads_json(Path(args.input))
    destination = export_leads(
        leads,
        _export_path(args.output),
        registry,
        assignee_name=directory.name_for if len(directory) else None,
    )
    LOGGER.info("Exported %s leads to %s", len(leads), destination.resolve())
    return 0


def _run_normalise(args: argparse.Namespace) -> int:
    result, registry, directory = _import(args)
    destination = export_leads(
        result.leads,
        _export_path(args.output),
        registry,
        assignee_name=directory.name_for if len(directory) else None,
    )
    LOGGER.info("Normalised workbook written to %s", destination.resolve())
    return 0


def _run_template(args: argparse.Namespace) -> int:
    registry, _, _ = _load_settings(args)
    destination = export_template(args.output, registry)
    LOGGER.info("Template written to %s", destination.resolve())
    return 0


def _read_leads_json(path: Path) -> List[Lead]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"'{path}' is not a valid leads JSON file: {exc}") from exc
    if not isinstance(payload, list):
        raise ConfigurationError(f"'{path}' must contain a list of leads")
    try:
        return [Lead.from_dict(entry) for entry in payload]
    except (KeyError, TypeError) as exc:
        raise ConfigurationError(f"'{path}' contains a malformed lead: {exc}") from exc


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
