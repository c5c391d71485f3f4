# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""CLI harness for running and resuming catalog profile generation."""

import argparse
import json
import logging
import sys
from dataclasses import asdict, fields, replace
from pathlib import Path
from typing import Any, TextIO

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from cpg.codegen.health import ProviderHealthRegistry
from cpg.codegen.ollama_provider import OllamaProvider
from cpg.codegen.openai_provider import OpenAICompatibleProvider
from cpg.codegen.orchestrator import ComponentCodeOrchestrator
from cpg.codegen.providers import Provider
from cpg.config import Settings, load_settings
from cpg.database.sqlite import SQLiteKeyValueStore
from cpg.errors import ConflictResolutionError, PersistenceError, StageFailure
from cpg.model import Conflict, LoadsheetRow, RawRecord, Resolution
from cpg.persistence import CatalogRepository
from cpg.pipeline import CatalogPipeline, PipelineResult
from cpg.taxonomy import CAUSE_LIBRARY, MECHANISM_LIBRARY

logger = logging.getLogger(__name__)

EXIT_AWAITING_RESOLUTION: int = 3

LOADSHEET_COLUMNS: tuple[str, ...] = (
    "location_id",
    "catalog_profile",
    "catalog_profile_description",
    "catalog",
    "code_group",
    "code_group_description",
    "code",
    "code_description",
)

RECORD_ALIASES: dict[str, str] = {
    "assetClassTypeId": "asset_class_type_id",
    "locationId": "location_id",
    "locationName": "location_name",
    "maintainableItemName": "maintainable_item_name",
    "componentName": "component_name",
    "failureMechanism": "failure_mechanism",
    "failureCause": "failure_cause",
}

RESOLUTION_ALIASES: dict[str, str] = {
    "conflictId": "conflict_id",
    "selectedMatch": "selected_match",
    "customValue": "custom_value",
}


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser instance.
    """
    parser = argparse.ArgumentParser(prog="cpg")
    parser.add_argument("--db", required=False, help="SQLite database path.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run")
    run_parser.add_argument("--input", required=True, help="JSON file of raw records.")
    run_parser.add_argument("--session-name", default="", help="Session display name.")
    _add_generation_arguments(run_parser)
    _add_output_arguments(run_parser)

    resolve_parser = subparsers.add_parser("resolve")
    resolve_parser.add_argument("--session", required=True, help="Session id to resume.")
    resolve_parser.add_argument(
        "--resolutions", required=True, help="JSON file of conflict decisions."
    )
    _add_generation_arguments(resolve_parser)
    _add_output_arguments(resolve_parser)

    libraries_parser = subparsers.add_parser("libraries")
    libraries_parser.add_argument(
        "--kind",
        choices=("damage", "cause", "component"),
        required=True,
        help="Library to print.",
    )
    libraries_parser.add_argument(
        "--format", choices=("table", "json"), default="table", help="Output format."
    )

    providers_parser = subparsers.add_parser("providers")
    providers_parser.add_argument(
        "--probe", action="store_true", help="Send a test prompt to the first usable provider."
    )
    providers_parser.add_argument(
        "--benchmark",
        nargs="*",
        metavar="COMPONENT",
        help="Compare providers on up to five component names (default: lexicon names).",
    )
    providers_parser.add_argument(
        "--format", choices=("table", "json"), default="table", help="Output format."
    )
    return parser


def _add_generation_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip external providers; use the lexicon and fallback only.",
    )
    parser.add_argument(
        "--provider-url", required=False, help="OpenAI-compatible endpoint URL."
    )


def _add_output_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--format", choices=("table", "json"), default="table", help="Output format."
    )
    parser.add_argument(
        "--output",
        required=False,
        help="Optional output file path for raw JSON when --format json is used.",
    )


def run(
    argv: list[str],
    stdout: TextIO,
    stderr: TextIO,
    settings: Settings | None = None,
) -> int:
    """Run CLI command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.
        settings: Settings to use instead of the environment.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit:
        logger.warning(f"Argument parsing failed (argv={argv})")
        return 2

    if settings is None:
        try:
            settings = load_settings()
        except ValueError as exc:
            logger.warning(f"Invalid configuration (error={exc})")
            stderr.write(f"Invalid configuration: {exc}\n")
            return 2
    if args.db:
        settings = replace(settings, db_path=Path(args.db))
    if getattr(args, "provider_url", None):
        settings = replace(settings, provider_url=args.provider_url)

    try:
        if args.command == "run":
            return _run_pipeline(args=args, settings=settings, stdout=stdout, stderr=stderr)
        if args.command == "resolve":
            return _run_resolve(args=args, settings=settings, stdout=stdout, stderr=stderr)
        if args.command == "libraries":
            return _run_libraries(args=args, settings=settings, stdout=stdout)
        if args.command == "providers":
            return _run_providers(args=args, settings=settings, stdout=stdout, stderr=stderr)
    except PersistenceError as exc:
        logger.warning(f"Persistence failed (db_path={settings.db_path} error={exc})")
        stderr.write(f"Persistence failed: {exc}\n")
        return 1

    logger.warning(f"Unsupported command (command={args.command})")
    stderr.write(f"Unsupported command: {args.command}\n")
    return 2


def build_providers(settings: Settings) -> list[Provider]:
    """Create the configured provider chain.

    Args:
        settings: Loaded settings.

    Returns:
        Providers in priority order.
    """
    providers: list[Provider] = []
    for spec in settings.providers:
        if spec.kind == "ollama":
            providers.append(
                OllamaProvider(
                    name=spec.name,
                    model_id=spec.model_id,
                    rate_limit_per_minute=spec.rate_limit_per_minute,
                    provider_url=settings.ollama_host,
                )
            )
        else:
            providers.append(
                OpenAICompatibleProvider(
                    name=spec.name,
                    model_id=spec.model_id,
                    rate_limit_per_minute=spec.rate_limit_per_minute,
                    provider_url=settings.provider_url,
                    api_key=settings.api_key,
                )
            )
    return providers


def build_pipeline(
    settings: Settings, offline: bool
) -> tuple[CatalogPipeline, CatalogRepository]:
    """Wire storage, providers and the orchestrator into a pipeline.

    Args:
        settings: Loaded settings.
        offline: Whether to leave external providers out of the chain.

    Returns:
        The pipeline and its repository.
    """
    repository = CatalogRepository(SQLiteKeyValueStore(settings.db_path))
    orchestrator = ComponentCodeOrchestrator(
        providers=[] if offline else build_providers(settings),
        health=ProviderHealthRegistry(),
        chain=settings.chain,
        telemetry_sink=repository.record_telemetry,
    )
    return CatalogPipeline(repository=repository, orchestrator=orchestrator), repository


def load_records(path: Path) -> list[RawRecord]:
    """Read raw records from a JSON array of objects.

    Keys may be snake_case field names or their camelCase spelling.

    Args:
        path: JSON file path.

    Returns:
        Records in file order.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the content is not a list of complete records.
    """
    rows = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(rows, list):
        raise ValueError("expected a JSON array of records")
    names = [f.name for f in fields(RawRecord)]
    records: list[RawRecord] = []
    for position, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            raise ValueError(f"record {position} is not an object")
        normalized = {RECORD_ALIASES.get(key, key): value for key, value in row.items()}
        values: dict[str, str] = {}
        for name in names:
            value = normalized.get(name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"record {position} has no value for {name}")
            values[name] = value.strip()
        records.append(RawRecord(**values))
    return records


def load_resolutions(path: Path) -> list[Resolution]:
    """Read conflict decisions from a JSON array of objects.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If an entry is malformed.
    """
    rows = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(rows, list):
        raise ValueError("expected a JSON array of resolutions")
    resolutions: list[Resolution] = []
    for position, row in enumerate(rows, start=1):
        if not isinstance(row, dict):
            raise ValueError(f"resolution {position} is not an object")
        normalized = {RESOLUTION_ALIASES.get(key, key): value for key, value in row.items()}
        if normalized.get("action") not in ("accept", "reject", "custom"):
            raise ValueError(f"resolution {position} has an unsupported action")
        if not normalized.get("conflict_id"):
            raise ValueError(f"resolution {position} has no conflict_id")
        resolutions.append(
            Resolution(
                conflict_id=normalized["conflict_id"],
                action=normalized["action"],
                selected_match=normalized.get("selected_match"),
                custom_value=normalized.get("custom_value"),
            )
        )
    return resolutions


def _run_pipeline(
    args: argparse.Namespace, settings: Settings, stdout: TextIO, stderr: TextIO
) -> int:
    """Run the run command.

    Args:
        args: Parsed CLI arguments.
        settings: Effective settings.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    input_path = Path(args.input)
    try:
        records = load_records(input_path)
    except (OSError, ValueError) as exc:
        logger.warning(f"Failed to load records (path={input_path} error={exc})")
        stderr.write(f"Failed to load records: {exc}\n")
        return 2
    if not records:
        stderr.write("No records to process.\n")
        return 2

    pipeline, _ = build_pipeline(settings=settings, offline=args.offline)
    try:
        result = pipeline.start(records, session_name=args.session_name)
    except StageFailure as exc:
        stderr.write(f"{exc}\n")
        return 1
    return _write_result(result=result, args=args, stdout=stdout, stderr=stderr)


def _run_resolve(
    args: argparse.Namespace, settings: Settings, stdout: TextIO, stderr: TextIO
) -> int:
    """Run the resolve command."""
    resolutions_path = Path(args.resolutions)
    try:
        resolutions = load_resolutions(resolutions_path)
    except (OSError, ValueError) as exc:
        logger.warning(f"Failed to load resolutions (path={resolutions_path} error={exc})")
        stderr.write(f"Failed to load resolutions: {exc}\n")
        return 2

    pipeline, _ = build_pipeline(settings=settings, offline=args.offline)
    try:
        result = pipeline.resolve(args.session, resolutions)
    except ConflictResolutionError as exc:
        stderr.write(f"Invalid resolution: {exc}\n")
        return 2
    except StageFailure as exc:
        stderr.write(f"{exc}\n")
        return 1
    return _write_result(result=result, args=args, stdout=stdout, stderr=stderr)


def _run_libraries(args: argparse.Namespace, settings: Settings, stdout: TextIO) -> int:
    """Run the libraries command."""
    repository = CatalogRepository(SQLiteKeyValueStore(settings.db_path))
    if args.kind == "component":
        rows = [asdict(entry) for entry in repository.load_component_library()]
        columns = (
            "component_name",
            "object_part_code",
            "mechanism_sum_check",
            "cause_sum_check",
            "model_used",
        )
    else:
        spec = MECHANISM_LIBRARY if args.kind == "damage" else CAUSE_LIBRARY
        rows = [asdict(entry) for entry in repository.load_library(spec).entries]
        columns = ("index_number", "code", "name", "unique_summing_number", "similarities")

    if args.format == "json":
        _print_json(payload={"kind": args.kind, "entries": rows}, stdout=stdout)
    else:
        _print_table(
            title=f"{args.kind} library",
            columns=columns,
            rows=[[_cell(row[column]) for column in columns] for row in rows],
            stdout=stdout,
        )
    return 0


def _run_providers(
    args: argparse.Namespace, settings: Settings, stdout: TextIO, stderr: TextIO
) -> int:
    """Run the providers command."""
    orchestrator = ComponentCodeOrchestrator(
        providers=build_providers(settings),
        health=ProviderHealthRegistry(),
        chain=settings.chain,
    )
    probe = orchestrator.probe_providers() if args.probe else None
    benchmarks = None
    if args.benchmark is not None:
        names = args.benchmark or [
            entry.component_name for entry in orchestrator.lexicon.entries
        ]
        benchmarks = [asdict(result) for result in orchestrator.benchmark_providers(names)]
    statuses = [asdict(status) for status in orchestrator.provider_status()]

    if args.format == "json":
        payload: dict[str, Any] = {"providers": statuses}
        if probe is not None:
            payload["probe"] = asdict(probe)
        if benchmarks is not None:
            payload["benchmark"] = benchmarks
        _print_json(payload=payload, stdout=stdout)
    else:
        columns = tuple(statuses[0]) if statuses else ("name",)
        _print_table(
            title="providers",
            columns=columns,
            rows=[[_cell(status[column]) for column in columns] for status in statuses],
            stdout=stdout,
        )
        if benchmarks:
            bench_columns = tuple(benchmarks[0])
            _print_table(
                title="benchmark",
                columns=bench_columns,
                rows=[[_cell(row[column]) for column in bench_columns] for row in benchmarks],
                stdout=stdout,
            )
        if probe is not None:
            stdout.write(f"probe: {probe.message}\n")
    if probe is not None and not probe.success:
        stderr.write(f"Provider probe failed: {probe.message}\n")
        return 1
    return 0


def _write_result(
    result: PipelineResult, args: argparse.Namespace, stdout: TextIO, stderr: TextIO
) -> int:
    """Write a pipeline result in the requested format.

    Returns:
        0 when the run completed, ``EXIT_AWAITING_RESOLUTION`` when paused,
        2 when the output file cannot be written.
    """
    session = result.session
    load_sheet = result.outputs.load_sheet if result.outputs else []
    payload = {
        "session": {
            "session_id": session.session_id,
            "session_name": session.session_name,
            "status": session.status,
            "current_step": session.current_step,
            "total_steps": session.total_steps,
        },
        "conflicts": [asdict(conflict) for conflict in result.conflicts],
        "load_sheet": [asdict(row) for row in load_sheet],
    }

    if args.format == "json":
        if args.output:
            output_path = Path(args.output)
            try:
                output_path.parent.mkdir(parents=True, exist_ok=True)
                output_path.write_text(
                    json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8"
                )
            except OSError as exc:
                logger.warning(
                    f"Failed to write JSON output file (output_path={args.output} error={exc})"
                )
                stderr.write(f"Failed to write JSON output file: {args.output}\n")
                return 2
        else:
            _print_json(payload=payload, stdout=stdout)
    elif result.awaiting_resolution:
        _write_conflicts(result.conflicts, stdout=stdout)
    else:
        _write_load_sheet(load_sheet, stdout=stdout)

    if result.awaiting_resolution:
        stderr.write(
            f"Session {session.session_id} is awaiting resolution of "
            f"{len(result.conflicts)} conflict(s) at stage {session.current_step}.\n"
        )
        return EXIT_AWAITING_RESOLUTION
    return 0


def _write_conflicts(conflicts: list[Conflict], stdout: TextIO) -> None:
    rows = [
        [
            conflict.conflict_id,
            conflict.kind,
            conflict.original_name,
            ", ".join(
                f"{match.name} ({match.code}, {match.similarity:.2f})"
                for match in conflict.suggested_matches
            ),
        ]
        for conflict in conflicts
    ]
    _print_table(
        title="conflicts",
        columns=("conflict_id", "kind", "original_name", "suggested_matches"),
        rows=rows,
        stdout=stdout,
    )


def _write_load_sheet(rows: list[LoadsheetRow], stdout: TextIO) -> None:
    _print_table(
        title="load sheet",
        columns=LOADSHEET_COLUMNS,
        rows=[list(row.visible_fields()) for row in rows],
        stdout=stdout,
    )


def _print_table(
    title: str, columns: tuple[str, ...], rows: list[list[str]], stdout: TextIO
) -> None:
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    table = Table(title=title, show_header=True, show_lines=False, expand=True)
    for column in columns:
        table.add_column(column, overflow="fold")
    for row in rows:
        table.add_row(*row)
    console.print(table)


def _print_json(payload: dict[str, Any], stdout: TextIO) -> None:
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    console.print(
        json.dumps(payload, indent=2, sort_keys=True),
        markup=False,
        highlight=False,
        soft_wrap=True,
    )


def _cell(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def main() -> None:
    """Run the CLI application and exit."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
