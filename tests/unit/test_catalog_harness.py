# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for the catalog CLI harness."""

import io
import json
import re
from pathlib import Path

import pytest

from cli.catalog_harness import EXIT_AWAITING_RESOLUTION, load_records, load_resolutions, run
from cpg.config import Settings


def _strip_ansi(text: str) -> str:
    return re.sub(r"\x1b\[[0-9;]*m", "", text)


def _row(component: str, mechanism: str, cause: str) -> dict[str, str]:
    return {
        "assetClassTypeId": "CRGY",
        "locationId": "ABC-001",
        "locationName": "North Plant",
        "maintainableItemName": "Pump Set",
        "componentName": component,
        "failureMechanism": mechanism,
        "failureCause": cause,
    }


ROWS = [
    _row("Bearing", "Wear", "Fatigue"),
    _row("Bearing", "Corrosion", "Fatigue"),
    _row("Seal", "Wear", "Overload"),
]


def _write_json(path: Path, payload: object) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def _invoke(argv: list[str], tmp_path: Path) -> tuple[int, str, str]:
    stdout = io.StringIO()
    stderr = io.StringIO()
    exit_code = run(
        argv,
        stdout=stdout,
        stderr=stderr,
        settings=Settings(db_path=tmp_path / "cpg.sqlite"),
    )
    return exit_code, _strip_ansi(stdout.getvalue()), stderr.getvalue()


def test_ph7_cli_001_offline_run_prints_load_sheet_json(tmp_path: Path) -> None:
    input_path = _write_json(tmp_path / "records.json", ROWS)

    exit_code, stdout, _ = _invoke(
        ["run", "--input", str(input_path), "--offline", "--format", "json"], tmp_path
    )

    assert exit_code == 0
    payload = json.loads(stdout)
    assert payload["session"]["status"] == "completed"
    assert payload["conflicts"] == []
    assert [(row["catalog"], row["code"]) for row in payload["load_sheet"]] == [
        ("B", "BRNG"),
        ("C", "D002"),
        ("C", "D001"),
        ("5", "C001"),
        ("B", "SEAL"),
        ("C", "D002"),
        ("5", "C002"),
    ]


def test_ph7_cli_002_offline_run_prints_load_sheet_table(tmp_path: Path) -> None:
    input_path = _write_json(tmp_path / "records.json", ROWS)

    exit_code, stdout, _ = _invoke(["run", "--input", str(input_path), "--offline"], tmp_path)

    assert exit_code == 0
    assert "load sheet" in stdout
    assert "BRNG" in stdout


def test_ph7_cli_003_json_output_file(tmp_path: Path) -> None:
    input_path = _write_json(tmp_path / "records.json", ROWS)
    output_path = tmp_path / "out" / "sheet.json"

    exit_code, stdout, _ = _invoke(
        [
            "run",
            "--input",
            str(input_path),
            "--offline",
            "--format",
            "json",
            "--output",
            str(output_path),
        ],
        tmp_path,
    )

    assert exit_code == 0
    assert stdout == ""
    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert len(payload["load_sheet"]) == 7


def test_ph7_cli_004_conflict_pauses_then_resolve_completes(tmp_path: Path) -> None:
    seed_path = _write_json(tmp_path / "seed.json", ROWS)
    assert _invoke(["run", "--input", str(seed_path), "--offline"], tmp_path)[0] == 0
    input_path = _write_json(tmp_path / "records.json", [_row("Bearing", "Wear out", "Fatigue")])

    exit_code, stdout, stderr = _invoke(
        ["run", "--input", str(input_path), "--offline", "--format", "json"], tmp_path
    )

    assert exit_code == EXIT_AWAITING_RESOLUTION
    assert "awaiting resolution" in stderr
    payload = json.loads(stdout)
    conflict = payload["conflicts"][0]
    assert conflict["original_name"] == "Wear out"
    resolutions_path = _write_json(
        tmp_path / "resolutions.json",
        [{"conflictId": conflict["conflict_id"], "action": "accept", "selectedMatch": "Wear"}],
    )

    exit_code, stdout, _ = _invoke(
        [
            "resolve",
            "--session",
            payload["session"]["session_id"],
            "--resolutions",
            str(resolutions_path),
            "--offline",
            "--format",
            "json",
        ],
        tmp_path,
    )

    assert exit_code == 0
    resumed = json.loads(stdout)
    assert resumed["session"]["status"] == "completed"
    assert ("C", "D002", "Wear out") in {
        (row["catalog"], row["code"], row["code_description"]) for row in resumed["load_sheet"]
    }


def test_ph7_cli_005_resolve_with_unknown_session_is_rejected(tmp_path: Path) -> None:
    resolutions_path = _write_json(
        tmp_path / "resolutions.json", [{"conflict_id": "conflict_x", "action": "reject"}]
    )

    exit_code, _, stderr = _invoke(
        ["resolve", "--session", "session_missing", "--resolutions", str(resolutions_path)],
        tmp_path,
    )

    assert exit_code == 2
    assert "Invalid resolution" in stderr


def test_ph7_cli_006_libraries_command_lists_entries(tmp_path: Path) -> None:
    input_path = _write_json(tmp_path / "records.json", ROWS)
    _invoke(["run", "--input", str(input_path), "--offline"], tmp_path)

    exit_code, stdout, _ = _invoke(["libraries", "--kind", "damage", "--format", "json"], tmp_path)

    assert exit_code == 0
    payload = json.loads(stdout)
    assert [entry["name"] for entry in payload["entries"]] == ["Corrosion", "Wear"]


def test_ph7_cli_007_providers_command_reports_status_without_calls(tmp_path: Path) -> None:
    exit_code, stdout, _ = _invoke(["providers", "--format", "json"], tmp_path)

    assert exit_code == 0
    payload = json.loads(stdout)
    assert len(payload["providers"]) == 6
    assert all(status["available"] for status in payload["providers"])
    assert "probe" not in payload


def test_ph7_cli_008_missing_input_file_is_bad_input(tmp_path: Path) -> None:
    exit_code, _, stderr = _invoke(
        ["run", "--input", str(tmp_path / "absent.json"), "--offline"], tmp_path
    )

    assert exit_code == 2
    assert "Failed to load records" in stderr


def test_ph7_cli_009_unknown_arguments_are_bad_input(tmp_path: Path) -> None:
    exit_code, _, _ = _invoke(["run"], tmp_path)

    assert exit_code == 2


def test_ph7_cli_010_records_accept_snake_and_camel_case(tmp_path: Path) -> None:
    snake = {
        "asset_class_type_id": "CRGY",
        "location_id": "ABC-001",
        "location_name": "North Plant",
        "maintainable_item_name": "Pump Set",
        "component_name": " Bearing ",
        "failure_mechanism": "Wear",
        "failure_cause": "Fatigue",
    }
    path = _write_json(tmp_path / "records.json", [snake, _row("Seal", "Wear", "Fatigue")])

    records = load_records(path)

    assert [record.component_name for record in records] == ["Bearing", "Seal"]


@pytest.mark.parametrize(
    "payload",
    [
        {"records": []},
        [["not", "an", "object"]],
        [{**_row("Seal", "Wear", "Fatigue"), "failureCause": ""}],
    ],
)
def test_ph7_cli_011_malformed_records_are_rejected(tmp_path: Path, payload: object) -> None:
    path = _write_json(tmp_path / "records.json", payload)

    with pytest.raises(ValueError):
        load_records(path)


def test_ph7_cli_012_resolutions_require_known_action(tmp_path: Path) -> None:
    path = _write_json(tmp_path / "resolutions.json", [{"conflictId": "c1", "action": "merge"}])

    with pytest.raises(ValueError, match="unsupported action"):
        load_resolutions(path)


def test_ph7_cli_013_providers_benchmark_is_reported(tmp_path: Path) -> None:
    stdout = io.StringIO()
    settings = Settings(db_path=tmp_path / "cpg.sqlite", providers=())

    exit_code = run(
        ["providers", "--benchmark", "Bearing", "Seal", "--format", "json"],
        stdout=stdout,
        stderr=io.StringIO(),
        settings=settings,
    )

    assert exit_code == 0
    payload = json.loads(_strip_ansi(stdout.getvalue()))
    assert payload["providers"] == []
    assert payload["benchmark"] == []
