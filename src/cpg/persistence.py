# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Persistence contracts and the JSON mapping of libraries and sessions."""

import json
import logging
from dataclasses import asdict
from typing import Any, Protocol

from cpg.errors import PersistenceError
from cpg.model import (
    ComponentCodeEntry,
    Conflict,
    ConflictMatch,
    ProcessingSession,
    ProviderTelemetry,
    RawRecord,
    Resolution,
    TaxonomyEntry,
)
from cpg.taxonomy import LibrarySpec, TaxonomyLibrary

logger = logging.getLogger(__name__)

COMPONENT_LIBRARY_KEY: str = "component_code_library"
SESSIONS_KEY: str = "processing_sessions"
TELEMETRY_KEY: str = "ai_model_performance"


class KeyValueStore(Protocol):
    """Define keyed storage of JSON-serializable values, last write wins."""

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value stored under ``key``, or ``default``."""

    def put(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""


class InMemoryKeyValueStore:
    """Keep values in memory as JSON text."""

    def __init__(self) -> None:
        self._values: dict[str, str] = {}

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._values.get(key)
        return default if raw is None else json.loads(raw)

    def put(self, key: str, value: Any) -> None:
        try:
            self._values[key] = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Value for {key!r} is not JSON-serializable: {exc}") from exc


class CatalogRepository:
    """Load and save domain objects through a key-value store."""

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load_library(self, spec: LibrarySpec) -> TaxonomyLibrary:
        """Load a taxonomy library, empty when nothing is stored."""
        rows = self._store.get(spec.storage_key, [])
        return TaxonomyLibrary(spec=spec, entries=[_taxonomy_entry(row) for row in rows])

    def save_library(self, library: TaxonomyLibrary) -> None:
        """Store every entry of a taxonomy library."""
        self._store.put(library.spec.storage_key, [asdict(entry) for entry in library.entries])
        logger.debug(
            f"Library saved (key={library.spec.storage_key} entries={len(library)})"
        )

    def load_component_library(self) -> list[ComponentCodeEntry]:
        rows = self._store.get(COMPONENT_LIBRARY_KEY, [])
        return [_component_entry(row) for row in rows]

    def save_component_library(self, entries: list[ComponentCodeEntry]) -> None:
        self._store.put(COMPONENT_LIBRARY_KEY, [asdict(entry) for entry in entries])
        logger.debug(f"Component library saved (entries={len(entries)})")

    def list_sessions(self) -> list[ProcessingSession]:
        """Return every stored session in creation order."""
        return [_session(row) for row in self._store.get(SESSIONS_KEY, [])]

    def load_session(self, session_id: str) -> ProcessingSession | None:
        for row in self._store.get(SESSIONS_KEY, []):
            if row.get("session_id") == session_id:
                return _session(row)
        return None

    def save_session(self, session: ProcessingSession) -> None:
        """Insert or replace a session by id."""
        rows = self._store.get(SESSIONS_KEY, [])
        payload = asdict(session)
        for position, row in enumerate(rows):
            if row.get("session_id") == session.session_id:
                rows[position] = payload
                break
        else:
            rows.append(payload)
        self._store.put(SESSIONS_KEY, rows)

    def record_telemetry(self, telemetry: ProviderTelemetry) -> None:
        """Append one provider generation to the telemetry log."""
        rows = self._store.get(TELEMETRY_KEY, [])
        rows.append(asdict(telemetry))
        self._store.put(TELEMETRY_KEY, rows)

    def load_telemetry(self) -> list[ProviderTelemetry]:
        return [ProviderTelemetry(**row) for row in self._store.get(TELEMETRY_KEY, [])]


def _taxonomy_entry(row: dict[str, Any]) -> TaxonomyEntry:
    return TaxonomyEntry(
        name=row["name"],
        index_number=int(row["index_number"]),
        number_code=row["number_code"],
        code=row["code"],
        unique_summing_number=int(row["unique_summing_number"]),
        similarities=tuple(row.get("similarities") or (row["name"],)),
    )


def _component_entry(row: dict[str, Any]) -> ComponentCodeEntry:
    return ComponentCodeEntry(
        component_name=row["component_name"],
        mechanism_sum_check=int(row["mechanism_sum_check"]),
        cause_sum_check=int(row["cause_sum_check"]),
        check_duplicate_comp_diff_sum_check=bool(row["check_duplicate_comp_diff_sum_check"]),
        object_part_code=row["object_part_code"],
        damage_code_group=row["damage_code_group"],
        cause_code_group=row["cause_code_group"],
        comp_sum_check_combine=row["comp_sum_check_combine"],
        similarities=tuple(row.get("similarities") or ()),
        model_used=row.get("model_used", ""),
        confidence=float(row.get("confidence", 0.0)),
    )


def _conflict(row: dict[str, Any]) -> Conflict:
    return Conflict(
        conflict_id=row["conflict_id"],
        kind=row["kind"],
        original_name=row["original_name"],
        suggested_matches=tuple(ConflictMatch(**match) for match in row["suggested_matches"]),
        resolved=bool(row.get("resolved", False)),
    )


def _session(row: dict[str, Any]) -> ProcessingSession:
    return ProcessingSession(
        session_id=row["session_id"],
        session_name=row["session_name"],
        input_data=[RawRecord(**record) for record in row["input_data"]],
        current_step=int(row["current_step"]),
        total_steps=int(row["total_steps"]),
        status=row["status"],
        qa_conflicts=[_conflict(conflict) for conflict in row.get("qa_conflicts", [])],
        resolutions=[Resolution(**resolution) for resolution in row.get("resolutions", [])],
        error=row.get("error"),
        created_at=row.get("created_at", ""),
        updated_at=row.get("updated_at", ""),
    )
