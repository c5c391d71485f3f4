# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Append-only mechanism and cause libraries with a fuzzy duplicate gate."""

import logging
import hashlib
from dataclasses import dataclass, replace
from typing import Iterable

from cpg.errors import ConflictResolutionError
from cpg.fuzzy import FuzzyIndex
from cpg.model import Conflict, ConflictMatch, LibraryKind, Resolution, TaxonomyEntry
from cpg.numbering import format_number_code

logger = logging.getLogger(__name__)

CONFLICT_THRESHOLD: float = 0.4
MAX_SUGGESTIONS: int = 3


@dataclass(frozen=True)
class LibrarySpec:
    """Describe how one library numbers its entries.

    Attributes:
        kind: Library kind used on raised conflicts.
        prefix: Letter prepended to every number code.
        base_offset: Offset added to the index for the unique summing number.
        storage_key: Persistence key of the library.
    """

    kind: LibraryKind
    prefix: str
    base_offset: int
    storage_key: str


MECHANISM_LIBRARY = LibrarySpec(
    kind="damage", prefix="D", base_offset=100000, storage_key="damage_code_library"
)
CAUSE_LIBRARY = LibrarySpec(
    kind="cause", prefix="C", base_offset=200000, storage_key="cause_code_library"
)


def conflict_id_for(kind: LibraryKind, value: str) -> str:
    """Return the stable identifier of the conflict raised for a value.

    Reconciling the same value against the same library raises the same id,
    so decisions survive a re-run of the stage.
    """
    digest = hashlib.md5(f"{kind}\x00{value}".encode("utf-8")).hexdigest()  # noqa: S324
    return f"conflict_{kind}_{digest[:12]}"


class TaxonomyLibrary:
    """Hold the entries of one library and reconcile new values against it.

    Instances are treated as values: ``reconcile`` and ``resolve`` return a
    new library and leave the receiver untouched.
    """

    def __init__(
        self,
        spec: LibrarySpec,
        entries: Iterable[TaxonomyEntry] = (),
        conflict_threshold: float = CONFLICT_THRESHOLD,
    ) -> None:
        """Initialize the library.

        Args:
            spec: Numbering rules for this library.
            entries: Existing entries in index order.
            conflict_threshold: Exclusive distance below which a new value is
                held back as a conflict.
        """
        self._spec = spec
        self._entries = list(entries)
        self._conflict_threshold = conflict_threshold

    @property
    def spec(self) -> LibrarySpec:
        """Return the numbering rules."""
        return self._spec

    @property
    def entries(self) -> list[TaxonomyEntry]:
        """Return a copy of the entries in index order."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def find(self, value: str) -> TaxonomyEntry | None:
        """Find the entry whose name or aliases equal ``value``."""
        for entry in self._entries:
            if entry.matches(value):
                return entry
        return None

    def summing_number(self, value: str) -> int:
        """Return the unique summing number for a value, or 0 when unknown."""
        entry = self.find(value)
        return entry.unique_summing_number if entry else 0

    def code_for(self, value: str) -> str:
        """Return the code for a value, or an empty string when unknown."""
        entry = self.find(value)
        return entry.code if entry else ""

    def reconcile(
        self, values: Iterable[str]
    ) -> tuple["TaxonomyLibrary", list[Conflict]]:
        """Add new values, holding back ones that resemble existing entries.

        Args:
            values: Incoming taxonomy strings; duplicates are ignored and the
                distinct values are processed in sorted order.

        Returns:
            The updated library and the conflicts that need a decision.
        """
        updated = TaxonomyLibrary(
            spec=self._spec,
            entries=self._entries,
            conflict_threshold=self._conflict_threshold,
        )
        index = FuzzyIndex(
            self._entries,
            keys=lambda entry: (entry.name, *entry.similarities),
        )
        conflicts: list[Conflict] = []
        for value in sorted(set(values)):
            if updated.find(value) is not None:
                continue
            hits = index.search(value)
            if hits and hits[0].score < self._conflict_threshold:
                conflicts.append(
                    Conflict(
                        conflict_id=conflict_id_for(self._spec.kind, value),
                        kind=self._spec.kind,
                        original_name=value,
                        suggested_matches=tuple(
                            ConflictMatch(
                                name=hit.item.name,
                                similarity=1.0 - hit.score,
                                code=hit.item.code,
                            )
                            for hit in hits[:MAX_SUGGESTIONS]
                        ),
                    )
                )
                logger.info(
                    f"Conflict raised (kind={self._spec.kind} value={value!r} "
                    f"best={hits[0].item.name!r} score={hits[0].score:.3f})"
                )
                continue
            updated._append(value)

        logger.info(
            f"Library reconciled (kind={self._spec.kind} entries={len(updated)} "
            f"added={len(updated) - len(self)} conflicts={len(conflicts)})"
        )
        return updated, conflicts

    def resolve(
        self, conflicts: Iterable[Conflict], resolutions: Iterable[Resolution]
    ) -> "TaxonomyLibrary":
        """Apply caller decisions to this library's conflicts.

        Args:
            conflicts: Conflicts previously raised by ``reconcile``.
            resolutions: Decisions keyed by conflict id. Resolutions for
                conflicts of other libraries are ignored.

        Returns:
            The updated library.

        Raises:
            ConflictResolutionError: If a conflict of this library has no
                decision, or a decision is incomplete or names an unknown
                entry.
        """
        by_id = {resolution.conflict_id: resolution for resolution in resolutions}
        updated = TaxonomyLibrary(
            spec=self._spec,
            entries=self._entries,
            conflict_threshold=self._conflict_threshold,
        )
        for conflict in conflicts:
            if conflict.kind != self._spec.kind:
                continue
            resolution = by_id.get(conflict.conflict_id)
            if resolution is None:
                raise ConflictResolutionError(
                    f"Conflict {conflict.conflict_id} ({conflict.original_name!r}) "
                    "has no resolution."
                )
            updated._apply(conflict, resolution)
        return updated

    def _apply(self, conflict: Conflict, resolution: Resolution) -> None:
        """Apply one decision in place."""
        if resolution.action == "accept":
            if not resolution.selected_match:
                raise ConflictResolutionError(
                    f"Accept for {conflict.conflict_id} needs a selected match."
                )
            self._add_alias(resolution.selected_match, conflict.original_name)
        elif resolution.action == "reject":
            if self.find(conflict.original_name) is None:
                self._append(conflict.original_name)
        elif resolution.action == "custom":
            custom_value = (resolution.custom_value or "").strip()
            if not custom_value:
                raise ConflictResolutionError(
                    f"Custom resolution for {conflict.conflict_id} needs a value."
                )
            if self.find(custom_value) is not None:
                self._add_alias(custom_value, conflict.original_name)
            else:
                self._append(custom_value, aliases=(conflict.original_name,))
        else:
            raise ConflictResolutionError(
                f"Unsupported resolution action: {resolution.action}"
            )
        logger.info(
            f"Conflict resolved (kind={self._spec.kind} value={conflict.original_name!r} "
            f"action={resolution.action})"
        )

    def _add_alias(self, target: str, alias: str) -> None:
        """Record ``alias`` on the entry named or aliased ``target``."""
        for position, entry in enumerate(self._entries):
            if entry.matches(target):
                if alias not in entry.similarities:
                    self._entries[position] = replace(
                        entry, similarities=(*entry.similarities, alias)
                    )
                return
        raise ConflictResolutionError(
            f"No {self._spec.kind} entry named {target!r} to accept into."
        )

    def _append(self, name: str, aliases: tuple[str, ...] = ()) -> TaxonomyEntry:
        """Append a new entry numbered after the current last one."""
        index_number = len(self._entries) + 1
        number_code = format_number_code(index_number)
        similarities = (name,) + tuple(alias for alias in aliases if alias != name)
        entry = TaxonomyEntry(
            name=name,
            index_number=index_number,
            number_code=number_code,
            code=self._spec.prefix + number_code,
            unique_summing_number=self._spec.base_offset + index_number,
            similarities=similarities,
        )
        self._entries.append(entry)
        return entry
