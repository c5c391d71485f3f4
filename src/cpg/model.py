# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Domain models for the catalog pipeline."""

from dataclasses import dataclass, field
from typing import Literal

LibraryKind = Literal["damage", "cause", "component"]
ResolutionAction = Literal["accept", "reject", "custom"]
CatalogType = Literal["B", "C", "5"]
SessionStatus = Literal["in_progress", "awaiting_resolution", "completed", "error"]


@dataclass(frozen=True)
class RawRecord:
    """Represent one ingested equipment-failure record.

    Attributes:
        asset_class_type_id: Asset class type identifier, e.g. ``CRGY``.
        location_id: Functional location identifier, e.g. ``ABC-001``.
        location_name: Human-readable location name.
        maintainable_item_name: Maintainable item at the location.
        component_name: Component of the maintainable item.
        failure_mechanism: Free-text failure mechanism (damage).
        failure_cause: Free-text failure cause.
    """

    asset_class_type_id: str
    location_id: str
    location_name: str
    maintainable_item_name: str
    component_name: str
    failure_mechanism: str
    failure_cause: str


@dataclass(frozen=True)
class CatalogProfile:
    """Represent the catalog profile assigned to one location.

    Attributes:
        asset_class_type_id: Asset class type identifier.
        location_id: Functional location identifier.
        location_name: Location name, reused as profile description.
        variation_key: Location id prefix before the first ``-``.
        variation_number: Running variation counter.
        number_consolidate: Two-digit variation counter.
        location_index: Sequential index over unique locations.
        location_consolidate: Two-digit location index.
        catalog_profile: Profile code.
        catalog_profile_description: Profile description.
    """

    asset_class_type_id: str
    location_id: str
    location_name: str
    variation_key: str
    variation_number: int
    number_consolidate: str
    location_index: int
    location_consolidate: str
    catalog_profile: str
    catalog_profile_description: str


@dataclass(frozen=True)
class ObjectPartGroup:
    """Represent the object part group of one maintainable item."""

    asset_class_type_id: str
    location_id: str
    location_name: str
    maintainable_item_name: str
    catalog_profile: str
    maintainable_item_index: int
    maintainable_item_alpha: str
    object_part_code_group: str
    object_part_group_name: str


@dataclass(frozen=True)
class TaxonomyEntry:
    """Represent one canonical entry of a mechanism or cause library.

    Attributes:
        name: Canonical taxonomy string.
        index_number: One-based position in the library.
        number_code: Formatted number part of the code.
        code: Library prefix followed by ``number_code``.
        unique_summing_number: Library offset plus index, used as checksum seed.
        similarities: Accepted alias strings, including ``name``.
    """

    name: str
    index_number: int
    number_code: str
    code: str
    unique_summing_number: int
    similarities: tuple[str, ...] = ()

    def matches(self, value: str) -> bool:
        """Check whether a value is the canonical name or a known alias."""
        return value == self.name or value in self.similarities


@dataclass(frozen=True)
class ConflictMatch:
    """Represent one candidate suggested for a conflict."""

    name: str
    similarity: float
    code: str


@dataclass(frozen=True)
class Conflict:
    """Represent a proposed name that is too close to an existing entry."""

    conflict_id: str
    kind: LibraryKind
    original_name: str
    suggested_matches: tuple[ConflictMatch, ...]
    resolved: bool = False


@dataclass(frozen=True)
class Resolution:
    """Represent a caller decision for one conflict.

    Attributes:
        conflict_id: Conflict being resolved.
        action: ``accept`` merges into ``selected_match``; ``reject`` creates a
            new entry under the original name; ``custom`` creates one under
            ``custom_value``.
        selected_match: Candidate name for ``accept``.
        custom_value: Replacement name for ``custom``.
    """

    conflict_id: str
    action: ResolutionAction
    selected_match: str | None = None
    custom_value: str | None = None


@dataclass(frozen=True)
class FailureSetCheck:
    """Represent one record joined to its taxonomy scores and sum checks."""

    location_id: str
    location_name: str
    maintainable_item_name: str
    component_name: str
    failure_mechanism: str
    failure_cause: str
    mechanism_scoring: int
    cause_scoring: int
    loc_mi_comp_combined: str
    mechanism_sum_check: int = 0
    cause_sum_check: int = 0


@dataclass(frozen=True)
class CodeResult:
    """Represent the outcome of one component code resolution."""

    code: str
    model_used: str
    response_time_ms: int
    confidence: float


@dataclass(frozen=True)
class ComponentCodeEntry:
    """Represent one component code library entry."""

    component_name: str
    mechanism_sum_check: int
    cause_sum_check: int
    check_duplicate_comp_diff_sum_check: bool
    object_part_code: str
    damage_code_group: str
    cause_code_group: str
    comp_sum_check_combine: str
    similarities: tuple[str, ...] = ()
    model_used: str = ""
    confidence: float = 0.0


@dataclass(frozen=True)
class CodeAllocation:
    """Represent one record with every allocated code attached."""

    location_id: str
    location_name: str
    maintainable_item_name: str
    component_name: str
    failure_mechanism: str
    failure_cause: str
    mechanism_sum_check: int
    cause_sum_check: int
    damage_code: str
    cause_code: str
    comp_sum_check_combine: str
    object_part_code: str
    damage_code_group: str
    cause_code_group: str
    combi_lookup_op_code: str


@dataclass(frozen=True)
class BCatalogRow:
    """Represent one object part (B) catalog row."""

    location_id: str
    location_name: str
    maintainable_item_name: str
    component_name: str
    object_part_code_group: str
    combi_lookup_op_code: str
    object_part_code: str
    code_group: str
    code_group_description: str
    code: str
    code_description: str


@dataclass(frozen=True)
class CCatalogRow:
    """Represent one damage (C) catalog row."""

    location_id: str
    location_name: str
    maintainable_item_name: str
    component_name: str
    failure_mechanism: str
    damage_code: str
    damage_code_group: str
    code_group: str
    code_group_description: str
    code: str
    code_description: str


@dataclass(frozen=True)
class FiveCatalogRow:
    """Represent one cause (5) catalog row."""

    location_id: str
    location_name: str
    maintainable_item_name: str
    component_name: str
    failure_cause: str
    cause_code: str
    cause_code_group: str
    code_group: str
    code_group_description: str
    code: str
    code_description: str


@dataclass(frozen=True)
class LoadsheetRow:
    """Represent one final load sheet row."""

    location_id: str
    catalog_profile: str
    catalog_profile_description: str
    catalog: CatalogType
    code_group: str
    code_group_description: str
    code: str
    code_description: str
    catalog_sorting: int
    naming_sorting: str

    def visible_fields(self) -> tuple[str, ...]:
        """Return the eight fields that appear in the exported sheet."""
        return (
            self.location_id,
            self.catalog_profile,
            self.catalog_profile_description,
            self.catalog,
            self.code_group,
            self.code_group_description,
            self.code,
            self.code_description,
        )


@dataclass(frozen=True)
class ProviderTelemetry:
    """Represent one successful provider generation."""

    model_name: str
    component_name: str
    generated_code: str
    response_time_ms: int
    created_at: str


@dataclass
class ProcessingSession:
    """Track one pipeline run across conflict checkpoints.

    Attributes:
        session_id: Unique session identifier.
        session_name: Display name.
        input_data: Records the run was started with.
        current_step: Stage being executed, or the last one completed.
        total_steps: Number of stages.
        status: Lifecycle status.
        qa_conflicts: Conflicts pending at the current checkpoint.
        resolutions: Every decision submitted so far, in submission order.
        error: Failure message when ``status`` is ``error``.
        created_at: ISO-8601 creation time.
        updated_at: ISO-8601 time of the last change.
    """

    session_id: str
    session_name: str
    input_data: list[RawRecord]
    current_step: int = 1
    total_steps: int = 10
    status: SessionStatus = "in_progress"
    qa_conflicts: list[Conflict] = field(default_factory=list)
    resolutions: list[Resolution] = field(default_factory=list)
    error: str | None = None
    created_at: str = ""
    updated_at: str = ""
