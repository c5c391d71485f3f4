# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for taxonomy library reconciliation and conflict resolution."""

import pytest

from cpg.errors import ConflictResolutionError
from cpg.model import Resolution
from cpg.taxonomy import (
    CAUSE_LIBRARY,
    MECHANISM_LIBRARY,
    TaxonomyLibrary,
    conflict_id_for,
)


def _mechanisms(*names: str) -> TaxonomyLibrary:
    library, conflicts = TaxonomyLibrary(MECHANISM_LIBRARY).reconcile(names)
    assert conflicts == []
    return library


def test_ph2_tax_001_first_mechanism_gets_first_code_and_summing_number() -> None:
    library, conflicts = TaxonomyLibrary(MECHANISM_LIBRARY).reconcile(["Wear"])

    assert conflicts == []
    assert len(library) == 1
    entry = library.entries[0]
    assert entry.index_number == 1
    assert entry.code == "D001"
    assert entry.unique_summing_number == 100001
    assert entry.similarities == ("Wear",)


def test_ph2_tax_002_cause_library_uses_its_own_prefix_and_offset() -> None:
    library, _ = TaxonomyLibrary(CAUSE_LIBRARY).reconcile(["Fatigue", "Overload"])

    assert [entry.code for entry in library.entries] == ["C001", "C002"]
    assert library.summing_number("Overload") == 200002


def test_ph2_tax_003_known_name_or_alias_creates_nothing() -> None:
    library = _mechanisms("Wear")
    base, conflicts = library.reconcile(["Wears"])
    accepted = base.resolve(
        conflicts,
        [Resolution(conflicts[0].conflict_id, "accept", selected_match="Wear")],
    )

    updated, new_conflicts = accepted.reconcile(["Wear", "Wears", "Wear"])

    assert new_conflicts == []
    assert len(updated) == 1
    assert updated.find("Wears").code == "D001"


def test_ph2_tax_004_similar_value_raises_conflict_without_entry() -> None:
    library = _mechanisms("Wear")

    updated, conflicts = library.reconcile(["Wears"])

    assert len(updated) == 1
    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict.kind == "damage"
    assert conflict.original_name == "Wears"
    assert conflict.conflict_id == conflict_id_for("damage", "Wears")
    assert conflict.suggested_matches[0].name == "Wear"
    assert conflict.suggested_matches[0].code == "D001"
    assert conflict.suggested_matches[0].similarity == pytest.approx(8 / 9)


def test_ph2_tax_005_case_variant_is_a_conflict_not_an_exact_match() -> None:
    library = _mechanisms("Wear")

    _, conflicts = library.reconcile(["wear"])

    assert len(conflicts) == 1
    assert conflicts[0].suggested_matches[0].similarity == pytest.approx(1.0)


def test_ph2_tax_006_conflict_lists_at_most_three_ranked_candidates() -> None:
    library = _mechanisms("Wear", "Wears", "Wearing", "Worn")

    _, conflicts = library.reconcile(["Wearr"])

    names = [match.name for match in conflicts[0].suggested_matches]
    assert names == ["Wear", "Wears", "Wearing"]


def test_ph2_tax_007_unrelated_value_appends_next_index() -> None:
    library = _mechanisms("Wear")

    updated, conflicts = library.reconcile(["Corrosion"])

    assert conflicts == []
    assert [entry.name for entry in updated.entries] == ["Wear", "Corrosion"]
    assert updated.find("Corrosion").code == "D002"
    assert updated.summing_number("Corrosion") == 100002


def test_ph2_tax_008_values_in_one_batch_are_not_compared_with_each_other() -> None:
    library, conflicts = TaxonomyLibrary(MECHANISM_LIBRARY).reconcile(["Wears", "Wear"])

    assert conflicts == []
    assert [entry.name for entry in library.entries] == ["Wear", "Wears"]


def test_ph2_tax_009_reconcile_leaves_receiver_untouched() -> None:
    library = _mechanisms("Wear")

    library.reconcile(["Corrosion"])

    assert len(library) == 1


def test_ph2_res_001_accept_adds_alias_to_selected_entry() -> None:
    library = _mechanisms("Wear")
    base, conflicts = library.reconcile(["Wears"])

    resolved = base.resolve(
        conflicts,
        [Resolution(conflicts[0].conflict_id, "accept", selected_match="Wear")],
    )

    assert len(resolved) == 1
    assert resolved.entries[0].similarities == ("Wear", "Wears")
    assert resolved.summing_number("Wears") == 100001


def test_ph2_res_002_reject_creates_entry_under_original_name() -> None:
    library = _mechanisms("Wear")
    base, conflicts = library.reconcile(["Wears"])

    resolved = base.resolve(conflicts, [Resolution(conflicts[0].conflict_id, "reject")])

    assert [entry.name for entry in resolved.entries] == ["Wear", "Wears"]
    assert resolved.find("Wears").code == "D002"


def test_ph2_res_003_custom_creates_entry_carrying_original_as_alias() -> None:
    library = _mechanisms("Wear")
    base, conflicts = library.reconcile(["Wears"])

    resolved = base.resolve(
        conflicts,
        [Resolution(conflicts[0].conflict_id, "custom", custom_value="Abrasive wear")],
    )

    entry = resolved.find("Wears")
    assert entry.name == "Abrasive wear"
    assert entry.similarities == ("Abrasive wear", "Wears")
    assert entry.code == "D002"


def test_ph2_res_004_custom_naming_existing_entry_becomes_alias() -> None:
    library = _mechanisms("Wear")
    base, conflicts = library.reconcile(["Wears"])

    resolved = base.resolve(
        conflicts,
        [Resolution(conflicts[0].conflict_id, "custom", custom_value="Wear")],
    )

    assert len(resolved) == 1
    assert resolved.find("Wears").name == "Wear"


def test_ph2_res_005_missing_decision_raises() -> None:
    library = _mechanisms("Wear")
    base, conflicts = library.reconcile(["Wears"])

    with pytest.raises(ConflictResolutionError, match="has no resolution"):
        base.resolve(conflicts, [])


def test_ph2_res_006_accept_into_unknown_entry_raises() -> None:
    library = _mechanisms("Wear")
    base, conflicts = library.reconcile(["Wears"])

    with pytest.raises(ConflictResolutionError):
        base.resolve(
            conflicts,
            [Resolution(conflicts[0].conflict_id, "accept", selected_match="Rust")],
        )


def test_ph2_res_007_conflicts_of_other_libraries_are_ignored() -> None:
    mechanisms = _mechanisms("Wear")
    _, conflicts = mechanisms.reconcile(["Wears"])
    causes, _ = TaxonomyLibrary(CAUSE_LIBRARY).reconcile(["Fatigue"])

    resolved = causes.resolve(conflicts, [])

    assert [entry.name for entry in resolved.entries] == ["Fatigue"]
