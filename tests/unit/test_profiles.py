# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for catalog profile and object part group assignment."""

from cpg.model import RawRecord
from cpg.profiles import GroupAssigner, ProfileAssigner, unique_by


def _record(
    location_id: str,
    item: str = "Pump Set",
    *,
    asset_class: str = "CRGY",
    location_name: str | None = None,
    component: str = "Bearing",
) -> RawRecord:
    return RawRecord(
        asset_class_type_id=asset_class,
        location_id=location_id,
        location_name=location_name or f"Site {location_id}",
        maintainable_item_name=item,
        component_name=component,
        failure_mechanism="Wear",
        failure_cause="Fatigue",
    )


def test_ph1_prof_001_same_variation_prefix_shares_variation_number() -> None:
    profiles = ProfileAssigner().assign([_record("ABC-001"), _record("ABC-002")])

    assert [p.catalog_profile for p in profiles] == ["CRGY0101", "CRGY0102"]
    assert [p.variation_key for p in profiles] == ["ABC", "ABC"]


def test_ph1_prof_002_new_prefix_increments_variation_and_location_index_runs_on() -> None:
    profiles = ProfileAssigner().assign(
        [_record("XYZ-001"), _record("ABC-002"), _record("ABC-001")]
    )

    assert [p.location_id for p in profiles] == ["ABC-001", "ABC-002", "XYZ-001"]
    assert [p.catalog_profile for p in profiles] == ["CRGY0101", "CRGY0102", "CRGY0203"]
    assert profiles[2].number_consolidate == "02"
    assert profiles[2].location_consolidate == "03"


def test_ph1_prof_003_duplicate_locations_produce_one_profile_each() -> None:
    records = [
        _record("ABC-001", "Pump Set"),
        _record("ABC-001", "Motor Set"),
        _record("ABC-002", "Pump Set"),
    ]

    profiles = ProfileAssigner().assign(records)

    assert len(profiles) == 2
    assert len({p.catalog_profile for p in profiles}) == 2
    assert profiles[0].catalog_profile_description == "Site ABC-001"


def test_ph1_prof_004_profiles_are_reproducible_for_same_input() -> None:
    records = [_record("B-2"), _record("A-1"), _record("B-1")]

    first = ProfileAssigner().assign(records)
    second = ProfileAssigner().assign(list(records))

    assert first == second


def test_ph1_grp_001_alpha_index_resets_per_location() -> None:
    records = [
        _record("ABC-001", "Pump Set"),
        _record("ABC-001", "Motor Set"),
        _record("ABC-001", "Pump Set"),
        _record("ABC-002", "Valve Set"),
    ]
    profiles = ProfileAssigner().assign(records)

    groups = GroupAssigner().assign(records, profiles)

    assert [(g.location_id, g.maintainable_item_name) for g in groups] == [
        ("ABC-001", "Motor Set"),
        ("ABC-001", "Pump Set"),
        ("ABC-002", "Valve Set"),
    ]
    assert [g.maintainable_item_alpha for g in groups] == ["0A", "0B", "0A"]
    assert [g.object_part_code_group for g in groups] == [
        "CRGY010A",
        "CRGY010B",
        "CRGY020A",
    ]


def test_ph1_grp_002_missing_profile_leaves_profile_suffix_empty(caplog) -> None:
    records = [_record("ABC-001", "Pump Set")]

    groups = GroupAssigner().assign(records, profiles=[])

    assert groups[0].catalog_profile == ""
    assert groups[0].object_part_code_group == "CRGY0A"
    assert "No catalog profile for location" in caplog.text


def test_ph1_grp_003_unique_by_keeps_first_occurrence() -> None:
    assert unique_by([3, 1, 3, 2, 1], key=lambda value: value) == [3, 1, 2]
