# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for failure set check aggregation."""

from cpg.aggregation import Aggregator, combined_key
from cpg.model import RawRecord
from cpg.taxonomy import CAUSE_LIBRARY, MECHANISM_LIBRARY, TaxonomyLibrary


def _record(
    component: str,
    mechanism: str,
    cause: str,
    *,
    location_id: str = "ABC-001",
    item: str = "Pump Set",
) -> RawRecord:
    return RawRecord(
        asset_class_type_id="CRGY",
        location_id=location_id,
        location_name="North Plant",
        maintainable_item_name=item,
        component_name=component,
        failure_mechanism=mechanism,
        failure_cause=cause,
    )


def _libraries() -> tuple[TaxonomyLibrary, TaxonomyLibrary]:
    # Sorted insertion: Corrosion=100001, Wear=100002; Fatigue=200001, Overload=200002.
    mechanisms, _ = TaxonomyLibrary(MECHANISM_LIBRARY).reconcile(["Wear", "Corrosion"])
    causes, _ = TaxonomyLibrary(CAUSE_LIBRARY).reconcile(["Overload", "Fatigue"])
    return mechanisms, causes


def test_ph1_agg_001_group_members_share_summed_checks() -> None:
    mechanisms, causes = _libraries()
    records = [
        _record("Bearing", "Wear", "Fatigue"),
        _record("Bearing", "Corrosion", "Overload"),
        _record("Seal", "Wear", "Fatigue"),
    ]

    checks = Aggregator().aggregate(records, mechanisms, causes)

    assert [check.mechanism_scoring for check in checks] == [100002, 100001, 100002]
    assert [check.mechanism_sum_check for check in checks] == [200003, 200003, 100002]
    assert [check.cause_sum_check for check in checks] == [400003, 400003, 200001]
    assert checks[0].loc_mi_comp_combined == "ABC-001Pump SetBearing"


def test_ph1_agg_002_groups_are_split_by_location_and_item() -> None:
    mechanisms, causes = _libraries()
    records = [
        _record("Bearing", "Wear", "Fatigue", location_id="ABC-001"),
        _record("Bearing", "Wear", "Fatigue", location_id="ABC-002"),
        _record("Bearing", "Corrosion", "Fatigue", item="Fan Set"),
    ]

    checks = Aggregator().aggregate(records, mechanisms, causes)

    assert [check.mechanism_sum_check for check in checks] == [100002, 100002, 100001]


def test_ph1_agg_003_concatenation_collisions_stay_separate_groups() -> None:
    mechanisms, causes = _libraries()
    records = [
        _record("Bearing", "Wear", "Fatigue", location_id="AB", item="C"),
        _record("Bearing", "Corrosion", "Fatigue", location_id="A", item="BC"),
    ]

    checks = Aggregator().aggregate(records, mechanisms, causes)

    assert combined_key(checks[0]) == combined_key(checks[1])
    assert [check.mechanism_sum_check for check in checks] == [100002, 100001]


def test_ph1_agg_004_unknown_taxonomy_value_scores_zero(caplog) -> None:
    mechanisms, causes = _libraries()
    records = [
        _record("Bearing", "Wear", "Fatigue"),
        _record("Bearing", "Mystery", "Fatigue"),
    ]

    checks = Aggregator().aggregate(records, mechanisms, causes)

    assert checks[1].mechanism_scoring == 0
    assert checks[0].mechanism_sum_check == 100002
    assert "scored as zero" in caplog.text
