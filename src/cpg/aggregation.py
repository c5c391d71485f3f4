# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Failure set check: taxonomy scoring and group sum checks."""

import logging
from dataclasses import replace

from cpg.model import FailureSetCheck, RawRecord
from cpg.taxonomy import TaxonomyLibrary

logger = logging.getLogger(__name__)


GroupKey = tuple[str, str, str]


def combined_key(record: RawRecord | FailureSetCheck) -> str:
    """Return the location, item and component key of a record."""
    return record.location_id + record.maintainable_item_name + record.component_name


def group_key(record: RawRecord | FailureSetCheck) -> GroupKey:
    """Return the (location, item, component) grouping key of a record.

    ``combined_key`` is kept on the rows for export; grouping uses the tuple so
    that ``("AB", "C")`` and ``("A", "BC")`` stay apart.
    """
    return (record.location_id, record.maintainable_item_name, record.component_name)


class Aggregator:
    """Score records against the libraries and broadcast group sums."""

    def aggregate(
        self,
        records: list[RawRecord],
        mechanism_library: TaxonomyLibrary,
        cause_library: TaxonomyLibrary,
    ) -> list[FailureSetCheck]:
        """Compute sum checks per (location, item, component) group.

        Args:
            records: Ingested raw records.
            mechanism_library: Resolved mechanism library.
            cause_library: Resolved cause library.

        Returns:
            One check per input record, in input order, each carrying the sums
            of its whole group.
        """
        scored: list[FailureSetCheck] = []
        unscored = 0
        for record in records:
            mechanism_scoring = mechanism_library.summing_number(record.failure_mechanism)
            cause_scoring = cause_library.summing_number(record.failure_cause)
            if mechanism_scoring == 0 or cause_scoring == 0:
                unscored += 1
            scored.append(
                FailureSetCheck(
                    location_id=record.location_id,
                    location_name=record.location_name,
                    maintainable_item_name=record.maintainable_item_name,
                    component_name=record.component_name,
                    failure_mechanism=record.failure_mechanism,
                    failure_cause=record.failure_cause,
                    mechanism_scoring=mechanism_scoring,
                    cause_scoring=cause_scoring,
                    loc_mi_comp_combined=combined_key(record),
                )
            )
        if unscored:
            logger.warning(
                f"Records without a library match were scored as zero (count={unscored})"
            )

        mechanism_sums: dict[GroupKey, int] = {}
        cause_sums: dict[GroupKey, int] = {}
        for check in scored:
            key = group_key(check)
            mechanism_sums[key] = mechanism_sums.get(key, 0) + check.mechanism_scoring
            cause_sums[key] = cause_sums.get(key, 0) + check.cause_scoring

        result = [
            replace(
                check,
                mechanism_sum_check=mechanism_sums[group_key(check)],
                cause_sum_check=cause_sums[group_key(check)],
            )
            for check in scored
        ]
        logger.info(
            f"Failure set check completed (records={len(result)} groups={len(mechanism_sums)})"
        )
        return result
