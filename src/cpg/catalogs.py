# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Catalog views and the merged load sheet."""

import logging

from cpg.model import (
    BCatalogRow,
    CatalogProfile,
    CCatalogRow,
    CodeAllocation,
    FiveCatalogRow,
    LoadsheetRow,
    ObjectPartGroup,
)
from cpg.profiles import unique_by

logger = logging.getLogger(__name__)

CATALOG_SORTING: dict[str, int] = {"B": 1, "C": 2, "5": 3}


class CatalogEmitter:
    """Derive the B, C and 5 catalogs and merge them into a load sheet."""

    def b_catalog(
        self, allocations: list[CodeAllocation], groups: list[ObjectPartGroup]
    ) -> list[BCatalogRow]:
        """Build the object part catalog, one row per component of an item.

        Args:
            allocations: Code allocations.
            groups: Object part groups used as code groups.

        Returns:
            Rows in first-seen order.
        """
        group_codes: dict[tuple[str, str], str] = {}
        for group in groups:
            group_codes.setdefault(
                (group.location_id, group.maintainable_item_name), group.object_part_code_group
            )

        unique = unique_by(
            allocations,
            key=lambda a: (
                a.location_id,
                a.location_name,
                a.maintainable_item_name,
                a.component_name,
            ),
        )
        rows: list[BCatalogRow] = []
        for allocation in unique:
            code_group = group_codes.get(
                (allocation.location_id, allocation.maintainable_item_name), ""
            )
            rows.append(
                BCatalogRow(
                    location_id=allocation.location_id,
                    location_name=allocation.location_name,
                    maintainable_item_name=allocation.maintainable_item_name,
                    component_name=allocation.component_name,
                    object_part_code_group=code_group,
                    combi_lookup_op_code=allocation.combi_lookup_op_code,
                    object_part_code=allocation.object_part_code,
                    code_group=code_group,
                    code_group_description=allocation.maintainable_item_name,
                    code=allocation.object_part_code,
                    code_description=allocation.component_name,
                )
            )
        logger.info(f"B catalog built (rows={len(rows)})")
        return rows

    def c_catalog(self, allocations: list[CodeAllocation]) -> list[CCatalogRow]:
        """Build the damage catalog, one row per mechanism of a component."""
        unique = unique_by(
            allocations,
            key=lambda a: (
                a.location_id,
                a.location_name,
                a.maintainable_item_name,
                a.component_name,
                a.failure_mechanism,
                a.damage_code,
                a.damage_code_group,
            ),
        )
        rows = [
            CCatalogRow(
                location_id=a.location_id,
                location_name=a.location_name,
                maintainable_item_name=a.maintainable_item_name,
                component_name=a.component_name,
                failure_mechanism=a.failure_mechanism,
                damage_code=a.damage_code,
                damage_code_group=a.damage_code_group,
                code_group=a.damage_code_group,
                code_group_description=a.component_name,
                code=a.damage_code,
                code_description=a.failure_mechanism,
            )
            for a in unique
        ]
        logger.info(f"C catalog built (rows={len(rows)})")
        return rows

    def five_catalog(self, allocations: list[CodeAllocation]) -> list[FiveCatalogRow]:
        """Build the cause catalog, one row per cause of a component."""
        unique = unique_by(
            allocations,
            key=lambda a: (
                a.location_id,
                a.location_name,
                a.maintainable_item_name,
                a.component_name,
                a.failure_cause,
                a.cause_code,
                a.cause_code_group,
            ),
        )
        rows = [
            FiveCatalogRow(
                location_id=a.location_id,
                location_name=a.location_name,
                maintainable_item_name=a.maintainable_item_name,
                component_name=a.component_name,
                failure_cause=a.failure_cause,
                cause_code=a.cause_code,
                cause_code_group=a.cause_code_group,
                code_group=a.cause_code_group,
                code_group_description=a.component_name,
                code=a.cause_code,
                code_description=a.failure_cause,
            )
            for a in unique
        ]
        logger.info(f"5 catalog built (rows={len(rows)})")
        return rows

    def load_sheet(
        self,
        profiles: list[CatalogProfile],
        b_rows: list[BCatalogRow],
        c_rows: list[CCatalogRow],
        five_rows: list[FiveCatalogRow],
    ) -> list[LoadsheetRow]:
        """Merge the three catalogs into the final load sheet.

        B rows sort by code and component; C and 5 rows sort by the object
        part code embedded in their code group, then component. Within the
        same naming key the catalogs appear in B, C, 5 order. Rows equal on all
        eight visible fields are kept once.

        Args:
            profiles: Catalog profiles supplying the profile columns.
            b_rows: Object part catalog.
            c_rows: Damage catalog.
            five_rows: Cause catalog.

        Returns:
            Sorted, deduplicated load sheet rows.
        """
        profile_by_location: dict[str, CatalogProfile] = {}
        for profile in profiles:
            profile_by_location.setdefault(profile.location_id, profile)

        def build(
            row: BCatalogRow | CCatalogRow | FiveCatalogRow, catalog: str, naming: str
        ) -> LoadsheetRow:
            profile = profile_by_location.get(row.location_id)
            return LoadsheetRow(
                location_id=row.location_id,
                catalog_profile=profile.catalog_profile if profile else "",
                catalog_profile_description=(
                    profile.catalog_profile_description if profile else ""
                ),
                catalog=catalog,
                code_group=row.code_group,
                code_group_description=row.code_group_description,
                code=row.code,
                code_description=row.code_description,
                catalog_sorting=CATALOG_SORTING[catalog],
                naming_sorting=naming,
            )

        merged: list[LoadsheetRow] = []
        for row in b_rows:
            merged.append(build(row, "B", row.location_id + row.code + row.code_description))
        for group_rows, catalog in ((c_rows, "C"), (five_rows, "5")):
            for row in group_rows:
                naming = row.location_id + row.code_group[:4] + row.code_group_description
                merged.append(build(row, catalog, naming))

        merged.sort(key=lambda r: (r.location_id, r.naming_sorting, r.catalog_sorting))
        result = unique_by(merged, key=LoadsheetRow.visible_fields)
        logger.info(
            f"Load sheet merged (rows={len(result)} duplicates={len(merged) - len(result)})"
        )
        return result
