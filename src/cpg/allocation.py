# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Code allocation stage joining every record to its codes."""

import logging

from cpg.components import ComponentKey, component_key
from cpg.model import CodeAllocation, ComponentCodeEntry, FailureSetCheck
from cpg.taxonomy import TaxonomyLibrary

logger = logging.getLogger(__name__)


class AllocationJoiner:
    """Attach damage, cause and object part codes to failure set checks."""

    def join(
        self,
        checks: list[FailureSetCheck],
        mechanism_library: TaxonomyLibrary,
        cause_library: TaxonomyLibrary,
        component_library: list[ComponentCodeEntry],
    ) -> list[CodeAllocation]:
        """Build one allocation per failure set check, in input order.

        Missing library entries produce empty code fields.
        """
        components: dict[ComponentKey, ComponentCodeEntry] = {}
        for entry in component_library:
            components.setdefault(component_key(entry), entry)

        allocations: list[CodeAllocation] = []
        missing = 0
        for check in checks:
            component = components.get(component_key(check))
            if component is None:
                missing += 1
            allocations.append(
                CodeAllocation(
                    location_id=check.location_id,
                    location_name=check.location_name,
                    maintainable_item_name=check.maintainable_item_name,
                    component_name=check.component_name,
                    failure_mechanism=check.failure_mechanism,
                    failure_cause=check.failure_cause,
                    mechanism_sum_check=check.mechanism_sum_check,
                    cause_sum_check=check.cause_sum_check,
                    damage_code=mechanism_library.code_for(check.failure_mechanism),
                    cause_code=cause_library.code_for(check.failure_cause),
                    comp_sum_check_combine=(
                        f"{check.component_name}{check.mechanism_sum_check}"
                        f"{check.cause_sum_check}"
                    ),
                    object_part_code=component.object_part_code if component else "",
                    damage_code_group=component.damage_code_group if component else "",
                    cause_code_group=component.cause_code_group if component else "",
                    combi_lookup_op_code=check.loc_mi_comp_combined,
                )
            )
        if missing:
            logger.warning(f"Records without a component code (count={missing})")
        logger.info(f"Code allocation completed (records={len(allocations)})")
        return allocations
