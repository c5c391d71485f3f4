# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Component code library stage."""

import logging
from collections import Counter
from typing import Iterable

from cpg.codegen.orchestrator import ComponentCodeOrchestrator
from cpg.model import ComponentCodeEntry, FailureSetCheck
from cpg.profiles import unique_by

logger = logging.getLogger(__name__)

DAMAGE_GROUP_SUFFIX: str = "C01"
CAUSE_GROUP_SUFFIX: str = "501"

ComponentKey = tuple[str, int, int]


def component_key(item: FailureSetCheck | ComponentCodeEntry) -> ComponentKey:
    """Return the (component, mechanism sum, cause sum) key of a row."""
    return (item.component_name, item.mechanism_sum_check, item.cause_sum_check)


class ComponentLibraryBuilder:
    """Extend the component library with codes for new component contexts."""

    def __init__(self, orchestrator: ComponentCodeOrchestrator) -> None:
        self._orchestrator = orchestrator

    def build(
        self,
        checks: list[FailureSetCheck],
        existing: Iterable[ComponentCodeEntry] = (),
    ) -> list[ComponentCodeEntry]:
        """Resolve one object part code per unique component context.

        Contexts already present in ``existing`` keep their entry. New
        contexts are generated one at a time in component name order, each
        seeing every code issued before it.

        Args:
            checks: Failure set checks carrying the sum-check pairs.
            existing: Current component library.

        Returns:
            The existing entries followed by the new ones.
        """
        library = list(existing)
        known = {component_key(entry) for entry in library}
        issued_codes = [entry.object_part_code for entry in library]

        unique = unique_by(checks, key=component_key)
        unique.sort(key=lambda check: check.component_name)
        name_counts = Counter(check.component_name for check in unique)

        generated = 0
        for check in unique:
            key = component_key(check)
            if key in known:
                logger.debug(
                    f"Component context already coded (component={check.component_name!r})"
                )
                continue
            result = self._orchestrator.generate(check.component_name, issued_codes)
            issued_codes.append(result.code)
            known.add(key)
            library.append(
                ComponentCodeEntry(
                    component_name=check.component_name,
                    mechanism_sum_check=check.mechanism_sum_check,
                    cause_sum_check=check.cause_sum_check,
                    check_duplicate_comp_diff_sum_check=name_counts[check.component_name] > 1,
                    object_part_code=result.code,
                    damage_code_group=result.code + DAMAGE_GROUP_SUFFIX,
                    cause_code_group=result.code + CAUSE_GROUP_SUFFIX,
                    comp_sum_check_combine=(
                        f"{check.component_name}{check.mechanism_sum_check}"
                        f"{check.cause_sum_check}"
                    ),
                    similarities=(check.component_name,),
                    model_used=result.model_used,
                    confidence=result.confidence,
                )
            )
            generated += 1
            logger.info(
                f"Component code assigned (component={check.component_name!r} "
                f"code={result.code} source={result.model_used!r} "
                f"confidence={result.confidence:.2f})"
            )

        logger.info(
            f"Component library built (entries={len(library)} generated={generated} "
            f"contexts={len(unique)})"
        )
        return library
