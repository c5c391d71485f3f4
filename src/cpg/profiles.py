# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Catalog profile and object part group assignment."""

import logging
from typing import Callable, Hashable, Iterable, TypeVar

from cpg.model import CatalogProfile, ObjectPartGroup, RawRecord
from cpg.numbering import index_to_alpha, last_chars, pad2

logger = logging.getLogger(__name__)

T = TypeVar("T")


def unique_by(items: Iterable[T], key: Callable[[T], Hashable]) -> list[T]:
    """Keep the first occurrence of every key, preserving input order."""
    seen: set[Hashable] = set()
    unique: list[T] = []
    for item in items:
        marker = key(item)
        if marker in seen:
            continue
        seen.add(marker)
        unique.append(item)
    return unique


class ProfileAssigner:
    """Assign catalog profile codes per unique location."""

    def assign(self, records: list[RawRecord]) -> list[CatalogProfile]:
        """Build catalog profiles from raw records.

        The variation counter only moves when a row's variation key differs
        from the immediately preceding sorted row. A key that reappears after
        a different key increments the counter again.

        Args:
            records: Ingested raw records.

        Returns:
            One profile per unique (asset class, location id, location name),
            ordered by location id.
        """
        unique = unique_by(
            records,
            key=lambda r: (r.asset_class_type_id, r.location_id, r.location_name),
        )
        unique.sort(key=lambda r: r.location_id)

        profiles: list[CatalogProfile] = []
        current_variation = ""
        variation_number = 1
        for position, record in enumerate(unique, start=1):
            variation_key = record.location_id.split("-")[0]
            if variation_key != current_variation:
                if current_variation != "":
                    variation_number += 1
                current_variation = variation_key
            number_consolidate = pad2(variation_number)
            location_consolidate = pad2(position)
            profiles.append(
                CatalogProfile(
                    asset_class_type_id=record.asset_class_type_id,
                    location_id=record.location_id,
                    location_name=record.location_name,
                    variation_key=variation_key,
                    variation_number=variation_number,
                    number_consolidate=number_consolidate,
                    location_index=position,
                    location_consolidate=location_consolidate,
                    catalog_profile=record.asset_class_type_id
                    + number_consolidate
                    + location_consolidate,
                    catalog_profile_description=record.location_name,
                )
            )
        logger.info(f"Catalog profiles assigned (profiles={len(profiles)})")
        return profiles


class GroupAssigner:
    """Assign object part group codes per maintainable item and location."""

    def assign(
        self, records: list[RawRecord], profiles: list[CatalogProfile]
    ) -> list[ObjectPartGroup]:
        """Build object part groups.

        Args:
            records: Ingested raw records.
            profiles: Catalog profiles from ``ProfileAssigner``.

        Returns:
            One group per unique maintainable item per location, ordered by
            location id then item name.
        """
        unique = unique_by(
            records,
            key=lambda r: (
                r.asset_class_type_id,
                r.location_id,
                r.location_name,
                r.maintainable_item_name,
            ),
        )
        unique.sort(key=lambda r: (r.location_id, r.maintainable_item_name))

        profile_by_location: dict[str, str] = {}
        for profile in profiles:
            profile_by_location.setdefault(profile.location_id, profile.catalog_profile)

        groups: list[ObjectPartGroup] = []
        current_location: str | None = None
        item_index = 1
        for position, record in enumerate(unique):
            if record.location_id != current_location:
                item_index = 1
                current_location = record.location_id
            else:
                previous = unique[position - 1]
                if (
                    previous.location_id == record.location_id
                    and previous.maintainable_item_name != record.maintainable_item_name
                ):
                    item_index += 1

            alpha = index_to_alpha(item_index)
            catalog_profile = profile_by_location.get(record.location_id, "")
            if not catalog_profile:
                logger.warning(
                    f"No catalog profile for location (location_id={record.location_id})"
                )
            groups.append(
                ObjectPartGroup(
                    asset_class_type_id=record.asset_class_type_id,
                    location_id=record.location_id,
                    location_name=record.location_name,
                    maintainable_item_name=record.maintainable_item_name,
                    catalog_profile=catalog_profile,
                    maintainable_item_index=item_index,
                    maintainable_item_alpha=alpha,
                    object_part_code_group=record.asset_class_type_id
                    + last_chars(catalog_profile, 2)
                    + alpha,
                    object_part_group_name=record.maintainable_item_name,
                )
            )
        logger.info(f"Object part groups assigned (groups={len(groups)})")
        return groups
