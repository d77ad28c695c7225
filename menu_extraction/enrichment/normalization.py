# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import logging
from typing import Dict, List, Tuple

from ..models import (
    EnrichedMenuItem,
    ModifierGroup,
    ModifierOption,
    NormalizationResult,
    NormalizationStats,
)

logger = logging.getLogger(__name__)


def item_key(item: EnrichedMenuItem) -> Tuple[str, str]:
    core = item.core_item
    return (core.category.strip().lower(), core.name.strip().lower())


def normalize_items(items: List[EnrichedMenuItem]) -> NormalizationResult:
    """
    Deduplicate items and share one canonical object per modifier group and size name.

    Items are unique per case-insensitive (category, name); the first one
    wins. The first modifier group or size option seen under a name becomes
    canonical and later distinct objects with that name are replaced by it.
    Running this on its own output changes nothing and reports zeros.

    Args:
        items: Enriched items, in catalog order

    Returns:
        NormalizationResult with new item objects and the counters
    """
    stats = NormalizationStats()
    seen_keys = set()
    canonical_groups: Dict[str, ModifierGroup] = {}
    canonical_sizes: Dict[str, ModifierOption] = {}
    normalized: List[EnrichedMenuItem] = []

    for item in items:
        key = item_key(item)
        if key in seen_keys:
            stats.duplicates_removed += 1
            continue
        seen_keys.add(key)

        groups = []
        for group in item.modifier_groups:
            canonical = canonical_groups.setdefault(group.name.strip().lower(), group)
            if canonical is not group:
                stats.modifiers_normalized += 1
            groups.append(canonical)

        sizes = []
        for size in item.size_options:
            canonical = canonical_sizes.setdefault(size.name.strip().lower(), size)
            if canonical is not size:
                stats.sizes_consolidated += 1
            sizes.append(canonical)

        normalized.append(EnrichedMenuItem(
            core_item=item.core_item,
            size_options=sizes,
            modifier_groups=groups,
            variants=list(item.variants),
        ))

    logger.info(
        f"Normalization: {stats.duplicates_removed} duplicates removed, "
        f"{stats.modifiers_normalized} modifier groups and "
        f"{stats.sizes_consolidated} sizes normalized"
    )
    return NormalizationResult(items=normalized, stats=stats)
