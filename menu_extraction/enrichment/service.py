# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Modifier and size enrichment (phase 3).

The expert tier is asked three kinds of questions: which modifier groups the
menu prints once for many items, which modifiers hide inside item names and
descriptions, and what the menu's size ladder is. The answers are attached to
the core items, then the catalog is deduplicated and normalized. Every
analysis degrades to an empty answer on failure.
"""

import logging
import re
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from ..bedrock import format_prompt
from ..documents import DocumentSampler
from ..models import (
    CoreLineItem,
    DocumentRef,
    EnrichedMenuItem,
    EnrichmentResult,
    ModelTier,
    ModifierGroup,
    ModifierOption,
)
from ..oracle import ModelOracle
from ..parsing import parse_modifier_groups, parse_size_options
from .normalization import normalize_items
from .size_patterns import find_size_terms, suggests_size_variation

logger = logging.getLogger(__name__)

PRICE_PATTERN = re.compile(r"(-)?\s*\$?\s*(\d+(?:\.\d+)?)")


def price_adjustment_value(adjustment: Optional[str]) -> Optional[float]:
    """Numeric value of a price adjustment such as "+$1.50" or "-$1", None if unparseable."""
    if not adjustment:
        return None
    match = PRICE_PATTERN.search(adjustment)
    if not match:
        return None
    value = float(match.group(2))
    return -value if match.group(1) else value


def sort_sizes(sizes: List[ModifierOption]) -> List[ModifierOption]:
    """Order sizes by ascending price adjustment; unparseable adjustments keep their order, last."""
    def key(size):
        value = price_adjustment_value(size.price_adjustment)
        return (value is None, value if value is not None else 0.0)

    return sorted(sizes, key=key)


class EnrichmentService:
    """Attaches modifier groups and size options to core items."""

    def __init__(self, config: Dict[str, Any], oracle: ModelOracle, sampler: DocumentSampler):
        self.oracle = oracle
        self.sampler = sampler
        enrichment = config.get("enrichment", {})
        self.global_max_tokens = int(enrichment.get("global_max_tokens", 2000))
        self.item_max_tokens = int(enrichment.get("item_max_tokens", 1000))
        self.size_max_tokens = int(enrichment.get("size_max_tokens", 500))
        self.text_chars = int(enrichment.get("text_chars", 30000))
        self.prompts = config.get("prompts", {})

    def analyze_global_modifiers(self, docs: List[DocumentRef]) -> List[ModifierGroup]:
        """One expert call over the content of all documents."""
        text_parts = []
        images = []
        for doc in docs:
            try:
                if doc.is_image:
                    images.append(self.sampler.image_bytes(doc))
                    text_parts.append(f"Image document: {doc.name}")
                else:
                    text = self.sampler.text_sample(doc, self.text_chars, limit_spreadsheet=False)
                    text_parts.append(f"=== {doc.name} ===\n{text}")
            except Exception as e:
                logger.warning(f"Leaving {doc.name} out of global modifier analysis: {e}")

        if not text_parts:
            logger.info("No document content available for global modifier analysis")
            return []

        prompt = format_prompt(
            self.prompts["global_modifiers"], {"CONTENT": "\n\n".join(text_parts)}
        )
        try:
            reply = self.oracle.generate(
                ModelTier.EXPERT,
                prompt,
                images=images or None,
                max_tokens=self.global_max_tokens,
                context="GlobalModifiers",
            )
            groups = parse_modifier_groups(reply)
        except Exception as e:
            logger.error(f"Global modifier analysis failed: {e}")
            return []

        logger.info(f"Found {len(groups)} global modifier groups")
        return groups

    def analyze_item_modifiers(self, items: List[CoreLineItem]) -> List[ModifierGroup]:
        """One expert call per category, over that category's items."""
        by_category: "OrderedDict[str, List[CoreLineItem]]" = OrderedDict()
        for item in items:
            by_category.setdefault(item.category, []).append(item)

        groups: List[ModifierGroup] = []
        for category, category_items in by_category.items():
            lines = [
                f"{item.name} - {item.base_price}"
                + (f" ({item.description})" if item.description else "")
                for item in category_items
            ]
            prompt = format_prompt(
                self.prompts["item_modifiers"],
                {"CATEGORY": category, "ITEMS": "\n".join(lines)},
            )
            try:
                reply = self.oracle.generate(
                    ModelTier.EXPERT,
                    prompt,
                    max_tokens=self.item_max_tokens,
                    context=f"ItemModifiers:{category}",
                )
                category_groups = parse_modifier_groups(reply)
            except Exception as e:
                logger.error(f"Item modifier analysis failed for {category}: {e}")
                continue

            # Groups without targets apply to the category they were found in
            for group in category_groups:
                if not group.applies_to_items and not group.applies_to_categories:
                    group.applies_to_categories = [category]
            groups.extend(category_groups)

        logger.info(f"Found {len(groups)} item-level modifier groups")
        return groups

    def standardize_sizes(self, items: List[CoreLineItem]) -> List[ModifierOption]:
        """Ask for one canonical, price-ordered size ladder when the items mention sizes."""
        terms = find_size_terms(items)
        if not terms:
            logger.info("No size terms found, skipping size standardization")
            return []

        prompt = format_prompt(
            self.prompts["size_standardization"], {"SIZE_TERMS": ", ".join(terms)}
        )
        try:
            reply = self.oracle.generate(
                ModelTier.EXPERT,
                prompt,
                max_tokens=self.size_max_tokens,
                context="SizeStandardization",
            )
            sizes = parse_size_options(reply)
        except Exception as e:
            logger.error(f"Size standardization failed: {e}")
            return []

        return sort_sizes(sizes)

    def apply_enrichment(
        self,
        items: List[CoreLineItem],
        global_groups: List[ModifierGroup],
        item_groups: List[ModifierGroup],
        sizes: List[ModifierOption],
    ) -> List[EnrichedMenuItem]:
        enriched = []
        for item in items:
            category = item.category.strip().lower()
            name = item.name.strip().lower()
            attached: List[ModifierGroup] = []
            attached_names = set()

            def attach(group):
                key = group.name.strip().lower()
                if key not in attached_names:
                    attached_names.add(key)
                    attached.append(group)

            for group in global_groups:
                if category in {c.lower() for c in group.applies_to_categories}:
                    attach(group)
            for group in item_groups:
                if (name in {i.lower() for i in group.applies_to_items}
                        or category in {c.lower() for c in group.applies_to_categories}):
                    attach(group)

            enriched.append(EnrichedMenuItem(
                core_item=item,
                size_options=list(sizes) if sizes and suggests_size_variation(item) else [],
                modifier_groups=attached,
            ))
        return enriched

    def enrich(self, items: List[CoreLineItem], docs: List[DocumentRef]) -> EnrichmentResult:
        """Run all analyses, attach their results and normalize the catalog."""
        global_groups = self.analyze_global_modifiers(docs)
        item_groups = self.analyze_item_modifiers(items)
        sizes = self.standardize_sizes(items)

        enriched = self.apply_enrichment(items, global_groups, item_groups, sizes)
        normalized = normalize_items(enriched)

        return EnrichmentResult(
            enriched_items=normalized.items,
            global_modifiers=global_groups,
            item_modifiers=item_groups,
            size_options=sizes,
            normalization=normalized.stats,
        )
