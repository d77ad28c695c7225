# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""Modifier and size enrichment, deduplication and normalization."""

from .normalization import normalize_items
from .service import EnrichmentService, price_adjustment_value, sort_sizes
from .size_patterns import find_size_terms, suggests_size_variation

__all__ = [
    "EnrichmentService",
    "normalize_items",
    "price_adjustment_value",
    "sort_sizes",
    "find_size_terms",
    "suggests_size_variation",
]
