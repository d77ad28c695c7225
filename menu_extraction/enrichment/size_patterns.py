# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""Size vocabulary detection for menu items."""

import re
from typing import Iterable, List

from ..models import CoreLineItem

SIZE_PATTERNS = [
    re.compile(r"\b(?:extra[\s-]?large|x-large|xl)\b", re.IGNORECASE),
    re.compile(r"\b(?:small|sm)\b", re.IGNORECASE),
    re.compile(r"\b(?:medium|med)\b", re.IGNORECASE),
    re.compile(r"\b(?:large|lg)\b", re.IGNORECASE),
    # Single-letter sizes only when written in capitals, e.g. "S/M/L"
    re.compile(r"(?<![\w'])[SML](?![\w'])"),
    re.compile(r"\b\d+(?:\.\d+)?\s?(?:oz|ounces?)\b", re.IGNORECASE),
    re.compile(r"\b\d+(?:\.\d+)?\s?ml\b", re.IGNORECASE),
    re.compile(r"\b\d+(?:\.\d+)?\s?(?:l|liters?|litres?)\b", re.IGNORECASE),
    re.compile(r"\b\d+\s?(?:\"|''|in\b|inch(?:es)?\b)", re.IGNORECASE),
    re.compile(r"\b(?:pint|pt)\b", re.IGNORECASE),
    re.compile(r"\b(?:glass|gls)\b", re.IGNORECASE),
    re.compile(r"\b(?:bottle|btl)\b", re.IGNORECASE),
    re.compile(r"\b(?:personal|individual)\b", re.IGNORECASE),
    re.compile(r"\b(?:half|full)\b", re.IGNORECASE),
    re.compile(r"\bregular\b", re.IGNORECASE),
]

SIZED_ITEM_KEYWORDS = (
    "pizza", "drink", "salad", "sandwich", "burger",
    "coffee", "soda", "beer", "wine", "fries",
)


def _item_text(item: CoreLineItem) -> str:
    return " ".join(part for part in (item.name, item.description or "") if part)


def find_size_terms_in_text(text: str) -> List[str]:
    terms = []
    for pattern in SIZE_PATTERNS:
        for match in pattern.finditer(text or ""):
            term = " ".join(match.group(0).split()).lower()
            if term not in terms:
                terms.append(term)
    return terms


def find_size_terms(items: Iterable[CoreLineItem]) -> List[str]:
    """Distinct size terms across item names, descriptions and prices, in first-seen order."""
    terms: List[str] = []
    for item in items:
        text = f"{_item_text(item)} {item.base_price}"
        for term in find_size_terms_in_text(text):
            if term not in terms:
                terms.append(term)
    return terms


def suggests_size_variation(item: CoreLineItem) -> bool:
    """True when an item's name or description mentions a size or a typically sized product."""
    text = _item_text(item)
    if any(pattern.search(text) for pattern in SIZE_PATTERNS):
        return True
    lowered = text.lower()
    return any(keyword in lowered for keyword in SIZED_ITEM_KEYWORDS)
