# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""Heuristics that flag model replies cut off by the output token budget."""

import re
from typing import List

from ..utils import locate_json_payload

DANGLING_FIELD_PATTERN = re.compile(r'"(name|basePrice|price|description|category|sourceInfo|filename|location)"')


def _unclosed_brackets(text: str) -> List[str]:
    """Brackets still open at the end of text, ignoring those inside strings."""
    stack: List[str] = []
    in_string = False
    escape_next = False
    for char in text:
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char in "[{":
            stack.append(char)
        elif char in "]}" and stack:
            stack.pop()
    if in_string:
        stack.append('"')
    return stack


def detect_truncation(text: str) -> List[str]:
    """
    Check a reply for signs of truncation.

    Args:
        text: Raw model reply; prose around the JSON payload is ignored

    Returns:
        List of warnings, empty when the reply looks complete
    """
    cleaned = locate_json_payload(text)
    if not cleaned:
        return ["Empty response"]

    warnings = []

    unclosed = _unclosed_brackets(cleaned)
    if '"' in unclosed:
        warnings.append("Response ends inside a string value")
    if "[" in unclosed:
        warnings.append("Array opened but never closed")
    if "{" in unclosed:
        warnings.append("Object opened but never closed")

    if not cleaned.endswith(("]", "}")):
        warnings.append("Response does not end with ']' or '}'")

    last_close = cleaned.rfind("}")
    if last_close != -1:
        tail = cleaned[last_close + 1:].strip()
        if DANGLING_FIELD_PATTERN.search(tail) or tail.rstrip("]").strip().endswith(","):
            warnings.append("Incomplete item after the last complete object")

    return warnings
