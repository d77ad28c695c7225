# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Strict parsers for model replies.

Each parser extracts the JSON payload from the reply text, checks its shape
and builds model objects. Shape errors raise ``OracleResponseError``; callers
decide whether that means a retry or a default.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from .exceptions import OracleResponseError
from .models import (
    Complexity,
    CoreLineItem,
    ModifierGroup,
    ModifierOption,
    ScopeEstimate,
)
from .utils import extract_json_from_text

logger = logging.getLogger(__name__)


def load_json(text: str) -> Any:
    """
    Parse the JSON payload of a reply.

    Raises:
        OracleResponseError: If no valid JSON can be found
    """
    if not text or not text.strip():
        raise OracleResponseError("Empty model response")
    json_str = extract_json_from_text(text)
    try:
        return json.loads(json_str)
    except (json.JSONDecodeError, TypeError) as e:
        raise OracleResponseError(f"Model response is not valid JSON: {e}") from e


def _load_array(text: str, what: str) -> List[Any]:
    data = load_json(text)
    if not isinstance(data, list):
        raise OracleResponseError(f"Expected a JSON array of {what}, got {type(data).__name__}")
    return data


def parse_core_items(text: str, default_filename: str,
                     default_location: Optional[str] = None) -> List[CoreLineItem]:
    """
    Parse a core extraction reply into items.

    Entries without a usable name are dropped; a reply that is not a JSON
    array raises.
    """
    items = []
    for raw in _load_array(text, "menu items"):
        try:
            items.append(CoreLineItem.from_dict(raw, default_filename, default_location))
        except ValueError as e:
            logger.warning(f"Dropping invalid menu item: {e}")
    return items


def parse_modifier_groups(text: str) -> List[ModifierGroup]:
    groups = []
    for raw in _load_array(text, "modifier groups"):
        try:
            groups.append(ModifierGroup.from_dict(raw))
        except ValueError as e:
            logger.warning(f"Dropping invalid modifier group: {e}")
    return groups


def parse_size_options(text: str) -> List[ModifierOption]:
    sizes = []
    for raw in _load_array(text, "size options"):
        try:
            sizes.append(ModifierOption.from_dict(raw))
        except ValueError as e:
            logger.warning(f"Dropping invalid size option: {e}")
    return sizes


def parse_scope_estimate(text: str, document_id: str, source_filename: str) -> ScopeEstimate:
    data = load_json(text)
    try:
        return ScopeEstimate.from_dict(data, document_id, source_filename)
    except ValueError as e:
        raise OracleResponseError(f"Invalid scope estimate for {source_filename}: {e}") from e


def parse_workload_reply(text: str) -> Dict[str, Any]:
    """
    Parse a workload reply into ``estimated_items`` (int or None) and ``complexity``.

    Raises:
        OracleResponseError: If the reply is not a JSON object
    """
    data = load_json(text)
    if not isinstance(data, dict):
        raise OracleResponseError("Workload reply must be a JSON object")

    estimated = data.get("estimatedItems")
    if isinstance(estimated, bool) or not isinstance(estimated, (int, float)) or estimated <= 0:
        estimated = None
    else:
        estimated = int(round(estimated))

    return {
        "estimated_items": estimated,
        "complexity": Complexity.parse(data.get("complexity")),
        "has_multiple_sections": data.get("hasMultipleSections") is True,
    }
