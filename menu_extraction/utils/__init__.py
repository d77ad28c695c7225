# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import json
import logging
import random
from typing import Any, Dict, Tuple

logger = logging.getLogger(__name__)

# Common backoff constants
INITIAL_BACKOFF = 1  # seconds
MAX_BACKOFF = 30  # seconds


def calculate_backoff(attempt: int, initial_backoff: float = INITIAL_BACKOFF,
                      max_backoff: float = MAX_BACKOFF) -> float:
    """
    Calculate capped exponential backoff with jitter

    Args:
        attempt: The current retry attempt number (0-based)
        initial_backoff: Starting backoff in seconds
        max_backoff: Maximum backoff cap in seconds

    Returns:
        Backoff time in seconds
    """
    backoff = min(max_backoff, initial_backoff * (2 ** attempt))
    jitter = random.uniform(0, 0.1 * backoff)  # 10% jitter
    return backoff + jitter


def parse_s3_uri(s3_uri: str) -> Tuple[str, str]:
    """
    Parse an S3 URI into bucket and key

    Args:
        s3_uri: The S3 URI in format s3://bucket/key

    Returns:
        Tuple of (bucket, key)
    """
    if not s3_uri.startswith('s3://'):
        raise ValueError(f"Invalid S3 URI: {s3_uri}. Must start with s3://")

    parts = s3_uri.split('/', 3)
    if len(parts) < 4:
        raise ValueError(f"Invalid S3 URI: {s3_uri}. Format should be s3://bucket/key")

    return parts[2], parts[3]


def build_s3_uri(bucket: str, key: str) -> str:
    """Build an S3 URI from bucket and key"""
    return f"s3://{bucket}/{key}"


def merge_metering_data(existing_metering: Dict[str, Any],
                        new_metering: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge metering data from multiple model calls

    Args:
        existing_metering: Existing metering data to merge into
        new_metering: New metering data to add

    Returns:
        Merged metering data
    """
    merged = {key: dict(value) for key, value in existing_metering.items()}

    for service_api, metrics in new_metering.items():
        if isinstance(metrics, dict):
            for unit, value in metrics.items():
                if not isinstance(value, (int, float)):
                    continue
                if service_api not in merged:
                    merged[service_api] = {}
                merged[service_api][unit] = merged[service_api].get(unit, 0) + value
        else:
            logger.warning(f"Unexpected metering data format for {service_api}: {metrics}")

    return merged


def strip_code_fences(text: str) -> str:
    """
    Remove a surrounding markdown code fence (```json ... ``` or ``` ... ```).

    An opening fence without a closing one is removed as well, so that a reply
    cut off mid-block still exposes its JSON payload.
    """
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        if first_newline == -1:
            cleaned = cleaned[3:]
            if cleaned.lower().startswith("json"):
                cleaned = cleaned[4:]
        else:
            cleaned = cleaned[first_newline + 1:]
        cleaned = cleaned.rstrip()
        if cleaned.endswith("```"):
            cleaned = cleaned[:-3]
    return cleaned.strip()


def _find_balanced(text: str, start_idx: int) -> int:
    """Return the index closing the bracket opened at start_idx, or -1."""
    stack = []
    in_string = False
    escape_next = False
    pairs = {"{": "}", "[": "]"}

    for i in range(start_idx, len(text)):
        char = text[i]
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
        if char in pairs:
            stack.append(pairs[char])
        elif char in ("}", "]"):
            if not stack or stack.pop() != char:
                return -1
            if not stack:
                return i
    return -1


def locate_json_payload(text: str) -> str:
    """
    Return the part of a reply that holds its JSON payload, valid or not.

    The first code block is used when the reply has one, otherwise the whole
    reply. Inside it the payload runs from the first '[' or '{' to its matching
    bracket, or to the end of the text when the bracket is never closed.
    Text with no bracket at all is returned stripped.
    """
    cleaned = (text or "").strip()
    fence_idx = cleaned.find("```")
    if fence_idx != -1:
        close_idx = cleaned.find("```", fence_idx + 3)
        block = cleaned[fence_idx:close_idx + 3] if close_idx != -1 else cleaned[fence_idx:]
        cleaned = strip_code_fences(block)

    starts = [idx for idx in (cleaned.find("["), cleaned.find("{")) if idx != -1]
    if not starts:
        return cleaned
    start_idx = min(starts)
    end_idx = _find_balanced(cleaned, start_idx)
    if end_idx == -1:
        return cleaned[start_idx:]
    return cleaned[start_idx:end_idx + 1]


def extract_json_from_text(text: str) -> str:
    """
    Extract a JSON object or array string from LLM response text.

    This function handles multiple common formats:
    - JSON wrapped in ```json code blocks
    - JSON wrapped in ``` code blocks
    - Raw JSON objects or arrays surrounded by prose, with bracket matching
      that ignores brackets inside string values

    Args:
        text: The text response from the model

    Returns:
        Extracted JSON string, or the cleaned text if no JSON was found
    """
    if not text:
        logger.warning("Empty text provided to extract_json_from_text")
        return text

    # Strategy 1: whole reply (minus code fences) is JSON
    cleaned = strip_code_fences(text)
    try:
        json.loads(cleaned)
        return cleaned
    except json.JSONDecodeError:
        pass

    # Strategy 2: code block somewhere inside the reply
    if "```" in text:
        start_idx = text.find("```")
        newline_idx = text.find("\n", start_idx)
        end_idx = text.find("```", start_idx + 3)
        if newline_idx != -1 and end_idx > newline_idx:
            json_str = text[newline_idx + 1:end_idx].strip()
            try:
                json.loads(json_str)
                return json_str
            except json.JSONDecodeError:
                logger.debug(
                    "Found code block but content is not valid JSON, trying other strategies"
                )

    # Strategy 3: first balanced object or array
    candidates = [idx for idx in (cleaned.find("["), cleaned.find("{")) if idx != -1]
    for start_idx in sorted(candidates):
        end_idx = _find_balanced(cleaned, start_idx)
        if end_idx == -1:
            continue
        json_str = cleaned[start_idx:end_idx + 1]
        try:
            json.loads(json_str)
            return json_str
        except json.JSONDecodeError:
            logger.debug("Found JSON-like content but direct parsing failed")

    logger.warning("Could not extract valid JSON, returning original text")
    return cleaned
