# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import json
from unittest.mock import patch

import pytest

from menu_extraction.utils import (
    build_s3_uri,
    calculate_backoff,
    extract_json_from_text,
    locate_json_payload,
    merge_metering_data,
    parse_s3_uri,
    strip_code_fences,
)


@pytest.mark.unit
class TestBackoff:
    def test_exponential_and_capped(self):
        with patch("menu_extraction.utils.random.uniform", return_value=0):
            assert calculate_backoff(0, 1, 30) == 1
            assert calculate_backoff(3, 1, 30) == 8
            assert calculate_backoff(10, 1, 30) == 30

    def test_jitter_within_ten_percent(self):
        for attempt in range(6):
            backoff = calculate_backoff(attempt, 1, 30)
            base = min(30, 2 ** attempt)
            assert base <= backoff <= base * 1.1


@pytest.mark.unit
class TestS3Uri:
    def test_round_trip(self):
        assert parse_s3_uri("s3://bucket/path/to/key.json") == ("bucket", "path/to/key.json")
        assert build_s3_uri("bucket", "key") == "s3://bucket/key"

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_s3_uri("https://bucket/key")
        with pytest.raises(ValueError):
            parse_s3_uri("s3://bucket")


@pytest.mark.unit
def test_merge_metering_data():
    existing = {"bedrock/model-a": {"inputTokens": 10, "outputTokens": 5}}
    new = {
        "bedrock/model-a": {"inputTokens": 1, "outputTokens": 2},
        "bedrock/model-b": {"inputTokens": 3, "note": "ignored"},
    }
    merged = merge_metering_data(existing, new)
    assert merged == {
        "bedrock/model-a": {"inputTokens": 11, "outputTokens": 7},
        "bedrock/model-b": {"inputTokens": 3},
    }
    assert existing["bedrock/model-a"]["inputTokens"] == 10


@pytest.mark.unit
class TestJsonExtraction:
    def test_code_fence(self):
        text = '```json\n[{"name": "Burger"}]\n```'
        assert json.loads(extract_json_from_text(text)) == [{"name": "Burger"}]

    def test_unclosed_code_fence(self):
        assert strip_code_fences('```json\n[1, 2') == "[1, 2"

    def test_prose_around_json(self):
        text = 'Here are the items: [{"name": "Soup [hot]"}] Hope this helps!'
        assert json.loads(extract_json_from_text(text)) == [{"name": "Soup [hot]"}]

    def test_object_before_array(self):
        text = 'Result {"estimatedItems": 12, "complexity": "low"} done'
        assert json.loads(extract_json_from_text(text))["estimatedItems"] == 12

    def test_no_json_returns_cleaned_text(self):
        assert extract_json_from_text("  no json here  ") == "no json here"


@pytest.mark.unit
class TestLocateJsonPayload:
    def test_code_block_after_prose(self):
        text = 'Here are the items:\n```json\n[{"name": "Burger"}]\n```\nAnything else?'
        assert locate_json_payload(text) == '[{"name": "Burger"}]'

    def test_unclosed_payload_runs_to_end(self):
        assert locate_json_payload('Items: [{"name": "Bur') == '[{"name": "Bur'

    def test_bare_payload_with_trailing_prose(self):
        assert locate_json_payload('{"a": [1]} done') == '{"a": [1]}'

    def test_no_brackets(self):
        assert locate_json_payload("  nothing here ") == "nothing here"
