# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import pytest

from menu_extraction.extraction import detect_truncation


@pytest.mark.unit
class TestDetectTruncation:
    @pytest.mark.parametrize("reply", [
        '[{"name": "Burger", "basePrice": "$8.00"}]',
        '```json\n[{"name": "Burger", "basePrice": "$8.00"}]\n```',
        '[]',
        '{"items": []}',
        '[{"name": "Brace } inside", "basePrice": "$1.00"}]',
    ])
    def test_complete_replies(self, reply):
        assert detect_truncation(reply) == []

    def test_cut_mid_object(self):
        warnings = detect_truncation('[{"name":"Burger","basePrice":"$8.00"')
        assert "Array opened but never closed" in warnings
        assert "Object opened but never closed" in warnings
        assert "Response does not end with ']' or '}'" in warnings

    def test_cut_inside_string(self):
        warnings = detect_truncation('[{"name": "Burger"}, {"name": "Chee')
        assert "Response ends inside a string value" in warnings

    def test_dangling_field_after_last_object(self):
        warnings = detect_truncation('[{"name": "Burger"}, "name"')
        assert "Incomplete item after the last complete object" in warnings

    def test_trailing_comma(self):
        warnings = detect_truncation('[{"name": "Burger"},')
        assert "Incomplete item after the last complete object" in warnings

    @pytest.mark.parametrize("reply", ["", "   ", None])
    def test_empty(self, reply):
        assert detect_truncation(reply) == ["Empty response"]

    @pytest.mark.parametrize("reply", [
        'Here are the extracted items:\n```json\n[{"name": "Burger", "basePrice": "$8.00"}]\n```',
        '```json\n[{"name": "Burger", "basePrice": "$8.00"}]\n```\nLet me know if you need more.',
        'Here are the items:\n```\n[{"name": "Burger"}]\n```\nThat is everything.',
        'Items found: [{"name": "Burger", "basePrice": "$8.00"}] (2 pages read)',
    ])
    def test_prose_around_payload_is_ignored(self, reply):
        assert detect_truncation(reply) == []

    def test_cut_reply_after_prose(self):
        warnings = detect_truncation('Here are the items:\n```json\n[{"name": "Burger"}, {"name": "Chee')
        assert "Response ends inside a string value" in warnings
        assert "Array opened but never closed" in warnings

    def test_prose_without_json(self):
        assert detect_truncation("I could not find a menu.") == ["Response does not end with ']' or '}'"]
