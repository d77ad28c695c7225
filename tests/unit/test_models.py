# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Unit tests for the menu extraction data model.
"""

import base64

import pytest

from menu_extraction.models import (
    Complexity,
    CoreLineItem,
    DocumentRef,
    MediaKind,
    ModifierGroup,
    ModifierKind,
    ScopeEstimate,
)


@pytest.mark.unit
class TestDocumentRef:
    def test_media_kind(self):
        assert DocumentRef("1", "a.pdf", "application/pdf", b"x").media_kind == MediaKind.PDF
        assert DocumentRef("2", "a.png", "image/png", b"x").media_kind == MediaKind.IMAGE
        assert DocumentRef(
            "3", "a.xlsx",
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", b"x",
        ).media_kind == MediaKind.SPREADSHEET
        assert DocumentRef("4", "a.csv", "text/csv", b"x").media_kind == MediaKind.SPREADSHEET
        assert DocumentRef("5", "a.doc", "application/msword", b"x").media_kind is None

    def test_inline_bytes_decodes_base64(self):
        encoded = base64.b64encode(b"menu bytes").decode()
        doc = DocumentRef("1", "a.pdf", "application/pdf", encoded)
        assert doc.inline_bytes() == b"menu bytes"

    def test_from_dict_accepts_api_field_names(self):
        doc = DocumentRef.from_dict({
            "id": "abc",
            "name": "menu.pdf",
            "type": "application/pdf",
            "url": "s3://bucket/menu.pdf",
        })
        assert doc.id == "abc"
        assert doc.location == "s3://bucket/menu.pdf"
        assert doc.content is None

    def test_from_dict_without_id_does_not_use_name(self):
        payload = {"name": "menu.pdf", "type": "application/pdf", "url": "s3://bucket/menu.pdf"}
        first = DocumentRef.from_dict(payload, 0)
        second = DocumentRef.from_dict(payload, 1)
        assert (first.id, second.id) == ("doc_1", "doc_2")
        assert DocumentRef.from_dict(payload).id != "menu.pdf"
        assert DocumentRef.from_dict(payload).id != DocumentRef.from_dict(payload).id

    def test_from_dict_requires_content_or_location(self):
        with pytest.raises(ValueError, match="no content or location"):
            DocumentRef.from_dict({"name": "menu.pdf", "type": "application/pdf"})


@pytest.mark.unit
class TestComplexity:
    def test_parse(self):
        assert Complexity.parse("HIGH") == Complexity.HIGH
        assert Complexity.parse(" low ") == Complexity.LOW
        assert Complexity.parse("extreme") == Complexity.MEDIUM
        assert Complexity.parse(None) == Complexity.MEDIUM


@pytest.mark.unit
class TestScopeEstimate:
    def test_valid_reply(self):
        estimate = ScopeEstimate.from_dict(
            {
                "estimatedItemCount": 42,
                "menuSections": ["Starters", "Mains"],
                "menuLocation": "Pages 1-2",
                "confidence": 1.7,
            },
            "doc-1",
            "menu.pdf",
        )
        assert estimate.estimated_item_count == 42
        assert estimate.menu_sections == ["Starters", "Mains"]
        assert estimate.confidence == 1.0

    @pytest.mark.parametrize("data", [
        {"menuSections": [], "menuLocation": "Page 1"},
        {"estimatedItemCount": 0, "menuSections": [], "menuLocation": "Page 1"},
        {"estimatedItemCount": 5, "menuLocation": "Page 1"},
        {"estimatedItemCount": 5, "menuSections": [], "menuLocation": "  "},
        {"estimatedItemCount": True, "menuSections": [], "menuLocation": "Page 1"},
    ])
    def test_invalid_reply(self, data):
        with pytest.raises(ValueError):
            ScopeEstimate.from_dict(data, "doc-1", "menu.pdf")


@pytest.mark.unit
class TestCoreLineItem:
    def test_defaults_from_batch(self):
        item = CoreLineItem.from_dict({"name": " Burger ", "price": 8}, "menu.pdf", "Page 1")
        assert item.name == "Burger"
        assert item.base_price == "$8.00"
        assert item.category == "Unknown"
        assert item.source_info.filename == "menu.pdf"
        assert item.source_info.location == "Page 1"

    def test_rejects_empty_name(self):
        with pytest.raises(ValueError):
            CoreLineItem.from_dict({"name": "", "basePrice": "$1.00"}, "menu.pdf")

    def test_to_dict(self):
        item = CoreLineItem.from_dict(
            {
                "name": "Fries",
                "basePrice": "$3.50",
                "category": "Sides",
                "description": "Hand cut",
                "sourceInfo": {"filename": "dinner.pdf", "location": "Page 2"},
            },
            "menu.pdf",
        )
        assert item.to_dict() == {
            "name": "Fries",
            "basePrice": "$3.50",
            "category": "Sides",
            "description": "Hand cut",
            "sourceInfo": {"filename": "dinner.pdf", "location": "Page 2"},
        }


@pytest.mark.unit
class TestModifierGroup:
    def test_drops_invalid_options(self):
        group = ModifierGroup.from_dict({
            "name": "Toppings",
            "type": "ADDON",
            "options": [{"name": "Bacon", "priceAdjustment": 1.5}, {"priceAdjustment": "+$1"}, "junk"],
            "appliesToCategories": ["Burgers"],
        })
        assert group.kind == ModifierKind.ADDON
        assert [option.name for option in group.options] == ["Bacon"]
        assert group.options[0].price_adjustment == "$1.50"

    def test_rejects_unknown_type(self):
        with pytest.raises(ValueError, match="Invalid modifier group type"):
            ModifierGroup.from_dict({"name": "Toppings", "type": "extra", "options": []})
