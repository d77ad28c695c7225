# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import pytest

from menu_extraction.extraction import ResultAggregator, clean_location
from menu_extraction.models import CoreLineItem, SourceInfo, TaskResult


def _item(name, location, filename="dinner.pdf"):
    return CoreLineItem(
        name=name,
        base_price="$9.00",
        category="Mains",
        source_info=SourceInfo(filename, location),
    )


@pytest.mark.unit
class TestCleanLocation:
    @pytest.mark.parametrize("location,expected", [
        ("Page 2 - Entrees (Part 2/3)", "Page 2 - Entrees"),
        ("Page 2 (Part 2 of 3)", "Page 2"),
        ("Drinks - Segment 1/4", "Drinks"),
        ("Drinks - Section 2 / 4", "Drinks"),
        ("Desserts (part 1/2) (Part 1/2)", "Desserts"),
        ("Page 3", "Page 3"),
        ("Lunch Part 2", "Lunch Part 2"),
    ])
    def test_strips_segment_suffixes(self, location, expected):
        assert clean_location(location, "dinner.pdf") == expected

    @pytest.mark.parametrize("location", [None, "", "   ", "(Part 1/3)"])
    def test_empty_location_becomes_filename(self, location):
        assert clean_location(location, "dinner.pdf") == "dinner.pdf"

    def test_idempotent(self):
        once = clean_location("Page 1 (Part 1/2)", "dinner.pdf")
        assert clean_location(once, "dinner.pdf") == once


@pytest.mark.unit
class TestResultAggregator:
    def test_concatenates_successful_results_in_order(self):
        results = [
            TaskResult("task_1", items=[_item("Soup", "Page 1 (Part 1/2)")], success=True),
            TaskResult("task_2", items=[_item("Steak", None), _item("Cake", "Page 4")], success=True),
        ]

        items, failed = ResultAggregator().aggregate(results)

        assert [item.name for item in items] == ["Soup", "Steak", "Cake"]
        assert [item.source_info.location for item in items] == ["Page 1", "dinner.pdf", "Page 4"]
        assert failed == []

    def test_records_failed_tasks(self):
        aggregator = ResultAggregator()
        results = [
            TaskResult("task_1", items=[_item("Soup", "Page 1")], success=True),
            TaskResult(
                "task_2",
                success=False,
                error="Response truncated",
                menu_location="board.jpg (Part 2/3)",
                document_names=["board.jpg"],
            ),
        ]

        items, failed = aggregator.aggregate(results)

        assert len(items) == 1
        assert len(failed) == 1
        assert failed[0].task_id == "task_2"
        assert failed[0].menu_location == "board.jpg (Part 2/3)"
        assert failed[0].document_names == ["board.jpg"]
        assert failed[0].error == "Response truncated"
        assert aggregator.failed_tasks == failed

    def test_clean_items_are_kept_as_is(self):
        item = _item("Soup", "Page 1")
        assert ResultAggregator.clean_item(item) is item

    def test_aggregating_twice_is_stable(self):
        results = [TaskResult("task_1", items=[_item("Soup", "Page 1 (Part 1/2)")], success=True)]
        items, _ = ResultAggregator().aggregate(results)
        again, _ = ResultAggregator().aggregate([TaskResult("task_1", items=items, success=True)])
        assert again == items
