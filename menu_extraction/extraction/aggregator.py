# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import logging
import re
from dataclasses import replace
from typing import List, Optional, Tuple

from ..models import CoreLineItem, FailedTask, SourceInfo, TaskResult

logger = logging.getLogger(__name__)

SEGMENT_SUFFIX_PATTERN = re.compile(
    r"(\s*\(Part \d+\s*(?:/|of)\s*\d+\)|\s*-\s*(?:Segment|Section) \d+\s*/\s*\d+)+\s*$",
    re.IGNORECASE,
)


def clean_location(location: Optional[str], filename: str) -> str:
    """Strip trailing segment labels from a location; empty locations become the filename."""
    if not location or not location.strip():
        return filename
    cleaned = SEGMENT_SUFFIX_PATTERN.sub("", location).strip()
    return cleaned or filename


class ResultAggregator:
    """Merges task results into one item list and records the tasks that failed."""

    def __init__(self):
        self.failed_tasks: List[FailedTask] = []

    def aggregate(self, results: List[TaskResult]) -> Tuple[List[CoreLineItem], List[FailedTask]]:
        """
        Concatenate the items of successful results and clean their locations.

        Returns:
            Tuple of (items, failed tasks)
        """
        items: List[CoreLineItem] = []
        failed: List[FailedTask] = []

        for result in results:
            if not result.success:
                failed.append(FailedTask(
                    task_id=result.task_id,
                    menu_location=result.menu_location,
                    document_names=list(result.document_names),
                    error=result.error,
                ))
                logger.warning(
                    f"Task {result.task_id} ({result.menu_location}) produced no items: {result.error}"
                )
                continue
            items.extend(self.clean_item(item) for item in result.items)

        self.failed_tasks = failed
        logger.info(
            f"Aggregated {len(items)} items from {len(results) - len(failed)} tasks, "
            f"{len(failed)} failed"
        )
        return items, failed

    @staticmethod
    def clean_item(item: CoreLineItem) -> CoreLineItem:
        location = clean_location(item.source_info.location, item.source_info.filename)
        if location == item.source_info.location:
            return item
        return replace(item, source_info=SourceInfo(item.source_info.filename, location))
