# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Turns workload estimates into prioritized extraction tasks.

Large or complex documents are split into numbered segments whose item shares
add up to the document's estimate. Every task carries an output token budget
and a retry budget sized to its complexity.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from ..models import (
    BatchKind,
    Complexity,
    DocumentRef,
    ExtractionBatch,
    ExtractionTask,
    WorkloadEstimate,
)

logger = logging.getLogger(__name__)

DEFAULT_PLANNING = {
    "base_tokens": 3000,
    "hard_token_cap": 15000,
    "segment_bonus": 1.2,
    "item_divisor": 25,
    "max_item_multiplier": 3,
    "priority_item_divisor": 10,
    "max_priority_item_weight": 5,
    "complexity_weights": {"low": 1, "medium": 2, "high": 3},
    "complexity_multipliers": {"low": 1.0, "medium": 1.5, "high": 2.5},
    "max_retries": {"default": 3, "high": 5},
}


def segment_label(document_name: str, index: int, count: int) -> str:
    """Location label of segment ``index`` (1-based) of ``count``."""
    return f"{document_name} (Part {index}/{count})"


def split_items(total: int, parts: int) -> List[int]:
    """Split total into parts shares that differ by at most one and sum to total."""
    base, remainder = divmod(total, parts)
    return [base + 1 if i < remainder else base for i in range(parts)]


class TaskBuilder:
    """Builds extraction tasks from workload estimates."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        planning = dict(DEFAULT_PLANNING)
        planning.update((config or {}).get("planning", {}))
        self.base_tokens = planning["base_tokens"]
        self.hard_token_cap = planning["hard_token_cap"]
        self.segment_bonus = planning["segment_bonus"]
        self.item_divisor = planning["item_divisor"]
        self.max_item_multiplier = planning["max_item_multiplier"]
        self.priority_item_divisor = planning["priority_item_divisor"]
        self.max_priority_item_weight = planning["max_priority_item_weight"]
        self.complexity_weights = planning["complexity_weights"]
        self.complexity_multipliers = planning["complexity_multipliers"]
        self.retry_budgets = planning["max_retries"]

    def calculate_priority(self, complexity: Complexity, estimated_items: int) -> float:
        weight = self.complexity_weights.get(complexity.value, 2)
        item_weight = min(estimated_items / self.priority_item_divisor, self.max_priority_item_weight)
        return weight * item_weight

    def calculate_token_limit(self, complexity: Complexity, estimated_items: int,
                              is_segment: bool) -> int:
        multiplier = self.complexity_multipliers.get(complexity.value, 1.5)
        item_multiplier = max(1, min(self.max_item_multiplier, estimated_items / self.item_divisor))
        bonus = self.segment_bonus if is_segment else 1
        dynamic_limit = math.floor(self.base_tokens * multiplier * item_multiplier * bonus)
        return min(dynamic_limit, self.hard_token_cap)

    def max_retries_for(self, complexity: Complexity) -> int:
        if complexity == Complexity.HIGH:
            return int(self.retry_budgets.get("high", 5))
        return int(self.retry_budgets.get("default", 3))

    def build_tasks(self, documents: List[DocumentRef],
                    estimates: List[WorkloadEstimate]) -> List[ExtractionTask]:
        """
        Create tasks for every estimated document.

        Args:
            documents: The run's documents
            estimates: Workload estimates; documents without one get no task

        Returns:
            Tasks sorted by descending priority, ties kept in creation order
        """
        docs_by_id = {doc.id: doc for doc in documents}
        tasks: List[ExtractionTask] = []

        def add_task(batch_kind, doc, estimate, items, label, index=None, count=None):
            number = len(tasks) + 1
            batch = ExtractionBatch(
                batch_id=f"batch_{number}",
                kind=batch_kind,
                documents=[doc],
                estimated_items=items,
                menu_location=label,
                segment_index=index,
                segment_count=count,
            )
            is_segment = batch_kind == BatchKind.DOCUMENT_SEGMENT
            tasks.append(ExtractionTask(
                task_id=f"task_{number}",
                batch=batch,
                priority=self.calculate_priority(estimate.complexity, items),
                max_retries=self.max_retries_for(estimate.complexity),
                token_limit=self.calculate_token_limit(estimate.complexity, items, is_segment),
                complexity=estimate.complexity,
            ))

        for estimate in estimates:
            doc = docs_by_id.get(estimate.document_id)
            if doc is None:
                logger.warning(f"No document for workload estimate {estimate.document_id}")
                continue

            if estimate.should_split and estimate.split_count > 1:
                shares = split_items(estimate.estimated_items, estimate.split_count)
                for i, share in enumerate(shares, start=1):
                    add_task(
                        BatchKind.DOCUMENT_SEGMENT, doc, estimate, share,
                        segment_label(doc.name, i, estimate.split_count),
                        index=i, count=estimate.split_count,
                    )
                logger.info(f"Split {doc.name} into {estimate.split_count} segments: {shares}")
            else:
                add_task(
                    BatchKind.WHOLE_DOCUMENT_GROUP, doc, estimate,
                    estimate.estimated_items, doc.name,
                )

        tasks.sort(key=lambda task: task.priority, reverse=True)
        logger.info(f"Built {len(tasks)} extraction tasks")
        return tasks
