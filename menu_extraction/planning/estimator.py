# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import logging
import math
from typing import Any, Dict, List, Tuple

from ..bedrock import format_prompt
from ..documents import DocumentSampler
from ..models import (
    Complexity,
    DocumentRef,
    ModelTier,
    ScopeEstimate,
    WorkloadEstimate,
)
from ..oracle import ModelOracle
from ..parsing import parse_workload_reply

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITEMS_PER_TASK = 75


def decide_split(estimated_items: int, complexity: Complexity,
                 max_items_per_task: int = DEFAULT_MAX_ITEMS_PER_TASK) -> Tuple[bool, int]:
    """
    Decide whether a document must be split across several tasks.

    Returns:
        Tuple of (should_split, split_count)
    """
    should_split = estimated_items > max_items_per_task or complexity == Complexity.HIGH
    if not should_split:
        return False, 1
    return True, max(1, math.ceil(estimated_items / max_items_per_task))


class WorkloadEstimator:
    """Refines item counts and rates layout complexity for scoped documents."""

    def __init__(self, config: Dict[str, Any], oracle: ModelOracle, sampler: DocumentSampler):
        self.oracle = oracle
        self.sampler = sampler
        planning = config.get("planning", {})
        self.max_items_per_task = int(planning.get("max_items_per_task", DEFAULT_MAX_ITEMS_PER_TASK))
        self.sample_chars = int(planning.get("workload_sample_chars", 2000))
        self.max_tokens = int(planning.get("workload_max_tokens", 200))
        self.fallback_items = int(planning.get("fallback_items", 10))
        self.prompt_template = config.get("prompts", {})["workload"]

    def fallback(self, doc: DocumentRef) -> WorkloadEstimate:
        return WorkloadEstimate(
            document_id=doc.id,
            document_name=doc.name,
            estimated_items=self.fallback_items,
            complexity=Complexity.MEDIUM,
            should_split=False,
            split_count=1,
            is_fallback=True,
        )

    def estimate(self, doc: DocumentRef, scope: ScopeEstimate) -> WorkloadEstimate:
        """
        Ask the fast tier for a refined count and complexity of one document.

        Any failure yields the conservative fallback estimate.
        """
        try:
            images = None
            if doc.is_image:
                images = [self.sampler.image_bytes(doc)]
                content = "The menu image is attached."
            else:
                sample = self.sampler.text_sample(doc, self.sample_chars)
                content = f"TEXT SAMPLE:\n{sample}"

            prompt = format_prompt(
                self.prompt_template,
                {
                    "FILENAME": doc.name,
                    "SCOPE_ESTIMATE": str(scope.estimated_item_count),
                    "CONTENT": content,
                },
            )
            reply = self.oracle.generate(
                ModelTier.FAST,
                prompt,
                images=images,
                max_tokens=self.max_tokens,
                temperature=0.1,
                context="WorkloadEstimate",
            )
            parsed = parse_workload_reply(reply)
        except Exception as e:
            logger.warning(f"Workload estimate failed for {doc.name}, using fallback: {e}")
            return self.fallback(doc)

        estimated_items = parsed["estimated_items"] or scope.estimated_item_count
        complexity = parsed["complexity"]
        should_split, split_count = decide_split(
            estimated_items, complexity, self.max_items_per_task
        )
        logger.info(
            f"Workload for {doc.name}: {estimated_items} items, {complexity.value} complexity, "
            f"split={should_split} ({split_count})"
        )
        return WorkloadEstimate(
            document_id=doc.id,
            document_name=doc.name,
            estimated_items=estimated_items,
            complexity=complexity,
            should_split=should_split,
            split_count=split_count,
        )

    def estimate_all(self, docs: List[DocumentRef],
                     scopes: List[ScopeEstimate]) -> List[WorkloadEstimate]:
        """Estimate every document that has a scope estimate, in input order."""
        scope_by_id = {scope.document_id: scope for scope in scopes}
        return [
            self.estimate(doc, scope_by_id[doc.id])
            for doc in docs
            if doc.id in scope_by_id
        ]
