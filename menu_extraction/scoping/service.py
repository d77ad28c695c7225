# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Document scoping (phase 1).

Each document gets one cheap fast-tier call over a small content sample to
estimate how many menu items it holds and how the menu is laid out. Documents
that cannot be sampled or whose reply is unusable are skipped.
"""

import logging
from typing import Any, Dict, List, Optional

from ..bedrock import format_prompt
from ..documents import DocumentSampler
from ..exceptions import MenuExtractionError
from ..models import DocumentRef, MediaKind, ModelTier, ScopeEstimate, ScopingResult
from ..oracle import ModelOracle
from ..parsing import parse_scope_estimate

logger = logging.getLogger(__name__)

LARGE_SCALE_PARALLEL = "large_scale_parallel"
MEDIUM_BATCH_PARALLEL = "medium_batch_parallel"
SMALL_BATCH_SEQUENTIAL = "small_batch_sequential"


def choose_processing_strategy(total_items: int, large_threshold: int = 200,
                               medium_threshold: int = 50) -> str:
    if total_items > large_threshold:
        return LARGE_SCALE_PARALLEL
    if total_items > medium_threshold:
        return MEDIUM_BATCH_PARALLEL
    return SMALL_BATCH_SEQUENTIAL


class ScopingService:
    """Estimates item counts and menu structure per document."""

    def __init__(self, config: Dict[str, Any], oracle: ModelOracle, sampler: DocumentSampler):
        self.config = config
        self.oracle = oracle
        self.sampler = sampler
        scoping = config.get("scoping", {})
        self.sample_chars = int(scoping.get("sample_chars", 2000))
        self.max_tokens_text = int(scoping.get("max_tokens_text", 1000))
        self.max_tokens_image = int(scoping.get("max_tokens_image", 500))
        self.large_threshold = int(scoping.get("large_scale_threshold", 200))
        self.medium_threshold = int(scoping.get("medium_batch_threshold", 50))
        self.prompts = config.get("prompts", {})

    def analyze_document(self, doc: DocumentRef) -> Optional[ScopeEstimate]:
        """
        Estimate one document's menu structure.

        Returns:
            ScopeEstimate, or None when the document is unsupported, cannot be
            sampled, or the model reply is unusable
        """
        kind = doc.media_kind
        if kind is None:
            logger.warning(f"Skipping {doc.name}: unsupported media type {doc.media_type}")
            return None

        try:
            if kind == MediaKind.IMAGE:
                image_bytes = self.sampler.image_bytes(doc)
                prompt = format_prompt(
                    self.prompts["scoping_image"], {"FILENAME": doc.name}
                )
                reply = self.oracle.generate(
                    ModelTier.FAST,
                    prompt,
                    images=[image_bytes],
                    max_tokens=self.max_tokens_image,
                    temperature=0.1,
                    context="Scoping",
                )
            else:
                sample = self.sampler.text_sample(doc, self.sample_chars)
                if not sample.strip():
                    logger.warning(f"Skipping {doc.name}: no extractable text")
                    return None
                prompt = format_prompt(
                    self.prompts["scoping_text"],
                    {
                        "MEDIA_KIND": "PDF" if kind == MediaKind.PDF else "spreadsheet",
                        "FILENAME": doc.name,
                        "SAMPLE": sample,
                    },
                )
                reply = self.oracle.generate(
                    ModelTier.FAST,
                    prompt,
                    max_tokens=self.max_tokens_text,
                    temperature=0.1,
                    context="Scoping",
                )
            estimate = parse_scope_estimate(reply, doc.id, doc.name)
        except MenuExtractionError as e:
            logger.warning(f"Scoping failed for {doc.name}: {e}")
            return None
        except Exception as e:
            logger.error(f"Scoping call failed for {doc.name}: {e}")
            return None

        logger.info(
            f"Scoped {doc.name}: ~{estimate.estimated_item_count} items in "
            f"{len(estimate.menu_sections)} sections ({estimate.menu_location})"
        )
        return estimate

    def identify_and_scope(self, docs: List[DocumentRef]) -> ScopingResult:
        """Scope every document and choose a processing strategy for the run."""
        result = ScopingResult()
        for doc in docs:
            estimate = self.analyze_document(doc)
            if estimate is None:
                result.skipped_documents.append(doc.name)
                continue
            result.menu_indexes.append(estimate)

        result.total_estimated_items = sum(
            index.estimated_item_count for index in result.menu_indexes
        )
        result.processing_strategy = choose_processing_strategy(
            result.total_estimated_items, self.large_threshold, self.medium_threshold
        )
        logger.info(
            f"Scoping complete: {len(result.menu_indexes)}/{len(docs)} documents, "
            f"~{result.total_estimated_items} items, strategy {result.processing_strategy}"
        )
        return result
