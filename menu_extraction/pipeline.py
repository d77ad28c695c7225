# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Optimized multi-phase menu extraction.

Phase 1 scopes every document with a cheap model call. Phase 2 refines the
workload, splits it into bounded tasks and runs them on a worker pool, then
merges the partial results. Phase 3 enriches the merged items with modifiers
and sizes and normalizes the catalog. A cost analysis of all model calls is
attached to the result.
"""

import logging
import time
from collections import Counter
from typing import Any, Callable, Dict, List, Optional, Union

from . import metrics
from .bedrock import BedrockClient
from .config import deep_merge, get_config
from .documents import DocumentFetcher, DocumentSampler
from .enrichment import EnrichmentService
from .extraction import ResultAggregator, WorkerPool
from .models import (
    CostAnalysis,
    DocumentRef,
    EnrichmentResult,
    ExtractionPhaseResult,
    OptimizedExtractionResult,
)
from .oracle import ModelOracle, build_bedrock_client
from .planning import TaskBuilder, WorkloadEstimator
from .reporting.cost import (
    DEFAULT_PRICING,
    CostAccountant,
    calculate_extraction_cost,
    format_cost,
)
from .scoping import ScopingService

logger = logging.getLogger(__name__)


class OptimizedExtractionPipeline:
    """Runs the scoping, extraction and enrichment phases for a batch of documents."""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        client: Optional[BedrockClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            config: Full configuration; defaults to ``get_config()``
            client: Bedrock client shared by all runs; built from config when omitted
            sleep: Backoff sleep used between task retries
        """
        self.config = config if config is not None else get_config()
        self.client = client or build_bedrock_client(self.config)
        self.pricing = deep_merge(DEFAULT_PRICING, self.config.get("pricing", {}))
        self.metrics_enabled = bool(self.config.get("metrics", {}).get("enabled", True))
        self._sleep = sleep

    def process_documents(
        self, documents: List[Union[DocumentRef, Dict[str, Any]]]
    ) -> OptimizedExtractionResult:
        """
        Extract a menu catalog from a batch of documents.

        Args:
            documents: DocumentRef objects or dicts accepted by DocumentRef.from_dict

        Returns:
            OptimizedExtractionResult with per-phase results and the cost analysis

        Raises:
            ValueError: If a document dict is invalid or two documents share an id
        """
        docs = [
            d if isinstance(d, DocumentRef) else DocumentRef.from_dict(d, position)
            for position, d in enumerate(documents)
        ]
        id_counts = Counter(doc.id for doc in docs)
        duplicate_ids = sorted(doc_id for doc_id, count in id_counts.items() if count > 1)
        if duplicate_ids:
            raise ValueError(f"Duplicate document ids: {duplicate_ids}")
        start_time = time.time()
        logger.info(f"Starting optimized extraction for {len(docs)} documents")

        accountant = CostAccountant()
        oracle = ModelOracle(self.config, accountant, client=self.client)
        sampler = DocumentSampler(DocumentFetcher(self.config), self.config)

        # Phase 1: scoping
        scoping = ScopingService(self.config, oracle, sampler).identify_and_scope(docs)
        scoped_ids = {index.document_id for index in scoping.menu_indexes}
        scoped_docs = [doc for doc in docs if doc.id in scoped_ids]

        # Phase 2: planning and extraction
        estimates = WorkloadEstimator(self.config, oracle, sampler).estimate_all(
            scoped_docs, scoping.menu_indexes
        )
        tasks = TaskBuilder(self.config).build_tasks(scoped_docs, estimates)
        pool = WorkerPool(self.config, oracle, sampler, sleep=self._sleep)
        task_results = pool.run(tasks)
        core_items, failed_tasks = ResultAggregator().aggregate(task_results)
        phase2 = ExtractionPhaseResult(
            workload_estimates=estimates,
            tasks=tasks,
            task_results=task_results,
            core_items=core_items,
            failed_tasks=failed_tasks,
            max_in_flight=pool.max_in_flight,
        )
        logger.info(f"Phase 2 complete: {len(core_items)} core items from {len(tasks)} tasks")

        # Phase 3: enrichment
        if core_items:
            phase3 = EnrichmentService(self.config, oracle, sampler).enrich(core_items, scoped_docs)
        else:
            logger.warning("No core items extracted, skipping enrichment")
            phase3 = EnrichmentResult()

        # Cost analysis
        total_items = len(phase3.enriched_items)
        cost_metrics = accountant.build_metrics(
            document_count=len(docs),
            image_count=sum(1 for doc in docs if doc.is_image),
            total_items=total_items,
            processing_time_ms=(time.time() - start_time) * 1000,
            has_complex_analysis=(
                total_items > self.pricing.get("complex_item_threshold", 20)
                or bool(phase3.global_modifiers)
            ),
        )
        breakdown = calculate_extraction_cost(cost_metrics, self.pricing)
        cost_analysis = CostAnalysis(
            metrics=cost_metrics,
            breakdown=breakdown,
            formatted_total=format_cost(breakdown.total),
        )

        self._publish_metrics(len(docs), total_items, len(failed_tasks))
        logger.info(
            f"Extraction complete: {total_items} items, api calls {cost_metrics.api_calls}, "
            f"estimated cost {cost_analysis.formatted_total}"
        )

        return OptimizedExtractionResult(
            phase1=scoping,
            phase2=phase2,
            phase3=phase3,
            cost_analysis=cost_analysis,
        )

    def _publish_metrics(self, document_count: int, item_count: int, failed_count: int) -> None:
        if not self.metrics_enabled:
            return
        metrics.put_metric('InputDocuments', document_count)
        metrics.put_metric('ExtractedMenuItems', item_count)
        metrics.put_metric('FailedExtractionTasks', failed_count)
