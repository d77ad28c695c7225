# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Concurrent execution of extraction tasks.

A fixed number of worker threads pull tasks from a shared queue in priority
order. Each task is retried with capped exponential backoff until the model
returns a complete, parseable and plausibly sized item list, or its retry
budget runs out. A failed task never stops the other workers.
"""

import concurrent.futures
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..bedrock import format_prompt
from ..documents import DocumentSampler
from ..exceptions import LowYieldError, TaskExhaustedError, TruncatedResponseError
from ..models import ExtractionTask, ModelTier, TaskResult
from ..oracle import ModelOracle
from ..parsing import parse_core_items
from ..utils import calculate_backoff
from .truncation import detect_truncation

logger = logging.getLogger(__name__)

# Below this much text, content from image-only batches is treated as metadata
MIN_REAL_TEXT_CHARS = 200


class TaskQueue:
    """Thread-safe cursor over a fixed, ordered list of tasks."""

    def __init__(self, tasks: List[ExtractionTask]):
        self._tasks = list(tasks)
        self._index = 0
        self._lock = threading.Lock()

    def next(self) -> Optional[ExtractionTask]:
        with self._lock:
            if self._index >= len(self._tasks):
                return None
            task = self._tasks[self._index]
            self._index += 1
            return task

    def __len__(self):
        return len(self._tasks)


class WorkerPool:
    """Runs extraction tasks on a bounded thread pool with per-task retries."""

    def __init__(self, config: Dict[str, Any], oracle: ModelOracle, sampler: DocumentSampler,
                 sleep: Callable[[float], None] = time.sleep):
        extraction = config.get("extraction", {})
        self.concurrency = max(1, int(extraction.get("concurrency", 4)))
        self.text_chars = int(extraction.get("text_chars", 30000))
        self.initial_backoff = float(extraction.get("initial_backoff", 1))
        self.max_backoff = float(extraction.get("max_backoff", 30))
        self.low_yield_ratio = float(extraction.get("low_yield_ratio", 0.3))
        self.low_yield_min_estimate = int(extraction.get("low_yield_min_estimate", 10))
        self.prompts = config.get("prompts", {})
        self.oracle = oracle
        self.sampler = sampler
        self._sleep = sleep

        self._in_flight = 0
        self.max_in_flight = 0
        self._stats_lock = threading.Lock()

    def run(self, tasks: List[ExtractionTask]) -> List[TaskResult]:
        """
        Execute all tasks.

        Args:
            tasks: Tasks in dispatch order (highest priority first)

        Returns:
            One TaskResult per task, in dispatch order
        """
        if not tasks:
            return []

        queue = TaskQueue(tasks)
        results: Dict[str, TaskResult] = {}
        results_lock = threading.Lock()
        worker_count = min(self.concurrency, len(tasks))
        self.max_in_flight = 0
        logger.info(f"Processing {len(tasks)} tasks with {worker_count} workers")

        def worker(worker_id: int) -> None:
            while True:
                task = queue.next()
                if task is None:
                    return
                logger.info(f"Worker {worker_id} processing {task.task_id} ({task.batch.menu_location})")
                result = self.process_task(task)
                with results_lock:
                    results[task.task_id] = result

        with concurrent.futures.ThreadPoolExecutor(max_workers=worker_count) as executor:
            futures = [executor.submit(worker, i + 1) for i in range(worker_count)]
            for future in concurrent.futures.as_completed(futures):
                try:
                    future.result()
                except Exception as e:
                    logger.error(f"Extraction worker stopped unexpectedly: {e}")

        ordered = []
        for task in tasks:
            result = results.get(task.task_id)
            if result is None:
                result = TaskResult(
                    task_id=task.task_id,
                    success=False,
                    error="Task was not processed",
                    menu_location=task.batch.menu_location,
                    document_names=[doc.name for doc in task.batch.documents],
                )
            ordered.append(result)

        succeeded = sum(1 for result in ordered if result.success)
        logger.info(
            f"Worker pool finished: {succeeded}/{len(ordered)} tasks succeeded, "
            f"max in flight {self.max_in_flight}"
        )
        return ordered

    def _enter(self) -> None:
        with self._stats_lock:
            self._in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self._in_flight)

    def _leave(self) -> None:
        with self._stats_lock:
            self._in_flight -= 1

    def process_task(self, task: ExtractionTask) -> TaskResult:
        """
        Run one task until it succeeds or exhausts its retry budget.

        Truncated, malformed or low-yield replies and oracle errors all count
        as failed attempts.
        """
        self._enter()
        start_time = time.time()
        batch = task.batch
        document_names = [doc.name for doc in batch.documents]
        default_filename = document_names[0] if document_names else ""
        total_attempts = 1 + task.max_retries
        api_calls = 0
        last_error: Optional[str] = None
        context: Optional[Tuple[str, List[bytes]]] = None

        try:
            for attempt in range(total_attempts):
                task.attempts = attempt + 1
                try:
                    if context is None:
                        context = self.build_batch_context(task)
                    text_content, images = context
                    prompt = self.build_core_extraction_prompt(task, text_content, bool(images))

                    api_calls += 1
                    reply = self.oracle.generate(
                        ModelTier.FAST,
                        prompt,
                        images=images or None,
                        max_tokens=task.token_limit,
                        context=task.task_id,
                    )

                    warnings = detect_truncation(reply)
                    if warnings:
                        raise TruncatedResponseError(warnings)

                    items = parse_core_items(reply, default_filename, batch.menu_location)

                    estimated = batch.estimated_items
                    if estimated > self.low_yield_min_estimate and len(items) < self.low_yield_ratio * estimated:
                        raise LowYieldError(len(items), estimated)

                    logger.info(f"{task.task_id}: {len(items)} items extracted on attempt {attempt + 1}")
                    return TaskResult(
                        task_id=task.task_id,
                        items=items,
                        api_calls=api_calls,
                        retry_count=attempt,
                        processing_time_ms=(time.time() - start_time) * 1000,
                        success=True,
                        menu_location=batch.menu_location,
                        document_names=document_names,
                    )
                except Exception as e:
                    last_error = str(e)
                    if attempt + 1 < total_attempts:
                        backoff = calculate_backoff(attempt, self.initial_backoff, self.max_backoff)
                        logger.warning(
                            f"{task.task_id} attempt {attempt + 1}/{total_attempts} failed: {e}. "
                            f"Retrying in {backoff:.2f}s"
                        )
                        self._sleep(backoff)
                    else:
                        logger.warning(f"{task.task_id} attempt {attempt + 1}/{total_attempts} failed: {e}")

            exhausted = TaskExhaustedError(task.task_id, total_attempts, last_error)
            logger.error(str(exhausted))
            return TaskResult(
                task_id=task.task_id,
                api_calls=api_calls,
                retry_count=total_attempts - 1,
                processing_time_ms=(time.time() - start_time) * 1000,
                success=False,
                error=last_error,
                menu_location=batch.menu_location,
                document_names=document_names,
            )
        finally:
            self._leave()

    def build_batch_context(self, task: ExtractionTask) -> Tuple[str, List[bytes]]:
        """
        Gather text and images for a task's documents.

        Returns:
            Tuple of (text content, list of image bytes)
        """
        text_parts = []
        images = []
        for doc in task.batch.documents:
            if doc.is_image:
                images.append(self.sampler.image_bytes(doc))
                text_parts.append(f"Image document: {doc.name}")
            else:
                text = self.sampler.text_sample(doc, self.text_chars, limit_spreadsheet=False)
                text_parts.append(f"=== {doc.name} ===\n{text}")
        return "\n\n".join(text_parts), images

    def build_core_extraction_prompt(self, task: ExtractionTask, text_content: str,
                                     has_images: bool) -> str:
        batch = task.batch
        if batch.is_segment:
            instruction = format_prompt(
                self.prompts["segment_instruction"],
                {
                    "SEGMENT_LABEL": batch.menu_location or "",
                    "ESTIMATED_ITEMS": str(batch.estimated_items),
                },
            )
        else:
            instruction = self.prompts["full_instruction"]

        has_real_text = len(text_content.strip()) > MIN_REAL_TEXT_CHARS
        if has_images and has_real_text:
            source_instructions = (
                "You have BOTH text content from PDFs or spreadsheets AND attached menu images. "
                "Extract items from every source and combine the results."
            )
            content = f"Text content from PDFs and spreadsheets:\n{text_content}"
        elif has_images:
            source_instructions = (
                "The menu content is in the ATTACHED IMAGE(S). Read the images carefully; "
                "the document information below is only metadata."
            )
            content = f"Document information:\n{text_content}"
        else:
            source_instructions = "You have text content from documents to analyze."
            content = f"Text content from PDFs and spreadsheets:\n{text_content}"

        return format_prompt(
            self.prompts["core_extraction"],
            {
                "INSTRUCTION": instruction,
                "SOURCE_INSTRUCTIONS": source_instructions,
                "CONTENT": content,
            },
        )
