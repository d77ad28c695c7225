# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""Concurrent core-item extraction and result aggregation."""

from .aggregator import ResultAggregator, clean_location
from .truncation import detect_truncation
from .worker_pool import TaskQueue, WorkerPool

__all__ = [
    "ResultAggregator",
    "clean_location",
    "detect_truncation",
    "TaskQueue",
    "WorkerPool",
]
