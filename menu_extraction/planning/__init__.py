# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""Workload estimation and task planning."""

from .estimator import WorkloadEstimator, decide_split
from .task_builder import TaskBuilder, segment_label, split_items

__all__ = [
    "WorkloadEstimator",
    "decide_split",
    "TaskBuilder",
    "segment_label",
    "split_items",
]
