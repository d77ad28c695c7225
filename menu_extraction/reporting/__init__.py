# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""Cost reporting for extraction runs."""

from .cost import (
    CostAccountant,
    calculate_extraction_cost,
    estimate_extraction_cost,
    estimate_token_usage,
    format_cost,
)

__all__ = [
    "CostAccountant",
    "calculate_extraction_cost",
    "estimate_extraction_cost",
    "estimate_token_usage",
    "format_cost",
]
