# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Cost accounting for extraction runs.

``CostAccountant`` counts oracle invocations per model tier and merges the
Bedrock token metering returned with each call. At the end of a run the
counters become a ``CostMetrics`` record, and ``calculate_extraction_cost``
turns that record into an itemized ``CostBreakdown``.
"""

import logging
import math
import threading
from typing import Any, Dict, Optional

from ..models import CostBreakdown, CostMetrics, ModelTier
from ..utils import merge_metering_data

logger = logging.getLogger(__name__)

DEFAULT_PRICING: Dict[str, Any] = {
    "fast": {"input": 0.075, "output": 0.30},
    "expert": {"input": 1.25, "output": 5.00},
    "base": {
        "document": 0.01,
        "image": 0.05,
        "item": 0.001,
        "complex_analysis": 0.02,
    },
    "complex_item_threshold": 20,
    "token_estimates": {
        "input_per_document": 2000,
        "input_per_image": 1000,
        "input_per_fast_call": 1000,
        "input_per_expert_call": 2000,
        "output_per_item": 150,
        "output_per_call": 500,
        "fast_share": 0.7,
    },
}

TOKENS_PER_PRICE_UNIT = 1_000_000


class CostAccountant:
    """Thread-safe tally of oracle calls and token usage, by tier."""

    def __init__(self):
        self._lock = threading.Lock()
        self._calls = {tier: 0 for tier in ModelTier}
        self._metering: Dict[ModelTier, Dict[str, Any]] = {tier: {} for tier in ModelTier}

    def record_call(self, tier: ModelTier, metering: Optional[Dict[str, Any]] = None) -> None:
        """Count one invocation attempt and merge its metering, if any."""
        with self._lock:
            self._calls[tier] += 1
            if metering:
                self._metering[tier] = merge_metering_data(self._metering[tier], metering)

    @property
    def api_calls(self) -> Dict[str, int]:
        with self._lock:
            return {tier.value: count for tier, count in self._calls.items()}

    @property
    def metering(self) -> Dict[str, Any]:
        """All metering merged into one ``{"bedrock/<model>": usage}`` dict."""
        with self._lock:
            merged: Dict[str, Any] = {}
            for tier_metering in self._metering.values():
                merged = merge_metering_data(merged, tier_metering)
            return merged

    def token_usage(self) -> Dict[str, Dict[str, int]]:
        """Input and output tokens per tier, for tiers that reported usage."""
        usage: Dict[str, Dict[str, int]] = {}
        with self._lock:
            for tier, tier_metering in self._metering.items():
                input_tokens = sum(int(m.get("inputTokens", 0)) for m in tier_metering.values())
                output_tokens = sum(int(m.get("outputTokens", 0)) for m in tier_metering.values())
                if input_tokens or output_tokens:
                    usage[tier.value] = {
                        "inputTokens": input_tokens,
                        "outputTokens": output_tokens,
                    }
        return usage

    def build_metrics(
        self,
        document_count: int,
        image_count: int,
        total_items: int,
        processing_time_ms: float,
        has_complex_analysis: bool,
    ) -> CostMetrics:
        return CostMetrics(
            document_count=document_count,
            image_count=image_count,
            total_items=total_items,
            api_calls=self.api_calls,
            processing_time_ms=processing_time_ms,
            has_complex_analysis=has_complex_analysis,
            token_usage=self.token_usage(),
        )


def estimate_token_usage(metrics: CostMetrics, pricing: Optional[Dict[str, Any]] = None) -> Dict[str, int]:
    """
    Heuristic token usage for runs without metering.

    Returns:
        Dictionary with ``inputTokens`` and ``outputTokens`` totals
    """
    estimates = (pricing or DEFAULT_PRICING).get("token_estimates", DEFAULT_PRICING["token_estimates"])
    fast_calls = metrics.api_calls.get("fast", 0)
    expert_calls = metrics.api_calls.get("expert", 0)

    input_tokens = (
        metrics.document_count * estimates["input_per_document"]
        + metrics.image_count * estimates["input_per_image"]
        + fast_calls * estimates["input_per_fast_call"]
        + expert_calls * estimates["input_per_expert_call"]
    )
    output_tokens = (
        metrics.total_items * estimates["output_per_item"]
        + (fast_calls + expert_calls) * estimates["output_per_call"]
    )
    return {"inputTokens": input_tokens, "outputTokens": output_tokens}


def _token_cost(tier_pricing: Dict[str, float], input_tokens: float, output_tokens: float) -> float:
    return (
        input_tokens * tier_pricing["input"] / TOKENS_PER_PRICE_UNIT
        + output_tokens * tier_pricing["output"] / TOKENS_PER_PRICE_UNIT
    )


def calculate_extraction_cost(metrics: CostMetrics,
                              pricing: Optional[Dict[str, Any]] = None) -> CostBreakdown:
    """
    Calculate an itemized cost breakdown for a run.

    Metered token usage is priced per tier when the run reported any;
    otherwise tokens are estimated from the counters and split between the
    fast and expert tiers by ``token_estimates.fast_share``.

    Args:
        metrics: Counters collected during the run
        pricing: Pricing table (the ``pricing`` config section)

    Returns:
        CostBreakdown with the total rounded to 4 decimal places
    """
    pricing = pricing or DEFAULT_PRICING
    base = pricing["base"]

    document_processing = metrics.document_count * base["document"]
    image_processing = metrics.image_count * base["image"]
    item_extraction = metrics.total_items * base["item"]
    complex_analysis = base["complex_analysis"] if metrics.has_complex_analysis else 0.0

    if metrics.token_usage:
        token_source = "metered"
        api_costs = {}
        for tier in ModelTier:
            usage = metrics.token_usage.get(tier.value, {})
            api_costs[tier.value] = _token_cost(
                pricing[tier.value],
                usage.get("inputTokens", 0),
                usage.get("outputTokens", 0),
            )
    else:
        token_source = "estimated"
        tokens = estimate_token_usage(metrics, pricing)
        fast_share = pricing["token_estimates"]["fast_share"]
        api_costs = {
            ModelTier.FAST.value: _token_cost(
                pricing["fast"],
                tokens["inputTokens"] * fast_share,
                tokens["outputTokens"] * fast_share,
            ),
            ModelTier.EXPERT.value: _token_cost(
                pricing["expert"],
                tokens["inputTokens"] * (1 - fast_share),
                tokens["outputTokens"] * (1 - fast_share),
            ),
        }

    total = (
        document_processing
        + image_processing
        + item_extraction
        + sum(api_costs.values())
        + complex_analysis
    )

    return CostBreakdown(
        document_processing=document_processing,
        image_processing=image_processing,
        item_extraction=item_extraction,
        api_calls=api_costs,
        complex_analysis=complex_analysis,
        total=round(total, 4),
        token_source=token_source,
    )


def estimate_extraction_cost(document_count: int, estimated_items: int, has_images: bool = False,
                             pricing: Optional[Dict[str, Any]] = None) -> float:
    """Quick cost estimate before a run starts."""
    pricing = pricing or DEFAULT_PRICING
    metrics = CostMetrics(
        document_count=document_count,
        image_count=document_count if has_images else 0,
        total_items=estimated_items,
        api_calls={
            "fast": math.ceil(document_count / 2),
            "expert": 1 if has_images else 0,
        },
        has_complex_analysis=estimated_items > pricing.get("complex_item_threshold", 20),
    )
    return calculate_extraction_cost(metrics, pricing).total


def format_cost(cost: float) -> str:
    """Format a cost for display."""
    if cost < 0.01:
        return "< $0.01"
    return f"${cost:.2f}"
