# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Tier-aware access to the generative model.

Pipeline stages ask for a model *tier* rather than a model id. The oracle maps
the tier to the configured Bedrock model, attaches images, applies the output
budget and counts the call with the run's ``CostAccountant``.
"""

import logging
from typing import Any, Dict, List, Optional

from .bedrock import BedrockClient, extract_text_from_response
from .models import ModelTier
from .reporting.cost import CostAccountant

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are an expert restaurant menu analyst. Reply with JSON only."


def build_bedrock_client(config: Dict[str, Any]) -> BedrockClient:
    """Create a Bedrock client from the ``bedrock`` and ``metrics`` config sections."""
    bedrock_config = config.get("bedrock", {})
    return BedrockClient(
        region=bedrock_config.get("region"),
        max_retries=int(bedrock_config.get("max_retries", 2)),
        initial_backoff=float(bedrock_config.get("initial_backoff", 2)),
        max_backoff=float(bedrock_config.get("max_backoff", 60)),
        read_timeout=float(bedrock_config.get("read_timeout", 300)),
        connect_timeout=float(bedrock_config.get("connect_timeout", 10)),
        metrics_enabled=bool(config.get("metrics", {}).get("enabled", True)),
    )


class ModelOracle:
    """Text and vision generation on the fast or expert model tier."""

    def __init__(self, config: Dict[str, Any], accountant: CostAccountant,
                 client: Optional[BedrockClient] = None):
        models = config.get("models", {})
        self.model_ids = {
            ModelTier.FAST: models.get("fast"),
            ModelTier.EXPERT: models.get("expert"),
        }
        for tier, model_id in self.model_ids.items():
            if not model_id:
                raise ValueError(f"No model configured for the {tier.value} tier")

        self.accountant = accountant
        self.client = client or build_bedrock_client(config)
        self.default_temperature = float(config.get("bedrock", {}).get("temperature", 0.1))
        self.system_prompt = config.get("prompts", {}).get("system") or DEFAULT_SYSTEM_PROMPT

    def generate(
        self,
        tier: ModelTier,
        prompt: str,
        images: Optional[List[bytes]] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        context: str = "Oracle",
    ) -> str:
        """
        Invoke the model for one prompt.

        Every call is counted with the accountant, including calls that raise.

        Args:
            tier: Model tier to use
            prompt: User prompt text
            images: Optional image bytes attached after the prompt
            max_tokens: Output token budget
            temperature: Sampling temperature, defaults to the configured value
            context: Label used in log messages

        Returns:
            The reply text
        """
        content: List[Dict[str, Any]] = [{"text": prompt}]
        if images:
            from . import image

            for image_bytes in images:
                content.append(image.prepare_bedrock_image_attachment(image_bytes))

        try:
            response = self.client.invoke_model(
                model_id=self.model_ids[tier],
                system_prompt=self.system_prompt,
                content=content,
                temperature=self.default_temperature if temperature is None else temperature,
                max_tokens=max_tokens,
                context=context,
            )
        except Exception:
            self.accountant.record_call(tier)
            raise

        self.accountant.record_call(tier, response.get("metering"))
        text = extract_text_from_response(response)
        logger.debug(f"[{context}] {tier.value} tier returned {len(text)} characters")
        return text
