"""
Bedrock client module for interacting with Amazon Bedrock models.

This module provides a class-based interface for invoking Bedrock models
with built-in throttling retries, per-request timeouts, metrics tracking,
and usage metering in the shape the cost reporting expects.
"""

import copy
import logging
import os
import random
import threading
import time
from typing import Any, Dict, List, Optional, Union

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

# Default retry settings
DEFAULT_MAX_RETRIES = 2
DEFAULT_INITIAL_BACKOFF = 2  # seconds
DEFAULT_MAX_BACKOFF = 60  # seconds

# Default timeouts
DEFAULT_READ_TIMEOUT = 300  # seconds
DEFAULT_CONNECT_TIMEOUT = 10  # seconds

RETRYABLE_ERRORS = [
    'ThrottlingException',
    'ServiceQuotaExceededException',
    'RequestLimitExceeded',
    'TooManyRequestsException',
    'ServiceUnavailableException',
    'ModelErrorException',
]


class BedrockClient:
    """Client for interacting with Amazon Bedrock models."""

    def __init__(
        self,
        region: Optional[str] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
        max_backoff: float = DEFAULT_MAX_BACKOFF,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        metrics_enabled: bool = True
    ):
        """
        Initialize a Bedrock client.

        Args:
            region: AWS region (defaults to AWS_REGION env var or us-west-2)
            max_retries: Maximum number of throttling retries per request
            initial_backoff: Initial backoff time in seconds
            max_backoff: Maximum backoff time in seconds
            read_timeout: Per-request read timeout in seconds
            connect_timeout: Connection timeout in seconds
            metrics_enabled: Whether to publish metrics
        """
        self.region = region or os.environ.get('AWS_REGION', 'us-west-2')
        self.max_retries = max_retries
        self.initial_backoff = initial_backoff
        self.max_backoff = max_backoff
        self.read_timeout = read_timeout
        self.connect_timeout = connect_timeout
        self.metrics_enabled = metrics_enabled
        self._client = None
        self._client_lock = threading.Lock()

    @property
    def client(self):
        """Lazy-loaded Bedrock runtime client, shared across worker threads."""
        with self._client_lock:
            if self._client is None:
                boto_config = Config(
                    read_timeout=self.read_timeout,
                    connect_timeout=self.connect_timeout,
                    retries={'max_attempts': 1, 'mode': 'standard'},
                )
                self._client = boto3.client(
                    'bedrock-runtime', region_name=self.region, config=boto_config
                )
        return self._client

    def __call__(
        self,
        model_id: str,
        system_prompt: Union[str, List[Dict[str, str]]],
        content: List[Dict[str, Any]],
        temperature: Union[float, str] = 0.0,
        top_k: Optional[Union[float, str]] = None,
        max_tokens: Optional[int] = None,
        max_retries: Optional[int] = None,
        context: str = "Unspecified"
    ) -> Dict[str, Any]:
        """Make the instance callable; delegates to invoke_model."""
        return self.invoke_model(
            model_id=model_id,
            system_prompt=system_prompt,
            content=content,
            temperature=temperature,
            top_k=top_k,
            max_tokens=max_tokens,
            max_retries=max_retries,
            context=context
        )

    def invoke_model(
        self,
        model_id: str,
        system_prompt: Union[str, List[Dict[str, str]]],
        content: List[Dict[str, Any]],
        temperature: Union[float, str] = 0.0,
        top_k: Optional[Union[float, str]] = None,
        max_tokens: Optional[int] = None,
        max_retries: Optional[int] = None,
        context: str = "Unspecified"
    ) -> Dict[str, Any]:
        """
        Invoke a Bedrock model with retry logic.

        Args:
            model_id: The Bedrock model ID (e.g., 'us.amazon.nova-lite-v1:0')
            system_prompt: The system prompt as string or list of content objects
            content: The content for the user message (can include text and images)
            temperature: The temperature parameter for model inference (float or string)
            top_k: Optional top_k parameter for Anthropic models (float or string)
            max_tokens: Optional cap on output tokens
            max_retries: Optional override for the instance's max_retries setting
            context: Label of the calling phase, used in log messages

        Returns:
            Bedrock response object with metering information
        """
        # Track total requests
        self._put_metric('BedrockRequestsTotal', 1)

        # Use instance max_retries if not overridden
        effective_max_retries = max_retries if max_retries is not None else self.max_retries

        # Format system prompt if needed
        if isinstance(system_prompt, str):
            formatted_system_prompt = [{"text": system_prompt}]
        else:
            formatted_system_prompt = system_prompt

        messages = [{"role": "user", "content": content}]

        # Convert temperature to float if it's a string
        if isinstance(temperature, str):
            try:
                temperature = float(temperature)
            except ValueError:
                logger.warning(f"Failed to convert temperature value '{temperature}' to float. Using default 0.0")
                temperature = 0.0

        inference_config: Dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            inference_config["maxTokens"] = int(max_tokens)

        # Add additional model fields if needed
        additional_model_fields = None
        if "anthropic" in model_id.lower() and top_k is not None:
            try:
                additional_model_fields = {"top_k": float(top_k)}
            except (TypeError, ValueError):
                logger.warning(f"Failed to convert top_k value '{top_k}' to float. Not using top_k.")

        converse_params = {
            "modelId": model_id,
            "messages": messages,
            "system": formatted_system_prompt,
            "inferenceConfig": inference_config,
        }
        if additional_model_fields:
            converse_params["additionalModelRequestFields"] = additional_model_fields

        # Add guardrail config if available
        guardrail_config = self.get_guardrail_config()
        if guardrail_config:
            converse_params["guardrailConfig"] = guardrail_config

        return self._invoke_with_retry(
            converse_params=converse_params,
            retry_count=0,
            max_retries=effective_max_retries,
            request_start_time=time.time(),
            context=context
        )

    def _invoke_with_retry(
        self,
        converse_params: Dict[str, Any],
        retry_count: int,
        max_retries: int,
        request_start_time: float,
        context: str
    ) -> Dict[str, Any]:
        """
        Recursive helper method to handle throttling retries for Bedrock invocation.

        Raises:
            ClientError: If the error is not retryable or max retries are exceeded
        """
        try:
            sanitized_messages = self._sanitize_messages_for_logging(converse_params["messages"])

            logger.info(f"[{context}] Bedrock request attempt {retry_count + 1}/{max_retries + 1}")
            logger.debug(f"  - model: {converse_params['modelId']}")
            logger.debug(f"  - inferenceConfig: {converse_params['inferenceConfig']}")
            logger.debug(f"  - messages: {sanitized_messages}")

            attempt_start_time = time.time()
            response = self.client.converse(**converse_params)
            duration = time.time() - attempt_start_time

            sanitized_response = self._sanitize_response_for_logging(response)
            logger.debug(f"[{context}] Bedrock request successful after {retry_count + 1} attempts. Duration: {duration:.2f}s")
            logger.debug(f"Response: {sanitized_response}")

            self._put_metric('BedrockRequestsSucceeded', 1)
            self._put_metric('BedrockRequestLatency', duration * 1000, 'Milliseconds')
            if retry_count > 0:
                self._put_metric('BedrockRetrySuccess', 1)

            usage = response.get('usage', {})
            if usage:
                self._put_metric('InputTokens', usage.get('inputTokens', 0))
                self._put_metric('OutputTokens', usage.get('outputTokens', 0))
                self._put_metric('TotalTokens', usage.get('totalTokens', 0))

            total_duration = time.time() - request_start_time
            self._put_metric('BedrockTotalLatency', total_duration * 1000, 'Milliseconds')

            return {
                "response": response,
                "metering": {
                    f"bedrock/{converse_params['modelId']}": {
                        **usage
                    }
                }
            }

        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']

            if error_code not in RETRYABLE_ERRORS:
                logger.error(f"[{context}] Non-retryable Bedrock error: {error_code} - {error_message}")
                self._put_metric('BedrockRequestsFailed', 1)
                self._put_metric('BedrockNonRetryableErrors', 1)
                raise

            self._put_metric('BedrockThrottles', 1)
            if retry_count >= max_retries:
                logger.error(f"[{context}] Max retries ({max_retries}) exceeded. Last error: {error_message}")
                self._put_metric('BedrockRequestsFailed', 1)
                self._put_metric('BedrockMaxRetriesExceeded', 1)
                raise

            backoff = self._calculate_backoff(retry_count)
            logger.warning(f"[{context}] Bedrock throttling occurred (attempt {retry_count + 1}/{max_retries + 1}). "
                           f"Error: {error_message}. "
                           f"Backing off for {backoff:.2f}s")
            time.sleep(backoff)

            return self._invoke_with_retry(
                converse_params=converse_params,
                retry_count=retry_count + 1,
                max_retries=max_retries,
                request_start_time=request_start_time,
                context=context
            )

        except Exception as e:
            logger.error(f"[{context}] Unexpected error invoking Bedrock: {str(e)}")
            self._put_metric('BedrockRequestsFailed', 1)
            self._put_metric('BedrockUnexpectedErrors', 1)
            raise

    def get_guardrail_config(self) -> Optional[Dict[str, str]]:
        """
        Get guardrail configuration from environment if available.

        Returns:
            Optional guardrail configuration dict with id and version
        """
        guardrail_env = os.environ.get("GUARDRAIL_ID_AND_VERSION", "")
        if not guardrail_env:
            return None

        try:
            guardrail_id, guardrail_version = guardrail_env.split(":")
            if guardrail_id and guardrail_version:
                return {
                    "guardrailIdentifier": guardrail_id,
                    "guardrailVersion": guardrail_version,
                    "trace": "enabled"
                }
        except ValueError:
            logger.warning(f"Invalid GUARDRAIL_ID_AND_VERSION format: {guardrail_env}. Expected format: 'id:version'")

        return None

    def extract_text_from_response(self, response: Dict[str, Any]) -> str:
        """
        Extract text from a Bedrock response.

        Args:
            response: Bedrock response object, with or without the metering wrapper

        Returns:
            Concatenated text content of the reply
        """
        response_obj = response.get("response", response)
        content = response_obj.get('output', {}).get('message', {}).get('content', [])
        return "".join(item.get("text", "") for item in content if isinstance(item, dict))

    def format_prompt(
        self,
        prompt_template: str,
        substitutions: Dict[str, str],
        required_placeholders: List[str] = None
    ) -> str:
        """
        Prepare prompt from template by replacing placeholders with values.

        Args:
            prompt_template: The prompt template with placeholders in {PLACEHOLDER} format
            substitutions: Dictionary of placeholder values
            required_placeholders: List of placeholder names that must be present in the template

        Returns:
            String with placeholders replaced by values

        Raises:
            ValueError: If a required placeholder is missing from the template
        """
        if required_placeholders:
            missing_placeholders = [p for p in required_placeholders if f"{{{p}}}" not in prompt_template]
            if missing_placeholders:
                raise ValueError(f"Prompt template must contain the following placeholders: {', '.join([f'{{{p}}}' for p in missing_placeholders])}")

        # Escape literal percent signs, then convert {PLACEHOLDER} to %(PLACEHOLDER)s
        prompt_template = prompt_template.replace("%", "%%")
        for key in substitutions:
            placeholder = f"{{{key}}}"
            if placeholder in prompt_template:
                prompt_template = prompt_template.replace(placeholder, f"%({key})s")

        # Apply substitutions using % operator which is safer than .format()
        return prompt_template % substitutions

    def _calculate_backoff(self, retry_count: int) -> float:
        """
        Calculate exponential backoff time with jitter.

        Args:
            retry_count: Current retry attempt (0-based)

        Returns:
            Backoff time in seconds
        """
        backoff_seconds = min(
            self.max_backoff,
            self.initial_backoff * (2 ** retry_count)
        )
        return backoff_seconds + random.random()

    def _put_metric(self, metric_name: str, value: Union[int, float], unit: str = 'Count'):
        """
        Publish a metric if metrics are enabled.

        Args:
            metric_name: Name of the metric
            value: Metric value
            unit: Metric unit (default: Count)
        """
        if self.metrics_enabled:
            try:
                from ..metrics import put_metric
                put_metric(metric_name, value, unit)
            except Exception as e:
                logger.warning(f"Failed to publish metric {metric_name}: {str(e)}")

    def _sanitize_messages_for_logging(self, messages: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Create a copy of messages with image content replaced for logging."""
        sanitized = copy.deepcopy(messages)

        for message in sanitized:
            if 'content' in message and isinstance(message['content'], list):
                for content_item in message['content']:
                    if isinstance(content_item, dict) and 'image' in content_item:
                        content_item['image'] = '[image_data]'
                    elif isinstance(content_item, dict) and 'text' in content_item:
                        text = content_item['text']
                        if isinstance(text, str) and len(text) > 500:
                            content_item['text'] = text[:500] + '... [truncated]'

        return sanitized

    def _sanitize_response_for_logging(self, response: Dict[str, Any]) -> Dict[str, Any]:
        """Create a sanitized copy of the response suitable for logging."""
        sanitized = copy.deepcopy(response)

        message = sanitized.get('output', {}).get('message', {})
        content = message.get('content')
        if isinstance(content, list):
            for item in content:
                if isinstance(item, dict) and isinstance(item.get('text'), str) and len(item['text']) > 500:
                    item['text'] = item['text'][:500] + '... [truncated]'

        return sanitized


# Create a default client instance
default_client = BedrockClient()
