"""Bedrock integration module for the menu extraction package."""

from .client import BedrockClient, default_client

# Export the public API
__all__ = [
    "BedrockClient",
    "default_client",
    "extract_text_from_response",
    "format_prompt",
]

# Re-export key functions from the default client
extract_text_from_response = default_client.extract_text_from_response
format_prompt = default_client.format_prompt
