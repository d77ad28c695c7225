# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import json
import logging
import threading
from typing import Any, Dict, Optional, Union

import boto3

from ..utils import parse_s3_uri

logger = logging.getLogger(__name__)

# Initialize clients
_s3_client = None
_client_lock = threading.Lock()


def get_s3_client():
    """
    Get or initialize the S3 client

    Returns:
        boto3 S3 client
    """
    global _s3_client
    with _client_lock:
        if _s3_client is None:
            _s3_client = boto3.client('s3')
    return _s3_client


def get_binary_content(s3_uri: str) -> bytes:
    """
    Read binary content from an S3 URI

    Args:
        s3_uri: The S3 URI in format s3://bucket/key

    Returns:
        Binary content from the S3 object
    """
    try:
        bucket, key = parse_s3_uri(s3_uri)
        s3 = get_s3_client()
        response = s3.get_object(Bucket=bucket, Key=key)
        return response['Body'].read()
    except Exception as e:
        logger.error(f"Error reading binary content from {s3_uri}: {e}")
        raise


def write_content(content: Union[str, bytes, Dict[str, Any]],
                  bucket: str, key: str,
                  content_type: Optional[str] = None) -> None:
    """
    Write content to S3

    Args:
        content: The content to write (string, bytes, or dict that will be converted to JSON)
        bucket: The S3 bucket
        key: The S3 key
        content_type: Optional content type for the S3 object
    """
    try:
        s3 = get_s3_client()

        if isinstance(content, dict):
            body = json.dumps(content, default=str)
            if content_type is None:
                content_type = 'application/json'
        elif isinstance(content, str):
            body = content
            if content_type is None:
                content_type = 'text/plain'
        else:
            body = content
            if content_type is None:
                content_type = 'application/octet-stream'

        s3.put_object(
            Bucket=bucket,
            Key=key,
            Body=body,
            ContentType=content_type
        )
        logger.info(f"Successfully wrote to s3://{bucket}/{key}")
    except Exception as e:
        logger.error(f"Error writing to s3://{bucket}/{key}: {e}")
        raise
