# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import logging
import os
import threading
from typing import Dict, List, Optional

import boto3

logger = logging.getLogger(__name__)

# Initialize clients
_cloudwatch_client = None
_client_lock = threading.Lock()


def metrics_enabled() -> bool:
    """Metrics are published unless METRICS_ENABLED is set to false."""
    return os.environ.get('METRICS_ENABLED', 'true').lower() != 'false'


def get_cloudwatch_client():
    """
    Get or initialize the CloudWatch client

    Returns:
        boto3 CloudWatch client
    """
    global _cloudwatch_client
    with _client_lock:
        if _cloudwatch_client is None:
            _cloudwatch_client = boto3.client('cloudwatch')
    return _cloudwatch_client


def put_metric(name: str, value: float, unit: str = 'Count',
               dimensions: Optional[List[Dict[str, str]]] = None,
               namespace: Optional[str] = None) -> None:
    """
    Publish a metric to CloudWatch

    Args:
        name: The name of the metric
        value: The value of the metric
        unit: The unit of the metric
        dimensions: Optional list of dimensions
        namespace: Optional metric namespace, defaults to environment variable
    """
    if not metrics_enabled():
        logger.debug(f"Metrics disabled, skipping {name}: {value}")
        return

    dimensions = dimensions or []
    if namespace is None:
        namespace = os.environ.get('METRIC_NAMESPACE', 'MENUEXTRACT')

    logger.info(f"Publishing metric {name}: {value}")
    try:
        cloudwatch = get_cloudwatch_client()
        cloudwatch.put_metric_data(
            Namespace=namespace,
            MetricData=[{
                'MetricName': name,
                'Value': value,
                'Unit': unit,
                'Dimensions': dimensions
            }]
        )
    except Exception as e:
        logger.error(f"Error publishing metric {name}: {e}")
