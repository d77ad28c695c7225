# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import logging
import os
from copy import deepcopy
from decimal import Decimal
from typing import Any, Dict, Optional

import boto3
import yaml
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "default_config.yaml")


def deep_merge(default: Dict[str, Any], custom: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two dictionaries, with custom values taking precedence

    Args:
        default: The default configuration dictionary
        custom: The custom configuration dictionary

    Returns:
        Merged configuration dictionary
    """
    result = deepcopy(default)

    for key, value in custom.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = deepcopy(value)

    return result


def _from_dynamodb(obj: Any) -> Any:
    """Convert DynamoDB Decimal values back to int/float."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == obj.to_integral_value() else float(obj)
    if isinstance(obj, dict):
        return {k: _from_dynamodb(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_from_dynamodb(item) for item in obj]
    return obj


def load_yaml_config(path: str) -> Dict[str, Any]:
    """
    Load a configuration dictionary from a YAML file

    Raises:
        ValueError: If the file does not hold a mapping
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


class ConfigurationReader:
    def __init__(self, table_name=None):
        """
        Initialize the configuration reader using the table name from environment variable or parameter

        Args:
            table_name: Optional override for configuration table name
        """
        table_name = table_name or os.environ.get('CONFIGURATION_TABLE_NAME')
        if not table_name:
            raise ValueError("Configuration table name not provided. Either set CONFIGURATION_TABLE_NAME environment variable or provide table_name parameter.")

        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized ConfigurationReader with table: {table_name}")

    def get_configuration(self, config_type: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve a configuration item from DynamoDB

        Args:
            config_type: The configuration type to retrieve ('Default' or 'Custom')

        Returns:
            Configuration dictionary if found, None otherwise
        """
        try:
            response = self.table.get_item(
                Key={
                    'Configuration': config_type
                }
            )
        except ClientError as e:
            logger.error(f"Error retrieving configuration {config_type}: {str(e)}")
            raise

        item = response.get('Item')
        if item is None:
            return None
        item = _from_dynamodb(item)
        item.pop('Configuration', None)
        return item


def get_config(table_name: Optional[str] = None,
               overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Build the effective configuration.

    Layers, lowest precedence first: the packaged defaults, the DynamoDB
    ``Custom`` record (when a configuration table is configured), the YAML file
    named by ``MENU_EXTRACTION_CONFIG_PATH`` and finally ``overrides``.

    Args:
        table_name: Optional override for configuration table name
        overrides: Optional dictionary merged last

    Returns:
        Merged configuration dictionary
    """
    config = load_yaml_config(DEFAULT_CONFIG_PATH)

    if table_name or os.environ.get('CONFIGURATION_TABLE_NAME'):
        custom = ConfigurationReader(table_name).get_configuration('Custom')
        if custom:
            config = deep_merge(config, custom)
            logger.info("Merged Custom configuration from DynamoDB")
        else:
            logger.info("No Custom configuration found, using defaults")

    config_path = os.environ.get('MENU_EXTRACTION_CONFIG_PATH')
    if config_path:
        config = deep_merge(config, load_yaml_config(config_path))
        logger.info(f"Merged configuration file {config_path}")

    if overrides:
        config = deep_merge(config, overrides)

    return config
