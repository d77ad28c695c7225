# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

# Use true lazy loading for all submodules
__version__ = "0.1.0"

# Cache for lazy-loaded submodules
_submodules = {}

_SUBMODULES = [
    "bedrock",
    "s3",
    "metrics",
    "image",
    "utils",
    "config",
    "models",
    "exceptions",
    "oracle",
    "parsing",
    "documents",
    "scoping",
    "planning",
    "extraction",
    "enrichment",
    "reporting",
    "pipeline",
]


def __getattr__(name):
    """Lazy load submodules only when accessed"""
    if name in _SUBMODULES:
        if name not in _submodules:
            _submodules[name] = __import__(f"menu_extraction.{name}", fromlist=[name])
        return _submodules[name]

    # Handle specific imports from the pipeline and config modules
    if name in ["OptimizedExtractionPipeline", "OptimizedExtractionResult"]:
        return getattr(__getattr__("pipeline"), name)
    if name == "get_config":
        return getattr(__getattr__("config"), name)

    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


# Define what should be available when using "from menu_extraction import *"
__all__ = _SUBMODULES + [
    "OptimizedExtractionPipeline",
    "OptimizedExtractionResult",
    "get_config",
]
