# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""Document scoping: per-document item and structure estimates."""

from .service import ScopingService, choose_processing_strategy

__all__ = ["ScopingService", "choose_processing_strategy"]
