# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Exceptions raised by the menu extraction pipeline.
"""

from typing import List, Optional


class MenuExtractionError(Exception):
    """Base class for pipeline errors."""


class DocumentFetchError(MenuExtractionError):
    """A document's bytes could not be retrieved."""


class UnsupportedDocumentError(MenuExtractionError):
    """A document's media type is not handled by the pipeline."""


class DocumentSamplingError(MenuExtractionError):
    """A document was fetched but its content could not be read or decoded."""


class OracleResponseError(MenuExtractionError):
    """A model reply is not parseable JSON or lacks the required shape."""


class TruncatedResponseError(OracleResponseError):
    """A model reply looks cut off before its structured output was complete."""

    def __init__(self, warnings: List[str]):
        self.warnings = list(warnings)
        super().__init__(f"Response truncated: {', '.join(self.warnings)}")


class LowYieldError(OracleResponseError):
    """A model reply parsed correctly but returned far fewer items than estimated."""

    def __init__(self, extracted: int, estimated: int):
        self.extracted = extracted
        self.estimated = estimated
        ratio = extracted / estimated if estimated else 0.0
        super().__init__(
            f"Low extraction ratio: {extracted}/{estimated} ({ratio * 100:.1f}%)"
        )


class TaskExhaustedError(MenuExtractionError):
    """A task used its whole retry budget without a valid result."""

    def __init__(self, task_id: str, attempts: int, last_error: Optional[str]):
        self.task_id = task_id
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Task {task_id} failed after {attempts} attempts: {last_error}"
        )
