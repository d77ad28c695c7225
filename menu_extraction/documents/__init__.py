# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""Document retrieval and content sampling."""

from .fetcher import DocumentFetcher
from .sampling import DocumentSampler, pdf_text, spreadsheet_text

__all__ = ["DocumentFetcher", "DocumentSampler", "pdf_text", "spreadsheet_text"]
