# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Content sampling per media kind.

PDF text comes from PyMuPDF, spreadsheet cells from pandas and images are
resized with Pillow before being attached to a model request.
"""

import io
import logging
from typing import Any, Dict, List, Optional

import fitz  # PyMuPDF

from .. import image
from ..exceptions import DocumentSamplingError, UnsupportedDocumentError
from ..models import DocumentRef, MediaKind
from .fetcher import DocumentFetcher

logger = logging.getLogger(__name__)


def pdf_text(data: bytes, max_chars: Optional[int] = None) -> str:
    """
    Extract text from a PDF, page by page, stopping once max_chars is reached.

    Pages without a text layer are left out, so a scanned PDF yields "".

    Raises:
        DocumentSamplingError: If the PDF cannot be opened
    """
    try:
        pdf_document = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise DocumentSamplingError(f"Could not open PDF: {e}") from e

    parts: List[str] = []
    total = 0
    try:
        for page_index in range(len(pdf_document)):
            page_text = pdf_document[page_index].get_text()
            if not page_text.strip():
                continue
            parts.append(f"--- Page {page_index + 1} ---\n{page_text}")
            total += len(parts[-1])
            if max_chars is not None and total >= max_chars:
                break
    finally:
        pdf_document.close()

    text = "\n".join(parts)
    return text[:max_chars] if max_chars is not None else text


def spreadsheet_text(data: bytes, media_type: str,
                     max_rows: Optional[int] = None,
                     max_cells: Optional[int] = None) -> str:
    """
    Flatten spreadsheet cells to text, one line per row.

    Args:
        data: Workbook or CSV bytes
        media_type: Declared media type, used to tell CSV from Excel
        max_rows: Rows read per sheet, all rows when None
        max_cells: Total non-empty cells kept, all cells when None

    Raises:
        DocumentSamplingError: If the file cannot be parsed
    """
    import pandas as pd

    try:
        if media_type.lower() == "text/csv":
            sheets = {"Sheet1": pd.read_csv(io.BytesIO(data), header=None, nrows=max_rows, dtype=str)}
        else:
            sheets = pd.read_excel(io.BytesIO(data), sheet_name=None, header=None, nrows=max_rows)
    except Exception as e:
        raise DocumentSamplingError(f"Could not read spreadsheet: {e}") from e

    lines: List[str] = []
    cell_count = 0
    for sheet_name, df in sheets.items():
        if df.empty:
            continue
        lines.append(f"--- Sheet {sheet_name} ---")
        for _, row in df.iterrows():
            cells = []
            for value in row.tolist():
                if pd.isna(value):
                    continue
                text = str(value).strip()
                if not text:
                    continue
                cells.append(text)
                cell_count += 1
                if max_cells is not None and cell_count >= max_cells:
                    break
            if cells:
                lines.append(" | ".join(cells))
            if max_cells is not None and cell_count >= max_cells:
                return "\n".join(lines)

    return "\n".join(lines)


class DocumentSampler:
    """Produces model-ready text samples and images for documents."""

    def __init__(self, fetcher: DocumentFetcher, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.fetcher = fetcher
        scoping = config.get("scoping", {})
        image_config = config.get("documents", {}).get("image", {})
        self.spreadsheet_rows = scoping.get("spreadsheet_rows", 50)
        self.spreadsheet_cells = scoping.get("spreadsheet_cells", 200)
        self.target_width = int(image_config.get("target_width", 1568))
        self.target_height = int(image_config.get("target_height", 1568))

    def media_kind(self, doc: DocumentRef) -> MediaKind:
        kind = doc.media_kind
        if kind is None:
            raise UnsupportedDocumentError(f"Unsupported media type {doc.media_type!r} for {doc.name}")
        return kind

    def text_sample(self, doc: DocumentRef, max_chars: int, limit_spreadsheet: bool = True) -> str:
        """
        Text content of a PDF or spreadsheet document, at most max_chars long.

        Args:
            doc: The document
            max_chars: Character budget
            limit_spreadsheet: Apply the row and cell limits used for scoping

        Raises:
            UnsupportedDocumentError: For images and unknown media types
            DocumentFetchError: If the bytes cannot be retrieved
            DocumentSamplingError: If the content cannot be parsed
        """
        kind = self.media_kind(doc)
        data = self.fetcher.fetch(doc)
        if kind == MediaKind.PDF:
            return pdf_text(data, max_chars)
        if kind == MediaKind.SPREADSHEET:
            text = spreadsheet_text(
                data,
                doc.media_type,
                max_rows=self.spreadsheet_rows if limit_spreadsheet else None,
                max_cells=self.spreadsheet_cells if limit_spreadsheet else None,
            )
            return text[:max_chars]
        raise UnsupportedDocumentError(f"{doc.name} has no text content")

    def image_bytes(self, doc: DocumentRef) -> bytes:
        """
        Resized JPEG bytes of an image document.

        Raises:
            UnsupportedDocumentError: If the document is not an image
            DocumentSamplingError: If the image cannot be decoded
        """
        if self.media_kind(doc) != MediaKind.IMAGE:
            raise UnsupportedDocumentError(f"{doc.name} is not an image")
        data = self.fetcher.fetch(doc)
        try:
            return image.prepare_image(data, self.target_width, self.target_height)
        except Exception as e:
            raise DocumentSamplingError(f"Could not decode image {doc.name}: {e}") from e
