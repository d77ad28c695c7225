# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import base64
from unittest.mock import MagicMock, patch

import pytest
import requests

from menu_extraction.documents import DocumentFetcher
from menu_extraction.exceptions import DocumentFetchError
from menu_extraction.models import DocumentRef


@pytest.mark.unit
class TestDocumentFetcher:
    def test_inline_bytes_and_base64(self):
        fetcher = DocumentFetcher()
        raw = DocumentRef("1", "a.pdf", "application/pdf", content=b"raw")
        encoded = DocumentRef("2", "b.pdf", "application/pdf", content=base64.b64encode(b"enc").decode())
        assert fetcher.fetch(raw) == b"raw"
        assert fetcher.fetch(encoded) == b"enc"

    def test_invalid_base64(self):
        doc = DocumentRef("1", "a.pdf", "application/pdf", content="not base64!")
        with pytest.raises(DocumentFetchError, match="Invalid inline content"):
            DocumentFetcher().fetch(doc)

    @patch("menu_extraction.documents.fetcher.s3.get_binary_content")
    def test_s3_location_fetched_once(self, mock_get):
        mock_get.return_value = b"from s3"
        fetcher = DocumentFetcher()
        doc = DocumentRef("1", "a.pdf", "application/pdf", location="s3://bucket/a.pdf")

        assert fetcher.fetch(doc) == b"from s3"
        assert fetcher.fetch(doc) == b"from s3"
        mock_get.assert_called_once_with("s3://bucket/a.pdf")

    @patch("menu_extraction.documents.fetcher.requests.get")
    def test_http_location(self, mock_get):
        response = MagicMock()
        response.content = b"from http"
        mock_get.return_value = response
        fetcher = DocumentFetcher({"documents": {"http_timeout": 5}})
        doc = DocumentRef("1", "a.png", "image/png", location="https://example.com/a.png")

        assert fetcher.fetch(doc) == b"from http"
        mock_get.assert_called_once_with("https://example.com/a.png", timeout=5.0)

    @patch("menu_extraction.documents.fetcher.requests.get")
    def test_http_error(self, mock_get):
        mock_get.return_value.raise_for_status.side_effect = requests.HTTPError("404")
        doc = DocumentRef("1", "a.png", "image/png", location="https://example.com/a.png")
        with pytest.raises(DocumentFetchError, match="Could not fetch"):
            DocumentFetcher().fetch(doc)

    def test_local_path(self, tmp_path):
        path = tmp_path / "menu.csv"
        path.write_bytes(b"name,price\n")
        doc = DocumentRef("1", "menu.csv", "text/csv", location=str(path))
        assert DocumentFetcher().fetch(doc) == b"name,price\n"

    def test_unknown_location(self):
        doc = DocumentRef("1", "menu.csv", "text/csv", location="/does/not/exist.csv")
        with pytest.raises(DocumentFetchError, match="Unsupported document location"):
            DocumentFetcher().fetch(doc)
