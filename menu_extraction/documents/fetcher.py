# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import logging
import os
import threading
from typing import Any, Dict, Optional

import requests

from .. import s3
from ..exceptions import DocumentFetchError
from ..models import DocumentRef

logger = logging.getLogger(__name__)


class DocumentFetcher:
    """
    Resolve a document's bytes from inline content, S3, HTTP(S) or a local path.

    Bytes are cached per document id for the lifetime of the fetcher, so a run
    downloads each document once even though several phases read it.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        config = config or {}
        self.http_timeout = float(config.get("documents", {}).get("http_timeout", 30))
        self._cache: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def fetch(self, doc: DocumentRef) -> bytes:
        """
        Get the raw bytes of a document.

        Raises:
            DocumentFetchError: If the content cannot be decoded or retrieved
        """
        with self._lock:
            cached = self._cache.get(doc.id)
        if cached is not None:
            return cached

        data = self._load(doc)

        with self._lock:
            self._cache.setdefault(doc.id, data)
            return self._cache[doc.id]

    def _load(self, doc: DocumentRef) -> bytes:
        if doc.content is not None:
            try:
                return doc.inline_bytes()
            except (ValueError, TypeError) as e:
                raise DocumentFetchError(f"Invalid inline content for {doc.name}: {e}") from e

        location = doc.location or ""
        logger.info(f"Fetching {doc.name} from {location}")
        try:
            if location.startswith("s3://"):
                return s3.get_binary_content(location)
            if location.startswith(("http://", "https://")):
                response = requests.get(location, timeout=self.http_timeout)
                response.raise_for_status()
                return response.content
            if os.path.isfile(location):
                with open(location, "rb") as f:
                    return f.read()
        except Exception as e:
            raise DocumentFetchError(f"Could not fetch {doc.name} from {location}: {e}") from e

        raise DocumentFetchError(f"Unsupported document location for {doc.name}: {location!r}")

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
