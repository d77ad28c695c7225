# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Pytest configuration file for the menu extraction tests.
"""

import io
from unittest.mock import MagicMock, patch

import pytest

from menu_extraction.config import get_config
from menu_extraction.models import (
    BatchKind,
    Complexity,
    DocumentRef,
    ExtractionBatch,
    ExtractionTask,
)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without AWS access")


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch):
    """Keep tests away from DynamoDB, local config files and CloudWatch."""
    monkeypatch.delenv("CONFIGURATION_TABLE_NAME", raising=False)
    monkeypatch.delenv("MENU_EXTRACTION_CONFIG_PATH", raising=False)
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    with patch("menu_extraction.metrics.put_metric") as mock_put_metric:
        yield mock_put_metric


@pytest.fixture
def config():
    """Packaged default configuration."""
    return get_config()


@pytest.fixture
def bedrock_response():
    """Factory for Bedrock converse responses wrapped with metering."""

    def _make(text, model_id="us.amazon.nova-lite-v1:0", input_tokens=100, output_tokens=50):
        usage = {
            "inputTokens": input_tokens,
            "outputTokens": output_tokens,
            "totalTokens": input_tokens + output_tokens,
        }
        return {
            "response": {
                "output": {"message": {"role": "assistant", "content": [{"text": text}]}},
                "usage": usage,
            },
            "metering": {f"bedrock/{model_id}": usage},
        }

    return _make


@pytest.fixture
def pdf_bytes():
    """Factory for small PDFs with one page of text per argument."""
    import fitz

    def _make(*pages):
        pdf_document = fitz.open()
        for text in pages:
            page = pdf_document.new_page()
            y = 72
            for line in text.splitlines():
                page.insert_text((72, y), line)
                y += 14
        data = pdf_document.tobytes()
        pdf_document.close()
        return data

    return _make


@pytest.fixture
def png_bytes():
    """A small PNG image."""
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", (120, 80), color=(255, 255, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def make_task():
    """Factory for single-document extraction tasks."""

    def _make(number=1, estimated_items=5, complexity=Complexity.MEDIUM, max_retries=3,
              segment=None, name="menu.pdf", media_type="application/pdf"):
        doc = DocumentRef(id=f"doc-{number}", name=name, media_type=media_type, content=b"%PDF")
        if segment:
            index, count = segment
            batch = ExtractionBatch(
                batch_id=f"batch_{number}",
                kind=BatchKind.DOCUMENT_SEGMENT,
                documents=[doc],
                estimated_items=estimated_items,
                menu_location=f"{name} (Part {index}/{count})",
                segment_index=index,
                segment_count=count,
            )
        else:
            batch = ExtractionBatch(
                batch_id=f"batch_{number}",
                kind=BatchKind.WHOLE_DOCUMENT_GROUP,
                documents=[doc],
                estimated_items=estimated_items,
                menu_location=name,
            )
        return ExtractionTask(
            task_id=f"task_{number}",
            batch=batch,
            priority=1.0,
            max_retries=max_retries,
            token_limit=4500,
            complexity=complexity,
        )

    return _make


@pytest.fixture
def mock_sampler():
    """DocumentSampler stand-in returning fixed content."""
    sampler = MagicMock()
    sampler.text_sample.return_value = "BURGERS\nClassic Burger $8.00\nCheeseburger $9.00"
    sampler.image_bytes.return_value = b"jpeg-bytes"
    return sampler
