# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

import io
import logging
from typing import Any, Dict, Union

from PIL import Image

from ..s3 import get_binary_content

logger = logging.getLogger(__name__)

FORMAT_MAPPING = {
    'JPEG': 'jpeg',
    'PNG': 'png',
    'GIF': 'gif',
    'WEBP': 'webp'
}


def resize_image(image_data: bytes,
                 target_width: int = 1568,
                 target_height: int = 1568) -> bytes:
    """
    Resize an image to fit within target dimensions while preserving aspect ratio.

    Images that already fit are re-encoded but never enlarged.

    Args:
        image_data: Raw image bytes
        target_width: Target width in pixels
        target_height: Target height in pixels

    Returns:
        Resized image as JPEG bytes
    """
    image = Image.open(io.BytesIO(image_data))
    current_width, current_height = image.size

    scale_factor = min(target_width / current_width, target_height / current_height)

    if scale_factor < 1.0:
        new_width = int(current_width * scale_factor)
        new_height = int(current_height * scale_factor)
        logger.info(f"Resizing image from {current_width}x{current_height} to {new_width}x{new_height} (scale: {scale_factor:.3f})")
        image = image.resize((new_width, new_height), Image.LANCZOS)
    else:
        logger.debug(f"Image {current_width}x{current_height} already fits within {target_width}x{target_height}, no resizing needed")

    # JPEG has no alpha channel
    if image.mode not in ('RGB', 'L'):
        image = image.convert('RGB')

    img_byte_array = io.BytesIO()
    image.save(img_byte_array, format="JPEG")
    return img_byte_array.getvalue()


def prepare_image(image_source: Union[str, bytes],
                  target_width: int = 1568,
                  target_height: int = 1568) -> bytes:
    """
    Prepare an image for model input from either S3 URI or raw bytes

    Args:
        image_source: Either an S3 URI (s3://bucket/key) or raw image bytes
        target_width: Target width in pixels
        target_height: Target height in pixels

    Returns:
        Processed image as JPEG bytes ready for model input
    """
    if isinstance(image_source, str) and image_source.startswith('s3://'):
        image_data = get_binary_content(image_source)
    elif isinstance(image_source, bytes):
        image_data = image_source
    else:
        raise ValueError(f"Invalid image source: {type(image_source)}. Must be S3 URI or bytes.")

    return resize_image(image_data, target_width, target_height)


def prepare_bedrock_image_attachment(image_data: bytes) -> Dict[str, Any]:
    """
    Format an image for Bedrock API attachment

    Args:
        image_data: Raw image bytes

    Returns:
        Formatted image attachment for Bedrock API
    """
    image = Image.open(io.BytesIO(image_data))
    detected_format = FORMAT_MAPPING.get(image.format)
    if not detected_format:
        raise ValueError(f"Unsupported image format: {image.format}")
    logger.debug(f"Detected image format: {detected_format}")
    return {
        "image": {
            "format": detected_format,
            "source": {"bytes": image_data}
        }
    }
