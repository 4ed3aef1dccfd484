"""
PDF handling utilities for in-memory processing.
Renders PDF pages to images and converts images to pixel buffers.
"""
import logging
from pathlib import Path
from typing import Union

import numpy as np
from pdf2image import convert_from_bytes
from PIL import Image

from ..errors import RasterizationError

logger = logging.getLogger(__name__)


class PDFHandler:
    """Handler for PDF processing in memory."""

    @staticmethod
    def read_pdf(path: Union[str, Path]) -> bytes:
        """
        Read a PDF file from disk.

        Args:
            path: Path of the PDF file

        Returns:
            PDF file as bytes
        """
        path = Path(path)
        pdf_bytes = path.read_bytes()
        logger.info(f"Loaded PDF {path.name}: {len(pdf_bytes)} bytes")
        return pdf_bytes

    @staticmethod
    def page_to_image(pdf_bytes: bytes, page_number: int, dpi: float) -> Image.Image:
        """
        Render a single PDF page to a PIL Image.

        Args:
            pdf_bytes: PDF file as bytes
            page_number: 1-based page number
            dpi: Render resolution

        Returns:
            PIL Image of the whole page

        Raises:
            RasterizationError: If the page could not be rendered
        """
        try:
            images = convert_from_bytes(
                pdf_bytes,
                dpi=dpi,
                first_page=page_number,
                last_page=page_number
            )
        except Exception as e:
            raise RasterizationError(f"Error converting page {page_number} to image: {e}") from e

        if not images:
            raise RasterizationError(f"No image produced for page {page_number}")

        logger.debug(f"Rendered page {page_number} at {dpi} dpi: {images[0].size}")
        return images[0]

    @staticmethod
    def image_to_rgba_array(image: Image.Image) -> np.ndarray:
        """
        Convert a PIL Image to an RGBA pixel buffer.

        Args:
            image: PIL Image in any mode

        Returns:
            uint8 array of shape (height, width, 4)
        """
        if image.mode != 'RGBA':
            image = image.convert('RGBA')
        return np.asarray(image, dtype=np.uint8)
