#!/usr/bin/env python3
"""
Text Extraction Adapter
Wraps Tesseract (via pytesseract) behind a small interface: image in, raw text
out, with fractional progress (0.0 - 1.0) reported along the way.
"""

import asyncio
import io
import logging
from pathlib import Path
from typing import Callable, Optional, Union

import numpy as np
import pytesseract
from PIL import Image, ImageOps

from .config import get_config
from .exceptions import RecognitionFailure

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, Image.Image]
ProgressCallback = Callable[[float], None]


class TesseractTextExtractor:
    """Tesseract OCR tuned for screenshots of two-column payroll tables."""

    def __init__(self, language: Optional[str] = None, page_segmentation_mode: Optional[int] = None,
                 min_width: Optional[int] = None, tesseract_cmd: Optional[str] = None):
        self.language = language or get_config("ocr.language", "eng")
        self.page_segmentation_mode = page_segmentation_mode or get_config("ocr.page_segmentation_mode", 6)
        self.min_width = min_width or get_config("ocr.min_width", 1200)
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def load_image(self, image: ImageSource) -> Image.Image:
        if isinstance(image, Image.Image):
            return image
        if isinstance(image, bytes):
            return Image.open(io.BytesIO(image))
        return Image.open(Path(image))

    def preprocess(self, image: Image.Image) -> Image.Image:
        """Grayscale, stretch contrast, upscale small captures, then binarize."""
        gray = ImageOps.autocontrast(ImageOps.grayscale(image))

        if gray.width < self.min_width:
            scale = self.min_width / gray.width
            gray = gray.resize((self.min_width, max(1, int(gray.height * scale))), Image.LANCZOS)

        pixels = np.asarray(gray, dtype=np.uint8)
        threshold = pixels.mean()
        binary = np.where(pixels > threshold, 255, 0).astype(np.uint8)
        return Image.fromarray(binary)

    def recognize(self, image: ImageSource, on_progress: Optional[ProgressCallback] = None,
                  slot: str = 'image') -> str:
        """
        Run OCR on one image.

        Raises:
            RecognitionFailure: For any error while loading the image or running Tesseract.
        """
        report = on_progress or (lambda fraction: None)
        report(0.0)

        try:
            loaded = self.load_image(image)
            loaded.load()
            report(0.1)

            prepared = self.preprocess(loaded)
            report(0.3)

            config = f"--psm {self.page_segmentation_mode}"
            text = pytesseract.image_to_string(prepared, lang=self.language, config=config)
        except Exception as e:
            logger.error(f"OCR Error for {slot}: {e}")
            raise RecognitionFailure(slot, str(e)) from e

        report(1.0)
        logger.info(f"OCR completed for {slot}: {len(text)} characters")
        return text

    async def recognize_async(self, image: ImageSource, on_progress: Optional[ProgressCallback] = None,
                              slot: str = 'image') -> str:
        """Run ``recognize`` off the event loop; progress callbacks fire on the loop."""
        loop = asyncio.get_running_loop()

        def forward(fraction: float):
            if on_progress:
                loop.call_soon_threadsafe(on_progress, fraction)

        return await loop.run_in_executor(None, lambda: self.recognize(image, forward, slot))
