#!/usr/bin/env python3
"""
Tests for the Tesseract text extraction adapter.
"""

import asyncio
import io
import sys
import unittest
from pathlib import Path
from unittest.mock import patch

import pytesseract
from PIL import Image

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ontop_quote.exceptions import RecognitionFailure
from ontop_quote.ocr import TesseractTextExtractor


def sample_image(width=400, height=100):
    image = Image.new("RGB", (width, height), "white")
    for x in range(20, 120):
        for y in range(40, 60):
            image.putpixel((x, y), (0, 0, 0))
    return image


class TestTesseractTextExtractor(unittest.TestCase):

    def setUp(self):
        self.extractor = TesseractTextExtractor(min_width=800)

    def test_preprocess_upscales_and_binarizes(self):
        prepared = self.extractor.preprocess(sample_image())

        self.assertEqual(prepared.size, (800, 200))
        self.assertLessEqual(set(prepared.getdata()), {0, 255})

    def test_load_image_sources(self):
        buffer = io.BytesIO()
        sample_image().save(buffer, format="PNG")

        self.assertEqual(self.extractor.load_image(buffer.getvalue()).size, (400, 100))
        image = sample_image()
        self.assertIs(self.extractor.load_image(image), image)

    @patch("ontop_quote.ocr.pytesseract.image_to_string")
    def test_recognize_reports_progress(self, mock_ocr):
        mock_ocr.return_value = "Gross Monthly Salary USD 3000\n"
        progress = []

        text = self.extractor.recognize(sample_image(), progress.append, slot="pay")

        self.assertEqual(text, "Gross Monthly Salary USD 3000\n")
        self.assertEqual(progress, [0.0, 0.1, 0.3, 1.0])
        self.assertEqual(mock_ocr.call_args.kwargs["lang"], "eng")
        self.assertEqual(mock_ocr.call_args.kwargs["config"], "--psm 6")

    @patch("ontop_quote.ocr.pytesseract.image_to_string")
    def test_tesseract_errors_are_wrapped(self, mock_ocr):
        mock_ocr.side_effect = pytesseract.TesseractError(1, "failed")

        with self.assertRaises(RecognitionFailure) as ctx:
            self.extractor.recognize(sample_image(), slot="employee")
        self.assertEqual(ctx.exception.slot, "employee")

    @patch("ontop_quote.ocr.pytesseract.image_to_string")
    def test_unexpected_errors_are_wrapped(self, mock_ocr):
        mock_ocr.side_effect = RuntimeError("Tesseract process timeout")

        with self.assertRaises(RecognitionFailure) as ctx:
            self.extractor.recognize(sample_image(), slot="pay")
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)

    def test_unreadable_image(self):
        with self.assertRaises(RecognitionFailure):
            self.extractor.recognize(b"definitely not an image", slot="pay")
        with self.assertRaises(RecognitionFailure):
            self.extractor.recognize("/nonexistent/screenshot.png", slot="pay")

    @patch("ontop_quote.ocr.pytesseract.image_to_string")
    def test_recognize_async(self, mock_ocr):
        mock_ocr.return_value = "Net Monthly Salary USD 2500"
        progress = []

        async def run():
            text = await self.extractor.recognize_async(sample_image(), progress.append, slot="employee")
            # Let the forwarded progress callbacks run
            await asyncio.sleep(0)
            return text

        self.assertEqual(asyncio.run(run()), "Net Monthly Salary USD 2500")
        self.assertEqual(progress[-1], 1.0)


if __name__ == "__main__":
    unittest.main()
