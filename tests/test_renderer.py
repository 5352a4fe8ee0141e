#!/usr/bin/env python3
"""
Tests for the PDF quote renderer.
"""

import sys
import tempfile
import unittest
from dataclasses import replace
from datetime import date
from pathlib import Path

import fitz

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ontop_quote.calculator import calculate_quote
from ontop_quote.exceptions import RenderFailure
from ontop_quote.formatters import format_money
from ontop_quote.line_parser import parse_employee_screenshot, parse_pay_screenshot
from ontop_quote.models import CurrencyRates, FormData
from ontop_quote.renderer import QuoteDocumentRenderer, build_file_name

RATES = CurrencyRates(base="USD", date="2024-01-01", rates={"USD": 1.0, "CLP": 800.0})
TODAY = date(2024, 1, 1)


def pdf_text(path):
    with fitz.open(str(path)) as doc:
        return "\n".join(page.get_text() for page in doc)


class TestQuoteDocumentRenderer(unittest.TestCase):

    def setUp(self):
        self.renderer = QuoteDocumentRenderer()
        self.form = FormData(country="Chile", ae_name="Jane Doe", client_name="Acme Corp", eor_fee_usd=499)
        self.quote = calculate_quote(
            parse_pay_screenshot("Gross Monthly Salary USD 3000\nTotal Monthly Cost USD 3600"),
            parse_employee_screenshot("Net Monthly Salary USD 2500"),
            self.form,
            RATES,
        )
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

    def test_file_name(self):
        self.assertEqual(build_file_name("Acme Corp", TODAY), "Ontop-Quote-Acme-Corp-2024-01-01.pdf")
        self.assertEqual(build_file_name("  Acme  Corp/EU ", TODAY), "Ontop-Quote-Acme-Corp-EU-2024-01-01.pdf")

    def test_render(self):
        path = self.renderer.render(self.quote, self.form, self.tmp.name, today=TODAY)

        self.assertEqual(path, Path(self.tmp.name) / "Ontop-Quote-Acme-Corp-2024-01-01.pdf")
        self.assertTrue(path.exists())

        text = pdf_text(path)
        for expected in ["Quote Summary", "Quote Sender: Jane Doe", "Client Name: Acme Corp",
                         "Valid Until: 2024-01-31", "Amount You Pay", "Amount Employee Gets",
                         "Setup Summary", "Dismissal Deposit", "Ontop EOR Fee", "Net Monthly Salary",
                         "Exchange Rate: 1 CLP", "Important Notes:", "phrase list v2",
                         format_money(4349, "USD"), format_money(3479200, "CLP")]:
            with self.subTest(expected=expected):
                self.assertIn(expected, text)

    def test_empty_sections(self):
        quote = replace(self.quote, employee_fields=(), setup_summary=())
        text = pdf_text(self.renderer.render(quote, self.form, self.tmp.name, today=TODAY))

        self.assertEqual(text.count("No data available for this section"), 2)

    def test_many_rows_span_pages(self):
        pay_text = "Gross Monthly Salary USD 3000\n" + "\n".join(f"Benefit {i} USD {i + 1}" for i in range(60))
        quote = calculate_quote(parse_pay_screenshot(pay_text), parse_employee_screenshot(""), self.form, RATES)
        path = self.renderer.render(quote, self.form, self.tmp.name, today=TODAY)

        with fitz.open(str(path)) as doc:
            self.assertGreater(doc.page_count, 1)

    def test_validation(self):
        with self.assertRaises(RenderFailure):
            self.renderer.render(None, self.form, self.tmp.name)
        with self.assertRaises(RenderFailure):
            self.renderer.render(replace(self.quote, pay_fields=()), self.form, self.tmp.name)
        with self.assertRaises(RenderFailure):
            self.renderer.render(self.quote, replace(self.form, client_name="  "), self.tmp.name)

    def test_write_errors_become_render_failures(self):
        blocker = Path(self.tmp.name) / "not-a-directory"
        blocker.write_text("x")

        with self.assertRaises(RenderFailure):
            self.renderer.render(self.quote, self.form, blocker, today=TODAY)


if __name__ == "__main__":
    unittest.main()
