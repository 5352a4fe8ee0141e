#!/usr/bin/env python3
"""
Tests for the screenshot line parser.
"""

import sys
import unittest
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ontop_quote.exceptions import MissingRequiredField
from ontop_quote.line_parser import (ScreenshotParser, detect_number_locale, normalize_amount,
                                     parse_employee_screenshot, parse_pay_screenshot)
from ontop_quote.models import ParsedField


class TestNormalizeAmount(unittest.TestCase):

    def test_number_formats(self):
        test_cases = [
            ("3000", 3000.0),
            ("1,234.56", 1234.56),
            ("1.234,56", 1234.56),
            ("1,234", 1234.0),
            ("2,400,000", 2400000.0),
            ("1.234.567", 1234567.0),
            ("12'500", 12500.0),
            ("1 234 567", 1234567.0),
            ("3000,50", 3000.5),
            ("120.5", 120.5),
        ]

        for raw, expected in test_cases:
            with self.subTest(raw=raw):
                self.assertAlmostEqual(normalize_amount(raw), expected)

    def test_rejects_non_positive_and_garbage(self):
        for raw in ["", "0", "0.00", "abc", "12a", ".", "-5", "NaN", "Infinity"]:
            with self.subTest(raw=raw):
                self.assertIsNone(normalize_amount(raw))

    def test_detect_number_locale(self):
        test_cases = [
            ("1.234,56", "de_DE"),
            ("3000,50", "de_DE"),
            ("1.234.567", "de_DE"),
            ("1,234.56", "en_US"),
            ("1,234", "en_US"),
            ("2,400,000", "en_US"),
            ("120.5", "en_US"),
        ]

        for cleaned, expected in test_cases:
            with self.subTest(cleaned=cleaned):
                self.assertEqual(detect_number_locale(cleaned), expected)


class TestScreenshotParser(unittest.TestCase):

    def setUp(self):
        self.parser = ScreenshotParser()

    def test_label_currency_amount(self):
        field = self.parser.parse_line_amount("Gross Monthly Salary USD 3,000.00")
        self.assertEqual(field, ParsedField("Gross Monthly Salary", 3000.0, "USD"))

    def test_label_amount_currency(self):
        field = self.parser.parse_line_amount("Health Insurance 120.50 CLP")
        self.assertEqual(field, ParsedField("Health Insurance", 120.5, "CLP"))

    def test_label_with_colon(self):
        field = self.parser.parse_line_amount("Bonus: usd 200")
        self.assertEqual(field, ParsedField("Bonus", 200.0, "USD"))

    def test_lines_without_amount_are_dropped(self):
        for line in ["Amount You Pay", "Bonus USD 0", "Bonus USD -50", "Just some words", ""]:
            with self.subTest(line=line):
                self.assertIsNone(self.parser.parse_line_amount(line))

    def test_split_lines(self):
        text = "  first line \r\n\n second line\rthird  "
        self.assertEqual(self.parser.split_lines(text), ["first line", "second line", "third"])
        self.assertEqual(self.parser.split_lines(""), [])

    def test_noise_lines_are_skipped(self):
        fields = self.parser.parse_lines([
            "Country: Chile",
            "Amount Employee Gets USD 10",
            "Net Monthly Salary USD 2500",
        ])
        self.assertEqual([f.label for f in fields], ["Net Monthly Salary"])


class TestPayScreenshot(unittest.TestCase):

    def test_gross_salary_comes_first(self):
        text = """
        Amount You Pay
        Employer Contribution CLP 150,000
        Gross Monthly Salary CLP 2,400,000
        Total Monthly Cost CLP 2,880,000
        """
        pay = parse_pay_screenshot(text)

        self.assertEqual(pay.gross_salary, 2400000.0)
        self.assertEqual(pay.currency, "CLP")
        self.assertFalse(pay.has_severance_pay)
        self.assertEqual(
            [f.label for f in pay.fields],
            ["Gross Monthly Salary", "Employer Contribution", "Total Monthly Cost"],
        )

    def test_severance_detection(self):
        for line in ["Severance Pay CLP 100,000", "Sevarance Pay CLP 100,000", "Sever-ance fund"]:
            with self.subTest(line=line):
                pay = parse_pay_screenshot(f"Gross Monthly Salary CLP 2,400,000\n{line}")
                self.assertTrue(pay.has_severance_pay)

    def test_missing_gross_salary(self):
        with self.assertRaises(MissingRequiredField) as ctx:
            parse_pay_screenshot("Total Monthly Cost USD 3600")
        self.assertEqual(ctx.exception.field_name, "Gross Monthly Salary")

    def test_unreadable_gross_salary(self):
        with self.assertRaises(MissingRequiredField) as ctx:
            parse_pay_screenshot("Gross Monthly Salary USD ???\nTotal Monthly Cost USD 3600")
        self.assertIn("reason", ctx.exception.details)

    def test_empty_text(self):
        with self.assertRaises(MissingRequiredField):
            parse_pay_screenshot("")


class TestEmployeeScreenshot(unittest.TestCase):

    def test_parses_all_rows(self):
        employee = parse_employee_screenshot(
            "Gross Monthly Salary USD 3000\nIncome Tax USD 300\nNet Monthly Salary USD 2500"
        )
        self.assertEqual(len(employee.fields), 3)
        self.assertEqual(employee.fields[-1], ParsedField("Net Monthly Salary", 2500.0, "USD"))

    def test_empty_is_allowed(self):
        self.assertEqual(parse_employee_screenshot("nothing useful here").fields, ())


if __name__ == "__main__":
    unittest.main()
