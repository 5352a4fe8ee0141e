#!/usr/bin/env python3
"""
Line Parser
Turns raw OCR text from the payroll-quote screenshots into typed line items.
Parsing is best-effort: lines that don't look like "label + currency + amount"
are dropped. Only a missing Gross Monthly Salary on the pay screenshot is fatal.
"""

import logging
import math
import re
from typing import List, Optional

from babel.numbers import NumberFormatError, parse_decimal

from .config import get_config
from .exceptions import MissingRequiredField
from .field_classifier import is_severance
from .models import EmployeeScreenshot, ParsedField, PayScreenshot

logger = logging.getLogger(__name__)

# Digit groups may be split by spaces (incl. no-break / narrow spaces) or apostrophes,
# otherwise the literal is a run of digits, commas and dots.
NUMBER = r"(?:\d{1,3}(?:[\s'’]\d{3})+(?:[.,]\d+)?|\d[\d.,'’]*)"
CURRENCY = r"[A-Za-z]{3}"


def detect_number_locale(cleaned: str) -> str:
    """
    Pick the locale whose separators match the literal.

    A comma is the decimal mark only when it comes last with exactly two digits
    after it ("1.234,56"); dots repeated without any comma are grouping
    ("1.234.567"). Everything else reads as en_US ("1,234.56", "1,234").
    """
    if re.search(r",\d{2}$", cleaned) and cleaned.rfind(',') > cleaned.rfind('.'):
        return 'de_DE'
    if ',' not in cleaned and cleaned.count('.') > 1:
        return 'de_DE'
    return 'en_US'


def normalize_amount(raw: str) -> Optional[float]:
    """
    Convert an OCR'd numeric literal to a float using babel.

    "1,234.56" -> 1234.56, "1.234,56" -> 1234.56, "1,234" -> 1234.0,
    "12'500" -> 12500.0. Returns None unless the result is a positive finite number.
    """
    if not raw:
        return None

    cleaned = re.sub(r"[\s'’]", "", raw)
    locale = detect_number_locale(cleaned)

    try:
        parsed = parse_decimal(cleaned, locale=locale)
    except NumberFormatError:
        logger.debug(f"Babel rejected numeric literal ({locale}): {raw!r}")
        return None

    if not parsed.is_finite() or parsed <= 0:
        return None

    value = float(parsed)
    if not math.isfinite(value):
        return None

    logger.debug(f"Babel parsed ({locale}): {raw!r} -> {value}")
    return value


class ScreenshotParser:
    """Parser for the "Amount You Pay" and "Amount Employee Gets" screenshots."""

    def __init__(self):
        # Tried in order, first match wins
        self.line_patterns = [
            re.compile(rf"^(?P<label>.+?)\s+(?P<currency>{CURRENCY})\s*(?P<amount>{NUMBER})$"),
            re.compile(rf"^(?P<label>.+?)\s+(?P<amount>{NUMBER})\s+(?P<currency>{CURRENCY})$"),
            re.compile(rf"^(?P<label>.+?):\s*(?P<currency>{CURRENCY})\s*(?P<amount>{NUMBER})$"),
        ]
        self.gross_salary_pattern = re.compile(
            get_config("parser.gross_salary_pattern", r"gross\s+monthly\s+salary"), re.IGNORECASE
        )
        self.gross_salary_label = get_config("parser.gross_salary_label", "Gross Monthly Salary")
        self.noise_phrases = [p.lower() for p in get_config("parser.noise_phrases", [])]

    def split_lines(self, text: str) -> List[str]:
        """Split on line breaks, trim, and drop blank lines."""
        if not text:
            return []
        return [line.strip() for line in re.split(r"\r?\n|\r", text) if line.strip()]

    def is_noise(self, line: str) -> bool:
        lowered = line.lower()
        return any(phrase in lowered for phrase in self.noise_phrases)

    def parse_line_amount(self, line: str) -> Optional[ParsedField]:
        """Parse one line into a ParsedField, or None if it has no usable amount."""
        for pattern in self.line_patterns:
            match = pattern.match(line.strip())
            if not match:
                continue

            label = match.group('label').strip().rstrip(':').strip()
            amount = normalize_amount(match.group('amount'))
            if not label or amount is None:
                logger.debug(f"Dropped line with unusable label/amount: {line!r}")
                return None

            return ParsedField(label=label, amount=amount, currency=match.group('currency').upper())

        return None

    def parse_lines(self, lines: List[str], skip_gross_salary: bool = False) -> List[ParsedField]:
        fields = []
        for line in lines:
            if skip_gross_salary and self.gross_salary_pattern.search(line):
                continue
            if self.is_noise(line):
                continue

            parsed = self.parse_line_amount(line)
            if parsed:
                logger.debug(f"Parsed field: {parsed}")
                fields.append(parsed)
        return fields

    def parse_pay_screenshot(self, text: str) -> PayScreenshot:
        """
        Parse the "Amount You Pay" screenshot.

        The Gross Monthly Salary line is mandatory and always becomes the first
        field; its currency is the screenshot's currency.

        Raises:
            MissingRequiredField: If no readable Gross Monthly Salary line exists.
        """
        lines = self.split_lines(text)

        has_severance_pay = any(is_severance(line) for line in lines)
        logger.debug(f"Severance Pay detected: {has_severance_pay}")

        gross_line = next((line for line in lines if self.gross_salary_pattern.search(line)), None)
        if gross_line is None:
            raise MissingRequiredField(self.gross_salary_label)

        gross = self.parse_line_amount(gross_line)
        if gross is None:
            raise MissingRequiredField(self.gross_salary_label, reason=f"unreadable amount in {gross_line!r}")

        fields = [ParsedField(label=self.gross_salary_label, amount=gross.amount, currency=gross.currency)]
        fields.extend(self.parse_lines(lines, skip_gross_salary=True))

        logger.info(f"Parsed {len(fields)} pay field(s) in {gross.currency}")
        return PayScreenshot(
            fields=tuple(fields),
            gross_salary=gross.amount,
            currency=gross.currency,
            has_severance_pay=has_severance_pay,
        )

    def parse_employee_screenshot(self, text: str) -> EmployeeScreenshot:
        """Parse the "Amount Employee Gets" screenshot. Nothing in it is mandatory."""
        fields = self.parse_lines(self.split_lines(text))
        logger.info(f"Parsed {len(fields)} employee field(s)")
        return EmployeeScreenshot(fields=tuple(fields))


def parse_pay_screenshot(text: str) -> PayScreenshot:
    return ScreenshotParser().parse_pay_screenshot(text)


def parse_employee_screenshot(text: str) -> EmployeeScreenshot:
    return ScreenshotParser().parse_employee_screenshot(text)
