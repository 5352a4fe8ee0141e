"""
Ontop Quote Generator

Turns screenshots of a third-party payroll-quote tool into a branded,
recalculated, downloadable PDF quote.
"""

__version__ = "1.0.0"

from .calculator import QuoteCalculator, calculate_quote
from .currency import CurrencyRateProvider, get_local_currency
from .exceptions import (MissingRequiredField, QuoteGeneratorError, RateFetchFailure,
                         RecognitionFailure, RenderFailure, WizardStateError)
from .line_parser import ScreenshotParser, parse_employee_screenshot, parse_pay_screenshot
from .models import ConvertedField, CurrencyRates, FormData, ParsedField, QuoteData
from .wizard import QuoteWizard

__all__ = [
    "QuoteCalculator",
    "calculate_quote",
    "CurrencyRateProvider",
    "get_local_currency",
    "ScreenshotParser",
    "parse_pay_screenshot",
    "parse_employee_screenshot",
    "QuoteWizard",
    "ParsedField",
    "ConvertedField",
    "CurrencyRates",
    "FormData",
    "QuoteData",
    "QuoteGeneratorError",
    "MissingRequiredField",
    "RecognitionFailure",
    "RateFetchFailure",
    "RenderFailure",
    "WizardStateError",
]
