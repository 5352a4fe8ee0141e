"""
Exceptions raised by the quote generator.

Hierarchy:
    QuoteGeneratorError (base)
    ├── MissingRequiredField
    ├── RecognitionFailure
    ├── RateFetchFailure
    ├── RenderFailure
    └── WizardStateError
"""

from typing import Optional


class QuoteGeneratorError(Exception):
    """
    Base exception for all quote generator errors.

    Attributes:
        message: Human-readable message, safe to show to the operator.
        details: Extra context for logs.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class MissingRequiredField(QuoteGeneratorError):
    """
    A mandatory field could not be read from a screenshot.

    Example:
        >>> raise MissingRequiredField("Gross Monthly Salary", "Amount You Pay")
    """

    def __init__(self, field_name: str, screenshot: str = "Amount You Pay", reason: Optional[str] = None):
        message = (
            f"Could not find {field_name} in the {screenshot} screenshot. "
            f"Please ensure the screenshot contains a clear '{field_name}' field."
        )
        details = {"field": field_name, "screenshot": screenshot}
        if reason:
            details["reason"] = reason
        super().__init__(message, details)
        self.field_name = field_name


class RecognitionFailure(QuoteGeneratorError):
    """Text extraction failed or produced nothing for one screenshot slot."""

    def __init__(self, slot: str, reason: Optional[str] = None):
        message = (
            f"Could not read any text from the '{slot}' screenshot. "
            "Please upload a sharper image and try again."
        )
        super().__init__(message, {"slot": slot, "reason": reason})
        self.slot = slot


class RateFetchFailure(QuoteGeneratorError):
    """The live exchange-rate service was unreachable or returned a bad payload."""

    def __init__(self, reason: str):
        super().__init__("Live exchange rates unavailable", {"reason": reason})


class RenderFailure(QuoteGeneratorError):
    """The quote document could not be produced."""

    def __init__(self, reason: str):
        super().__init__(
            "There was an error generating the PDF. Please try again.",
            {"reason": reason},
        )


class WizardStateError(QuoteGeneratorError):
    """An action was requested that the current wizard step does not allow."""

    def __init__(self, current: str, action: str):
        super().__init__(
            f"Cannot {action} while the wizard is in step '{current}'",
            {"step": current, "action": action},
        )
