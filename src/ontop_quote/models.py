"""
Data models for the Ontop Quote Generator.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from .config import get_config

QUOTE_CURRENCIES = ('USD', 'Local')


@dataclass(frozen=True)
class ParsedField:
    """One line item read from a screenshot, in the currency printed next to it."""
    label: str
    amount: float
    currency: str

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "amount": self.amount, "currency": self.currency}


@dataclass(frozen=True)
class ConvertedField(ParsedField):
    """A parsed field projected into both the local currency and USD."""
    local_amount: float = 0.0
    usd_amount: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"localAmount": self.local_amount, "usdAmount": self.usd_amount})
        return data


@dataclass(frozen=True)
class PayScreenshot:
    """Result of parsing the "Amount You Pay" screenshot."""
    fields: Tuple[ParsedField, ...]
    gross_salary: float
    currency: str
    has_severance_pay: bool


@dataclass(frozen=True)
class EmployeeScreenshot:
    """Result of parsing the "Amount Employee Gets" screenshot."""
    fields: Tuple[ParsedField, ...]


def default_eor_fee() -> float:
    return float(get_config("quote.default_eor_fee_usd", 0))


@dataclass(frozen=True)
class FormData:
    """Operator-entered context for a quote."""
    country: str
    ae_name: str
    client_name: str
    quote_currency: str = 'USD'
    eor_fee_usd: float = field(default_factory=default_eor_fee)

    def __post_init__(self):
        if self.quote_currency not in QUOTE_CURRENCIES:
            raise ValueError(f"quote_currency must be one of {QUOTE_CURRENCIES}, got {self.quote_currency!r}")
        if self.eor_fee_usd < 0:
            raise ValueError("eor_fee_usd cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "country": self.country,
            "quoteCurrency": self.quote_currency,
            "aeName": self.ae_name,
            "clientName": self.client_name,
            "eorFeeUSD": self.eor_fee_usd,
        }


@dataclass(frozen=True)
class CurrencyRates:
    """Exchange rates relative to ``base`` (always USD here)."""
    base: str
    date: str
    rates: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class QuoteData:
    """The fully calculated quote. Built once per analysis, never patched."""
    pay_fields: Tuple[ConvertedField, ...]
    employee_fields: Tuple[ConvertedField, ...]
    setup_summary: Tuple[ConvertedField, ...]
    local_currency: str
    quote_currency: str
    exchange_rate: float
    dismissal_deposit: float
    eor_fee_local: float
    total_you_pay: float
    total_you_pay_usd: float
    has_severance_pay: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "payFields": [f.to_dict() for f in self.pay_fields],
            "employeeFields": [f.to_dict() for f in self.employee_fields],
            "setupSummary": [f.to_dict() for f in self.setup_summary],
            "localCurrency": self.local_currency,
            "quoteCurrency": self.quote_currency,
            "exchangeRate": self.exchange_rate,
            "dismissalDeposit": self.dismissal_deposit,
            "eorFeeLocal": self.eor_fee_local,
            "totalYouPay": self.total_you_pay,
            "totalYouPayUSD": self.total_you_pay_usd,
            "hasSeverancePay": self.has_severance_pay,
        }
