#!/usr/bin/env python3
"""
Quote Calculator
Combines the parsed screenshots, the operator's form and an exchange-rate table
into a complete QuoteData: dual-currency rows, dismissal deposit, EOR fee,
total you pay and the setup summary.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from .currency import convert_field, get_local_currency, resolve_rate
from .field_classifier import is_total_employment_cost
from .models import (ConvertedField, CurrencyRates, EmployeeScreenshot, FormData,
                     ParsedField, PayScreenshot, QuoteData)

logger = logging.getLogger(__name__)

DISMISSAL_DEPOSIT_LABEL = "Dismissal Deposit (1/12 salary)"
EOR_FEE_LABEL = "Ontop EOR Fee"
SECURITY_DEPOSIT_LABEL = "Security Deposit (1 month total cost)"


class QuoteCalculator:
    """
    Stateless: the same inputs always give an identical QuoteData.
    """

    def calculate(self, pay: PayScreenshot, employee: EmployeeScreenshot,
                  form: FormData, rates: CurrencyRates) -> QuoteData:
        local_currency = get_local_currency(form.country)
        rate_to_local = resolve_rate(rates, local_currency)
        rate_to_usd = 1 / rate_to_local
        logger.debug(f"Local currency {local_currency}, USD->local rate {rate_to_local}")

        pay_fields = [convert_field(f, rate_to_local, rate_to_usd) for f in pay.fields]
        employee_fields = [convert_field(f, rate_to_local, rate_to_usd) for f in employee.fields]

        total_cost_field = self._find_total_employment_cost(pay_fields)
        base_local, base_usd = self._base_monthly_cost(pay_fields, total_cost_field)

        eor_fee = self._eor_fee_row(form.eor_fee_usd, rate_to_local)

        dismissal = None
        if pay.has_severance_pay:
            logger.info("Severance Pay present - no Dismissal Deposit row")
        else:
            dismissal = self._dismissal_deposit_row(pay, rate_to_local, rate_to_usd)

        computed_rows: List[ConvertedField] = [dismissal] if dismissal else []
        computed_rows.append(eor_fee)

        total_local = base_local + eor_fee.local_amount + (dismissal.local_amount if dismissal else 0.0)
        total_usd = base_usd + eor_fee.usd_amount + (dismissal.usd_amount if dismissal else 0.0)

        quote = QuoteData(
            pay_fields=tuple(pay_fields + computed_rows),
            employee_fields=tuple(employee_fields),
            setup_summary=self._setup_summary(total_cost_field, eor_fee),
            local_currency=local_currency,
            quote_currency=form.quote_currency,
            exchange_rate=rate_to_local,
            dismissal_deposit=dismissal.local_amount if dismissal else 0.0,
            eor_fee_local=eor_fee.local_amount,
            total_you_pay=total_local,
            total_you_pay_usd=total_usd,
            has_severance_pay=pay.has_severance_pay,
        )

        logger.info(
            f"Quote calculated: total you pay {total_local:.2f} {local_currency} / {total_usd:.2f} USD"
        )
        return quote

    def _find_total_employment_cost(self, fields: Sequence[ConvertedField]) -> Optional[ConvertedField]:
        return next((f for f in fields if is_total_employment_cost(f.label)), None)

    def _base_monthly_cost(self, fields: Sequence[ConvertedField],
                           total_cost_field: Optional[ConvertedField]) -> Tuple[float, float]:
        """The screenshot's total employment cost, or the sum of every parsed pay row."""
        if total_cost_field:
            return total_cost_field.local_amount, total_cost_field.usd_amount

        logger.warning("No total employment cost row found, summing all pay fields")
        return (
            sum(f.local_amount for f in fields),
            sum(f.usd_amount for f in fields),
        )

    def _eor_fee_row(self, eor_fee_usd: float, rate_to_local: float) -> ConvertedField:
        return ConvertedField(
            label=EOR_FEE_LABEL,
            amount=eor_fee_usd,
            currency='USD',
            local_amount=eor_fee_usd * rate_to_local,
            usd_amount=eor_fee_usd,
        )

    def _dismissal_deposit_row(self, pay: PayScreenshot, rate_to_local: float,
                               rate_to_usd: float) -> ConvertedField:
        gross = ParsedField(label="Gross Monthly Salary", amount=pay.gross_salary, currency=pay.currency)
        gross_salary_usd = convert_field(gross, rate_to_local, rate_to_usd).usd_amount
        deposit_usd = gross_salary_usd / 12

        return ConvertedField(
            label=DISMISSAL_DEPOSIT_LABEL,
            amount=deposit_usd,
            currency='USD',
            local_amount=deposit_usd * rate_to_local,
            usd_amount=deposit_usd,
        )

    def _setup_summary(self, total_cost_field: Optional[ConvertedField],
                       eor_fee: ConvertedField) -> Tuple[ConvertedField, ...]:
        # One month of total employment cost, not gross salary
        if total_cost_field is None:
            logger.warning("Setup summary left empty: no total employment cost row")
            return ()

        security_deposit = ConvertedField(
            label=SECURITY_DEPOSIT_LABEL,
            amount=total_cost_field.amount,
            currency=total_cost_field.currency,
            local_amount=total_cost_field.local_amount,
            usd_amount=total_cost_field.usd_amount,
        )
        return (security_deposit, eor_fee)


def calculate_quote(pay: PayScreenshot, employee: EmployeeScreenshot,
                    form: FormData, rates: CurrencyRates) -> QuoteData:
    """Convenience wrapper around QuoteCalculator.calculate."""
    return QuoteCalculator().calculate(pay, employee, form, rates)
