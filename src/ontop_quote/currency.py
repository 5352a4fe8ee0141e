#!/usr/bin/env python3
"""
Currency Rate Provider
Fetches live USD-based exchange rates and falls back to the static table from
settings.yaml whenever the service can't be used. Never raises to its caller.
"""

import asyncio
import logging
import math
from typing import Any, Dict, Optional, Tuple

import requests

from .config import get_config
from .exceptions import RateFetchFailure
from .models import ConvertedField, CurrencyRates, ParsedField
from .notifications import DESTRUCTIVE, NotificationCenter

logger = logging.getLogger(__name__)


def get_local_currency(country: str) -> str:
    """
    Resolve a country name (or ISO alpha-2 code) to its currency.
    Unknown countries default to USD.
    """
    countries: Dict[str, str] = get_config("countries", {}) or {}
    if not country:
        return 'USD'

    name = country.strip()
    if name in countries:
        return countries[name]

    lowered = name.lower()
    for known, currency in countries.items():
        if known.lower() == lowered:
            return currency

    alias = (get_config("country_codes", {}) or {}).get(name.upper())
    if alias and alias in countries:
        return countries[alias]

    logger.warning(f"No currency mapped for country '{country}', defaulting to USD")
    return 'USD'


def fallback_rates() -> CurrencyRates:
    table = get_config("rates.fallback", {}) or {}
    return CurrencyRates(
        base=table.get('base', 'USD'),
        date=str(table.get('date', '')),
        rates={code: float(rate) for code, rate in (table.get('rates') or {}).items()},
    )


def resolve_rate(rates: CurrencyRates, currency: str) -> float:
    """USD -> currency multiplier; 1 when missing or unusable."""
    rate = rates.rates.get(currency)
    if rate is None:
        logger.warning(f"No exchange rate for {currency}, using 1")
        return 1.0
    try:
        rate = float(rate)
    except (TypeError, ValueError):
        return 1.0
    if not math.isfinite(rate) or rate <= 0:
        logger.warning(f"Unusable exchange rate for {currency}: {rate}, using 1")
        return 1.0
    return rate


def convert_field(field: ParsedField, rate_to_local: float, rate_to_usd: float) -> ConvertedField:
    """
    Project a field into local currency and USD.

    USD fields keep their amount as ``usd_amount``; anything else is taken to be
    in the local currency already and keeps its amount as ``local_amount``.
    """
    if field.currency == 'USD':
        usd_amount = field.amount
        local_amount = field.amount * rate_to_local
    else:
        local_amount = field.amount
        usd_amount = field.amount * rate_to_usd

    return ConvertedField(
        label=field.label,
        amount=field.amount,
        currency=field.currency,
        local_amount=local_amount,
        usd_amount=usd_amount,
    )


class CurrencyRateProvider:
    """One best-effort call to the public rate service, no retries."""

    def __init__(self, notifications: Optional[NotificationCenter] = None,
                 endpoint: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.notifications = notifications
        self.endpoint = endpoint or get_config("rates.endpoint")
        self.timeout = timeout or get_config("rates.timeout_seconds", 10)
        self.session = session or requests.Session()

    def load_rates(self) -> Tuple[CurrencyRates, bool]:
        """
        Blocking fetch that never raises and publishes nothing.

        Returns:
            ``(rates, live)``; ``live`` is False when the fallback table was used.
        """
        try:
            logger.info("Fetching live exchange rates...")
            rates = self._fetch_live()
            logger.info(f"Live exchange rates fetched ({len(rates.rates)} currencies, {rates.date})")
            return rates, True
        except RateFetchFailure as e:
            logger.warning(f"Failed to fetch live rates, using fallback: {e}")
            return fallback_rates(), False

    def fetch_rates(self) -> CurrencyRates:
        """Return live rates, or the fallback table (with one notification) on any failure."""
        rates, live = self.load_rates()
        if not live:
            self._notify_fallback()
        return rates

    async def fetch_rates_async(self) -> CurrencyRates:
        """Like ``fetch_rates``, with the request off the event loop and the notice published on it."""
        loop = asyncio.get_running_loop()
        rates, live = await loop.run_in_executor(None, self.load_rates)
        if not live:
            self._notify_fallback()
        return rates

    def _notify_fallback(self):
        if self.notifications:
            self.notifications.publish(
                DESTRUCTIVE,
                "Exchange Rates",
                "Live exchange rates unavailable, using fallback rates.",
            )

    def _fetch_live(self) -> CurrencyRates:
        try:
            response = self.session.get(self.endpoint, timeout=self.timeout)
        except requests.RequestException as e:
            raise RateFetchFailure(f"request failed: {e}") from e

        if not 200 <= response.status_code < 300:
            raise RateFetchFailure(f"HTTP error! status: {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise RateFetchFailure(f"invalid JSON: {e}") from e

        return self._validate_payload(data)

    def _validate_payload(self, data: Any) -> CurrencyRates:
        if not isinstance(data, dict) or data.get('result') != 'success':
            raise RateFetchFailure("Invalid API response format")

        base = str(data.get('base_code') or 'USD').upper()
        if base != 'USD':
            raise RateFetchFailure(f"unexpected base currency {base}")

        raw_rates = data.get('rates')
        if not isinstance(raw_rates, dict) or not raw_rates:
            raise RateFetchFailure("response has no rates")

        rates = {}
        for code, value in raw_rates.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise RateFetchFailure(f"non-numeric rate for {code}")
            try:
                rate = float(value)
            except (TypeError, ValueError, OverflowError) as e:
                raise RateFetchFailure(f"unusable rate for {code}: {e}") from e
            if not math.isfinite(rate):
                raise RateFetchFailure(f"non-finite rate for {code}")
            rates[str(code).upper()] = rate

        return CurrencyRates(
            base=base,
            date=str(data.get('time_last_update_utc') or ''),
            rates=rates,
        )
