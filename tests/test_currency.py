#!/usr/bin/env python3
"""
Tests for exchange-rate fetching, fallback and country lookup.
"""

import asyncio
import sys
import threading
import unittest
from pathlib import Path
from unittest.mock import MagicMock

import requests

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ontop_quote.currency import (CurrencyRateProvider, convert_field, fallback_rates,
                                  get_local_currency, resolve_rate)
from ontop_quote.models import CurrencyRates, ParsedField
from ontop_quote.notifications import DESTRUCTIVE, NotificationCenter


def make_session(payload=None, status_code=200, json_error=None, get_error=None):
    session = MagicMock()
    if get_error:
        session.get.side_effect = get_error
        return session

    response = MagicMock()
    response.status_code = status_code
    if json_error:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    session.get.return_value = response
    return session


LIVE_PAYLOAD = {
    "result": "success",
    "base_code": "USD",
    "time_last_update_utc": "Mon, 01 Jan 2024 00:00:01 +0000",
    "rates": {"USD": 1, "CLP": 950.25, "EUR": 0.91},
}


class TestCurrencyRateProvider(unittest.TestCase):

    def setUp(self):
        self.notifications = NotificationCenter()
        self.received = []
        self.notifications.subscribe(self.received.append)

    def provider(self, session):
        return CurrencyRateProvider(self.notifications, endpoint="https://rates.test/USD",
                                    timeout=3, session=session)

    def test_live_rates(self):
        session = make_session(LIVE_PAYLOAD)
        rates = self.provider(session).fetch_rates()

        self.assertEqual(rates.base, "USD")
        self.assertEqual(rates.rates["CLP"], 950.25)
        self.assertEqual(rates.date, LIVE_PAYLOAD["time_last_update_utc"])
        session.get.assert_called_once_with("https://rates.test/USD", timeout=3)
        self.assertEqual(self.received, [])

    def assert_fell_back(self, rates):
        self.assertEqual(rates, fallback_rates())
        self.assertEqual(len(self.received), 1)
        self.assertEqual(self.received[0].variant, DESTRUCTIVE)

    def test_http_error_falls_back(self):
        self.assert_fell_back(self.provider(make_session(LIVE_PAYLOAD, status_code=503)).fetch_rates())

    def test_network_error_falls_back(self):
        session = make_session(get_error=requests.ConnectionError("connection refused"))
        self.assert_fell_back(self.provider(session).fetch_rates())

    def test_bad_json_falls_back(self):
        session = make_session(json_error=ValueError("Expecting value"))
        self.assert_fell_back(self.provider(session).fetch_rates())

    def test_malformed_payloads_fall_back(self):
        payloads = [
            {"result": "error", "error-type": "unsupported-code"},
            {"result": "success", "base_code": "EUR", "rates": {"USD": 1.1}},
            {"result": "success", "base_code": "USD", "rates": {}},
            {"result": "success", "base_code": "USD", "rates": {"CLP": "950"}},
            {"result": "success", "base_code": "USD", "rates": {"USD": 1, "XXX": 10 ** 400}},
            {"result": "success", "base_code": "USD", "rates": {"USD": 1, "XXX": float("inf")}},
            ["not", "a", "dict"],
        ]
        for payload in payloads:
            with self.subTest(payload=payload):
                self.received.clear()
                self.assert_fell_back(self.provider(make_session(payload)).fetch_rates())

    def test_load_rates_publishes_nothing(self):
        rates, live = self.provider(make_session(status_code=500)).load_rates()

        self.assertFalse(live)
        self.assertEqual(rates, fallback_rates())
        self.assertEqual(self.received, [])

        rates, live = self.provider(make_session(LIVE_PAYLOAD)).load_rates()
        self.assertTrue(live)
        self.assertEqual(rates.rates["EUR"], 0.91)

    def test_fetch_rates_async_notifies_on_the_loop(self):
        threads = []
        self.notifications.subscribe(lambda notification: threads.append(threading.get_ident()))
        provider = self.provider(make_session(get_error=requests.Timeout("timed out")))

        async def run():
            return await provider.fetch_rates_async(), threading.get_ident()

        rates, loop_thread = asyncio.run(run())

        self.assertEqual(rates, fallback_rates())
        self.assertEqual(len(self.received), 1)
        self.assertEqual(threads, [loop_thread])

    def test_fallback_without_notifications(self):
        provider = CurrencyRateProvider(session=make_session(status_code=500))
        self.assertEqual(provider.fetch_rates().rates["CLP"], 800.0)


class TestCurrencyHelpers(unittest.TestCase):

    def test_get_local_currency(self):
        test_cases = [
            ("Chile", "CLP"),
            ("chile", "CLP"),
            (" United Kingdom ", "GBP"),
            ("CL", "CLP"),
            ("Atlantis", "USD"),
            ("", "USD"),
        ]
        for country, expected in test_cases:
            with self.subTest(country=country):
                self.assertEqual(get_local_currency(country), expected)

    def test_fallback_table(self):
        rates = fallback_rates()
        self.assertEqual(rates.base, "USD")
        self.assertEqual(rates.rates["USD"], 1.0)
        self.assertEqual(rates.rates["CLP"], 800.0)

    def test_resolve_rate(self):
        rates = CurrencyRates("USD", "", {"CLP": 800, "BAD": 0, "NAN": float("nan")})
        self.assertEqual(resolve_rate(rates, "CLP"), 800)
        self.assertEqual(resolve_rate(rates, "BAD"), 1.0)
        self.assertEqual(resolve_rate(rates, "NAN"), 1.0)
        self.assertEqual(resolve_rate(rates, "XYZ"), 1.0)

    def test_convert_field(self):
        usd = convert_field(ParsedField("Gross Monthly Salary", 3000, "USD"), 800, 1 / 800)
        self.assertEqual(usd.usd_amount, 3000)
        self.assertEqual(usd.local_amount, 2400000)

        local = convert_field(ParsedField("Gross Monthly Salary", 2400000, "CLP"), 800, 1 / 800)
        self.assertEqual(local.local_amount, 2400000)
        self.assertAlmostEqual(local.usd_amount, 3000)


if __name__ == "__main__":
    unittest.main()
