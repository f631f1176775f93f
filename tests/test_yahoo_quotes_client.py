import unittest
from unittest.mock import MagicMock

import requests

from merval_board.errors import QuotePayloadError
from merval_board.integrations.yahoo_quotes import (
    YahooBatchQuoteClient,
    YahooChartQuoteClient,
    YahooQuoteSummaryClient,
    build_default_clients,
    parse_batch_quote_payload,
    parse_chart_payload,
    parse_quote_summary_payload,
)
from merval_board.schemas.quote import Instrument

YPF = Instrument(symbol="YPFD.BA", name="YPF")


def _session_returning(payload):
    session = MagicMock()
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    session.get.return_value = response
    return session


class TestParseChartPayload(unittest.TestCase):
    def test_uses_previous_close_for_change(self):
        quote = parse_chart_payload(
            {"chart": {"result": [{"meta": {"regularMarketPrice": 110.0, "previousClose": 100.0}}]}}
        )

        self.assertEqual(quote.price, 110.0)
        self.assertAlmostEqual(quote.change, 10.0)

    def test_falls_back_to_chart_previous_close(self):
        quote = parse_chart_payload(
            {"chart": {"result": [{"meta": {"regularMarketPrice": 95.0, "chartPreviousClose": 100.0}}]}}
        )

        self.assertAlmostEqual(quote.change, -5.0)

    def test_missing_previous_close_keeps_price_without_change(self):
        quote = parse_chart_payload({"chart": {"result": [{"meta": {"regularMarketPrice": 95.0}}]}})

        self.assertEqual(quote.price, 95.0)
        self.assertIsNone(quote.change)

    def test_missing_price_or_result_raises(self):
        for payload in (
            {},
            {"chart": {"result": None, "error": {"code": "Not Found"}}},
            {"chart": {"result": []}},
            {"chart": {"result": [{"meta": {"previousClose": 100.0}}]}},
            {"chart": {"result": [{"meta": {"regularMarketPrice": 0}}]}},
            ["not", "a", "dict"],
        ):
            with self.subTest(payload=payload):
                with self.assertRaises(QuotePayloadError):
                    parse_chart_payload(payload)

    def test_non_finite_price_raises(self):
        for price in (float("nan"), float("inf"), float("-inf")):
            with self.subTest(price=price):
                with self.assertRaises(QuotePayloadError):
                    parse_chart_payload(
                        {"chart": {"result": [{"meta": {"regularMarketPrice": price, "previousClose": 100.0}}]}}
                    )
                with self.assertRaises(QuotePayloadError):
                    parse_batch_quote_payload({"quoteResponse": {"result": [{"regularMarketPrice": price}]}})
                with self.assertRaises(QuotePayloadError):
                    parse_quote_summary_payload(
                        {"quoteSummary": {"result": [{"price": {"regularMarketPrice": {"raw": price}}}]}}
                    )

    def test_non_finite_previous_close_leaves_change_empty(self):
        quote = parse_chart_payload(
            {"chart": {"result": [{"meta": {"regularMarketPrice": 95.0, "previousClose": float("nan")}}]}}
        )

        self.assertEqual(quote.price, 95.0)
        self.assertIsNone(quote.change)


class TestParseQuoteSummaryPayload(unittest.TestCase):
    def test_scales_fractional_change_to_percent(self):
        quote = parse_quote_summary_payload(
            {
                "quoteSummary": {
                    "result": [
                        {
                            "price": {
                                "regularMarketPrice": {"raw": 2450.5, "fmt": "2,450.50"},
                                "regularMarketChangePercent": {"raw": -0.0125, "fmt": "-1.25%"},
                            }
                        }
                    ]
                }
            }
        )

        self.assertEqual(quote.price, 2450.5)
        self.assertAlmostEqual(quote.change, -1.25)

    def test_computes_change_from_previous_close_when_percent_absent(self):
        quote = parse_quote_summary_payload(
            {
                "quoteSummary": {
                    "result": [
                        {
                            "price": {
                                "regularMarketPrice": {"raw": 50.0},
                                "regularMarketPreviousClose": {"raw": 40.0},
                            }
                        }
                    ]
                }
            }
        )

        self.assertAlmostEqual(quote.change, 25.0)

    def test_missing_price_module_raises(self):
        with self.assertRaises(QuotePayloadError):
            parse_quote_summary_payload({"quoteSummary": {"result": [{}]}})


class TestParseBatchQuotePayload(unittest.TestCase):
    def test_reads_percent_change_directly(self):
        quote = parse_batch_quote_payload(
            {"quoteResponse": {"result": [{"regularMarketPrice": 31.2, "regularMarketChangePercent": 2.5}]}}
        )

        self.assertEqual(quote.price, 31.2)
        self.assertEqual(quote.change, 2.5)

    def test_zero_change_is_kept(self):
        quote = parse_batch_quote_payload(
            {"quoteResponse": {"result": [{"regularMarketPrice": 31.2, "regularMarketChangePercent": 0}]}}
        )

        self.assertEqual(quote.change, 0.0)

    def test_empty_result_raises(self):
        with self.assertRaises(QuotePayloadError):
            parse_batch_quote_payload({"quoteResponse": {"result": []}})


class TestYahooQuoteClients(unittest.TestCase):
    def test_chart_client_builds_proxied_url_and_parses(self):
        session = _session_returning(
            {"chart": {"result": [{"meta": {"regularMarketPrice": 120.0, "previousClose": 100.0}}]}}
        )
        client = YahooChartQuoteClient(session=session, timeout_sec=10.0)

        quote = client.get_quote(YPF)

        self.assertEqual(quote.price, 120.0)
        self.assertAlmostEqual(quote.change, 20.0)
        session.get.assert_called_once()
        args, kwargs = session.get.call_args
        self.assertEqual(
            args[0],
            "https://corsproxy.io/?https://query1.finance.yahoo.com/v8/finance/chart/YPFD.BA?interval=1d",
        )
        self.assertEqual(kwargs["timeout"], 10.0)

    def test_summary_client_url(self):
        client = YahooQuoteSummaryClient(session=MagicMock())

        self.assertEqual(
            client.build_url("GGAL.BA"),
            "https://corsproxy.io/?https://query2.finance.yahoo.com/v10/finance/quoteSummary/GGAL.BA?modules=price",
        )

    def test_batch_client_encodes_target_url_for_relay(self):
        client = YahooBatchQuoteClient(session=MagicMock())

        self.assertEqual(
            client.build_url("TS"),
            "https://api.allorigins.win/raw?url="
            "https%3A%2F%2Fquery1.finance.yahoo.com%2Fv7%2Ffinance%2Fquote%3Fsymbols%3DTS",
        )

    def test_empty_proxy_calls_upstream_directly(self):
        client = YahooBatchQuoteClient(proxy_prefix="", session=MagicMock())

        self.assertEqual(client.build_url("TS"), "https://query1.finance.yahoo.com/v7/finance/quote?symbols=TS")

    def test_http_error_collapses_to_unavailable(self):
        session = MagicMock()
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("429 Too Many Requests")
        session.get.return_value = response
        client = YahooChartQuoteClient(session=session)

        quote = client.get_quote(YPF)

        self.assertIsNone(quote.price)
        self.assertIsNone(quote.change)
        self.assertEqual(session.get.call_count, 1)

    def test_timeout_collapses_to_unavailable(self):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("read timed out")
        client = YahooQuoteSummaryClient(session=session)

        quote = client.get_quote(YPF)

        self.assertIsNone(quote.price)
        self.assertEqual(session.get.call_count, 1)

    def test_invalid_json_collapses_to_unavailable(self):
        session = MagicMock()
        response = MagicMock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError("Expecting value")
        session.get.return_value = response
        client = YahooBatchQuoteClient(session=session)

        quote = client.get_quote(YPF)

        self.assertIsNone(quote.price)
        self.assertIsNone(quote.change)

    def test_nan_price_collapses_to_unavailable(self):
        session = _session_returning(
            {"chart": {"result": [{"meta": {"regularMarketPrice": float("nan"), "previousClose": 100.0}}]}}
        )
        client = YahooChartQuoteClient(session=session)

        quote = client.get_quote(YPF)

        self.assertIsNone(quote.price)
        self.assertIsNone(quote.change)

    def test_shape_mismatch_collapses_to_unavailable(self):
        client = YahooChartQuoteClient(session=_session_returning({"unexpected": True}))

        quote = client.get_quote(YPF)

        self.assertIsNone(quote.price)

    def test_default_clients_are_in_fallback_order(self):
        clients = build_default_clients(timeout_sec=5.0, session=MagicMock())

        self.assertEqual([c.source for c in clients], ["yahoo-chart", "yahoo-summary", "yahoo-batch"])
        self.assertTrue(all(c.timeout_sec == 5.0 for c in clients))
        self.assertEqual(clients[2].proxy_prefix, "https://api.allorigins.win/raw?url=")


if __name__ == "__main__":
    unittest.main()
