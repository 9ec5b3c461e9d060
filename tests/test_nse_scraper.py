import pytest
import requests

from nse_scraper import NSE_BASE_URL, NSEError, NSEScraper


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.headers = {}
        self.responses = list(responses)
        self.requests = []

    def get(self, url, params=None, timeout=None):
        self.requests.append((url, params))
        if url == NSE_BASE_URL:
            return FakeResponse(200)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


QUOTE_PAYLOAD = {
    "info": {"symbol": "RELIANCE", "companyName": "Reliance Industries Limited", "industry": "Refineries"},
    "metadata": {"pdSymbolPe": "24.51"},
    "industryInfo": {"sector": "Oil Gas & Consumable Fuels", "industry": "Petroleum Products"},
    "securityInfo": {"issuedSize": 1000},
    "priceInfo": {
        "lastPrice": 2456.5,
        "change": 12.346,
        "pChange": 0.5051,
        "weekHighLow": {"min": 2180.0, "max": 3024.9},
    },
}


def test_fetch_quote_maps_nse_fields():
    session = FakeSession([FakeResponse(200, QUOTE_PAYLOAD)])
    scraper = NSEScraper(session=session)

    quote = scraper.fetch_quote("RELIANCE.NS")

    assert session.requests[0] == (NSE_BASE_URL, None)
    assert session.requests[1] == (f"{NSE_BASE_URL}/api/quote-equity", {"symbol": "RELIANCE"})
    assert "Mozilla" in session.headers["User-Agent"]

    assert quote["symbol"] == "RELIANCE.NS"
    assert quote["regularMarketPrice"] == 2456.5
    assert quote["regularMarketChange"] == 12.35
    assert quote["regularMarketChangePercent"] == 0.51
    assert quote["trailingPE"] == 24.51
    assert quote["marketCap"] == 2456500
    assert quote["longName"] == "Reliance Industries Limited"
    assert quote["shortName"] == "RELIANCE"
    assert quote["sector"] == "Oil Gas & Consumable Fuels"
    assert quote["industry"] == "Petroleum Products"
    assert quote["fiftyTwoWeekHigh"] == 3024.9
    assert quote["fiftyTwoWeekLow"] == 2180.0
    assert quote["returnOnEquity"] is None


def test_session_primed_only_once():
    session = FakeSession([FakeResponse(200, QUOTE_PAYLOAD), FakeResponse(200, QUOTE_PAYLOAD)])
    scraper = NSEScraper(session=session)
    scraper.fetch_quote("RELIANCE.NS")
    scraper.fetch_quote("RELIANCE.BO")

    homepage_hits = [r for r in session.requests if r[0] == NSE_BASE_URL]
    assert len(homepage_hits) == 1


def test_forbidden_response_reprimes_session():
    session = FakeSession([FakeResponse(403), FakeResponse(200, QUOTE_PAYLOAD)])
    scraper = NSEScraper(session=session)

    with pytest.raises(NSEError):
        scraper.fetch_quote("RELIANCE.NS")
    scraper.fetch_quote("RELIANCE.NS")

    homepage_hits = [r for r in session.requests if r[0] == NSE_BASE_URL]
    assert len(homepage_hits) == 2


def test_missing_price_raises():
    payload = {"priceInfo": {"lastPrice": "-"}}
    scraper = NSEScraper(session=FakeSession([FakeResponse(200, payload)]))
    with pytest.raises(NSEError, match="No price"):
        scraper.fetch_quote("XYZ.NS")


def test_network_error_and_bad_json_raise_nse_error():
    scraper = NSEScraper(session=FakeSession([requests.ConnectionError("boom"), FakeResponse(200, None)]))
    with pytest.raises(NSEError):
        scraper.fetch_quote("TCS.NS")
    with pytest.raises(NSEError, match="invalid JSON"):
        scraper.fetch_quote("TCS.NS")


def test_fetch_index_symbols_skips_index_row():
    payload = {
        "name": "NIFTY 500",
        "data": [{"symbol": "NIFTY 500"}, {"symbol": "RELIANCE"}, {"symbol": "TCS"}, {"symbol": None}],
    }
    session = FakeSession([FakeResponse(200, payload)])

    symbols = NSEScraper(session=session).fetch_index_symbols("NIFTY 500")

    assert symbols == ["RELIANCE", "TCS"]
    assert session.requests[-1] == (f"{NSE_BASE_URL}/api/equity-stockIndices", {"index": "NIFTY 500"})


def test_empty_index_raises():
    session = FakeSession([FakeResponse(200, {"data": []})])
    with pytest.raises(NSEError):
        NSEScraper(session=session).fetch_index_symbols()
