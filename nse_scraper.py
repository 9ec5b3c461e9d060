import logging

import requests

from mock_data import base_symbol

logger = logging.getLogger(__name__)

NSE_BASE_URL = 'https://www.nseindia.com'

# NSE rejects API calls without browser-like headers and the cookies
# handed out by the homepage.
NSE_HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
                  '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Accept': 'application/json, text/plain, */*',
    'Accept-Language': 'en-US,en;q=0.9',
    'Referer': 'https://www.nseindia.com/',
}


class NSEError(Exception):
    """Raised when NSE does not return usable data."""


def _to_number(value):
    """NSE mixes numbers, numeric strings and '-' placeholders."""
    if value is None or value == '' or value == '-':
        return None
    if isinstance(value, (int, float)):
        return value
    try:
        cleaned = str(value).replace(',', '').strip()
        return float(cleaned) if '.' in cleaned else int(cleaned)
    except ValueError:
        return None


class NSEScraper:
    name = 'nse'

    def __init__(self, timeout=10, session=None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(NSE_HEADERS)
        self._primed = False

    def _prime_session(self):
        """Visit the homepage once so the session carries NSE's cookies."""
        try:
            self.session.get(NSE_BASE_URL, timeout=self.timeout)
            self._primed = True
        except requests.RequestException as e:
            raise NSEError(f"Could not open NSE session: {e}") from e

    def _get_json(self, path, params):
        if not self._primed:
            self._prime_session()
        try:
            response = self.session.get(f"{NSE_BASE_URL}{path}", params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise NSEError(f"NSE request failed: {e}") from e

        if response.status_code in (401, 403):
            # Cookies expired; prime again on the next call.
            self._primed = False
        if response.status_code != 200:
            raise NSEError(f"NSE returned status {response.status_code} for {path}")
        try:
            return response.json()
        except ValueError as e:
            raise NSEError(f"NSE returned invalid JSON for {path}") from e

    def fetch_quote(self, symbol):
        """Build a quote record from NSE's quote-equity endpoint."""
        ticker = base_symbol(symbol)
        data = self._get_json('/api/quote-equity', {'symbol': ticker})

        price_info = data.get('priceInfo') or {}
        price = _to_number(price_info.get('lastPrice'))
        if price is None:
            raise NSEError(f"No price in NSE response for {ticker}")

        info = data.get('info') or {}
        metadata = data.get('metadata') or {}
        industry_info = data.get('industryInfo') or {}
        week_range = price_info.get('weekHighLow') or {}
        issued = _to_number((data.get('securityInfo') or {}).get('issuedSize'))
        company = info.get('companyName')

        return {
            'symbol': symbol,
            'regularMarketPrice': price,
            'regularMarketChange': _round(_to_number(price_info.get('change'))),
            'regularMarketChangePercent': _round(_to_number(price_info.get('pChange'))),
            'regularMarketVolume': None,
            'trailingPE': _to_number(metadata.get('pdSymbolPe')),
            'priceToBook': None,
            'returnOnEquity': None,
            'profitMargins': None,
            'revenueGrowth': None,
            'debtToEquity': None,
            'dividendYield': None,
            'earningsGrowth': None,
            'marketCap': int(price * issued) if issued else None,
            'sector': industry_info.get('sector'),
            'industry': industry_info.get('industry') or info.get('industry'),
            'longName': company,
            'shortName': ticker,
            'fiftyTwoWeekHigh': _to_number(week_range.get('max')),
            'fiftyTwoWeekLow': _to_number(week_range.get('min')),
            'beta': None,
            'averageVolume': None,
        }

    def fetch_index_symbols(self, index='NIFTY 500'):
        """Return the constituent symbols (without suffix) of an NSE index."""
        data = self._get_json('/api/equity-stockIndices', {'index': index})
        rows = data.get('data') or []
        symbols = [row['symbol'] for row in rows if row.get('symbol') and row['symbol'] != index]
        if not symbols:
            raise NSEError(f"NSE returned no constituents for {index}")
        logger.info(f"Fetched {len(symbols)} constituents of {index} from NSE")
        return symbols


def _round(value):
    return round(value, 2) if value is not None else None
