"""
Market data service: quote/history fallback chain, caches and stock lists.

Quotes are assembled from the first source that answers:
    Yahoo Finance (yfinance)  ->  NSE quote-equity JSON  ->  mock data
Every outbound call goes through a single RateLimiter lane, and whatever
comes back (live or synthetic) is cached for a short TTL.
"""
import logging
import os
import random
import time

import yfinance as yf

from mock_data import generate_history, generate_mock_quote
from nse_scraper import NSEScraper
from rate_limiter import RateLimiter
from ttl_cache import TTLCache

logger = logging.getLogger(__name__)

# ── Config ────────────────────────────────────────────────

LIVE_DATA = os.environ.get("LIVE_DATA", "true").lower() == "true"
SCREEN_LIVE = os.environ.get("SCREEN_LIVE", "false").lower() == "true"
RATE_LIMIT_DELAY = float(os.environ.get("RATE_LIMIT_DELAY", "0.5"))
QUOTE_CACHE_TTL = float(os.environ.get("QUOTE_CACHE_TTL", "60"))
HISTORY_CACHE_TTL = float(os.environ.get("HISTORY_CACHE_TTL", "300"))
STOCK_LIST_TTL = float(os.environ.get("STOCK_LIST_TTL", "3600"))
NSE_TIMEOUT = float(os.environ.get("NSE_TIMEOUT", "10"))
NSE_UNIVERSE_INDEX = "NIFTY 500"

MARKETS = [
    {"code": "NSE", "name": "National Stock Exchange"},
    {"code": "BSE", "name": "Bombay Stock Exchange"},
]
MARKET_SUFFIX = {"NSE": ".NS", "BSE": ".BO"}

# Used whenever NSE's index endpoint is unreachable.
DEFAULT_TICKERS = [
    'RELIANCE', 'TCS', 'HDFCBANK', 'INFY', 'HINDUNILVR', 'ICICIBANK', 'SBIN', 'BHARTIARTL', 'ITC', 'KOTAKBANK',
    'LT', 'AXISBANK', 'BAJFINANCE', 'ASIANPAINT', 'MARUTI', 'HCLTECH', 'WIPRO', 'ULTRACEMCO', 'TITAN', 'NESTLEIND',
    'SUNPHARMA', 'ONGC', 'NTPC', 'POWERGRID', 'M&M', 'TATAMOTORS', 'TATASTEEL', 'TECHM', 'BAJAJFINSV', 'ADANIPORTS',
    'DIVISLAB', 'DRREDDY', 'CIPLA', 'APOLLOHOSP', 'HEROMOTOCO', 'EICHERMOT', 'GRASIM', 'HINDALCO', 'JSWSTEEL', 'BRITANNIA',
    'COALINDIA', 'INDUSINDBK', 'BPCL', 'IOC', 'BAJAJ-AUTO', 'TATACONSUM', 'SHREECEM', 'UPL', 'VEDL', 'ADANIENT',
    'DABUR', 'GODREJCP', 'MARICO', 'PIDILITIND', 'BERGEPAINT', 'HAVELLS', 'VOLTAS', 'BOSCHLTD', 'SIEMENS', 'ABB',
    'DLF', 'GAIL', 'AMBUJACEM', 'ACC', 'BANKBARODA', 'CANBK', 'PNB', 'UNIONBANK', 'IDEA', 'ZEEL',
    'SAIL', 'NMDC', 'RVNL', 'IRCTC', 'ZOMATO', 'PAYTM', 'NYKAA', 'POLICYBZR', 'DELHIVERY', 'LTIM',
    'TATAPOWER', 'ADANIGREEN', 'ADANIPOWER', 'TORNTPOWER', 'PGHH', 'COLPAL', 'IGL', 'MGL', 'PETRONET', 'PAGEIND',
    'MCDOWELL-N', 'ABFRL', 'ABCAPITAL', 'MOTHERSON', 'BALKRISIND', 'APOLLOTYRE', 'CUMMINSIND', 'ESCORTS', 'EXIDEIND', 'AMARAJABAT',
]

DEFAULT_STOCKS = {
    market: [f"{ticker}{suffix}" for ticker in DEFAULT_TICKERS]
    for market, suffix in MARKET_SUFFIX.items()
}

# Period key -> (yfinance period, yfinance interval)
HISTORY_PERIODS = {
    "1mo": ("1mo", "1d"),
    "3mo": ("3mo", "1d"),
    "6mo": ("6mo", "1d"),
    "1y": ("1y", "1d"),
    "2y": ("2y", "1d"),
    "5y": ("5y", "1wk"),
}
MOCK_HISTORY_DAYS = {"1mo": 30, "3mo": 90, "6mo": 180, "1y": 365, "2y": 730, "5y": 1825}

QUOTE_FIELDS = [
    'regularMarketPrice', 'regularMarketChange', 'regularMarketChangePercent', 'regularMarketVolume',
    'trailingPE', 'priceToBook', 'returnOnEquity', 'profitMargins', 'revenueGrowth', 'debtToEquity',
    'dividendYield', 'earningsGrowth', 'marketCap', 'sector', 'industry', 'longName', 'shortName',
    'fiftyTwoWeekHigh', 'fiftyTwoWeekLow', 'beta', 'averageVolume',
]

# Screener criterion -> (quote field, bound)
SCREEN_CRITERIA = {
    'minPE': ('trailingPE', 'min'),
    'maxPE': ('trailingPE', 'max'),
    'maxPB': ('priceToBook', 'max'),
    'minROE': ('returnOnEquity', 'min'),
    'minProfitMargin': ('profitMargins', 'min'),
    'minRevenueGrowth': ('revenueGrowth', 'min'),
    'minMarketCap': ('marketCap', 'min'),
    'maxDebtEquity': ('debtToEquity', 'max'),
    'minDividendYield': ('dividendYield', 'min'),
}


class UnknownMarketError(ValueError):
    pass


def normalize_symbol(symbol):
    """Upper-case a symbol and default bare tickers to NSE ('infy' -> 'INFY.NS')."""
    if not isinstance(symbol, str) or not symbol.strip():
        raise ValueError(f"Invalid symbol: {symbol!r}")
    symbol = symbol.strip().upper()
    if symbol.startswith('^') or symbol.endswith(tuple(MARKET_SUFFIX.values())):
        return symbol
    return symbol + MARKET_SUFFIX["NSE"]


def parse_criteria(criteria):
    """Keep known, non-zero criteria as floats. Raises ValueError on bad input."""
    if not isinstance(criteria, dict):
        raise ValueError("criteria must be an object")
    parsed = {}
    for key, value in criteria.items():
        if key not in SCREEN_CRITERIA or not value:
            continue
        try:
            parsed[key] = float(value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid value for {key}: {value!r}")
    return parsed


def matches_criteria(quote, criteria):
    for key, threshold in criteria.items():
        field, bound = SCREEN_CRITERIA[key]
        value = quote.get(field)
        if value is None:
            return False
        if bound == 'min' and value < threshold:
            return False
        if bound == 'max' and value > threshold:
            return False
    return True


def composite_score(quote):
    """Rank a quote on value, quality and growth; higher is better."""
    score = 0.0
    pe = quote.get('trailingPE')
    if pe and pe > 0:
        score += (1 / pe) * 100
    if quote.get('returnOnEquity'):
        score += quote['returnOnEquity'] * 100
    if quote.get('profitMargins'):
        score += quote['profitMargins'] * 100
    if quote.get('revenueGrowth'):
        score += quote['revenueGrowth'] * 50
    if quote.get('debtToEquity'):
        score += max(0, 10 - (quote['debtToEquity'] / 100) * 5)
    return score


# ── Yahoo Finance ─────────────────────────────────────────

class YahooProvider:
    name = 'yahoo'

    def fetch_quote(self, symbol):
        info = yf.Ticker(symbol).info or {}
        price = info.get('regularMarketPrice') or info.get('currentPrice')
        if price is None:
            raise LookupError(f"No Yahoo price for {symbol}")
        quote = {'symbol': symbol}
        quote.update({field: info.get(field) for field in QUOTE_FIELDS})
        quote['regularMarketPrice'] = price
        return quote

    def fetch_history(self, symbol, period):
        yf_period, interval = HISTORY_PERIODS[period]
        hist = yf.Ticker(symbol).history(period=yf_period, interval=interval)
        if hist.empty:
            raise LookupError(f"No Yahoo history for {symbol}/{period}")

        bars = []
        for idx, row in hist.iterrows():
            bars.append({
                "date": idx.strftime("%Y-%m-%d"),
                "open": round(float(row["Open"]), 2),
                "high": round(float(row["High"]), 2),
                "low": round(float(row["Low"]), 2),
                "close": round(float(row["Close"]), 2),
                "volume": int(row["Volume"]) if row["Volume"] else 0,
            })
        return bars


# ── Service ───────────────────────────────────────────────

class MarketDataService:
    def __init__(self, primary=None, secondary=None, limiter=None, live=LIVE_DATA,
                 screen_live=SCREEN_LIVE, quote_ttl=QUOTE_CACHE_TTL, history_ttl=HISTORY_CACHE_TTL,
                 list_ttl=STOCK_LIST_TTL, rng=None, clock=time.time):
        self.primary = primary if primary is not None else YahooProvider()
        self.secondary = secondary if secondary is not None else NSEScraper(timeout=NSE_TIMEOUT)
        self.limiter = limiter or RateLimiter(min_delay=RATE_LIMIT_DELAY, name="upstream")
        self.live = live
        self.screen_live = screen_live
        self.rng = rng or random.Random()
        # symbol -> (quote, source)
        self.quotes = TTLCache(quote_ttl, clock)
        self.screen_quotes = TTLCache(quote_ttl, clock)
        self.history = TTLCache(history_ttl, clock)
        self.stock_lists = TTLCache(list_ttl, clock)

    # Quotes

    def get_quote(self, symbol, allow_live=True):
        symbol = normalize_symbol(symbol)
        cached = self.quotes.get(symbol)
        if cached is None and not allow_live:
            cached = self.screen_quotes.get(symbol)
        if cached is not None:
            return cached[0]

        live = allow_live and self.live
        quote, source = self._assemble_quote(symbol, live)
        # Mocks made only because live lookups were skipped must not shadow the shared tier.
        tier = self.quotes if live or not self.live else self.screen_quotes
        tier.set(symbol, (quote, source))
        logger.info(f"Quote for {symbol} served from {source}")
        return quote

    def _assemble_quote(self, symbol, live):
        if live:
            for provider in (self.primary, self.secondary):
                try:
                    return self.limiter.call(provider.fetch_quote, symbol), provider.name
                except Exception as e:
                    logger.warning(f"{provider.name} quote failed for {symbol}: {e}")
        return generate_mock_quote(symbol, self.rng), 'mock'

    def last_source(self, symbol):
        cached = self.quotes.get(normalize_symbol(symbol))
        return cached[1] if cached is not None else None

    def get_batch(self, symbols):
        results = []
        for symbol in symbols:
            try:
                results.append({"symbol": symbol, "data": self.get_quote(symbol), "error": None})
            except Exception as e:
                logger.error(f"Error with {symbol}: {e}")
                results.append({"symbol": symbol, "data": None, "error": str(e)})
        return results

    # History

    def get_history(self, symbol, period="1y"):
        if period not in HISTORY_PERIODS:
            raise ValueError(f"Invalid period. Use: {', '.join(HISTORY_PERIODS)}")
        symbol = normalize_symbol(symbol)
        key = (symbol, period)
        cached = self.history.get(key)
        if cached is not None:
            return cached

        bars = None
        if self.live:
            try:
                bars = self.limiter.call(self.primary.fetch_history, symbol, period)
            except Exception as e:
                logger.warning(f"{self.primary.name} history failed for {symbol}/{period}: {e}")
        if bars is None:
            bars = generate_history(MOCK_HISTORY_DAYS[period], self.rng)

        self.history.set(key, bars)
        return bars

    # Stock universe

    def get_stock_list(self, market):
        if not isinstance(market, str):
            raise UnknownMarketError(f"Unknown market: {market!r}")
        market = market.upper()
        if market not in MARKET_SUFFIX:
            raise UnknownMarketError(f"Unknown market: {market}")

        cached = self.stock_lists.get(market)
        if cached is not None:
            logger.info(f"Using cached {market} stock list ({len(cached)} stocks)")
            return cached

        logger.info(f"Fetching fresh {market} stock list...")
        if market == "NSE":
            symbols = self._fetch_nse_universe()
        else:
            # BSE has no simple public list; mirror NSE with the .BO suffix.
            symbols = [s[:-len(".NS")] + ".BO" for s in self.get_stock_list("NSE")]

        self.stock_lists.set(market, symbols)
        return symbols

    def _fetch_nse_universe(self):
        if self.live:
            try:
                tickers = self.limiter.call(self.secondary.fetch_index_symbols, NSE_UNIVERSE_INDEX)
                return [f"{t}.NS" for t in tickers]
            except Exception as e:
                logger.warning(f"NSE index unavailable, using default list: {e}")
        return list(DEFAULT_STOCKS["NSE"])

    # Screening

    def screen(self, market="NSE", criteria=None):
        criteria = parse_criteria(criteria or {})
        symbols = self.get_stock_list(market)
        logger.info(f"Screening {len(symbols)} {market.upper()} stocks...")

        results = []
        for symbol in symbols:
            quote = self.get_quote(symbol, allow_live=self.screen_live)
            if matches_criteria(quote, criteria):
                results.append({"symbol": symbol, "data": quote})

        logger.info(f"Screened {len(results)}/{len(symbols)} stocks")
        return results

    def top_stocks(self, market="NSE", limit=10):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        symbols = self.get_stock_list(market)[:limit]

        ranked = []
        for item in self.get_batch(symbols):
            quote = item["data"]
            if item["error"] or not quote:
                continue
            ranked.append({
                "symbol": item["symbol"],
                "company": quote.get("longName") or quote.get("shortName"),
                "price": quote.get("regularMarketPrice"),
                "peRatio": quote.get("trailingPE"),
                "roe": round((quote.get("returnOnEquity") or 0) * 100, 2),
                "profitMargin": round((quote.get("profitMargins") or 0) * 100, 2),
                "revenueGrowth": round((quote.get("revenueGrowth") or 0) * 100, 2),
                "score": round(composite_score(quote), 2),
            })
        ranked.sort(key=lambda s: s["score"], reverse=True)
        return ranked

    def stats(self):
        return {
            "cache": {
                "quotes": len(self.quotes),
                "history": len(self.history),
                "stockLists": len(self.stock_lists),
            },
            "queue": self.limiter.pending,
            "upstreamCalls": self.limiter.calls_made,
        }
