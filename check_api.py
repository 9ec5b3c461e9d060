#!/usr/bin/env python3
"""
check_api.py -- HTTP contract check against a running API server.

Hits every endpoint once and verifies status codes and JSON shape.
Exits non-zero if any check fails, so it can gate a deployment.

Usage:
    python check_api.py                       # uses API_BASE_URL or localhost:5000
    python check_api.py https://my-app.example.com
"""
import os
import sys

import requests

API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:5000")
TIMEOUT = float(os.environ.get("CHECK_TIMEOUT", "60"))

QUOTE_KEYS = {"symbol", "regularMarketPrice", "trailingPE", "marketCap", "longName"}
BAR_KEYS = {"date", "open", "high", "low", "close", "volume"}
IPO_KEYS = {"id", "companyName", "status", "priceRangeMin", "priceRangeMax", "openDate"}


class CheckFailed(Exception):
    pass


def _expect(condition, message):
    if not condition:
        raise CheckFailed(message)


def check_markets(session, base):
    r = session.get(f"{base}/api/markets", timeout=TIMEOUT)
    _expect(r.status_code == 200, f"status {r.status_code}")
    codes = {m.get("code") for m in r.json()}
    _expect(codes == {"NSE", "BSE"}, f"unexpected markets {codes}")


def check_stock_list(session, base):
    r = session.get(f"{base}/api/stocks/default/NSE", timeout=TIMEOUT)
    _expect(r.status_code == 200, f"status {r.status_code}")
    symbols = r.json()
    _expect(isinstance(symbols, list) and symbols, "empty stock list")
    _expect(all(s.endswith(".NS") for s in symbols), "NSE list has non-.NS symbols")

    r = session.get(f"{base}/api/stocks/default/XYZ", timeout=TIMEOUT)
    _expect(r.status_code == 404, f"unknown market returned {r.status_code}")


def check_quote(session, base):
    r = session.get(f"{base}/api/stock/RELIANCE.NS", timeout=TIMEOUT)
    _expect(r.status_code == 200, f"status {r.status_code}")
    missing = QUOTE_KEYS - set(r.json())
    _expect(not missing, f"quote missing {sorted(missing)}")


def check_history(session, base):
    r = session.get(f"{base}/api/stock/TCS.NS/history", params={"period": "1mo"}, timeout=TIMEOUT)
    _expect(r.status_code == 200, f"status {r.status_code}")
    bars = r.json()
    _expect(bars and not (BAR_KEYS - set(bars[0])), "history bars malformed")

    r = session.get(f"{base}/api/stock/TCS.NS/history", params={"period": "7w"}, timeout=TIMEOUT)
    _expect(r.status_code == 400, f"bad period returned {r.status_code}")


def check_batch(session, base):
    r = session.post(f"{base}/api/stocks/batch", json={"symbols": ["INFY.NS", "ITC.BO"]}, timeout=TIMEOUT)
    _expect(r.status_code == 200, f"status {r.status_code}")
    items = r.json()
    _expect(len(items) == 2, f"expected 2 items, got {len(items)}")
    _expect(all({"symbol", "data", "error"} <= set(i) for i in items), "batch item malformed")

    r = session.post(f"{base}/api/stocks/batch", json={}, timeout=TIMEOUT)
    _expect(r.status_code == 400, f"missing symbols returned {r.status_code}")


def check_screen(session, base):
    body = {"market": "NSE", "criteria": {"maxPE": 25}}
    r = session.post(f"{base}/api/stocks/screen", json=body, timeout=TIMEOUT)
    _expect(r.status_code == 200, f"status {r.status_code}")
    for item in r.json():
        pe = item["data"].get("trailingPE")
        _expect(pe is not None and pe <= 25, f"{item['symbol']} fails maxPE ({pe})")


def check_ipos(session, base):
    r = session.get(f"{base}/api/ipos", timeout=TIMEOUT)
    _expect(r.status_code == 200, f"status {r.status_code}")
    ipos = r.json()
    _expect(ipos and not (IPO_KEYS - set(ipos[0])), "IPO records malformed")


CHECKS = [
    ("Markets", check_markets),
    ("Stock lists", check_stock_list),
    ("Single quote", check_quote),
    ("Price history", check_history),
    ("Batch quotes", check_batch),
    ("Screener", check_screen),
    ("IPO calendar", check_ipos),
]


def run_checks(base=API_BASE_URL, session=None):
    """Run every check, print a line per check and return the failure count."""
    session = session or requests.Session()
    base = base.rstrip("/")
    failures = 0

    print(f"Checking {base}")
    for name, check in CHECKS:
        try:
            check(session, base)
            print(f"  ✓ {name}")
        except (CheckFailed, requests.RequestException, ValueError, KeyError, TypeError) as e:
            failures += 1
            print(f"  ✗ {name}: {e}")

    print(f"\n{len(CHECKS) - failures}/{len(CHECKS)} checks passed")
    return failures


if __name__ == "__main__":
    base = sys.argv[1] if len(sys.argv) > 1 else API_BASE_URL
    sys.exit(1 if run_checks(base) else 0)
