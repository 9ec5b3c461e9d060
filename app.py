"""
Indian Markets Dashboard -- Flask Backend
Serves NSE/BSE quotes, history, screening and a synthetic IPO calendar.
Live data is best-effort (Yahoo -> NSE) with mock data as the last resort.
"""
import os
import logging

from flask import Flask, jsonify, request
from flask_cors import CORS

from market_data import MARKETS, HISTORY_PERIODS, MarketDataService, UnknownMarketError
from mock_data import IPO_STATUSES, generate_ipos

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

app = Flask(__name__)
CORS(app)

service = MarketDataService()


# ── Routes ─────────────────────────────────────────────────

@app.route("/api/health")
def api_health():
    return jsonify({"status": "ok", "liveData": service.live, **service.stats()})


@app.route("/api/stock/<symbol>")
def api_stock(symbol):
    logging.info(f"Fetching data for {symbol}...")
    try:
        quote = service.get_quote(symbol)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logging.error(f"Error fetching {symbol}: {e}")
        return jsonify({"error": "Unable to fetch stock data."}), 500

    response = jsonify(quote)
    response.headers["X-Data-Source"] = service.last_source(symbol) or "cache"
    return response


@app.route("/api/stock/<symbol>/history")
def api_stock_history(symbol):
    period = request.args.get("period", "1y").lower()
    if period not in HISTORY_PERIODS:
        return jsonify({"error": f"Invalid period. Use: {', '.join(HISTORY_PERIODS)}"}), 400

    logging.info(f"Fetching history for {symbol} - {period}...")
    try:
        return jsonify(service.get_history(symbol, period))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logging.error(f"Error fetching history for {symbol}/{period}: {e}")
        return jsonify({"error": "Unable to fetch historical data."}), 500


@app.route("/api/stocks/batch", methods=["POST"])
def api_stocks_batch():
    body = request.get_json(silent=True) or {}
    symbols = body.get("symbols")
    if not isinstance(symbols, list):
        return jsonify({"error": "Symbols array required"}), 400

    logging.info(f"Fetching batch quotes for {len(symbols)} stocks...")
    try:
        quotes = service.get_batch(symbols)
    except Exception as e:
        logging.error(f"Batch error: {e}")
        return jsonify({"error": str(e)}), 500

    logging.info(f"Returned {len(quotes)} stock quotes")
    return jsonify(quotes)


@app.route("/api/stocks/screen", methods=["POST"])
def api_stocks_screen():
    body = request.get_json(silent=True) or {}
    market = body.get("market") or "NSE"
    criteria = body.get("criteria") or {}

    try:
        return jsonify(service.screen(market, criteria))
    except (UnknownMarketError, ValueError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logging.error(f"Screening error: {e}")
        return jsonify({"error": str(e)}), 500


@app.route("/api/stocks/default/<market>")
def api_default_stocks(market):
    try:
        return jsonify(service.get_stock_list(market))
    except UnknownMarketError as e:
        return jsonify({"error": str(e)}), 404
    except Exception as e:
        logging.error(f"Error fetching stock list: {e}")
        return jsonify({"error": str(e)}), 500


@app.route("/api/stocks/top/<market>")
def api_top_stocks(market):
    try:
        limit = int(request.args.get("limit", 10))
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400

    try:
        return jsonify(service.top_stocks(market, limit))
    except UnknownMarketError as e:
        return jsonify({"error": str(e)}), 404
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logging.error(f"Top stocks error for {market}: {e}")
        return jsonify({"error": str(e)}), 500


@app.route("/api/markets")
def api_markets():
    return jsonify(MARKETS)


@app.route("/api/ipos")
def api_ipos():
    status = request.args.get("status")
    if status and status.capitalize() not in IPO_STATUSES:
        return jsonify({"error": f"Invalid status. Use: {', '.join(IPO_STATUSES)}"}), 400

    logging.info("Fetching IPO data...")
    try:
        ipos = generate_ipos(service.rng)
    except Exception as e:
        logging.error(f"Error fetching IPOs: {e}")
        return jsonify({"error": "Unable to fetch IPO data."}), 500

    if status:
        ipos = [ipo for ipo in ipos if ipo["status"] == status.capitalize()]
    logging.info(f"Returned {len(ipos)} IPOs")
    return jsonify(ipos)


# ── Entry point ────────────────────────────────────────────

if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = int(os.environ.get("PORT", 5000))
    debug = os.environ.get("FLASK_DEBUG", "false").lower() == "true"
    logging.info(f"Stock Analysis API running on http://localhost:{port} (live data: {service.live})")
    app.run(host="0.0.0.0", port=port, debug=debug)
