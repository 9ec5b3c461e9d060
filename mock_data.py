"""
Synthetic market data.

Used as the last step of the quote/history fallback chain and as the only
source for the IPO calendar. Every generator takes an optional
`random.Random` so callers (and tests) can make the output reproducible.
"""
import random
import re
from datetime import date, datetime, timedelta, timezone

MOCK_SECTORS = ['Technology', 'Finance', 'Consumer Goods', 'Energy', 'Healthcare']

_EXCHANGE_SUFFIX = re.compile(r'\.(NS|BO)$')


def base_symbol(symbol):
    """'RELIANCE.NS' -> 'RELIANCE'"""
    return _EXCHANGE_SUFFIX.sub('', symbol)


# ── Quotes ────────────────────────────────────────────────

def generate_mock_quote(symbol, rng=None):
    rng = rng or random
    base_price = rng.random() * 2000 + 100
    high_52w = base_price * (1 + rng.random() * 0.3)
    low_52w = base_price * (1 - rng.random() * 0.3)
    name = base_symbol(symbol)

    return {
        'symbol': symbol,
        'regularMarketPrice': round(base_price, 2),
        'regularMarketChange': round(rng.random() * 40 - 20, 2),
        'regularMarketChangePercent': round(rng.random() * 4 - 2, 2),
        'regularMarketVolume': int(rng.random() * 10_000_000),
        'trailingPE': round(rng.random() * 30 + 10, 2),
        'priceToBook': round(rng.random() * 5 + 1, 2),
        'returnOnEquity': round(rng.random() * 0.30 + 0.05, 4),
        'profitMargins': round(rng.random() * 0.25 + 0.05, 4),
        'revenueGrowth': round(rng.random() * 0.30 + 0.05, 4),
        'debtToEquity': round(rng.random() * 150, 2),
        'dividendYield': round(rng.random() * 0.03, 4),
        'earningsGrowth': round(rng.random() * 0.30 + 0.05, 4),
        'marketCap': int(rng.random() * 1_000_000_000_000),
        'sector': rng.choice(MOCK_SECTORS),
        'industry': 'Mock Industry',
        'longName': f"{name} Limited",
        'shortName': name,
        'fiftyTwoWeekHigh': round(high_52w, 2),
        'fiftyTwoWeekLow': round(low_52w, 2),
        'beta': round(rng.random() * 2 + 0.5, 2),
        'averageVolume': int(rng.random() * 5_000_000 + 1_000_000),
    }


# ── Price history ─────────────────────────────────────────

def generate_history(days=365, rng=None, today=None):
    """Random-walk daily OHLCV bars, oldest first, `days + 1` points ending today."""
    rng = rng or random
    today = today or date.today()
    price = rng.random() * 2000 + 100
    bars = []

    for offset in range(days, -1, -1):
        day = today - timedelta(days=offset)
        price = max(price + (rng.random() - 0.5) * 20, 10)

        open_ = price
        close = price + (rng.random() - 0.5) * 10
        high = max(open_, close) + rng.random() * 5
        low = min(open_, close) - rng.random() * 5

        bars.append({
            'date': day.isoformat(),
            'open': round(open_, 2),
            'high': round(high, 2),
            'low': round(low, 2),
            'close': round(close, 2),
            'volume': int(rng.random() * 10_000_000),
        })

    return bars


# ── IPO calendar ──────────────────────────────────────────

IPO_COMPANIES = [
    ('TechVision India Ltd', 'Information Technology'),
    ('Green Energy Solutions', 'Renewable Energy'),
    ('MediCare Pharma Ltd', 'Pharmaceuticals'),
    ('AutoDrive Motors', 'Automobile'),
    ('FinTech Innovations', 'Financial Services'),
    ('EduLearn Technologies', 'EdTech'),
    ('FoodChain Logistics', 'Supply Chain'),
    ('SmartHome Devices', 'Consumer Electronics'),
    ('CloudNine Infrastructure', 'Real Estate'),
    ('BioGenix Therapeutics', 'Biotechnology'),
    ('AquaPure Water Solutions', 'Utilities'),
    ('SolarMax Energy Corp', 'Renewable Energy'),
    ('UrbanStyle Fashion', 'Retail - Apparel'),
    ('QuickBite Foods', 'Food & Beverages'),
    ('MegaMart Retail', 'Retail - Supermarket'),
    ('SecureNet Cyber Solutions', 'Cybersecurity'),
    ('HealthFirst Diagnostics', 'Healthcare Services'),
    ('ElectroTech Components', 'Electronics Manufacturing'),
    ('AgroVision Farming', 'Agriculture Technology'),
    ('LuxuryStay Hotels', 'Hospitality'),
    ('NextGen Semiconductors', 'Semiconductors'),
    ('DataStream Analytics', 'Data Analytics'),
    ('EcoPackaging Solutions', 'Packaging'),
    ('QuantumDrive EVs', 'Electric Vehicles'),
    ('MetroLink Transport', 'Transportation'),
    ('CraftBrew Beverages', 'Beverages'),
    ('SpaceAge Materials', 'Advanced Materials'),
    ('FinServe Banking Tech', 'Banking Technology'),
    ('HomeConnect IoT', 'IoT Solutions'),
    ('PharmaLife Generics', 'Generic Pharmaceuticals'),
    ('GlobalTrade Logistics', 'Freight & Logistics'),
    ('SkillUp Learning', 'Online Education'),
    ('FreshFarm Organics', 'Organic Foods'),
    ('TravelEase Services', 'Travel & Tourism'),
    ('InsureTech Solutions', 'Insurance Technology'),
    ('BuildRight Construction', 'Construction'),
    ('TextileMill Industries', 'Textiles'),
    ('PetCare Wellness', 'Pet Products & Services'),
    ('SportsFit Equipment', 'Sporting Goods'),
    ('WellnessHub Ayurveda', 'Ayurveda & Wellness'),
]

IPO_STATUSES = ['Upcoming', 'Open', 'Closed']
LOT_SIZES = [10, 15, 20, 25, 30, 50, 75, 100]


def _iso_utc(dt):
    return dt.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def _ipo_dates(status, now, rng):
    if status == 'Upcoming':
        open_date = now + timedelta(days=int(rng.random() * 30 + 5))
        close_date = open_date + timedelta(days=3)
    elif status == 'Open':
        open_date = now - timedelta(days=int(rng.random() * 2 + 1))
        close_date = now + timedelta(days=int(rng.random() * 2 + 1))
    else:
        open_date = now - timedelta(days=int(rng.random() * 30 + 10))
        close_date = open_date + timedelta(days=3)
    return open_date, close_date, close_date + timedelta(days=7)


def generate_ipos(rng=None, now=None):
    rng = rng or random
    now = now or datetime.now(timezone.utc)
    ipos = []

    for index, (company, industry) in enumerate(IPO_COMPANIES):
        status = IPO_STATUSES[index % 3]
        price_min = int(rng.random() * 500 + 100)
        price_max = price_min + int(rng.random() * 200 + 50)
        issue_size = int(rng.random() * 5000 + 1000) * 10_000_000
        lot_size = rng.choice(LOT_SIZES)
        gmp = int(rng.random() * 200 + 20)
        open_date, close_date, listing_date = _ipo_dates(status, now, rng)

        if status == 'Closed':
            subscription = f"{rng.random() * 100 + 20:.2f}"
        elif status == 'Open':
            subscription = f"{rng.random() * 10 + 1:.2f}"
        else:
            subscription = '-'

        listed_soon = status != 'Upcoming'
        ipos.append({
            'id': index + 1,
            'companyName': company,
            'industry': industry,
            'status': status,
            'priceRangeMin': price_min,
            'priceRangeMax': price_max,
            'issueSize': issue_size,
            'lotSize': lot_size,
            'subscription': subscription,
            'openDate': _iso_utc(open_date),
            'closeDate': _iso_utc(close_date),
            'listingDate': _iso_utc(listing_date),
            'gmp': gmp if listed_soon else None,
            'gmpPercentage': f"{gmp / price_max * 100:.2f}" if listed_soon else None,
            'expectedListing': price_max + gmp if listed_soon else None,
        })

    return ipos
