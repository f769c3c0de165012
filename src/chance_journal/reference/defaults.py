"""Seed data for the reference catalogs."""

from __future__ import annotations

MAJOR_PAIRS = (
    "USD/JPY", "EUR/USD", "GBP/USD", "USD/CHF", "AUD/USD", "USD/CAD", "NZD/USD",
)

CROSS_PAIRS = (
    "EUR/JPY", "GBP/JPY", "CHF/JPY", "AUD/JPY", "CAD/JPY", "NZD/JPY",
    "EUR/GBP", "EUR/CHF",
)

DEFAULT_CURRENCY_PAIRS = (
    *MAJOR_PAIRS,
    *CROSS_PAIRS,
    "EUR/AUD", "EUR/CAD", "EUR/NZD",
    "GBP/CHF", "GBP/AUD", "GBP/CAD", "GBP/NZD",
    "AUD/CHF", "AUD/CAD", "AUD/NZD",
    "CHF/CAD", "CAD/CHF", "NZD/CAD",
)

# (name, display name, minutes)
DEFAULT_TIMEFRAMES = (
    ("15M", "15 minutes", 15),
    ("30M", "30 minutes", 30),
    ("1H", "1 hour", 60),
    ("4H", "4 hours", 240),
    ("1D", "Daily", 1440),
)

# (name, category, description, reliability 1-5)
DEFAULT_PATTERNS = (
    ("Head and Shoulders", "Reversal", "Three peaks with the middle one highest", 4),
    ("Inverse Head and Shoulders", "Reversal", "Three troughs with the middle one deepest", 4),
    ("Double Top", "Reversal", "Two peaks at the same height", 3),
    ("Double Bottom", "Reversal", "Two troughs at the same depth", 3),
    ("Triple Top", "Reversal", "Three peaks at the same height", 4),
    ("Triple Bottom", "Reversal", "Three troughs at the same depth", 4),
    ("Flag", "Continuation", "Small rectangle sloping against the trend", 3),
    ("Pennant", "Continuation", "Small symmetrical triangle after a sharp move", 3),
    ("Wedge", "Continuation", "Converging trendlines sloping together", 3),
    ("Triangle", "Continuation", "Ascending, descending or symmetrical triangle", 2),
    ("Rectangle", "Continuation", "Horizontal support and resistance range", 3),
    ("N-Wave Up", "N-Wave", "Rise, pullback, higher rise", 3),
    ("N-Wave Down", "N-Wave", "Fall, bounce, lower fall", 3),
    ("W-Bottom", "N-Wave", "W-shaped bottoming pattern", 3),
    ("M-Top", "N-Wave", "M-shaped topping pattern", 3),
    ("Gartley", "Harmonic", "Harmonic pattern built on Fibonacci ratios", 4),
    ("Bat", "Harmonic", "Gartley variant with a deeper retracement", 4),
    ("Butterfly", "Harmonic", "Harmonic pattern extending beyond the origin", 4),
    ("Crab", "Harmonic", "Harmonic pattern with an extreme extension", 4),
    ("Breakout", "Other", "Break through support or resistance", 3),
    ("Pullback", "Other", "Retest of a broken level", 2),
    ("Buy the Dip", "Other", "Entry on a retracement within an uptrend", 3),
    ("Sell the Rally", "Other", "Entry on a bounce within a downtrend", 3),
)


def currency_category(pair: str) -> str:
    if pair in MAJOR_PAIRS:
        return "Major"
    if pair in CROSS_PAIRS:
        return "Cross"
    return "Exotic"
