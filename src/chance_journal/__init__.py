"""Chance Journal — a personal trading-opportunity journal.

Records candidate trade setups, tracks whether they were executed and how
they turned out, and aggregates the results.
"""

__version__ = "0.1.0"
