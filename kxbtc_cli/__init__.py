"""KXBTC CLI - hourly Bitcoin edge signals for Kalshi."""

__version__ = "0.1.0"
