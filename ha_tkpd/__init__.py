"""
Tokopedia price tracker for Home Assistant.

This package fetches the current name, price and stock of one Tokopedia
listing and publishes them over MQTT using Home Assistant's discovery
convention. It is meant to be run from cron; see README.md for details.
"""

__version__ = "0.1.0"

__all__ = [
    "config",
    "discovery",
    "identity",
    "main",
    "scraper",
    "state",
    "transport",
    "utils",
]
