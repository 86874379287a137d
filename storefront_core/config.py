"""
config.py — Environment Configuration for the Storefront Core

All settings are read once from environment variables (with local development
defaults), the same way the service clients resolve their addresses.
"""

import os

# Site origin used to turn relative image/product references into absolute ones
SITE_URL = os.environ.get("SITE_URL") or os.environ.get("NEXT_PUBLIC_SITE_URL") or "http://localhost:3000"

# Tax rate in basis points (2500 = 25%)
DEFAULT_TAX_RATE_BP = int(os.environ.get("DEFAULT_TAX_RATE_BP", "2500"))

# Payment gateway (order management API)
PAYMENT_GATEWAY_URL = os.environ.get("PAYMENT_GATEWAY_URL", "https://api.playground.klarna.com")
PAYMENT_GATEWAY_USERNAME = os.environ.get("PAYMENT_GATEWAY_USERNAME")
PAYMENT_GATEWAY_PASSWORD = os.environ.get("PAYMENT_GATEWAY_PASSWORD")
PAYMENT_GATEWAY_TIMEOUT = float(os.environ.get("PAYMENT_GATEWAY_TIMEOUT", "5.0"))
PAYMENT_GATEWAY_READ_TIMEOUT = float(os.environ.get("PAYMENT_GATEWAY_READ_TIMEOUT", "8.0"))

# Logging
LOG_FILE = os.environ.get("LOG_FILE", "order_processing.log")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
