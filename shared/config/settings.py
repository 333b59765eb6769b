"""
Runtime configuration for the checkout flow.

Merchant credentials and timings come from the environment so the same build
runs against the processor's sandbox and production endpoints.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# eProcessingNetwork transparent database engine
EPN_ACCOUNT = os.getenv("EPN_ACCOUNT_NUMBER", "")
EPN_RESTRICT_KEY = os.getenv("EPN_X_TRAN", "")
EPN_API_URL = os.getenv(
    "EPN_API_URL",
    "https://www.eprocessingnetwork.com/cgi-bin/epn/secure/tdbe/transact.pl",
)
EPN_TIMEOUT_SECONDS = float(os.getenv("EPN_TIMEOUT_SECONDS", "30"))
EPN_USER_AGENT = os.getenv("EPN_USER_AGENT", "Storefront/1.0")

# Browser-side status polling
POLL_INITIAL_DELAY_SECONDS = float(os.getenv("POLL_INITIAL_DELAY_SECONDS", "4"))
POLL_INTERVAL_SECONDS = float(os.getenv("POLL_INTERVAL_SECONDS", "4"))
POLL_TIMEOUT_SECONDS = float(os.getenv("POLL_TIMEOUT_SECONDS", "300"))
POLL_SETTLE_DELAY_SECONDS = float(os.getenv("POLL_SETTLE_DELAY_SECONDS", "2"))

STOREFRONT_API_URL = os.getenv("STOREFRONT_API_URL", "http://localhost:8000")

CHECKOUT_RATE_LIMIT = os.getenv("CHECKOUT_RATE_LIMIT", "10/minute")

# Shopper tokens are issued by the storefront's sign-in; this service only verifies them
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "60"))

# Support tooling reads full orders with this key
INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "")
