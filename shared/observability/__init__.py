from .setup import setup_observability
from .metrics import (
    ecomm_checkout_total,
    ecomm_gateway_requests_total,
    ecomm_gateway_latency_seconds,
    ecomm_reconciliation_total,
    ecomm_reconciliation_skipped_total,
)
