from prometheus_client import Counter, Histogram

# Business Metrics
ecomm_checkout_total = Counter(
    "ecomm_checkout_total",
    "Total payment submissions processed",
    ["status"] # Labels: 'pending', 'invalid', 'store_error', 'misconfigured'
)

ecomm_gateway_requests_total = Counter(
    "ecomm_gateway_requests_total",
    "Outbound authorization requests sent to the card processor",
    ["result"] # Labels: 'replied', 'unreachable'
)

ecomm_gateway_latency_seconds = Histogram(
    "ecomm_gateway_latency_seconds",
    "Round trip time of the authorization request"
)

ecomm_reconciliation_total = Counter(
    "ecomm_reconciliation_total",
    "Gateway replies applied to orders",
    ["outcome"] # Labels: 'approved', 'declined', 'rejected', 'protocol_error'
)

ecomm_reconciliation_skipped_total = Counter(
    "ecomm_reconciliation_skipped_total",
    "Gateway replies ignored because the order was no longer pending or missing",
    ["reason"] # Labels: 'not_pending', 'not_found', 'store_error'
)
