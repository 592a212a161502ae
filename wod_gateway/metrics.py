from prometheus_client import Counter, Histogram
# Prometheus metrics definitions

# Proxy requests by action (parse_wod / generate_strategy)
proxy_requests_total = Counter(
    "proxy_requests_total", "Total AI proxy requests", ["action"]
)

# Model calls are slow; buckets span a few hundred ms to the 60s timeout
_proxy_latency_buckets = (
    0.5,
    1.0,
    2.0,
    4.0,
    8.0,
    16.0,
    32.0,
    64.0,
)

# Histogram for the whole proxy cycle, admission to response
proxy_latency_seconds = Histogram(
    "proxy_latency_seconds", "AI proxy latency", buckets=_proxy_latency_buckets
)

# Quota rejects when hitting the daily tier ceiling
quota_reject_total = Counter(
    "quota_reject_total", "Number of quota rejected requests"
)

# Incremented when the model backend call times out
model_timeout_total = Counter(
    "model_timeout_total", "Number of model backend timeouts"
)

# Model backend failures by kind (transient / permanent)
model_error_total = Counter(
    "model_error_total", "Model backend failures", ["kind"]
)

# Model answered but no usable JSON object could be extracted
malformed_output_total = Counter(
    "malformed_output_total", "Number of unparseable model responses"
)

# Usage ledger write failed after a successful model call
usage_increment_fail_total = Counter(
    "usage_increment_fail_total", "Failed usage counter increments"
)

__all__ = [
    "proxy_requests_total",
    "proxy_latency_seconds",
    "quota_reject_total",
    "model_timeout_total",
    "model_error_total",
    "malformed_output_total",
    "usage_increment_fail_total",
]
