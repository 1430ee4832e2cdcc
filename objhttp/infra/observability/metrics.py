from prometheus_client import Counter, Histogram

# Status is a low-cardinality label; object keys and hosts are never labels.
REQUESTS = Counter(
    "objhttp_requests_total",
    "Total object storage HTTP requests",
    ["verb", "status"],
)

LATENCY = Histogram(
    "objhttp_request_duration_seconds",
    "Object storage request latency in seconds",
    ["verb"],
)

BYTES = Counter(
    "objhttp_bytes_total",
    "Payload bytes transferred",
    ["direction"],
)

ERRORS = Counter(
    "objhttp_request_errors_total",
    "Failed object storage requests by error code",
    ["error_code"],
)


def record_request(
    verb: str,
    status: int,
    elapsed: float,
    *,
    bytes_sent: int = 0,
    bytes_received: int = 0,
    error_code: str = "",
) -> None:
    REQUESTS.labels(verb, str(status)).inc()
    LATENCY.labels(verb).observe(elapsed)
    if bytes_sent:
        BYTES.labels("sent").inc(bytes_sent)
    if bytes_received:
        BYTES.labels("received").inc(bytes_received)
    if error_code:
        ERRORS.labels(error_code).inc()
