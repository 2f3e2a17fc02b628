from prometheus_client import Counter, Histogram

# Total HTTP requests by method + path
HTTP_REQUESTS_TOTAL = Counter(
    "bloom_http_requests_total",
    "Total HTTP requests to the bloom service",
    ["method", "path"],
)

HTTP_REQUEST_LATENCY_SECONDS = Histogram(
    "bloom_http_request_latency_seconds",
    "HTTP request latency (seconds) for the bloom service",
    ["path"],
)

# op = exist|set, outcome = present|absent|added
BLOOM_OPS_TOTAL = Counter(
    "bloom_ops_total",
    "Bloom filter operations by op and outcome",
    ["op", "outcome"],
)

BLOOM_STORE_LATENCY_SECONDS = Histogram(
    "bloom_store_latency_seconds",
    "Latency (seconds) of one atomic bitmap operation",
    ["op"],
)

BLOOM_ERRORS_TOTAL = Counter(
    "bloom_errors_total",
    "Bloom store errors by type",
    ["type"],
)
