from prometheus_client import Counter, Histogram, REGISTRY


# we check if they are already registered to avoid errors during hot reloads or test runs
def get_or_create_metric(name, documentation, metric_type, **kwargs):
    try:
        return metric_type(name, documentation, **kwargs)
    except ValueError:
        return REGISTRY._names_to_collectors[name]


REQUESTS_TOTAL = get_or_create_metric(
    "cleanops_requests_total",
    "Total requests",
    Counter,
    labelnames=["endpoint", "status"],
)

REQUEST_LATENCY_SECONDS = get_or_create_metric(
    "cleanops_request_latency_seconds",
    "Request latency",
    Histogram,
    labelnames=["endpoint"],
)

DOCUMENTS_INGESTED_TOTAL = get_or_create_metric(
    "cleanops_documents_ingested_total",
    "Documents ingested, by text extraction method",
    Counter,
    labelnames=["method"],
)

TASKS_EXTRACTED_TOTAL = get_or_create_metric(
    "cleanops_tasks_extracted_total", "Total tasks extracted from documents", Counter
)

EXTRACTION_FAILURES_TOTAL = get_or_create_metric(
    "cleanops_extraction_failures_total",
    "Failed document ingestions, by error kind",
    Counter,
    labelnames=["kind"],
)

ASSIGNMENTS_COMPLETED_TOTAL = get_or_create_metric(
    "cleanops_assignments_completed_total", "Total assignment completions recorded", Counter
)
