"""Custom metrics for the offer catalog service."""

from opentelemetry import metrics

meter = metrics.get_meter("offer-catalog-svc")

offer_reorder_counter = meter.create_counter(
    name="offer_reorder_total",
    description="Total number of applied reorders by category",
    unit="1",
)

order_shift_histogram = meter.create_histogram(
    name="offer_order_shift_size",
    description="Number of offers shifted by a single bulk order update",
    unit="1",
)

compaction_failure_counter = meter.create_counter(
    name="offer_compaction_failure_total",
    description="Order compactions that failed after a successful delete",
    unit="1",
)

attachment_failure_counter = meter.create_counter(
    name="offer_attachment_failure_total",
    description="Failed blob store uploads and deletions by operation",
    unit="1",
)

blob_store_response_time = meter.create_histogram(
    name="blob_store_response_time_seconds",
    description="Response time for blob store API calls",
    unit="s",
)


def record_reorder(category: str) -> None:
    """Record an applied (non no-op) reorder.

    Args:
        category: Category of the moved offer
    """
    offer_reorder_counter.add(1, {"category": category})


def record_order_shift(category: str, shifted: int) -> None:
    """Record the size of a bulk order shift.

    Args:
        category: Category whose offers were shifted
        shifted: Number of offers affected
    """
    order_shift_histogram.record(shifted, {"category": category})


def record_compaction_failure(category: str) -> None:
    """Record a compaction that left a gap in the order sequence.

    Args:
        category: Category with the gap
    """
    compaction_failure_counter.add(1, {"category": category})


def record_attachment_failure(operation: str) -> None:
    """Record a failed blob store call.

    Args:
        operation: "upload" or "delete"
    """
    attachment_failure_counter.add(1, {"operation": operation})


def record_blob_store_call(operation: str, duration_seconds: float) -> None:
    """Record a blob store API call.

    Args:
        operation: The operation performed (e.g., "upload", "destroy")
        duration_seconds: Duration in seconds
    """
    blob_store_response_time.record(duration_seconds, {"operation": operation})
