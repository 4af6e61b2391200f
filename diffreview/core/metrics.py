"""
Prometheus metrics for diffreview.

This module provides:
- LLM metrics (request counts, latency, tokens per model/provider)
- Review metrics (outcomes, duration, per-hunk results, comment counts)
"""

from prometheus_client import Counter, Histogram

# =============================================================================
# LLM Metrics
# =============================================================================

LLM_REQUESTS_TOTAL = Counter(
    "diffreview_llm_requests_total",
    "Total number of LLM API requests",
    ["provider", "model", "status"],  # status: success, error
)

LLM_TOKENS_TOTAL = Counter(
    "diffreview_llm_tokens_total",
    "Total number of tokens processed",
    ["provider", "model", "direction"],  # direction: input, output
)

LLM_REQUEST_DURATION_SECONDS = Histogram(
    "diffreview_llm_request_duration_seconds",
    "LLM request duration in seconds",
    ["provider", "model"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 25.0, 50.0, 100.0),
)

# =============================================================================
# Review Metrics
# =============================================================================

REVIEWS_TOTAL = Counter(
    "diffreview_reviews_total",
    "Total number of diff reviews processed",
    ["status"],  # status: completed, failed
)

REVIEW_DURATION_SECONDS = Histogram(
    "diffreview_review_duration_seconds",
    "Total review duration in seconds (end-to-end)",
    buckets=(1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
)

HUNK_REVIEWS_TOTAL = Counter(
    "diffreview_hunk_reviews_total",
    "Total number of hunk reviews",
    ["status"],  # status: success, failed, malformed
)

REVIEW_COMMENTS_GENERATED = Histogram(
    "diffreview_review_comments_generated",
    "Number of comments generated per review",
    buckets=(0, 1, 2, 5, 10, 20, 50),
)


# =============================================================================
# Helper Functions
# =============================================================================


def record_llm_request(
    provider: str,
    model: str,
    status: str,
    duration_seconds: float,
    tokens_input: int = 0,
    tokens_output: int = 0,
) -> None:
    """
    Record metrics for an LLM API request.

    Args:
        provider: LLM provider name
        model: Model identifier
        status: Request status (success, error)
        duration_seconds: Request duration
        tokens_input: Number of input/prompt tokens
        tokens_output: Number of output/completion tokens
    """
    LLM_REQUESTS_TOTAL.labels(
        provider=provider,
        model=model,
        status=status,
    ).inc()

    LLM_REQUEST_DURATION_SECONDS.labels(
        provider=provider,
        model=model,
    ).observe(duration_seconds)

    if tokens_input > 0:
        LLM_TOKENS_TOTAL.labels(
            provider=provider,
            model=model,
            direction="input",
        ).inc(tokens_input)

    if tokens_output > 0:
        LLM_TOKENS_TOTAL.labels(
            provider=provider,
            model=model,
            direction="output",
        ).inc(tokens_output)


def record_hunk_review(status: str) -> None:
    """Record the outcome of a single hunk review."""
    HUNK_REVIEWS_TOTAL.labels(status=status).inc()


def record_review_completed(
    status: str,
    duration_seconds: float,
    comments_generated: int = 0,
) -> None:
    """
    Record metrics for a finished review.

    Args:
        status: Review status (completed, failed)
        duration_seconds: Total review duration
        comments_generated: Number of comments in the result
    """
    REVIEWS_TOTAL.labels(status=status).inc()
    REVIEW_DURATION_SECONDS.observe(duration_seconds)

    if status == "completed":
        REVIEW_COMMENTS_GENERATED.observe(comments_generated)
