"""Monitoring configuration for the spelling drill."""
from prometheus_client import Counter, Histogram, start_http_server

# Session metrics
sessions_started = Counter(
    "spelldrill_sessions_started_total",
    "Total number of drill sessions initialized",
    ["source"],  # fresh, restored, reset
)

sessions_completed = Counter(
    "spelldrill_sessions_completed_total",
    "Total number of drill sessions where every word was mastered",
)

# Answer metrics
words_mastered = Counter(
    "spelldrill_words_mastered_total",
    "Total number of words answered correctly",
)

incorrect_attempts = Counter(
    "spelldrill_incorrect_attempts_total",
    "Total number of wrong answers submitted",
)

words_revealed = Counter(
    "spelldrill_words_revealed_total",
    "Total number of words revealed after exhausting tries",
)

# Speech metrics
speech_requests = Counter(
    "spelldrill_speech_requests_total",
    "Total number of speech requests by provider and outcome",
    ["provider", "outcome"],  # success, failure
)

announcement_duration = Histogram(
    "spelldrill_announcement_duration_seconds",
    "Duration of complete announcement turns in seconds",
    buckets=[0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

# Storage metrics
storage_errors = Counter(
    "spelldrill_storage_errors_total",
    "Total number of snapshot storage errors",
    ["operation_type"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
