import logging
import uuid
import structlog
from structlog.contextvars import bind_contextvars
import sentry_sdk
from prometheus_client import Counter
from gastimator.core.config import settings

# --- Prometheus Metrics ---
ESTIMATES_TOTAL = Counter("gastimator_estimates_total", "Gas estimate requests by outcome", ["outcome"])
ESTIMATOR_FAILURES = Counter("gastimator_estimator_failures_total", "Failed estimator attempts", ["source"])
CACHE_HITS = Counter("gastimator_cache_hits_total", "Estimates answered from the identity cache")


# JSON lines to stdout; no audit file, request ids come from contextvars
def configure_logging():
    if settings.SENTRY_DSN:
        sentry_sdk.init(dsn=settings.SENTRY_DSN.get_secret_value(), traces_sample_rate=1.0)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(settings.LOG_LEVEL.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str):
    return structlog.get_logger(name)


def bind_request_id(request_id: str | None = None) -> str:
    """Binds a request id to every log line emitted in the current context."""
    request_id = request_id or uuid.uuid4().hex
    bind_contextvars(request_id=request_id)
    return request_id


configure_logging()
log = get_logger("Gastimator.System")
