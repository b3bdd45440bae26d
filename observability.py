import logging

import structlog
from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

import config

# Business Metrics
storefront_orders_total = Counter(
    "storefront_orders_total",
    "Total order placements processed",
    ["status"]  # Labels: 'placed', 'rejected'
)


def configure_logging():
    level = getattr(logging, config.LOG_LEVEL, logging.INFO)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str)
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_metrics(app: FastAPI):
    # HTTP latency and status codes, exposed at /metrics
    Instrumentator().instrument(app).expose(app)


def setup_observability(app: FastAPI):
    """
    Bootstraps logging and metrics for the API.
    Call this once in main.py when the app is created.
    """
    configure_logging()
    configure_metrics(app)
