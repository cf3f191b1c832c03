"""
Runtime configuration for the storefront API.

Values come from the environment and are read once, at process start.
"""
import logging
import os
from typing import Optional

import structlog


class Settings:
    """Environment-backed settings, built once and passed to the app factory."""

    def __init__(self):
        self.database_url: str = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
        self.database_name: str = os.getenv("DATABASE_NAME", "storefront")
        self.database_timeout_ms: int = int(os.getenv("DATABASE_TIMEOUT_MS", "5000"))

        self.gateway_key_id: str = os.getenv("GATEWAY_KEY_ID", "")
        self.gateway_key_secret: str = os.getenv("GATEWAY_KEY_SECRET", "")
        self.gateway_api_url: str = os.getenv("GATEWAY_API_URL", "https://api.razorpay.com/v1")
        self.gateway_timeout: float = float(os.getenv("GATEWAY_TIMEOUT", "10"))

        self.currency: str = os.getenv("CURRENCY", "INR")
        self.receipt_source: str = os.getenv("RECEIPT_SOURCE", "storefront_website")
        self.order_webhook_url: Optional[str] = os.getenv("ORDER_WEBHOOK_URL") or None

        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.port: int = int(os.getenv("PORT", "8000"))


def configure_logging(level: str = "INFO") -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level.upper(), logging.INFO)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
