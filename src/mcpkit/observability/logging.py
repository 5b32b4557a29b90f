"""Structured logging with per-run context bound through structlog contextvars."""

import logging
import sys

import structlog

# Dependency loggers capped at WARNING so operator output stays readable
NOISY_LOGGERS = (
    "httpx",
    "httpcore",
    "urllib3",
    "asyncio",
    "browser_use",
    "cdp_use",
    "openai",
    "anthropic",
    "google_genai",
    "mcp",
    "fastmcp",
)

_configured = False


def setup_structured_logging(level: str = "INFO") -> None:
    """Configure structlog with JSON output and per-run context.

    All output goes to stderr; stdout is left to the operator prompts and,
    for the stdio transport, to the MCP protocol stream.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    global _configured
    if _configured:
        return

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,  # Inject run context
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper()),
        stream=sys.stderr,
    )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    _configured = True


def bind_run_context(run_id: str, domain: str) -> None:
    """Bind run context for all subsequent logs in this async context.

    Args:
        run_id: Unique pipeline run identifier
        domain: Domain being processed
    """
    structlog.contextvars.bind_contextvars(run_id=run_id, domain=domain)


def clear_run_context() -> None:
    """Clear run context after the pipeline completes."""
    structlog.contextvars.clear_contextvars()


def get_run_logger(name: str = "mcpkit") -> structlog.stdlib.BoundLogger:
    """Get a structlog logger with run context.

    Args:
        name: Logger name

    Returns:
        Bound logger with run context
    """
    return structlog.get_logger(name)
