"""structlog setup shared by everything that embeds the settlement agent."""

import logging

import structlog

_configured = False


def configure_logging(level: str = "INFO", json: bool = False) -> bool:
    """Install the processor chain once. Returns False if already configured.

    ``json=True`` renders one JSON object per event, which is what the
    decision audit trail should use when shipped to a log store.
    """
    global _configured
    if _configured:
        return False
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")
    renderer = (
        structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
    )
    _configured = True
    return True
