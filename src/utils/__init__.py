"""Utility modules for the settle-agent project.

Sub-modules:
- logging: configure_logging() for structlog setup
"""

from .logging import configure_logging

__all__ = ["configure_logging"]
