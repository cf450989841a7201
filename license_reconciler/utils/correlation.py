# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Correlation ID generation and context management for reconciliation passes.

Every reconciliation pass runs under its own correlation ID so that log
lines and audit records of concurrent passes can be told apart.
"""

import contextlib
import contextvars
import logging
import uuid
from typing import Iterator

logger = logging.getLogger(__name__)

# Context variable to store correlation ID per reconciliation pass
_correlation_id_context: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


def generate_correlation_id() -> str:
    """
    Generate a unique correlation ID using UUID4.

    Returns:
        A unique correlation ID string in UUID4 format
    """
    return str(uuid.uuid4())


def set_correlation_id(correlation_id: str) -> contextvars.Token[str]:
    """
    Set the correlation ID in the current context.

    Args:
        correlation_id: The correlation ID to set

    Returns:
        Token that restores the previous value when reset
    """
    return _correlation_id_context.set(correlation_id)


def get_correlation_id() -> str:
    """
    Get the correlation ID from the current context.

    Returns:
        The correlation ID if set, or an empty string if not set
    """
    return _correlation_id_context.get()


@contextlib.contextmanager
def reconciliation_pass(correlation_id: str | None = None) -> Iterator[str]:
    """
    Run a block under a correlation ID.

    A nested pass keeps the outer pass's ID unless one is given explicitly.
    """
    current = get_correlation_id()
    pass_id = correlation_id or current or generate_correlation_id()
    token = set_correlation_id(pass_id)
    try:
        yield pass_id
    finally:
        _correlation_id_context.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Logging filter that stamps the current correlation ID on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"
        return True
