# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Classification of remote-call failures into the reconciler's error kinds.

The classifier is pure: it inspects an exception and the operation that
produced it and returns an ErrorKind. It never swallows or rewrites the
exception; callers keep it for diagnostics.
"""

import asyncio
import logging
from typing import Optional

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    HTTPClientError,
    ParamValidationError,
)
from pydantic import ValidationError as PydanticValidationError

from ..clients.license_manager_client import EmptyResultError
from ..models.enums import ErrorKind, Operation
from ..utils.cancellation import CallCancelledError
from ..utils.error_sanitization import redact_sensitive_info
from .errors import ReconcileError

logger = logging.getLogger(__name__)

# License Manager reports unknown and malformed ARNs with this message
INVALID_ARN_MESSAGE = "Invalid license configuration ARN"

NOT_FOUND_CODES = {"ResourceNotFoundException", "NoSuchEntity", "NotFoundException"}

VALIDATION_CODES = {
    "InvalidParameterValueException",
    "ValidationException",
    "InvalidParameterException",
    "InvalidParameterCombination",
    "MissingParameter",
}

TRANSIENT_CODES = {
    "Throttling",
    "ThrottlingException",
    "ThrottledException",
    "RequestLimitExceeded",
    "RateLimitExceededException",
    "TooManyRequestsException",
    "ServerInternalException",
    "InternalFailure",
    "InternalServerError",
    "ServiceUnavailable",
    "ServiceUnavailableException",
    "RequestTimeout",
    "RequestTimeoutException",
}

# Operations that reference an existing identity
IDENTITY_OPERATIONS = {
    Operation.GET,
    Operation.UPDATE,
    Operation.DELETE,
    Operation.TAG,
    Operation.UNTAG,
}


def error_code(error: BaseException) -> str:
    """Return the AWS error code carried by a ClientError, or an empty string."""
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "") or ""
    return ""


def _error_message(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Message", "") or ""


def _http_status(error: ClientError) -> int:
    return error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0) or 0


def is_invalid_arn_error(error: BaseException) -> bool:
    """Whether License Manager rejected the call because the ARN is unknown or malformed."""
    return (
        error_code(error) == "InvalidParameterValueException"
        and INVALID_ARN_MESSAGE in _error_message(error)
    )


def classify_error(error: BaseException, operation: Operation) -> ErrorKind:
    """
    Classify a failed remote call.

    Args:
        error: Exception raised by the adapter (or by local validation)
        operation: The operation that produced it

    Returns:
        The ErrorKind deciding whether the caller drops state, retries or aborts
    """
    if isinstance(error, ReconcileError):
        return error.kind

    if isinstance(error, (CallCancelledError, asyncio.TimeoutError, TimeoutError)):
        return ErrorKind.TRANSIENT

    if isinstance(error, PydanticValidationError):
        return ErrorKind.VALIDATION

    if isinstance(error, EmptyResultError):
        return ErrorKind.NOT_FOUND

    if isinstance(error, ClientError):
        code = error_code(error)
        references_identity = operation in IDENTITY_OPERATIONS

        if is_invalid_arn_error(error) or code in NOT_FOUND_CODES:
            return ErrorKind.NOT_FOUND if references_identity else ErrorKind.VALIDATION
        if code in VALIDATION_CODES:
            return ErrorKind.VALIDATION
        if code in TRANSIENT_CODES or _http_status(error) >= 500:
            return ErrorKind.TRANSIENT
        return ErrorKind.FATAL

    if isinstance(error, ParamValidationError):
        return ErrorKind.VALIDATION

    if isinstance(error, (BotoConnectionError, HTTPClientError)):
        return ErrorKind.TRANSIENT

    if isinstance(error, BotoCoreError):
        return ErrorKind.FATAL

    logger.debug(f"Unclassified {operation.value} failure treated as fatal")
    return ErrorKind.FATAL


def error_field(error: BaseException) -> Optional[str]:
    """Return the offending field of a validation failure, where known."""
    if isinstance(error, ReconcileError):
        return error.field
    if isinstance(error, PydanticValidationError):
        errors = error.errors()
        if errors and errors[0].get("loc"):
            return str(errors[0]["loc"][0])
    return None


def describe_error(error: BaseException) -> str:
    """
    Render an error for user-visible messages.

    AWS errors are shown as "Code: message"; Python exception class names
    are never included. Sensitive content is redacted.
    """
    if isinstance(error, ReconcileError):
        text = error.message
    elif isinstance(error, ClientError):
        code = error_code(error)
        message = _error_message(error)
        text = f"{code}: {message}" if code and message else (code or message or str(error))
    elif isinstance(error, PydanticValidationError):
        parts = []
        for item in error.errors():
            location = ".".join(str(part) for part in item.get("loc", ()))
            parts.append(f"{location}: {item['msg']}" if location else item["msg"])
        text = "; ".join(parts)
    elif isinstance(error, CallCancelledError):
        text = f"operation cancelled: {error.reason}"
    elif isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        text = "operation timed out"
    else:
        text = str(error) or "unknown error"
    return redact_sensitive_info(text)
