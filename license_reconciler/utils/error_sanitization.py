# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Error message sanitization utility.

Remote error messages end up in user-visible failures and in the audit
log. This module redacts credentials, local paths and stack-trace
fragments from them before they leave the reconciler.
"""

import logging
import re

logger = logging.getLogger(__name__)

# Patterns for detecting sensitive information in error messages
SENSITIVE_PATTERNS = {
    "credentials": [
        r"(?:AKIA|ASIA)[0-9A-Z]{16}",  # AWS Access Key ID
        r"(?i)aws_secret_access_key['\"]?\s*[:=]\s*['\"]?[A-Za-z0-9/+=]{40}",
        r"(?i)aws_session_token['\"]?\s*[:=]\s*['\"]?[A-Za-z0-9/+=]+",
        r"(?i)password['\"]?\s*[:=]\s*['\"]?[^\s'\"]+",
        r"(?i)secret['\"]?\s*[:=]\s*['\"]?[^\s'\"]+",
    ],
    "file_path": [
        r"[/\\](?:home|root|var|etc|opt|srv|usr|tmp)[/\\][\w\-./\\]+",
        r"[A-Za-z]:\\[\w\-./\\]+",  # Windows paths
    ],
    "stack_trace": [
        r"File \"[^\"]+\", line \d+",
    ],
}

# Compile patterns for performance
COMPILED_PATTERNS = {
    category: [re.compile(pattern) for pattern in patterns]
    for category, patterns in SENSITIVE_PATTERNS.items()
}


def detect_sensitive_info(text: str) -> dict[str, list[str]]:
    """
    Detect sensitive information in text.

    Args:
        text: Text to scan for sensitive information

    Returns:
        Dictionary mapping sensitivity categories to the matched fragments
    """
    if not text:
        return {}

    found: dict[str, list[str]] = {}
    for category, patterns in COMPILED_PATTERNS.items():
        matches = [match.group(0) for pattern in patterns for match in pattern.finditer(text)]
        if matches:
            found[category] = matches
    return found


def redact_sensitive_info(text: str, replacement: str = "[REDACTED]") -> str:
    """
    Redact sensitive information from text.

    Args:
        text: Text to redact
        replacement: String to use for redacted content

    Returns:
        Text with sensitive information redacted
    """
    if not text:
        return text

    result = text
    for patterns in COMPILED_PATTERNS.values():
        for pattern in patterns:
            result = pattern.sub(replacement, result)

    if result != text:
        logger.debug("Redacted sensitive content from an error message")
    return result
