# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Enumerations for license counting, lifecycle states and error kinds."""

from enum import Enum


class LicenseCountingType(str, Enum):
    """Dimension used to count licenses, as named by the License Manager API."""

    VCPU = "vCPU"
    INSTANCE = "Instance"
    CORE = "Core"
    SOCKET = "Socket"


class LifecycleState(str, Enum):
    """Lifecycle state of the single resource a reconciler manages."""

    ABSENT = "absent"
    PRESENT = "present"
    # Reached when a routine refresh finds the resource deleted out-of-band
    GONE = "gone"


class ErrorKind(str, Enum):
    """Decision-relevant classification of a failed remote call."""

    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    TRANSIENT = "transient"
    FATAL = "fatal"


class Operation(str, Enum):
    """Remote operation a failure originated from."""

    CREATE = "create"
    GET = "get"
    UPDATE = "update"
    DELETE = "delete"
    TAG = "tag"
    UNTAG = "untag"


class ChangeAction(str, Enum):
    """Outcome of comparing two declared configurations."""

    NO_OP = "no_op"
    IN_PLACE_UPDATE = "in_place_update"
    REPLACE = "replace"
