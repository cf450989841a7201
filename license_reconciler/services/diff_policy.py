# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Attribute diff policy for license configurations.

Decides, without touching the network, whether moving from one declared
configuration to another is a no-op, an in-place update, or a replacement.
"""

import logging

from ..models.enums import ChangeAction
from ..models.license_configuration import (
    IMMUTABLE_FIELDS,
    MUTABLE_FIELDS,
    DeclaredConfiguration,
)
from ..models.plan import ChangePlan

logger = logging.getLogger(__name__)


def changed_fields(old: DeclaredConfiguration, new: DeclaredConfiguration) -> set[str]:
    """Return the names of the declared fields whose values differ."""
    return {
        field
        for field in MUTABLE_FIELDS + IMMUTABLE_FIELDS
        if getattr(old, field) != getattr(new, field)
    }


def classify_change(old: DeclaredConfiguration, new: DeclaredConfiguration) -> ChangePlan:
    """
    Classify the change between two declared configurations.

    Args:
        old: Configuration the resource currently reflects
        new: Configuration the caller now declares

    Returns:
        NO_OP when nothing differs, REPLACE when license_counting_type or
        license_rules differ, otherwise IN_PLACE_UPDATE carrying exactly the
        mutable fields that differ.
    """
    differing = changed_fields(old, new)

    if not differing:
        return ChangePlan(action=ChangeAction.NO_OP)

    immutable = differing.intersection(IMMUTABLE_FIELDS)
    if immutable:
        logger.debug(f"Change to {sorted(immutable)} forces replacement")
        return ChangePlan(
            action=ChangeAction.REPLACE,
            changed_fields=frozenset(differing - immutable),
            replace_fields=frozenset(immutable),
        )

    return ChangePlan(action=ChangeAction.IN_PLACE_UPDATE, changed_fields=frozenset(differing))
