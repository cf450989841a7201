# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Change plan data models."""

from pydantic import BaseModel, ConfigDict, Field

from .enums import ChangeAction


class ChangePlan(BaseModel):
    """Result of comparing a prior declared configuration with a new one."""

    model_config = ConfigDict(frozen=True)

    action: ChangeAction = Field(..., description="How the change must be realized")
    changed_fields: frozenset[str] = Field(
        default_factory=frozenset,
        description="Mutable fields that differ (in-place updates only)",
    )
    replace_fields: frozenset[str] = Field(
        default_factory=frozenset,
        description="Immutable fields whose change forces replacement",
    )

    @property
    def tags_changed(self) -> bool:
        """Whether the tagging API has work to do."""
        return "tags" in self.changed_fields

    @property
    def requires_update_call(self) -> bool:
        """Whether a non-tag field changed and the update API must be called."""
        return bool(self.changed_fields - {"tags"})


class TagChanges(BaseModel):
    """Tag writes needed to move a remote tag set to its desired value."""

    model_config = ConfigDict(frozen=True)

    to_set: dict[str, str] = Field(default_factory=dict, description="Tags to add or overwrite")
    to_remove: frozenset[str] = Field(default_factory=frozenset, description="Tag keys to delete")

    @property
    def is_empty(self) -> bool:
        return not self.to_set and not self.to_remove
