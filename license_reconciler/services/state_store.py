# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""JSON file persistence for the state of one license configuration."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from ..models.license_configuration import DeclaredConfiguration, ObservedState

logger = logging.getLogger(__name__)


class StateFileError(Exception):
    """Raised when the state file exists but cannot be parsed."""

    pass


class ResourceRecord(BaseModel):
    """Persisted state of one license configuration."""

    arn: str = Field(..., description="Identity of the license configuration")
    declared: DeclaredConfiguration = Field(..., description="Last applied declared configuration")
    observed: Optional[ObservedState] = Field(None, description="Last observed remote state")


class StateStore:
    """
    Stores a ResourceRecord in a JSON file.

    Writes go through a temporary file and an atomic rename so a crash
    never leaves a half-written state file behind.
    """

    def __init__(self, path: str | Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[ResourceRecord]:
        """
        Load the stored record.

        Returns:
            The record, or None if no state has been stored

        Raises:
            StateFileError: If the file exists but is not a valid record
        """
        if not self._path.exists():
            return None

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StateFileError(f"Invalid JSON in state file {self._path}: {e}") from e

        if not data:
            return None

        try:
            return ResourceRecord.model_validate(data)
        except ValidationError as e:
            raise StateFileError(f"Invalid record in state file {self._path}: {e}") from e

    def save(self, record: ResourceRecord) -> None:
        """Persist a record, replacing any previous one."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = record.model_dump(mode="json")

        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=".state-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.debug(f"Saved state for {record.arn} to {self._path}")

    def clear(self) -> None:
        """Remove the stored record."""
        if self._path.exists():
            self._path.unlink()
            logger.debug(f"Cleared state file {self._path}")
