"""Failure taxonomy and package logger shared by every reconciliation stage."""

from __future__ import annotations

import logging
from enum import Enum

PACKAGE_LOGGER = logging.getLogger("serde_struct_reconciler")
PACKAGE_LOGGER.addHandler(logging.NullHandler())


class FailureKind(str, Enum):
    """Caller-visible failure kinds that abort a run."""

    INVALID_JSON = "invalid_json"
    SOURCE_UNPARSEABLE = "source_unparseable"
    NAME_COLLISION_UNRESOLVABLE = "name_collision_unresolvable"


class ReconciliationError(Exception):
    """Base class for failures that terminate a reconciliation run."""

    kind: FailureKind

    def __init__(self, message: str, *, location: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.location = location
