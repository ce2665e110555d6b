"""Run execution domain exports."""

from .reconciliation_run_use_case import (
    DEFAULT_PARALLELISM,
    execute_batch_runs,
    execute_evolution_runs,
    execute_reconciliation_run,
)
from .run_contracts import RunFailure, RunOutcome, RunRequest

__all__ = [
    "RunRequest",
    "RunFailure",
    "RunOutcome",
    "DEFAULT_PARALLELISM",
    "execute_batch_runs",
    "execute_evolution_runs",
    "execute_reconciliation_run",
]
