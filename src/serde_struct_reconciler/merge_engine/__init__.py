"""Merge engine exports."""

from .decision_table import decide_merge, decide_variant_merge
from .merge_models import MergeDecision, MergeOutcome, ReconciliationResult, TypeFallback
from .naming import (
    NameAllocator,
    NameCollisionUnresolvableError,
    field_identifier_for,
    type_name_for,
    variant_name_for,
)
from .schema_reconciler import SchemaReconciler, merge, reconcile_schema
from .shape_coverage import FieldComparison, accepts, compare_fields, covers_definition

__all__ = [
    "decide_merge",
    "decide_variant_merge",
    "MergeDecision",
    "MergeOutcome",
    "ReconciliationResult",
    "TypeFallback",
    "NameAllocator",
    "NameCollisionUnresolvableError",
    "field_identifier_for",
    "type_name_for",
    "variant_name_for",
    "SchemaReconciler",
    "merge",
    "reconcile_schema",
    "FieldComparison",
    "accepts",
    "compare_fields",
    "covers_definition",
]
