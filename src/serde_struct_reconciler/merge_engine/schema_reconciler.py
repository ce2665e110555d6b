"""Merge engine: reconciles inferred object shapes with existing definitions."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from functools import reduce

from serde_struct_reconciler.configuration.runtime_settings import (
    MergeStrategy,
    ReconcileSettings,
)
from serde_struct_reconciler.definition_extraction import (
    FLATTEN_ATTRIBUTE,
    ArrayRef,
    Definition,
    DefinitionField,
    DefinitionVariant,
    ExtractedSource,
    NamedRef,
    OpaqueRef,
    OptionRef,
    ScalarKind,
    ScalarRef,
    TypeRef,
    format_type_ref,
    index_fields_by_key,
    rename_attribute,
    split_flattened,
)
from serde_struct_reconciler.definition_extraction.serde_attributes import without_rename_all
from serde_struct_reconciler.schema_inference import (
    ArraySchema,
    BoolSchema,
    ConflictingSchema,
    EmptySchema,
    FieldSchema,
    FloatSchema,
    IntegerSchema,
    NullableSchema,
    NullSchema,
    ObjectSchema,
    Schema,
    TextSchema,
    describe_schema,
    merge_schemas,
)
from serde_struct_reconciler.similarity_scoring import find_best_match, score, variant_score

from .decision_table import decide_merge, decide_variant_merge
from .merge_models import MergeDecision, MergeOutcome, ReconciliationResult, TypeFallback
from .naming import (
    RESERVED_TYPE_NAMES,
    NameAllocator,
    field_identifier_for,
    type_name_for,
    variant_name_for,
)
from .shape_coverage import (
    accepts,
    compare_fields,
    covers_definition,
    covers_fields,
    has_payload_variants,
    is_compatible,
    member_partition,
    partition_shape,
    sum_type_accepts,
    tolerates_absence,
)

_LOGGER = logging.getLogger(__name__)

TEXT_FALLBACK = ScalarRef(ScalarKind.TEXT, "String")
_UNTYPED = ScalarRef(ScalarKind.ANY, "serde_json::Value")
_NEW_SCALAR_TYPES: dict[type, ScalarRef] = {
    NullSchema: _UNTYPED,
    EmptySchema: _UNTYPED,
    BoolSchema: ScalarRef(ScalarKind.BOOL, "bool"),
    IntegerSchema: ScalarRef(ScalarKind.INTEGER, "i64"),
    FloatSchema: ScalarRef(ScalarKind.FLOAT, "f64"),
    TextSchema: TEXT_FALLBACK,
}
_FAMILY_VARIANT_NAMES: dict[type, str] = {
    BoolSchema: "Bool",
    IntegerSchema: "Integer",
    FloatSchema: "Float",
    TextSchema: "Text",
    ArraySchema: "Array",
    ObjectSchema: "Object",
}
_NEW_FIELD_VISIBILITY = "pub"
_BASE_FIELD = "base"
_EXTRA_FIELD = "extra"

@dataclass
class _DecisionFrame:
    """Collector for the decision currently being built."""

    name: str
    slot: int
    fallbacks: list[TypeFallback]

def reconcile_schema(
    root_schema: ObjectSchema,
    existing: ExtractedSource | Sequence[Definition] = (),
    settings: ReconcileSettings | None = None,
) -> ReconciliationResult:
    """Reconcile a root shape, and every nested shape, with existing definitions.

    Raises:
      NameCollisionUnresolvableError: When a generated type name cannot be made unique.
    """
    settings = settings or ReconcileSettings()
    if isinstance(existing, ExtractedSource):
        reconciler = SchemaReconciler(
            existing.definitions, settings, reserved_names=existing.declared_names
        )
    else:
        reconciler = SchemaReconciler(existing, settings)
    return reconciler.reconcile_root(root_schema)

def merge(
    schema: ObjectSchema,
    target: Definition | None,
    strategy: MergeStrategy,
    settings: ReconcileSettings | None = None,
    *,
    name: str | None = None,
) -> MergeDecision:
    """Merge one object shape into at most one target definition.

    Nested shapes are reconciled against the definitions reachable from the
    target only; the returned decision describes the top-level definition.
    """
    settings = replace(settings or ReconcileSettings(), strategy=strategy)
    reconciler = SchemaReconciler(() if target is None else (target,), settings)
    result = reconciler.reconcile_object(
        schema, target, name=name or (target.name if target else settings.resolved_root_name)
    )
    return result.decisions[0]

class SchemaReconciler:  # pylint: disable=too-many-instance-attributes
    """Working set of definitions mutated by one reconciliation run."""

    def __init__(
        self,
        definitions: Sequence[Definition],
        settings: ReconcileSettings,
        *,
        reserved_names: Iterable[str] = (),
    ) -> None:
        self._settings = settings
        self._working: dict[str, Definition] = {}
        for definition in definitions:
            self._working.setdefault(definition.name, definition)
        self._order: list[str] = list(self._working)
        self._allocator = NameAllocator(
            [*self._working, *reserved_names, *RESERVED_TYPE_NAMES],
            max_attempts=settings.max_name_attempts,
        )
        self._decisions: list[MergeDecision | None] = []
        self._touched: list[str] = []
        self._changed: set[str] = set()
        self._in_progress: set[str] = set()
        self._frames: list[_DecisionFrame] = []
        # Shapes met while their definition was already being merged higher up.
        self._deferred: dict[str, list[ObjectSchema]] = {}

    def reconcile_root(self, schema: ObjectSchema) -> ReconciliationResult:
        """Reconcile the root shape: by name first, then by best match, else a new definition."""
        root_name = self._settings.resolved_root_name
        target = self._working.get(root_name)
        if target is None:
            match = find_best_match(
                schema,
                self._candidates(),
                threshold=self._settings.extend_threshold,
                lookup=self._lookup,
            )
            target = match.definition if match else None
        return self.reconcile_object(schema, target, name=root_name)

    def reconcile_object(
        self, schema: ObjectSchema, target: Definition | None, *, name: str
    ) -> ReconciliationResult:
        if target is None:
            name = self._allocator.allocate(name, path=name)
        root_name = self._reconcile_object(schema, target, name=name, path=name)
        while self._deferred:
            pending_name = next(iter(self._deferred))
            self._drain_deferred(pending_name, path=pending_name)
        decisions = tuple(decision for decision in self._decisions if decision is not None)
        return ReconciliationResult(
            root_name=root_name,
            decisions=decisions,
            definitions={touched: self._working[touched] for touched in self._touched},
            changed_names=frozenset(self._changed),
        )

    def _lookup(self, name: str) -> Definition | None:
        return self._working.get(name)

    def _candidates(self) -> list[Definition]:
        return [self._working[name] for name in self._order]

    def _open_frame(self, name: str) -> _DecisionFrame:
        frame = _DecisionFrame(name=name, slot=len(self._decisions), fallbacks=[])
        self._decisions.append(None)
        if name not in self._touched:
            self._touched.append(name)
        self._frames.append(frame)
        self._in_progress.add(name)
        return frame

    def _close_frame(
        self,
        frame: _DecisionFrame,
        *,
        target: Definition | None,
        outcome: MergeOutcome,
        definition: Definition,
        match_score: float | None,
    ) -> None:
        self._frames.pop()
        self._in_progress.discard(frame.name)
        if target is not None and definition == target:
            outcome = MergeOutcome.UNCHANGED
        if frame.name not in self._working:
            self._order.append(frame.name)
        self._working[frame.name] = definition
        if outcome is not MergeOutcome.UNCHANGED:
            self._changed.add(frame.name)
        self._decisions[frame.slot] = MergeDecision(
            name=frame.name,
            target=target,
            strategy=self._settings.strategy,
            outcome=outcome,
            definition=definition,
            fallbacks=tuple(frame.fallbacks),
            score=match_score,
        )
        _LOGGER.debug(
            "Decision for %s: %s (score=%s)",
            frame.name,
            outcome.value,
            "n/a" if match_score is None else f"{match_score:.2f}",
        )

    def _emit_new_definition(self, definition: Definition) -> None:
        frame = self._open_frame(definition.name)
        self._close_frame(
            frame,
            target=None,
            outcome=MergeOutcome.NEW_DEFINITION,
            definition=definition,
            match_score=None,
        )

    def _reconcile_object(
        self, schema: ObjectSchema, target: Definition | None, *, name: str, path: str
    ) -> str:
        if target is None:
            return self._create_struct(schema, name=name, path=path)
        if target.name in self._in_progress:
            self._deferred.setdefault(target.name, []).append(schema)
            return target.name
        self._merge_into(schema, self._working.get(target.name, target), path=path)
        self._drain_deferred(target.name, path=path)
        return target.name

    def _drain_deferred(self, name: str, *, path: str) -> None:
        """Fold shapes nested inside their own definition back into it until it covers them."""
        while self._deferred.get(name):
            pending = reduce(merge_schemas, self._deferred.pop(name))
            assert isinstance(pending, ObjectSchema)
            current = self._working[name]
            if self._covers(current, pending):
                continue
            _LOGGER.debug("Merging nested occurrences of %s into it", name)
            self._merge_into(pending, current, path=path)
        self._deferred.pop(name, None)

    def _covers(self, definition: Definition, schema: ObjectSchema) -> bool:
        if definition.is_sum_type:
            return sum_type_accepts(definition, schema, self._lookup)
        return covers_definition(definition, schema, self._lookup)

    def _merge_into(self, schema: ObjectSchema, current: Definition, *, path: str) -> None:
        if current.is_sum_type:
            self._merge_into_sum_type(schema, current, path=path)
        else:
            self._merge_into_struct(schema, current, path=path)

    def _reconcile_nested_object(self, schema: ObjectSchema, *, context: str, path: str) -> str:
        match = find_best_match(
            schema,
            self._candidates(),
            threshold=self._settings.extend_threshold,
            exclude=self._in_progress,
            lookup=self._lookup,
        )
        if match is not None:
            target = match.definition
            return self._reconcile_object(schema, target, name=target.name, path=path)
        name = self._allocator.allocate(context, path=path)
        return self._create_struct(schema, name=name, path=path)

    def _create_struct(self, schema: ObjectSchema, *, name: str, path: str) -> str:
        frame = self._open_frame(name)
        fields = self._new_fields(
            schema,
            owner=name,
            container_attributes=(),
            taken=(),
            visibility=_NEW_FIELD_VISIBILITY,
            path=path,
        )
        self._close_frame(
            frame,
            target=None,
            outcome=MergeOutcome.NEW_DEFINITION,
            definition=Definition(name=name, fields=fields),
            match_score=None,
        )
        return name

    def _merge_into_struct(self, schema: ObjectSchema, target: Definition, *, path: str) -> None:
        frame = self._open_frame(target.name)
        match_score = score(schema, target, self._lookup)
        if covers_fields(target.fields, target.attributes, schema, self._lookup):
            self._close_frame(
                frame,
                target=target,
                outcome=MergeOutcome.UNCHANGED,
                definition=target,
                match_score=match_score,
            )
            return
        comparison = compare_fields(target.fields, target.attributes, schema, self._lookup)
        _LOGGER.debug(
            "Fields of %s: shared=%s conflicting=%s one-sided=%s",
            target.name,
            list(comparison.shared),
            list(comparison.conflicting),
            list(comparison.one_sided),
        )
        outcome = decide_merge(
            match_score,
            comparison.conflict_density,
            self._settings.strategy,
            self._settings,
            differing_fields=comparison.differing_fields,
        )
        if outcome is MergeOutcome.ENUM_VARIANT:
            result = self._struct_to_sum_type(schema, target, path=path)
        else:
            result = replace(
                target,
                fields=self._widen_fields(
                    target.fields,
                    target.attributes,
                    schema,
                    owner=target.name,
                    visibility=_field_visibility(target.fields),
                    path=path,
                ),
            )
        self._close_frame(
            frame, target=target, outcome=outcome, definition=result, match_score=match_score
        )

    def _merge_into_sum_type(self, schema: ObjectSchema, target: Definition, *, path: str) -> None:
        frame = self._open_frame(target.name)
        if sum_type_accepts(target, schema, self._lookup):
            self._close_frame(
                frame,
                target=target,
                outcome=MergeOutcome.UNCHANGED,
                definition=target,
                match_score=score(schema, target, self._lookup),
            )
            return
        best_index: int | None = None
        best_score: float | None = None
        for index, variant in enumerate(target.variants):
            if not variant.is_struct_like:
                continue
            current = variant_score(schema, variant, self._lookup)
            if best_score is None or current > best_score:
                best_index, best_score = index, current
        has_conflicts = False
        if best_index is not None:
            best = target.variants[best_index]
            has_conflicts = bool(
                compare_fields(best.fields, best.attributes, schema, self._lookup).conflicting
            )
        outcome = decide_variant_merge(best_score, has_conflicts, self._settings)
        variants = list(target.variants)
        if outcome is MergeOutcome.OPTIONAL_WIDEN and best_index is not None:
            best = variants[best_index]
            variants[best_index] = replace(
                best,
                fields=self._widen_fields(
                    best.fields,
                    best.attributes,
                    schema,
                    owner=target.name,
                    visibility="",
                    path=path,
                ),
            )
        else:
            variants.append(self._append_variant(schema, target.name, variants, path=path))
        self._close_frame(
            frame,
            target=target,
            outcome=outcome,
            definition=replace(target, variants=tuple(variants)),
            match_score=best_score,
        )

    def _struct_to_sum_type(
        self, schema: ObjectSchema, target: Definition, *, path: str
    ) -> Definition:
        common = self._common_keys(target, schema)
        if common:
            return self._split_common_fields(schema, target, common, path=path)
        carriers, container_attributes = without_rename_all(target.attributes)
        legacy_keys = list(index_fields_by_key(target.fields, target.attributes, ()))
        legacy = DefinitionVariant(
            name=variant_name_for(legacy_keys, schema.field_names, (), 1),
            fields=tuple(replace(field, visibility="") for field in target.fields),
            attributes=carriers,
        )
        added = self._new_variant(
            schema,
            owner=target.name,
            other_keys=legacy_keys,
            taken=[legacy.name],
            position=2,
            path=path,
        )
        _LOGGER.debug(
            "Converting %s into a sum type with variants %s and %s",
            target.name,
            legacy.name,
            added.name,
        )
        return replace(
            target,
            fields=(),
            variants=(legacy, added),
            is_sum_type=True,
            attributes=container_attributes,
        )

    def _common_keys(self, target: Definition, schema: ObjectSchema) -> list[str]:
        """Keys both shapes carry with types that widen into one another."""
        _, flattened = split_flattened(target.fields, self._lookup)
        if flattened:
            return []
        by_key = index_fields_by_key(target.fields, target.attributes, schema.field_names)
        common: list[str] = []
        for key, field in by_key.items():
            schema_field = schema.get(key)
            if schema_field is not None and is_compatible(
                field.type_ref, schema_field.schema, self._lookup
            ):
                common.append(key)
        return common

    def _split_common_fields(
        self, schema: ObjectSchema, target: Definition, common: Sequence[str], *, path: str
    ) -> Definition:
        """Move the shared fields into a flattened ``<Name>Base`` struct.

        When one shape has nothing beyond the shared fields the target stays a
        struct and the other shape's fields go into a flattened ``Option<<Name>Extra>``.
        """
        carriers, container_attributes = without_rename_all(target.attributes)
        by_key = index_fields_by_key(target.fields, target.attributes, schema.field_names)
        visibility = _field_visibility(target.fields)
        shared_fields: list[DefinitionField] = []
        for key in common:
            schema_field = schema.get(key)
            assert schema_field is not None
            shared_fields.append(
                replace(
                    self._widen_field(
                        by_key[key],
                        schema_field,
                        context=self._context(schema, schema_field, target.name),
                        path=path,
                    ),
                    visibility=visibility,
                )
            )
        shared_ids = {id(by_key[key]) for key in common}
        legacy_rest = tuple(field for field in target.fields if id(field) not in shared_ids)
        _, added = partition_shape(schema, common)
        if not legacy_rest or not added.fields:
            return self._with_extra_struct(
                schema, target, tuple(shared_fields), legacy_rest, added, path=path
            )
        base_name = self._allocator.allocate(f"{target.name}Base", path=path)
        self._emit_new_definition(
            Definition(name=base_name, fields=tuple(shared_fields), attributes=carriers)
        )
        base_field = DefinitionField(
            name=_member_field_name(_BASE_FIELD, [field.name for field in legacy_rest]),
            type_ref=NamedRef(base_name),
            attributes=(FLATTEN_ATTRIBUTE,),
        )
        legacy_keys = list(index_fields_by_key(legacy_rest, target.attributes, ()))
        legacy = DefinitionVariant(
            name=variant_name_for(legacy_keys, added.field_names, (), 1),
            fields=(base_field, *(replace(field, visibility="") for field in legacy_rest)),
            attributes=carriers,
        )
        new_fields = self._new_fields(
            added,
            owner=target.name,
            container_attributes=(),
            taken=[base_field.name],
            visibility="",
            path=path,
        )
        fresh = DefinitionVariant(
            name=variant_name_for(added.field_names, legacy_keys, [legacy.name], 2),
            fields=(base_field, *new_fields),
        )
        _LOGGER.debug(
            "Converting %s into a sum type with variants %s and %s sharing %s",
            target.name,
            legacy.name,
            fresh.name,
            base_name,
        )
        return replace(
            target,
            fields=(),
            variants=(legacy, fresh),
            is_sum_type=True,
            attributes=container_attributes,
        )

    def _with_extra_struct(
        self,
        schema: ObjectSchema,
        target: Definition,
        shared_fields: tuple[DefinitionField, ...],
        legacy_rest: tuple[DefinitionField, ...],
        added: ObjectSchema,
        *,
        path: str,
    ) -> Definition:
        visibility = _field_visibility(target.fields)
        if not legacy_rest and not added.fields:
            return replace(target, fields=shared_fields)
        extra_name = self._allocator.allocate(f"{target.name}Extra", path=path)
        if legacy_rest:
            carriers, _ = without_rename_all(target.attributes)
            extra = Definition(name=extra_name, fields=legacy_rest, attributes=carriers)
        else:
            extra = Definition(
                name=extra_name,
                fields=self._new_fields(
                    added,
                    owner=target.name,
                    container_attributes=(),
                    taken=(),
                    visibility=visibility,
                    path=path,
                ),
            )
        self._emit_new_definition(extra)
        extra_field = DefinitionField(
            name=_member_field_name(_EXTRA_FIELD, [field.name for field in shared_fields]),
            type_ref=NamedRef(extra_name),
            optional=True,
            attributes=(FLATTEN_ATTRIBUTE,),
            visibility=visibility,
        )
        _LOGGER.debug(
            "Keeping %s a struct with optional flattened %s for %s",
            target.name,
            extra_name,
            list(schema.field_names),
        )
        return replace(target, fields=(*shared_fields, extra_field))

    def _append_variant(
        self,
        schema: ObjectSchema,
        owner: str,
        variants: Sequence[DefinitionVariant],
        *,
        path: str,
    ) -> DefinitionVariant:
        other_keys = [key for variant in variants for key in self._variant_keys(variant)]
        taken = [variant.name for variant in variants]
        position = len(variants) + 1
        base = self._shared_base(variants)
        if base is not None:
            member, definition = base
            inside, rest = member_partition(definition, schema, self._lookup)
            if self._fits_base(definition, inside):
                self._widen_member(definition, inside, path=path)
                new_fields = self._new_fields(
                    rest,
                    owner=owner,
                    container_attributes=(),
                    taken=[member.name],
                    visibility="",
                    path=path,
                )
                return DefinitionVariant(
                    name=variant_name_for(rest.field_names, other_keys, taken, position),
                    fields=(replace(member, visibility=""), *new_fields),
                )
        return self._new_variant(
            schema,
            owner=owner,
            other_keys=other_keys,
            taken=taken,
            position=position,
            path=path,
        )

    def _shared_base(
        self, variants: Sequence[DefinitionVariant]
    ) -> tuple[DefinitionField, Definition] | None:
        """Return the flattened struct every struct-like variant starts from, if any."""
        shared: tuple[DefinitionField, Definition] | None = None
        for variant in variants:
            if not variant.is_struct_like:
                continue
            _, flattened = split_flattened(variant.fields, self._lookup)
            required = [pair for pair in flattened if not pair[0].optional]
            if not required:
                return None
            if shared is None:
                shared = required[0]
            elif required[0][1].name != shared[1].name:
                return None
        return shared

    def _fits_base(self, definition: Definition, inside: ObjectSchema) -> bool:
        by_key = index_fields_by_key(definition.fields, definition.attributes, inside.field_names)
        if any(
            inside.get(key) is None and not tolerates_absence(field)
            for key, field in by_key.items()
        ):
            return False
        comparison = compare_fields(
            definition.fields, definition.attributes, inside, self._lookup
        )
        return not comparison.conflicting

    def _widen_member(self, definition: Definition, schema: ObjectSchema, *, path: str) -> None:
        """Widen a struct spliced in with ``flatten`` by the keys it owns."""
        if definition.name in self._in_progress:
            return
        if covers_fields(definition.fields, definition.attributes, schema, self._lookup):
            return
        frame = self._open_frame(definition.name)
        fields = self._widen_fields(
            definition.fields,
            definition.attributes,
            schema,
            owner=definition.name,
            visibility=_field_visibility(definition.fields),
            path=path,
        )
        self._close_frame(
            frame,
            target=definition,
            outcome=MergeOutcome.OPTIONAL_WIDEN,
            definition=replace(definition, fields=fields),
            match_score=score(schema, definition, self._lookup),
        )

    def _variant_keys(self, variant: DefinitionVariant) -> list[str]:
        own, _ = split_flattened(variant.fields, self._lookup)
        return list(index_fields_by_key(own, variant.attributes, ()))

    def _new_variant(
        self,
        schema: ObjectSchema,
        *,
        owner: str,
        other_keys: Sequence[str],
        taken: Sequence[str],
        position: int,
        path: str,
    ) -> DefinitionVariant:
        return DefinitionVariant(
            name=variant_name_for(schema.field_names, other_keys, taken, position),
            fields=self._new_fields(
                schema,
                owner=owner,
                container_attributes=(),
                taken=(),
                visibility="",
                path=path,
            ),
        )

    def _widen_fields(
        self,
        fields: Sequence[DefinitionField],
        container_attributes: Sequence[str],
        schema: ObjectSchema,
        *,
        owner: str,
        visibility: str,
        path: str,
    ) -> tuple[DefinitionField, ...]:
        own, flattened = split_flattened(fields, self._lookup)
        remaining = schema
        for member, definition in flattened:
            inside, remaining = member_partition(definition, remaining, self._lookup)
            if member.optional and not inside.fields:
                continue
            self._widen_member(definition, inside, path=path)
        flattened_ids = {id(member) for member, _ in flattened}
        by_key = index_fields_by_key(own, container_attributes, remaining.field_names)
        key_of = {id(field): key for key, field in by_key.items()}
        widened: list[DefinitionField] = []
        for field in fields:
            if id(field) in flattened_ids:
                widened.append(field)
                continue
            key = key_of.get(id(field))
            schema_field = remaining.get(key) if key is not None else None
            if schema_field is None:
                widened.append(field if tolerates_absence(field) else replace(field, optional=True))
                continue
            widened.append(
                self._widen_field(
                    field,
                    schema_field,
                    context=self._context(remaining, schema_field, owner),
                    path=path,
                )
            )
        added = replace(
            remaining,
            fields=tuple(
                schema_field
                for schema_field in remaining.fields
                if schema_field.name not in by_key
            ),
        )
        widened.extend(
            self._new_fields(
                added,
                owner=owner,
                container_attributes=container_attributes,
                taken=[field.name for field in fields],
                visibility=visibility,
                path=path,
                force_optional=True,
            )
        )
        return tuple(widened)

    def _widen_field(
        self, field: DefinitionField, schema_field: FieldSchema, *, context: str, path: str
    ) -> DefinitionField:
        type_ref = field.type_ref
        if not isinstance(schema_field.schema, NullSchema):
            type_ref = self._widen_type(
                field.type_ref,
                schema_field.schema,
                context=context,
                path=f"{path}.{schema_field.name}",
            )
        return replace(field, type_ref=type_ref, optional=field.optional or schema_field.optional)

    def _context(self, schema: ObjectSchema, schema_field: FieldSchema, owner: str) -> str:
        # The synthetic root wrapper names nested types after the root itself.
        if schema.wrapped:
            return owner
        return type_name_for(schema_field.name)

    def _new_fields(
        self,
        schema: ObjectSchema,
        *,
        owner: str,
        container_attributes: Sequence[str],
        taken: Iterable[str],
        visibility: str,
        path: str,
        force_optional: bool = False,
    ) -> tuple[DefinitionField, ...]:
        used = list(taken)
        fields: list[DefinitionField] = []
        for schema_field in schema.fields:
            identifier, needs_rename = field_identifier_for(
                schema_field.name, used, container_attributes
            )
            used.append(identifier)
            fields.append(
                DefinitionField(
                    name=identifier,
                    type_ref=self._type_for_schema(
                        schema_field.schema,
                        context=self._context(schema, schema_field, owner),
                        path=f"{path}.{schema_field.name}",
                    ),
                    optional=schema_field.optional or force_optional,
                    attributes=(rename_attribute(schema_field.name),) if needs_rename else (),
                    visibility=visibility,
                )
            )
        return tuple(fields)
    def _type_for_schema(self, schema: Schema, *, context: str, path: str) -> TypeRef:
        scalar = _NEW_SCALAR_TYPES.get(type(schema))
        if scalar is not None:
            return scalar
        if isinstance(schema, NullableSchema):
            return OptionRef(self._type_for_schema(schema.inner, context=context, path=path))
        if isinstance(schema, ArraySchema):
            return ArrayRef(
                self._type_for_schema(schema.element, context=f"{context}Item", path=f"{path}[]")
            )
        if isinstance(schema, ObjectSchema):
            return NamedRef(self._reconcile_nested_object(schema, context=context, path=path))
        assert isinstance(schema, ConflictingSchema)
        if self._settings.strategy is MergeStrategy.OPTIONAL:
            return self._fallback(None, schema, path=path)
        return NamedRef(self._create_conflict_enum(schema, context=context, path=path))

    def _widen_type(self, type_ref: TypeRef, schema: Schema, *, context: str, path: str) -> TypeRef:
        if isinstance(type_ref, OpaqueRef) or isinstance(schema, EmptySchema):
            return type_ref
        if isinstance(type_ref, ScalarRef) and type_ref.kind is ScalarKind.ANY:
            return type_ref
        if isinstance(schema, NullSchema):
            return type_ref if isinstance(type_ref, OptionRef) else OptionRef(type_ref)
        if isinstance(schema, NullableSchema):
            inner = type_ref.inner if isinstance(type_ref, OptionRef) else type_ref
            return OptionRef(self._widen_type(inner, schema.inner, context=context, path=path))
        if isinstance(type_ref, OptionRef):
            return OptionRef(self._widen_type(type_ref.inner, schema, context=context, path=path))
        if isinstance(type_ref, NamedRef):
            return self._widen_named(type_ref, schema, path=path)
        if isinstance(type_ref, ArrayRef) and isinstance(schema, ArraySchema):
            return ArrayRef(
                self._widen_type(
                    type_ref.element, schema.element, context=f"{context}Item", path=f"{path}[]"
                )
            )
        if isinstance(type_ref, ScalarRef) and is_compatible(type_ref, schema, self._lookup):
            if type_ref.kind is ScalarKind.INTEGER and isinstance(schema, FloatSchema):
                return ScalarRef(ScalarKind.FLOAT, "f64")
            return type_ref
        return self._fallback(type_ref, schema, path=path)

    def _widen_named(self, type_ref: NamedRef, schema: Schema, *, path: str) -> TypeRef:
        definition = self._lookup(type_ref.name)
        if definition is None:
            return type_ref
        if definition.is_sum_type and has_payload_variants(definition):
            if definition.name not in self._in_progress:
                self._extend_payload_enum(definition, schema, path=path)
            return type_ref
        if isinstance(schema, ObjectSchema):
            self._reconcile_object(schema, definition, name=definition.name, path=path)
            return type_ref
        return self._fallback(type_ref, schema, path=path)
    def _create_conflict_enum(self, schema: ConflictingSchema, *, context: str, path: str) -> str:
        name = self._allocator.allocate(context, path=path)
        frame = self._open_frame(name)
        variants: list[DefinitionVariant] = []
        for alternative in schema.alternatives:
            variants.append(
                self._payload_variant(alternative, owner=name, taken=variants, path=path)
            )
        self._close_frame(
            frame,
            target=None,
            outcome=MergeOutcome.NEW_DEFINITION,
            definition=Definition(name=name, variants=tuple(variants), is_sum_type=True),
            match_score=None,
        )
        return name

    def _extend_payload_enum(self, definition: Definition, schema: Schema, *, path: str) -> None:
        frame = self._open_frame(definition.name)
        alternatives = schema.alternatives if isinstance(schema, ConflictingSchema) else (schema,)
        variants = list(definition.variants)
        for alternative in alternatives:
            if isinstance(alternative, NullableSchema):
                alternative = alternative.inner
            if any(
                variant.payload is not None and accepts(variant.payload, alternative, self._lookup)
                for variant in variants
            ):
                continue
            variants.append(
                self._payload_variant(alternative, owner=definition.name, taken=variants, path=path)
            )
        result = replace(definition, variants=tuple(variants))
        self._close_frame(
            frame,
            target=definition,
            outcome=MergeOutcome.ENUM_VARIANT,
            definition=result,
            match_score=None,
        )

    def _payload_variant(
        self,
        alternative: Schema,
        *,
        owner: str,
        taken: Sequence[DefinitionVariant],
        path: str,
    ) -> DefinitionVariant:
        base = _FAMILY_VARIANT_NAMES.get(type(alternative), "Other")
        names = {variant.name for variant in taken}
        variant_name = base
        suffix = 2
        while variant_name in names:
            variant_name = f"{base}{suffix}"
            suffix += 1
        payload = self._type_for_schema(alternative, context=f"{owner}{base}", path=path)
        return DefinitionVariant(name=variant_name, payload=payload)

    def _fallback(self, type_ref: TypeRef | None, schema: Schema, *, path: str) -> TypeRef:
        existing = None if type_ref is None else format_type_ref(type_ref)
        inferred = describe_schema(schema)
        _LOGGER.warning(
            "Type conflict at %s: %s vs %s; falling back to String",
            path,
            existing or "<new field>",
            inferred,
        )
        if self._frames:
            self._frames[-1].fallbacks.append(
                TypeFallback(path=path, existing=existing, inferred=inferred)
            )
        return TEXT_FALLBACK

def _field_visibility(fields: Sequence[DefinitionField]) -> str:
    if not fields:
        return _NEW_FIELD_VISIBILITY
    return fields[0].visibility

def _member_field_name(base: str, taken: Iterable[str]) -> str:
    used = set(taken)
    candidate = base
    suffix = 2
    while candidate in used:
        candidate = f"{base}_{suffix}"
        suffix += 1
    return candidate
