"""Schema inference exports."""

from .json_inference import (
    ROOT_ARRAY_FIELD,
    ROOT_VALUE_FIELD,
    InvalidJsonError,
    infer,
    infer_root,
    merge_schemas,
    parse_json_text,
)
from .schema_models import (
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
    schema_family,
)

__all__ = [
    "ArraySchema",
    "BoolSchema",
    "ConflictingSchema",
    "EmptySchema",
    "FieldSchema",
    "FloatSchema",
    "IntegerSchema",
    "NullableSchema",
    "NullSchema",
    "ObjectSchema",
    "Schema",
    "TextSchema",
    "describe_schema",
    "schema_family",
    "ROOT_ARRAY_FIELD",
    "ROOT_VALUE_FIELD",
    "InvalidJsonError",
    "infer",
    "infer_root",
    "merge_schemas",
    "parse_json_text",
]
