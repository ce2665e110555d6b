"""Default Rust source renderer for prepared definitions."""

from __future__ import annotations

from serde_struct_reconciler.definition_extraction import (
    Definition,
    DefinitionField,
    DefinitionVariant,
    format_type_ref,
)


class RustDefinitionRenderer:
    """Prints a definition as a Rust struct or enum."""

    def __init__(self, indent: str = "    ") -> None:
        self._indent = indent

    def render(self, definition: Definition) -> str:
        lines = list(definition.docs)
        if definition.derives:
            lines.append(f"#[derive({', '.join(definition.derives)})]")
        lines.extend(definition.attributes)
        keyword = "enum" if definition.is_sum_type else "struct"
        visibility = f"{definition.visibility} " if definition.visibility else ""
        header = f"{visibility}{keyword} {definition.name}"
        body: list[str] = []
        if definition.is_sum_type:
            for variant in definition.variants:
                body.extend(self._variant_lines(variant))
        else:
            for field in definition.fields:
                body.extend(self._field_lines(field, depth=1))
        if not body:
            lines.append(f"{header} {{}}")
        else:
            lines.append(f"{header} {{")
            lines.extend(body)
            lines.append("}")
        return "\n".join(lines)

    def _field_lines(self, field: DefinitionField, *, depth: int) -> list[str]:
        prefix = self._indent * depth
        lines = [f"{prefix}{line}" for line in (*field.docs, *field.attributes)]
        visibility = f"{field.visibility} " if field.visibility else ""
        rendered_type = format_type_ref(field.type_ref, optional=field.optional)
        lines.append(f"{prefix}{visibility}{field.name}: {rendered_type},")
        return lines

    def _variant_lines(self, variant: DefinitionVariant) -> list[str]:
        prefix = self._indent
        lines = [f"{prefix}{line}" for line in (*variant.docs, *variant.attributes)]
        if variant.payload is not None:
            lines.append(f"{prefix}{variant.name}({format_type_ref(variant.payload)}),")
        elif variant.fields:
            lines.append(f"{prefix}{variant.name} {{")
            for field in variant.fields:
                lines.extend(self._field_lines(field, depth=2))
            lines.append(f"{prefix}}},")
        else:
            lines.append(f"{prefix}{variant.name},")
        return lines
