from __future__ import annotations

from dataclasses import dataclass

from paginate_helper.core.errors import InvalidFieldReference


@dataclass(frozen=True)
class FieldRef:
    column: str
    relation: str | None = None

    @property
    def is_related(self) -> bool:
        return self.relation is not None

    def __str__(self) -> str:
        if self.relation is None:
            return self.column
        return f"{self.relation}.{self.column}"


def parse_field(spec) -> FieldRef:
    """Parse ``column`` or ``relation.column``; deeper paths are rejected."""
    if not isinstance(spec, str):
        raise InvalidFieldReference(f"Некорректное имя поля: {spec!r}", value=spec)
    text = spec.strip()
    parts = text.split(".")
    if len(parts) > 2:
        raise InvalidFieldReference(
            f'Поле "{text}": допускается только одна связь (relation.column)',
            field=text,
        )
    if any(not part for part in parts):
        raise InvalidFieldReference(f'Некорректное имя поля "{text}"', field=text)
    if len(parts) == 2:
        return FieldRef(column=parts[1], relation=parts[0])
    return FieldRef(column=parts[0])
