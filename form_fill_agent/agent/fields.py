from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Sequence, Tuple, Union

# text: single-line text, textarea: multi-line text, radio: single choice,
# checkbox: one boolean per checkbox, select: choice list.
FieldKind = Literal["text", "textarea", "radio", "checkbox", "select"]

TEXT_KINDS = frozenset({"text", "textarea"})

UNKNOWN_LABEL = "Unknown field"

AssignedValue = Union[str, bool, List[str]]
ValueAssignment = Dict[str, AssignedValue]


@dataclass(frozen=True)
class FieldDescriptor:
    kind: FieldKind
    label: str
    identifier: str
    required: bool = False
    options: Tuple[str, ...] = ()

    def describe(self) -> str:
        line = f'- {self.kind.upper()}: "{self.label}"'
        if self.required:
            line += " (required)"
        if self.options:
            line += f" Options: [{', '.join(self.options)}]"
        return line

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "label": self.label,
            "identifier": self.identifier,
            "required": self.required,
            "options": list(self.options),
        }


def describe_fields(fields: Sequence[FieldDescriptor]) -> str:
    """Render descriptors as the enumeration handed to the value-mapping provider."""
    return "\n".join(field.describe() for field in fields)
