"""
Position strings address a field ("PID.3") or a component ("PID.3.1") and are the
lookup key for the field dictionary and the configurability table.

The field number is the index into the segment's parsed field array and the
component number is 1-based.
"""
import re
from typing import Any, NamedTuple, Optional

# No leading zeros, so every position has exactly one spelling.
_NUMBER = re.compile(r'0|[1-9][0-9]*')


class FieldPosition(NamedTuple):
    segment: str
    field: int
    component: Optional[int] = None

    @property
    def is_component(self) -> bool:
        return self.component is not None

    def parent(self) -> 'FieldPosition':
        """The field-level position that owns this one (itself for a field position)."""
        return FieldPosition(self.segment, self.field)

    def __str__(self) -> str:
        return to_position(self.segment, self.field, self.component)


def to_position(segment: str, field: int, component: Optional[int] = None) -> str:
    if component is None:
        return f"{segment}.{field}"
    return f"{segment}.{field}.{component}"


def parse_position(text: Any) -> Optional[FieldPosition]:
    """
    Parses "SEG.N" or "SEG.N.M". Returns None for anything else, including
    non-string input, an empty segment code, non-numeric parts or
    numbers written with leading zeros ("PID.03").
    """
    if not isinstance(text, str):
        return None
    parts = text.split('.')
    if len(parts) not in (2, 3) or not parts[0]:
        return None
    if not all(_NUMBER.fullmatch(part) for part in parts[1:]):
        return None

    numbers = [int(part) for part in parts[1:]]
    return FieldPosition(parts[0], *numbers)
