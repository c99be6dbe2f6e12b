"""Event shape primitives.

Defines lightweight frozen dataclasses to describe how to decode one event:
- `FieldSpec`: one named parameter, where it lives (topic or data) and its ABI type
- `EventShape`: the event name, its topic0 and the ordered field list
"""

from __future__ import annotations

from dataclasses import dataclass

# ABI types whose value is stored in the data tail (head word is an offset).
DYNAMIC_TYPES = ("bytes", "string")


@dataclass(frozen=True)
class FieldSpec:
    """Describe one event parameter.

    `position` is the 1-based topic index for indexed fields and the 0-based
    head word index for data fields.
    """

    name: str
    type: str  # e.g., "bytes", "uint256", "address"
    indexed: bool
    position: int

    @property
    def dynamic(self) -> bool:
        return not self.indexed and self.type in DYNAMIC_TYPES

    @property
    def single_word(self) -> bool:
        """True for types whose data encoding fits in one head word."""
        return "[" not in self.type and "(" not in self.type and not self.type.startswith("tuple")


@dataclass(frozen=True)
class EventShape:
    """One event definition, built once and never mutated."""

    name: str
    topic0: str  # lowercased 0x-hex
    fields: tuple[FieldSpec, ...]

    def __post_init__(self):
        names = [f.name for f in self.fields]
        if len(set(names)) != len(names):
            raise ValueError(f"{self.name} has duplicate field names")
        for f in self.data_fields:
            if not (f.dynamic or f.single_word):
                raise ValueError(f"{self.name}.{f.name}: unsupported data field type {f.type}")

    @property
    def topic_fields(self) -> tuple[FieldSpec, ...]:
        return tuple(f for f in self.fields if f.indexed)

    @property
    def data_fields(self) -> tuple[FieldSpec, ...]:
        return tuple(f for f in self.fields if not f.indexed)

    @property
    def head_words(self) -> int:
        """Minimum number of 32-byte words the data section must hold."""
        return len(self.data_fields)

    def field(self, name: str) -> FieldSpec:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)
