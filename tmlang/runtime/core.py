"""Core data structures for tmlang machines."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, replace
import re
from typing import Callable, Iterable, Optional

from ..constants import MOVEMENTS, SYMBOLS

STATE_PATTERN = re.compile(r"[A-Za-z]+[0-9]*(?:\.[A-Za-z]+[0-9]*)?")
PLAIN_STATE_PATTERN = re.compile(r"[A-Za-z]+[0-9]*")


def is_state(name) -> bool:
    return isinstance(name, str) and STATE_PATTERN.fullmatch(name) is not None


def is_symbol(value) -> bool:
    """Only the ints 0 and 1 are tape symbols; booleans are rejected."""

    return type(value) is int and value in SYMBOLS


def is_qualified(state: str) -> bool:
    """Return True for states living in a library inclusion namespace."""

    return "." in state


def qualify_state(tag: str, state: str) -> str:
    """Move a library state into the namespace of one inclusion."""

    if is_qualified(state):
        raise ValueError(f"State {state!r} is already qualified")
    return f"{tag}.{state}"


def state_namespace(state: str) -> Optional[str]:
    if not is_qualified(state):
        return None
    return state.split(".", 1)[0]


@dataclass(frozen=True)
class SourcePosition:
    """Location inside the exact source text that was parsed."""

    offset: int
    line: int
    column: int

    @classmethod
    def from_offset(cls, source: str, offset: int) -> "SourcePosition":
        line = source.count("\n", 0, offset) + 1
        line_start = source.rfind("\n", 0, offset) + 1
        return cls(offset, line, offset - line_start + 1)

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Instruction:
    """Transition rule ``(from_state, read, write, move, to_state)``."""

    from_state: str
    read: int
    write: int
    move: str
    to_state: str
    position: Optional[SourcePosition] = field(
        default=None, compare=False, repr=False
    )

    def __post_init__(self):
        if self.move not in MOVEMENTS:
            raise ValueError(f'"{self.move}" is an unknown movement')
        if not (is_symbol(self.read) and is_symbol(self.write)):
            raise ValueError(f"Instruction symbols must be 0 or 1: {self.as_tuple()}")

    @property
    def key(self) -> tuple[str, int]:
        return (self.from_state, self.read)

    def as_tuple(self) -> tuple:
        return (self.from_state, self.read, self.write, self.move, self.to_state)

    def renamed(self, rename: Callable[[str], str]) -> "Instruction":
        return replace(
            self, from_state=rename(self.from_state), to_state=rename(self.to_state)
        )

    def __str__(self) -> str:
        return "({}, {}, {}, {}, {})".format(*self.as_tuple())


class TransitionTable:
    """Ordered mapping from ``(state, symbol)`` to candidate instructions.

    Every key maps to a tuple, even in the deterministic case; more than one
    candidate under a key is what makes a table non-deterministic.
    """

    __hash__ = None

    def __init__(self, instructions: Iterable[Instruction] = ()):
        self._order = tuple(instructions)
        rows: dict[tuple[str, int], list[Instruction]] = {}
        for instr in self._order:
            rows.setdefault(instr.key, []).append(instr)
        self._rows = {key: tuple(group) for key, group in rows.items()}

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"TransitionTable({len(self)} instructions, {len(self._rows)} keys)"

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self):
        return iter(self._order)

    def __contains__(self, key) -> bool:
        return key in self._rows

    def __eq__(self, other) -> bool:
        if not isinstance(other, TransitionTable):
            return NotImplemented
        return self._rows == other._rows

    def candidates(self, state: str, symbol: int) -> tuple[Instruction, ...]:
        return self._rows.get((state, symbol), ())

    def keys(self):
        return list(self._rows)

    def items(self):
        return list(self._rows.items())

    def states(self) -> list[str]:
        """Every state named by the table, in first-seen order."""

        seen: dict[str, None] = {}
        for instr in self._order:
            seen.setdefault(instr.from_state, None)
            seen.setdefault(instr.to_state, None)
        return list(seen)

    def nondeterministic_keys(self) -> list[tuple[str, int]]:
        return [key for key, group in self._rows.items() if len(group) > 1]

    def is_deterministic(self) -> bool:
        return not self.nondeterministic_keys()

    def merged(self, instructions: Iterable[Instruction]) -> "TransitionTable":
        return TransitionTable(list(self._order) + list(instructions))

    def renamed(self, rename: Callable[[str], str]) -> "TransitionTable":
        return TransitionTable([instr.renamed(rename) for instr in self._order])

    def equivalent(self, other: "TransitionTable") -> bool:
        """Compare key -> candidate sets, ignoring order under each key."""

        if set(self._rows) != set(other._rows):
            return False
        return all(
            Counter(group) == Counter(other._rows[key])
            for key, group in self._rows.items()
        )


@dataclass(frozen=True)
class LibraryReference:
    name: str
    position: Optional[SourcePosition] = field(
        default=None, compare=False, repr=False
    )


@dataclass(frozen=True)
class MachineDefinition:
    """Typed, immutable result of building a parsed source."""

    tape: tuple[int, ...]
    initial_state: str
    final_states: tuple[str, ...]
    table: TransitionTable
    compose: tuple[LibraryReference, ...] = ()
    description: Optional[str] = None

    @property
    def library_names(self) -> list[str]:
        return [ref.name for ref in self.compose]

    def is_final(self, state: str) -> bool:
        return state in self.final_states


@dataclass(frozen=True)
class Inclusion:
    """One library spliced into a program under its own namespace tag."""

    library: str
    tag: str
    entry_state: str
    final_states: tuple[str, ...]


@dataclass(frozen=True)
class ComposedProgram:
    """A user definition merged with the renamed tables of its libraries."""

    definition: MachineDefinition
    table: TransitionTable
    inclusions: tuple[Inclusion, ...] = ()

    @property
    def tape(self) -> tuple[int, ...]:
        return self.definition.tape

    @property
    def initial_state(self) -> str:
        return self.definition.initial_state

    @property
    def final_states(self) -> tuple[str, ...]:
        return self.definition.final_states

    @property
    def description(self) -> Optional[str]:
        return self.definition.description

    def is_final(self, state: str) -> bool:
        return state in self.definition.final_states


__all__ = [
    "ComposedProgram",
    "Inclusion",
    "Instruction",
    "LibraryReference",
    "MachineDefinition",
    "PLAIN_STATE_PATTERN",
    "STATE_PATTERN",
    "SourcePosition",
    "TransitionTable",
    "is_qualified",
    "is_state",
    "is_symbol",
    "qualify_state",
    "state_namespace",
]
