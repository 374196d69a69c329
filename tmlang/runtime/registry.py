"""Library declarations and the process-wide library registry."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Optional

from ..catalog import BUILTIN_LIBRARIES
from .builder import parse_definition
from .core import PLAIN_STATE_PATTERN, TransitionTable

logger = logging.getLogger(__name__)

LIBRARY_NAME_PATTERN = re.compile(r"[a-z]+")


@dataclass(frozen=True)
class Library:
    """A named, pre-validated transition table that programs can compose."""

    name: str
    description: str
    entry_state: str
    final_states: tuple
    table: TransitionTable

    def __post_init__(self):
        if not LIBRARY_NAME_PATTERN.fullmatch(self.name or ""):
            raise ValueError(f"Library name must be lowercase letters: {self.name!r}")
        if not PLAIN_STATE_PATTERN.fullmatch(self.entry_state or ""):
            raise ValueError(
                f"Library {self.name} has an invalid entry state: {self.entry_state!r}"
            )
        if not self.final_states:
            raise ValueError(f"Library {self.name} declares no final state")
        if len(self.table) == 0:
            raise ValueError(f"Library {self.name} has no instructions")
        for state in self.states():
            if not PLAIN_STATE_PATTERN.fullmatch(state):
                raise ValueError(
                    f"Library {self.name} uses a qualified state: {state!r}"
                )

    def states(self) -> list[str]:
        states = dict.fromkeys(self.table.states())
        states.setdefault(self.entry_state, None)
        for state in self.final_states:
            states.setdefault(state, None)
        return list(states)

    def to_dict(self):
        return {
            "name": self.name,
            "description": self.description,
            "entry_state": self.entry_state,
            "final_states": list(self.final_states),
            "instructions": [list(instr.as_tuple()) for instr in self.table],
        }


def library_from_source(name: str, source: str) -> Library:
    """Compile a library from tmlang source, rejecting any warning."""

    definition, warnings = parse_definition(source)
    problems = [w for w in warnings if w.severity == "warning"]
    if problems:
        raise ValueError(f"Library {name} does not compile cleanly: {problems[0]}")
    if definition.compose:
        raise ValueError(f"Library {name} cannot compose other libraries")
    return Library(
        name=name,
        description=definition.description or "",
        entry_state=definition.initial_state,
        final_states=definition.final_states,
        table=definition.table,
    )


LIBRARY_REGISTRY: dict[str, Library] = {}
_BUILTINS_LOADED = False


def ensure_builtin_libraries() -> None:
    """Populate the registry with the built-in catalog exactly once."""

    global _BUILTINS_LOADED
    if _BUILTINS_LOADED:
        return
    loaded = {}
    for name, source in BUILTIN_LIBRARIES.items():
        loaded[name] = library_from_source(name, source)
        logger.debug("Registered library %s (%d instructions)", name, len(loaded[name].table))
    LIBRARY_REGISTRY.update(loaded)
    _BUILTINS_LOADED = True


def lookup_library(name: str) -> Optional[Library]:
    """Return the registered library called *name*, or ``None``."""

    ensure_builtin_libraries()
    return LIBRARY_REGISTRY.get(name)


def list_libraries() -> list[str]:
    ensure_builtin_libraries()
    return sorted(LIBRARY_REGISTRY)


def get_registered_libraries() -> dict[str, Library]:
    """Return a snapshot of the registry."""

    ensure_builtin_libraries()
    return dict(LIBRARY_REGISTRY)


__all__ = [
    "LIBRARY_REGISTRY",
    "Library",
    "ensure_builtin_libraries",
    "get_registered_libraries",
    "library_from_source",
    "list_libraries",
    "lookup_library",
]
