"""Compiler errors and warnings for tmlang sources."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .core import SourcePosition


class CompilerError(ValueError):
    """Base class of every error raised while compiling a machine."""

    kind = "CompilerError"

    def __init__(self, message: str, position: Optional[SourcePosition] = None):
        super().__init__(message)
        self.message = message
        self.position = position

    def __str__(self) -> str:
        if self.position is None:
            return f"{self.kind}: {self.message}"
        return f"{self.kind} at {self.position}: {self.message}"


class SourceSyntaxError(CompilerError):
    """Malformed token stream."""

    kind = "SyntaxError"


class InvalidInstructionError(SourceSyntaxError):
    """Well-formed instruction tuple with a field that is not valid."""

    kind = "InvalidInstruction"

    def __init__(self, message, position=None, *, field=None, instruction=None):
        super().__init__(message, position)
        self.field = field
        self.instruction = instruction


class MissingInitialStateError(CompilerError):
    kind = "MissingInitialState"


class MissingFinalStateError(CompilerError):
    kind = "MissingFinalState"


class UnknownLibraryError(CompilerError):
    kind = "UnknownLibrary"

    def __init__(self, name: str, position: Optional[SourcePosition] = None):
        super().__init__(f'Could not find the library "{name}"', position)
        self.name = name


@dataclass(frozen=True)
class CompilerWarning:
    """A non-fatal diagnostic produced alongside a compiled machine."""

    kind: str
    message: str
    position: Optional[SourcePosition] = None
    severity: str = "warning"

    def __str__(self) -> str:
        where = f" at {self.position}" if self.position is not None else ""
        return f"{self.severity}: {self.kind}{where}: {self.message}"


__all__ = [
    "CompilerError",
    "CompilerWarning",
    "InvalidInstructionError",
    "MissingFinalStateError",
    "MissingInitialStateError",
    "SourceSyntaxError",
    "UnknownLibraryError",
]
