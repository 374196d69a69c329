"""Step-by-step execution of composed tmlang programs."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Optional

from ..constants import BLANK, DEFAULT_MAX_STEPS, HALT, MOVEMENTS
from .core import ComposedProgram, Instruction, is_symbol

logger = logging.getLogger(__name__)


class Tape:
    """Binary tape that grows with zeros in both directions.

    Logical index ``0`` is the first symbol of the declared tape. Reads outside
    the materialized cells return ``0`` and leave the tape untouched; writes
    and :meth:`ensure` extend it up to and including the requested index.
    """

    def __init__(self, symbols=(), origin: int = 0):
        self.cells = list(symbols)
        self.origin = origin

    def __len__(self) -> int:
        return len(self.cells)

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"Tape({''.join(map(str, self.cells))!r}, origin={self.origin})"

    @property
    def bounds(self) -> tuple[int, int]:
        """Lowest and highest materialized logical index."""

        return (-self.origin, len(self.cells) - self.origin - 1)

    def read(self, index: int) -> int:
        pos = index + self.origin
        if 0 <= pos < len(self.cells):
            return self.cells[pos]
        return BLANK

    def ensure(self, index: int) -> None:
        pos = index + self.origin
        if pos < 0:
            self.cells[0:0] = [BLANK] * -pos
            self.origin -= pos
        elif pos >= len(self.cells):
            self.cells.extend([BLANK] * (pos - len(self.cells) + 1))

    def write(self, index: int, symbol: int) -> None:
        if not is_symbol(symbol):
            raise ValueError(f"Tape symbols must be 0 or 1, got {symbol!r}")
        self.ensure(index)
        self.cells[index + self.origin] = symbol

    def symbols(self) -> tuple[int, ...]:
        return tuple(self.cells)

    def ones(self) -> int:
        return sum(self.cells)

    def values(self) -> list[int]:
        """Decode unary numbers: each run of ``k`` ones is the value ``k - 1``."""

        text = "".join(str(s) for s in self.cells)
        return [len(run) - 1 for run in text.split("0") if run]

    def copy(self) -> "Tape":
        return Tape(self.cells, self.origin)

    def render(self, head: Optional[int] = None) -> str:
        top = " ".join(str(s) for s in self.cells)
        if head is None:
            return top
        marks = ["^" if i - self.origin == head else " " for i in range(len(self.cells))]
        return f"{top}\n{' '.join(marks)}"


@dataclass(frozen=True)
class Step:
    """Outcome of one call to :meth:`TuringMachine.step`.

    ``status`` is ``applied``, ``stuck``, ``branch`` or ``finished``. For a
    ``branch`` nothing was applied and ``candidates`` holds every matching
    instruction in table order.
    """

    status: str
    candidates: tuple[Instruction, ...] = ()
    applied: Optional[Instruction] = None


@dataclass(frozen=True)
class TuringOutput:
    defined: bool
    steps: int
    ones: int = 0


@dataclass(frozen=True)
class RunResult:
    status: str
    steps: int
    state: str
    head: int
    tape: tuple[int, ...]
    values: list[int] = field(default_factory=list)
    candidates: tuple[Instruction, ...] = ()

    @property
    def accepted(self) -> bool:
        return self.status == "accepted"


class TuringMachine:
    """Mutable run state (tape, head, current state) over a composed program.

    Stepping never raises. Calling :meth:`step` once :meth:`finished` is true
    is outside the contract; it is a no-op that reports ``finished``.
    """

    def __init__(self, program: ComposedProgram, *, head: int = 0):
        self.program = program
        self.reset(head=head)

    def reset(self, *, head: int = 0) -> None:
        self.tape = Tape(self.program.tape)
        self.head = head
        self.tape.ensure(head)
        self.state = self.program.initial_state
        self.steps = 0
        self.frequencies: dict[str, int] = {self.state: 1}
        self.last_instruction: Optional[Instruction] = None
        self._stuck = False
        self._halted = False

    def __str__(self) -> str:
        return self.render()

    def render(self) -> str:
        return self.tape.render(self.head)

    @property
    def symbol(self) -> int:
        return self.tape.read(self.head)

    def candidates(self) -> tuple[Instruction, ...]:
        return self.program.table.candidates(self.state, self.symbol)

    def is_accepting(self) -> bool:
        return self.program.is_final(self.state)

    def finished(self) -> bool:
        return self.is_accepting() or self._stuck or self._halted

    def step(self) -> Step:
        if self.finished():
            return Step("finished")

        options = self.candidates()
        if not options:
            self._stuck = True
            logger.debug(
                "No instruction for state (%s, %s); halting", self.state, self.symbol
            )
            return Step("stuck")
        if len(options) > 1:
            return Step("branch", options)

        self._apply(options[0])
        return Step("applied", options, options[0])

    def apply(self, instruction: Instruction) -> Step:
        """Apply one of the current candidates chosen by the caller."""

        if self.finished():
            raise RuntimeError("Cannot apply an instruction to a finished machine")
        options = self.candidates()
        if instruction not in options:
            raise ValueError(
                f"{instruction} does not match ({self.state}, {self.symbol})"
            )
        self._apply(instruction)
        return Step("applied", options, instruction)

    def _apply(self, instruction: Instruction) -> None:
        self.tape.write(self.head, instruction.write)
        self.head += MOVEMENTS[instruction.move]
        self.tape.ensure(self.head)
        self.state = instruction.to_state
        self.steps += 1
        self.frequencies[self.state] = self.frequencies.get(self.state, 0) + 1
        self.last_instruction = instruction
        if instruction.move == HALT:
            self._halted = True
        logger.debug("Step %d: %s -> head %d", self.steps, instruction, self.head)

    def fork(self) -> "TuringMachine":
        """Copy the run state; the immutable program is shared."""

        clone = self.__class__.__new__(self.__class__)
        clone.program = self.program
        clone.tape = self.tape.copy()
        clone.head = self.head
        clone.state = self.state
        clone.steps = self.steps
        clone.frequencies = dict(self.frequencies)
        clone.last_instruction = self.last_instruction
        clone._stuck = self._stuck
        clone._halted = self._halted
        return clone

    def branches(self) -> list[tuple[Instruction, "TuringMachine"]]:
        """Fork once per candidate and apply it to the fork."""

        if self.finished():
            return []
        forks = []
        for instruction in self.candidates():
            clone = self.fork()
            clone._apply(instruction)
            forks.append((instruction, clone))
        return forks

    def is_infinite_loop(self, threshold: int) -> bool:
        return any(count > threshold for count in self.frequencies.values())

    def reset_frequencies(self) -> None:
        self.frequencies = {}

    def termination(self) -> Optional[str]:
        if self.is_accepting():
            return "accepted"
        if self._halted:
            return "halted"
        if self._stuck:
            return "stuck"
        return None

    def run(
        self,
        max_steps: Optional[int] = DEFAULT_MAX_STEPS,
        loop_threshold: Optional[int] = None,
    ) -> RunResult:
        """Step until the machine finishes or a bound is hit.

        A non-deterministic choice stops the run with status ``branch``; the
        caller decides how to continue (see :func:`tmlang.runtime.explore`).
        """

        taken = 0
        candidates: tuple[Instruction, ...] = ()
        while True:
            status = self.termination()
            if status is not None:
                break
            if max_steps is not None and taken >= max_steps:
                status = "limit"
                break
            if loop_threshold is not None and self.is_infinite_loop(loop_threshold):
                status = "loop"
                break
            outcome = self.step()
            if outcome.status == "branch":
                status = "branch"
                candidates = outcome.candidates
                break
            if outcome.status == "applied":
                taken += 1

        logger.debug("Run finished with status %s after %d steps", status, self.steps)
        return RunResult(
            status=status,
            steps=self.steps,
            state=self.state,
            head=self.head,
            tape=self.tape.symbols(),
            values=self.tape.values(),
            candidates=candidates,
        )

    def output(self) -> TuringOutput:
        """Steps taken and ones on the tape, undefined when stuck outside a final state."""

        if self._stuck and not self.is_accepting():
            return TuringOutput(False, self.steps)
        return TuringOutput(True, self.steps, self.tape.ones())


__all__ = [
    "RunResult",
    "Step",
    "Tape",
    "TuringMachine",
    "TuringOutput",
]
