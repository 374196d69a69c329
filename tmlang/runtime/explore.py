"""Breadth-first exploration of non-deterministic runs."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
import logging

from ..constants import DEFAULT_EXPLORE_LIMIT, DEFAULT_MAX_STEPS
from .engine import TuringMachine

logger = logging.getLogger(__name__)


@dataclass
class ExplorationResult:
    finished: list[TuringMachine] = field(default_factory=list)
    truncated: bool = False
    visited: int = 0

    @property
    def accepting(self) -> list[TuringMachine]:
        return [m for m in self.finished if m.is_accepting()]

    @property
    def accepted(self) -> bool:
        return bool(self.accepting)


def explore(
    machine: TuringMachine,
    max_steps: int = DEFAULT_MAX_STEPS,
    max_configurations: int = DEFAULT_EXPLORE_LIMIT,
) -> ExplorationResult:
    """Follow every branch of *machine* breadth-first on forked engines.

    Configurations deeper than *max_steps* or beyond *max_configurations* are
    dropped and the result is marked ``truncated``. The machine passed in is
    not modified. Finished configurations are returned accepting first, each
    group in discovery order.
    """

    result = ExplorationResult()
    queue = deque([machine.fork()])
    while queue:
        current = queue.popleft()
        result.visited += 1
        if result.visited > max_configurations:
            result.truncated = True
            break

        # deterministic stretches run in place; only branches are queued
        while not current.finished() and current.steps < max_steps:
            if current.step().status != "applied":
                break

        if current.finished():
            result.finished.append(current)
        elif current.steps >= max_steps:
            result.truncated = True
        else:
            queue.extend(clone for _, clone in current.branches())

    result.finished.sort(key=lambda m: not m.is_accepting())
    logger.debug(
        "Explored %d configurations, %d finished, truncated=%s",
        result.visited,
        len(result.finished),
        result.truncated,
    )
    return result


__all__ = [
    "ExplorationResult",
    "explore",
]
