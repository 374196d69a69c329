"""Turn a parse tree into a typed, validated machine definition."""

from __future__ import annotations

import logging

from ..constants import MOVEMENT_ALIASES, MOVEMENTS
from .analysis import find_unreachable_states
from .core import (
    Instruction,
    LibraryReference,
    MachineDefinition,
    TransitionTable,
    is_qualified,
    is_state,
)
from .errors import (
    CompilerWarning,
    InvalidInstructionError,
    MissingFinalStateError,
    MissingInitialStateError,
    SourceSyntaxError,
)
from .parser import InstructionClause, ParseTree, parse_source

logger = logging.getLogger(__name__)

FIELD_NAMES = ("source state", "read symbol", "write symbol", "movement", "target state")


def _warn(warnings, kind, message, position=None, severity="warning"):
    warning = CompilerWarning(kind, message, position, severity)
    warnings.append(warning)
    if severity == "warning":
        logger.warning("%s", warning)
    else:
        logger.info("%s", warning)


def _state_token(token):
    if not is_state(token.text):
        raise SourceSyntaxError(f"{token.text!r} is not a valid state name", token.position)
    return token.text


def _header_anchor(tree: ParseTree):
    if tree.instructions:
        return tree.instructions[0].position
    return tree.end_position()


def _build_instruction(clause: InstructionClause, warnings) -> Instruction:
    from_tok, read_tok, write_tok, move_tok, to_tok = clause.fields

    def invalid(token, idx, reason):
        return InvalidInstructionError(
            f"Invalid {FIELD_NAMES[idx]} in {clause.text}: {reason}",
            token.position,
            field=FIELD_NAMES[idx],
            instruction=clause.text,
        )

    for idx, tok in ((0, from_tok), (4, to_tok)):
        if not is_state(tok.text):
            raise invalid(tok, idx, f"{tok.text!r} is not a state name")
    for idx, tok in ((1, read_tok), (2, write_tok)):
        if tok.text not in ("0", "1"):
            raise invalid(tok, idx, f"{tok.text!r} is not a binary symbol")

    move = move_tok.text
    if move in MOVEMENT_ALIASES:
        canonical = MOVEMENT_ALIASES[move]
        _warn(
            warnings,
            "DeprecatedMovementAlias",
            f"Movement alias {move!r} is deprecated, use {canonical!r}",
            move_tok.position,
        )
        move = canonical
    elif move not in MOVEMENTS:
        raise invalid(move_tok, 3, f'"{move}" is an unknown movement')

    return Instruction(
        from_tok.text,
        int(read_tok.text),
        int(write_tok.text),
        move,
        to_tok.text,
        position=clause.position,
    )


def build_definition(tree: ParseTree):
    """Validate *tree* and return ``(MachineDefinition, warnings)``.

    The first error found is raised; nothing is returned alongside it.
    """

    warnings: list[CompilerWarning] = []

    initial = tree.header("initial")
    if initial is None or not initial.items:
        where = initial.position if initial is not None else _header_anchor(tree)
        raise MissingInitialStateError("No initial state was declared", where)
    initial_state = _state_token(initial.items[0])

    final = tree.header("final")
    if final is None or not final.items:
        where = final.position if final is not None else _header_anchor(tree)
        raise MissingFinalStateError("At least one final state must be declared", where)
    final_states = tuple(dict.fromkeys(_state_token(tok) for tok in final.items))

    tape = tuple(int(tok.text) for tok in tree.header("tape").items)

    compose_clause = tree.header("compose")
    compose = tuple(
        LibraryReference(tok.text, tok.position)
        for tok in (compose_clause.items if compose_clause else ())
    )

    instructions = []
    seen_keys = set()
    for clause in tree.instructions:
        instr = _build_instruction(clause, warnings)
        if instr.key in seen_keys:
            _warn(
                warnings,
                "DuplicateInstruction",
                f"{instr} shares the key ({instr.from_state}, {instr.read}) "
                "with an earlier instruction; the table is non-deterministic",
                clause.position,
            )
        seen_keys.add(instr.key)
        instructions.append(instr)
        logger.debug("Built instruction %s", instr)

    table = TransitionTable(instructions)

    if not instructions:
        detail = (
            "all behavior comes from the composed libraries"
            if compose
            else "the machine has no behavior"
        )
        _warn(
            warnings,
            "NoInstructions",
            f"No instructions declared; {detail}",
            _header_anchor(tree),
            severity="info",
        )
    else:
        roots = [initial_state] + [s for s in table.states() if is_qualified(s)]
        positions = {}
        for instr in instructions:
            positions.setdefault(instr.from_state, instr.position)
        for state in find_unreachable_states(table, roots):
            _warn(
                warnings,
                "UnreachableState",
                f"State {state!r} can never be reached from {initial_state!r}",
                positions[state],
            )

    definition = MachineDefinition(
        tape=tape,
        initial_state=initial_state,
        final_states=final_states,
        table=table,
        compose=compose,
        description=tree.description,
    )
    logger.debug(
        "Built definition: %d instructions, %d libraries", len(table), len(compose)
    )
    return definition, warnings


def parse_definition(source: str):
    """Parse and build *source* in one call."""

    return build_definition(parse_source(source))


__all__ = [
    "build_definition",
    "parse_definition",
]
