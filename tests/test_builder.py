"""Tests for building typed definitions out of parse trees."""

from __future__ import annotations

from itertools import permutations

import pytest

from tmlang import (
    CompilerError,
    Instruction,
    InvalidInstructionError,
    MissingFinalStateError,
    MissingInitialStateError,
    SourceSyntaxError,
    build_definition,
    definition_to_source,
    parse_definition,
    parse_source,
)

HEADERS = "{1};I={q0};F={q1};"


def _kinds(warnings):
    return [w.kind for w in warnings]


def test_build_definition_produces_typed_machine():
    definition, warnings = parse_definition(
        "// flip\n{10};I={q0};F={q1,q1,q2};(q0,1,0,R,q0);(q0,0,1,H,q1);"
    )

    assert definition.description == "flip"
    assert definition.tape == (1, 0)
    assert definition.initial_state == "q0"
    assert definition.final_states == ("q1", "q2")
    assert list(definition.table) == [
        Instruction("q0", 1, 0, "R", "q0"),
        Instruction("q0", 0, 1, "H", "q1"),
    ]
    assert definition.table.is_deterministic()
    assert warnings == []


def test_header_order_does_not_change_the_definition():
    headers = ["{101};", "I={q0};", "F={q1,q2};", "compose={succ};"]
    body = "(q0,1,1,S,succ1.q0);(succ1.qf,1,1,S,q1);"

    definitions = set()
    reference = None
    for order in permutations(headers):
        definition, _ = parse_definition("".join(order) + body)
        if reference is None:
            reference = definition
        assert definition == reference
        definitions.add(definition_to_source(definition))

    assert len(definitions) == 1


def test_missing_initial_state():
    with pytest.raises(MissingInitialStateError) as excinfo:
        parse_definition("{1};F={q1};(q0,1,0,R,q1);")
    assert excinfo.value.kind == "MissingInitialState"
    assert excinfo.value.position.offset == 11

    with pytest.raises(MissingInitialStateError):
        parse_definition("{1};I={};F={q1};")


def test_missing_final_state():
    with pytest.raises(MissingFinalStateError) as excinfo:
        parse_definition("{1};I={q0};(q0,1,0,R,q1);")
    assert excinfo.value.kind == "MissingFinalState"

    with pytest.raises(MissingFinalStateError):
        parse_definition("{1};I={q0};F={};")


def test_invalid_movement_is_positioned_on_its_instruction():
    source = "{1};\nI={q0};\nF={q1};\n(q0, 1, 0, X, q1);"
    with pytest.raises(InvalidInstructionError) as excinfo:
        parse_definition(source)

    err = excinfo.value
    assert isinstance(err, SourceSyntaxError)
    assert isinstance(err, CompilerError)
    assert isinstance(err, ValueError)
    assert err.kind == "InvalidInstruction"
    assert err.field == "movement"
    assert err.instruction == "(q0, 1, 0, X, q1)"
    assert (err.position.line, err.position.column) == (4, 12)
    assert '"X" is an unknown movement' in err.message


@pytest.mark.parametrize(
    "instruction, field",
    [
        ("(q0, 2, 0, R, q1)", "read symbol"),
        ("(q0, 1, 10, R, q1)", "write symbol"),
        ("(q0_x, 1, 0, R, q1)", "source state"),
        ("(q0, 1, 0, R, 1)", "target state"),
    ],
)
def test_invalid_fields_are_reported(instruction, field):
    with pytest.raises(InvalidInstructionError) as excinfo:
        parse_definition(HEADERS + instruction + ";")
    assert excinfo.value.field == field


def test_invalid_state_in_header_is_a_syntax_error():
    with pytest.raises(SourceSyntaxError, match="not a valid state"):
        parse_definition("{1};I={q_0};F={q1};")


def test_first_error_wins():
    source = HEADERS + "(q0,1,0,X,q1);(q0,9,0,R,q1);"
    with pytest.raises(InvalidInstructionError) as excinfo:
        parse_definition(source)
    assert excinfo.value.field == "movement"


def test_movement_aliases_are_normalized_with_a_warning():
    definition, warnings = parse_definition(HEADERS + "(q0,1,1,D,q0);(q0,0,0,I,q1);")

    assert [i.move for i in definition.table] == ["R", "L"]
    assert _kinds(warnings) == ["DeprecatedMovementAlias", "DeprecatedMovementAlias"]
    assert warnings[0].position.offset == 26


def test_duplicate_keys_are_kept_and_reported():
    definition, warnings = parse_definition(
        "{};I={q0};F={q1};(q0,0,0,R,q1);(q0,0,0,R,q2);"
    )

    assert len(definition.table.candidates("q0", 0)) == 2
    assert definition.table.nondeterministic_keys() == [("q0", 0)]
    assert _kinds(warnings) == ["DuplicateInstruction"]
    assert warnings[0].position.offset == 31


def test_unreachable_states_are_reported():
    _, warnings = parse_definition(HEADERS + "(q0,1,1,R,q1);(q5,0,0,R,q6);(q6,0,0,R,q5);")

    unreachable = [w for w in warnings if w.kind == "UnreachableState"]
    assert [w.message.split("'")[1] for w in unreachable] == ["q5", "q6"]


def test_states_reached_from_a_library_exit_are_not_unreachable():
    _, warnings = parse_definition(
        "{1};I={q0};F={done};compose={succ};"
        "(q0,1,1,S,succ1.q0);(succ1.qf,1,1,R,back);(back,0,0,S,done);"
    )
    assert warnings == []


def test_program_without_instructions_is_informational():
    definition, warnings = parse_definition(HEADERS)

    assert len(definition.table) == 0
    assert _kinds(warnings) == ["NoInstructions"]
    assert warnings[0].severity == "info"

    _, warnings = parse_definition(HEADERS + "compose={succ};")
    assert "composed libraries" in warnings[0].message


def test_round_trip_through_source():
    source = (
        "// demo\n"
        "{0110};\ncompose={succ,succ};\nF={q2,q1};\nI={q0};\n"
        "(q0,0,0,R,q0);(q0,1,1,S,succ1.q0);(q0,1,0,L,q2);(succ1.qf,1,1,H,q1);"
    )
    definition, _ = parse_definition(source)

    rendered = definition_to_source(definition)
    again, _ = build_definition(parse_source(rendered))

    assert again == definition
    assert again.table.equivalent(definition.table)
    assert rendered.startswith("// demo\n{0110};\nI={q0};\nF={q2,q1};\ncompose={succ,succ};\n")
