"""Tests for the state graph helpers and the program listing."""

from __future__ import annotations

from tmlang import (
    TransitionTable,
    compile_machine,
    find_unreachable_states,
    parse_definition,
    print_machine,
    reachable_states,
    state_graph,
)


def test_state_graph_groups_labels_per_edge():
    definition, _ = parse_definition(
        "{};I={q0};F={q1};(q0,0,1,R,q0);(q0,1,1,R,q1);(q0,0,0,L,q1);"
    )
    graph = state_graph(definition.table)

    assert set(graph.nodes) == {"q0", "q1"}
    assert graph.edges["q0", "q0"]["labels"] == ["0/1,R"]
    assert graph.edges["q0", "q1"]["labels"] == ["1/1,R", "0/0,L"]


def test_reachability_from_roots():
    definition, _ = parse_definition(
        "{};I={q0};F={q9};(q0,0,0,R,q1);(q1,0,0,R,q2);(q7,0,0,R,q8);(q8,0,0,R,q7);"
    )
    table = definition.table

    assert reachable_states(table, ["q0"]) == {"q0", "q1", "q2"}
    assert reachable_states(table, ["q9"]) == {"q9"}
    assert find_unreachable_states(table, ["q0"]) == ["q7", "q8"]
    assert find_unreachable_states(table, ["q0", "q8"]) == []
    assert find_unreachable_states(TransitionTable(), ["q0"]) == []


def test_print_machine_lists_the_composed_program(capsys):
    program, _ = compile_machine(
        "// add one\n{11};I={q0};F={done};compose={succ};"
        "(q0,1,1,S,succ1.q0);(succ1.qf,1,1,H,done);"
    )
    print_machine(program)
    out = capsys.readouterr().out.splitlines()

    assert out[0] == "// add one"
    assert out[1] == "tape: 11"
    assert out[2] == "initial: q0"
    assert out[3] == "final: done"
    assert out[4] == "library succ as succ1 (entry succ1.q0, exits succ1.qf)"
    assert out[5].strip().startswith("(q0, 1, 1, S, succ1.q0)")
    assert len(out) == 5 + len(program.table)


def test_print_machine_with_empty_tape(capsys):
    program, _ = compile_machine("{};I={q0};F={q1};")
    print_machine(program)
    assert "tape: (empty)" in capsys.readouterr().out
