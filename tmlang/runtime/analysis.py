"""Analysis and visualization utilities for tmlang machines."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable

import networkx as nx

try:
    import matplotlib.pyplot as plt
except ModuleNotFoundError:  # pragma: no cover
    plt = None

try:
    import pydot
except ModuleNotFoundError:  # pragma: no cover
    pydot = None

from ..constants import MOVEMENT_NAMES
from .core import TransitionTable, is_qualified, state_namespace

STATE_COLORS = {
    "initial": "#8BC34A",
    "final": "#FFEB3B",
    "library": "#B0BEC5",
    "plain": "#FFFFFF",
}


def state_graph(table: TransitionTable) -> nx.DiGraph:
    """Build a directed graph of the states connected by *table*.

    Each edge carries a ``labels`` list with one ``read/write,move`` entry per
    instruction between the two states, in table order.
    """

    graph = nx.DiGraph()
    for instr in table:
        graph.add_node(instr.from_state)
        graph.add_node(instr.to_state)
        label = f"{instr.read}/{instr.write},{instr.move}"
        if graph.has_edge(instr.from_state, instr.to_state):
            graph.edges[instr.from_state, instr.to_state]["labels"].append(label)
        else:
            graph.add_edge(instr.from_state, instr.to_state, labels=[label])
    return graph


def reachable_states(table: TransitionTable, roots: Iterable[str]) -> set[str]:
    graph = state_graph(table)
    reached: set[str] = set()
    for root in roots:
        reached.add(root)
        if root in graph:
            reached |= nx.descendants(graph, root)
    return reached


def find_unreachable_states(table: TransitionTable, roots: Iterable[str]) -> list[str]:
    """Return source states of *table* that no root can reach, in table order."""

    reached = reachable_states(table, roots)
    unreachable: dict[str, None] = {}
    for instr in table:
        if instr.from_state not in reached:
            unreachable.setdefault(instr.from_state, None)
    return list(unreachable)


def _state_role(program, state: str) -> str:
    if state == program.initial_state:
        return "initial"
    if program.is_final(state):
        return "final"
    if is_qualified(state):
        return "library"
    return "plain"


def print_machine(program) -> None:
    """Print a plain-text listing of a composed program."""

    if program.description:
        print(f"// {program.description}")
    tape = "".join(str(s) for s in program.tape) or "(empty)"
    print(f"tape: {tape}")
    print(f"initial: {program.initial_state}")
    print(f"final: {', '.join(program.final_states)}")
    for inclusion in program.inclusions:
        print(
            f"library {inclusion.library} as {inclusion.tag} "
            f"(entry {inclusion.entry_state}, exits {', '.join(inclusion.final_states)})"
        )
    for instr in program.table:
        print(f"  {instr}  [{MOVEMENT_NAMES[instr.move]}]")


def export_graphviz(program, output_path):  # pragma: no cover
    """Export a Graphviz SVG state diagram with one cluster per inclusion."""

    if pydot is None:
        raise RuntimeError("Graphviz export requires the optional pydot dependency")

    graph = pydot.Dot(
        "tmlang_states",
        graph_type="digraph",
        rankdir="LR",
        fontname="Helvetica",
    )
    clusters = {}
    for inclusion in program.inclusions:
        cluster = pydot.Cluster(
            f"cluster_{inclusion.tag}",
            label=f"{inclusion.library} ({inclusion.tag})",
            color="#7f8c8d",
            fontname="Helvetica",
            fontsize="10",
            style="rounded",
        )
        clusters[inclusion.tag] = cluster
        graph.add_subgraph(cluster)

    nx_graph = state_graph(program.table)
    nx_graph.add_node(program.initial_state)
    for state in nx_graph.nodes:
        role = _state_role(program, state)
        node = pydot.Node(
            f'"{state}"',
            label=state,
            shape="doublecircle" if role == "final" else "circle",
            style="filled",
            fillcolor=STATE_COLORS[role],
            fontname="Helvetica",
        )
        cluster = clusters.get(state_namespace(state))
        if cluster is not None:
            cluster.add_node(node)
        else:
            graph.add_node(node)

    for src, dst, data in nx_graph.edges(data=True):
        graph.add_edge(
            pydot.Edge(
                f'"{src}"',
                f'"{dst}"',
                label="\\n".join(data["labels"]),
                fontname="Helvetica",
                fontsize="9",
            )
        )

    output_path = Path(output_path)
    if output_path.parent and not output_path.parent.exists():
        output_path.parent.mkdir(parents=True, exist_ok=True)

    graph.write_svg(str(output_path))
    print(f"  ✓ Graphviz state diagram exported → {output_path}")


def visualize_machine(program, output_path=None):  # pragma: no cover
    """Draw the state graph with matplotlib, or save it when a path is given."""

    if plt is None:
        raise RuntimeError("Visualization requires matplotlib to be installed")

    graph = state_graph(program.table)
    graph.add_node(program.initial_state)
    pos = nx.spring_layout(graph, seed=7)
    colors = [STATE_COLORS[_state_role(program, s)] for s in graph.nodes]

    fig, ax = plt.subplots(figsize=(8, 6))
    nx.draw_networkx_nodes(graph, pos, node_color=colors, edgecolors="#34495e", ax=ax)
    nx.draw_networkx_labels(graph, pos, font_size=8, ax=ax)
    nx.draw_networkx_edges(graph, pos, arrows=True, connectionstyle="arc3,rad=0.1", ax=ax)
    nx.draw_networkx_edge_labels(
        graph,
        pos,
        edge_labels={(u, v): " ".join(d["labels"]) for u, v, d in graph.edges(data=True)},
        font_size=7,
        ax=ax,
    )
    ax.set_title(program.description or "tmlang state graph")
    ax.set_axis_off()
    if output_path:
        fig.savefig(output_path)
        print(f"  ✓ State graph rendered → {output_path}")
    else:
        plt.show()
    plt.close(fig)


__all__ = [
    "STATE_COLORS",
    "export_graphviz",
    "find_unreachable_states",
    "print_machine",
    "reachable_states",
    "state_graph",
    "visualize_machine",
]
