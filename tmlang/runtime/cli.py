"""Command-line interface for tmlang."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from ..constants import DEFAULT_EXPLORE_LIMIT, DEFAULT_LOOP_THRESHOLD, DEFAULT_MAX_STEPS
from .analysis import export_graphviz, print_machine, visualize_machine
from .bitcode import (
    diff_machine_files,
    export_machine,
    hash_machine_file,
    load_machine_document,
    reconstruct_program,
)
from .composer import compile_machine
from .engine import TuringMachine
from .errors import CompilerError
from .explore import explore
from .registry import get_registered_libraries


def format_diagnostic(source, error):
    """Render *error* with the offending source line and a caret under it."""

    position = getattr(error, "position", None)
    if position is None:
        return str(error)
    lines = source.splitlines()
    if not 0 < position.line <= len(lines):
        return str(error)
    code = lines[position.line - 1]
    marker = " " * (position.column - 1) + "^"
    return f"{error}\n    {code}\n    {marker}"


def print_libraries():
    for name, library in sorted(get_registered_libraries().items()):
        finals = ", ".join(library.final_states)
        print(f"  {name:<6} {library.description}")
        print(f"         entry {library.entry_state}, exits {finals}, {len(library.table)} instructions")


def run_program(program, params):
    machine = TuringMachine(program)
    if params.trace:
        print(machine.render())
        while not machine.finished() and machine.steps < params.max_steps:
            outcome = machine.step()
            if outcome.status != "applied":
                break
            print(f"\n#{machine.steps} {outcome.applied} -> {machine.state}")
            print(machine.render())
    result = machine.run(
        max_steps=max(params.max_steps - machine.steps, 0),
        loop_threshold=params.loop_threshold or None,
    )

    print("\nRun:")
    print(f"  → status: {result.status} in state {result.state} after {result.steps} steps")
    print(f"  → tape: {''.join(map(str, result.tape))}  values: {result.values}")
    if result.status == "branch":
        print("  → non-deterministic choice between:")
        for instr in result.candidates:
            print(f"     {instr}")
        if params.explore:
            found = explore(machine, max_steps=params.max_steps, max_configurations=params.explore)
            print(
                f"  → explored {found.visited} configurations, "
                f"{len(found.accepting)} accepting, truncated={found.truncated}"
            )
            for branch in found.accepting:
                print(f"     accepted in {branch.state}: values {branch.tape.values()}")
    return result


def parse_args(args):
    argp = argparse.ArgumentParser(description="tmlang Turing Machine compiler")

    argp.add_argument("file", nargs="?", help="tmlang source file to compile and run")
    argp.add_argument("--src", help="Inline tmlang source")
    argp.add_argument(
        "--max-steps",
        type=int,
        default=DEFAULT_MAX_STEPS,
        help="Stop a run after this many steps",
    )
    argp.add_argument(
        "--loop-threshold",
        type=int,
        default=DEFAULT_LOOP_THRESHOLD,
        help="Stop when a state has been visited more than this many times (0 disables)",
    )
    argp.add_argument("--trace", action="store_true", help="Print the tape after every step")
    argp.add_argument(
        "--explore",
        nargs="?",
        type=int,
        const=DEFAULT_EXPLORE_LIMIT,
        metavar="LIMIT",
        help="Explore non-deterministic branches breadth-first",
    )
    argp.add_argument("--export", metavar="OUTPUT", help="Write a .tm.json machine document")
    argp.add_argument("--load", help="Load and run a .tm.json machine document")
    argp.add_argument("--hash", help="Compute hash of a .tm.json machine document")
    argp.add_argument(
        "--diff",
        nargs=2,
        metavar=("A", "B"),
        help="Compare two .tm.json machine documents",
    )
    argp.add_argument("--viz", metavar="OUTPUT", help="Export a Graphviz state diagram (SVG)")
    argp.add_argument(
        "--visualize",
        nargs="?",
        const="",
        metavar="OUTPUT",
        help="Draw the state graph with matplotlib, optionally saving it",
    )
    argp.add_argument(
        "--list-libraries", action="store_true", help="List the built-in libraries"
    )
    argp.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return argp.parse_args(args)


def main(args):  # pragma: no cover
    params = parse_args(args)
    if params.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if params.list_libraries:
        print_libraries()
        return 0
    if params.diff:
        diff_machine_files(params.diff[0], params.diff[1])
        return 0
    if params.hash:
        hash_machine_file(params.hash)
        return 0
    if params.load:
        try:
            doc = load_machine_document(params.load)
            program = reconstruct_program(doc)
        except ValueError as exc:
            print(f"Cannot load {params.load}: {exc}", file=sys.stderr)
            return 1
        print(f"Loaded machine document v{doc['tmlang_version']} ({params.load})")
        print_machine(program)
        run_program(program, params)
        return 0

    if params.file:
        source = Path(params.file).read_text(encoding="utf-8")
    elif params.src is not None:
        source = params.src
    else:
        print("No source given; pass a file or --src", file=sys.stderr)
        return 2

    try:
        program, warnings = compile_machine(source)
    except CompilerError as exc:
        print(format_diagnostic(source, exc), file=sys.stderr)
        return 1

    print_machine(program)
    if warnings:
        print("\nCompiler diagnostics:")
        for warning in warnings:
            print("  ⚠", format_diagnostic(source, warning))

    result = run_program(program, params)

    if params.export:
        export_machine(program, result, params.export)
    if params.viz:
        export_graphviz(program, params.viz)
    if params.visualize is not None:
        visualize_machine(program, params.visualize or None)
    return 0 if result.status in ("accepted", "halted") else 3


__all__ = [
    "format_diagnostic",
    "main",
    "parse_args",
]


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main(sys.argv[1:]))
