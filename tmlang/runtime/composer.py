"""Splice library transition tables into a user program."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from .builder import build_definition
from .core import (
    ComposedProgram,
    Inclusion,
    LibraryReference,
    MachineDefinition,
    qualify_state,
    state_namespace,
)
from .errors import CompilerWarning, UnknownLibraryError
from .parser import parse_source
from .registry import lookup_library

logger = logging.getLogger(__name__)


def _as_references(libraries) -> list[LibraryReference]:
    if isinstance(libraries, (str, LibraryReference)):
        libraries = [libraries]
    refs = []
    for item in libraries:
        refs.append(item if isinstance(item, LibraryReference) else LibraryReference(item))
    return refs


def compose(
    definition: MachineDefinition,
    libraries: Optional[Iterable] = None,
):
    """Merge the libraries named by *definition* into one program.

    *libraries* overrides the definition's own ``compose`` list. Each
    inclusion gets the tag ``<name><k>`` where ``k`` counts inclusions of that
    library, and every library state ``s`` becomes ``<tag>.s``. Returns
    ``(ComposedProgram, warnings)``; an unknown name raises
    :class:`UnknownLibraryError` before anything is merged.
    """

    refs = _as_references(definition.compose if libraries is None else libraries)

    resolved = []
    for ref in refs:
        library = lookup_library(ref.name)
        if library is None:
            raise UnknownLibraryError(ref.name, ref.position)
        resolved.append(library)

    counts: dict[str, int] = {}
    inclusions = []
    spliced = []
    for library in resolved:
        counts[library.name] = counts.get(library.name, 0) + 1
        tag = f"{library.name}{counts[library.name]}"

        def rename(state, tag=tag):
            return qualify_state(tag, state)

        spliced.extend(library.table.renamed(rename))
        inclusions.append(
            Inclusion(
                library=library.name,
                tag=tag,
                entry_state=rename(library.entry_state),
                final_states=tuple(rename(s) for s in library.final_states),
            )
        )
        logger.debug("Composed library %s as %s", library.name, tag)

    warnings: list[CompilerWarning] = []
    tags = {inclusion.tag for inclusion in inclusions}
    reported = set()
    for instr in definition.table:
        for state in (instr.from_state, instr.to_state):
            namespace = state_namespace(state)
            if namespace is None or namespace in tags or state in reported:
                continue
            reported.add(state)
            warning = CompilerWarning(
                "UnlinkedState",
                f"State {state!r} names the inclusion {namespace!r}, "
                "which is not part of this composition",
                instr.position,
            )
            logger.warning("%s", warning)
            warnings.append(warning)

    table = definition.table.merged(spliced)
    program = ComposedProgram(
        definition=definition,
        table=table,
        inclusions=tuple(inclusions),
    )
    return program, warnings


def compile_machine(source: str):
    """Compile *source* into ``(ComposedProgram, warnings)``.

    Raises a :class:`~tmlang.runtime.errors.CompilerError` on the first
    problem found while parsing, building or composing.
    """

    tree = parse_source(source)
    definition, warnings = build_definition(tree)
    program, compose_warnings = compose(definition)
    return program, warnings + compose_warnings


__all__ = [
    "compile_machine",
    "compose",
]
