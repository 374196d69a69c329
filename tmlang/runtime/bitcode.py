"""Serialization helpers: tmlang source rendering and machine documents."""

from __future__ import annotations

from datetime import datetime, timezone
import hashlib
import json

from ..constants import DOCUMENT_VERSION
from .composer import compose
from .core import (
    Instruction,
    LibraryReference,
    MachineDefinition,
    TransitionTable,
    is_state,
    is_symbol,
)


def definition_to_source(definition: MachineDefinition) -> str:
    """Render a definition back into tmlang source.

    Parsing the result yields an equivalent definition.
    """

    lines = []
    if definition.description:
        lines.append(f"// {definition.description}")
    lines.append("{" + "".join(str(s) for s in definition.tape) + "};")
    lines.append(f"I={{{definition.initial_state}}};")
    lines.append("F={" + ",".join(definition.final_states) + "};")
    if definition.compose:
        lines.append("compose={" + ",".join(definition.library_names) + "};")
    if len(definition.table):
        lines.append("")
    for instr in definition.table:
        lines.append(f"{instr};")
    return "\n".join(lines) + "\n"


def program_to_source(program) -> str:
    """Render a composed program as one flat source without ``compose``.

    Library instructions keep their qualified state names, so re-parsing gives
    the composed table directly.
    """

    flat = MachineDefinition(
        tape=program.tape,
        initial_state=program.initial_state,
        final_states=program.final_states,
        table=program.table,
        description=program.description,
    )
    return definition_to_source(flat)


def _instructions_payload(table: TransitionTable):
    return [list(instr.as_tuple()) for instr in table]


def _state(value, what):
    if not is_state(value):
        raise ValueError(f"Malformed machine document: invalid {what} {value!r}")
    return value


def _symbol(value):
    if not is_symbol(value):
        raise ValueError(f"Malformed machine document: invalid tape symbol {value!r}")
    return value


def _library_name(value):
    if not isinstance(value, str):
        raise ValueError(f"Malformed machine document: invalid library name {value!r}")
    return value


def _table_from_payload(rows) -> TransitionTable:
    return TransitionTable(
        Instruction(
            _state(row[0], "source state"),
            row[1],
            row[2],
            row[3],
            _state(row[4], "target state"),
        )
        for row in rows
    )


def _result_payload(result):
    if result is None:
        return None
    return {
        "status": result.status,
        "steps": result.steps,
        "state": result.state,
        "head": result.head,
        "tape": list(result.tape),
        "values": list(result.values),
    }


def build_machine_document(program, result=None):
    """Create an in-memory machine document for a composed program."""

    definition = program.definition
    return {
        "tmlang_version": DOCUMENT_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "description": definition.description,
        "tape": list(definition.tape),
        "initial_state": definition.initial_state,
        "final_states": list(definition.final_states),
        "compose": definition.library_names,
        "instructions": _instructions_payload(definition.table),
        "inclusions": [
            {
                "library": inc.library,
                "tag": inc.tag,
                "entry_state": inc.entry_state,
                "final_states": list(inc.final_states),
            }
            for inc in program.inclusions
        ],
        "table": _instructions_payload(program.table),
        "source": definition_to_source(definition),
        "evaluation": _result_payload(result),
    }


def write_machine_document(doc, filename):
    """Persist a machine document to disk."""

    with open(filename, "w", encoding="utf-8") as f:
        json.dump(doc, f, indent=2)
    print(f"  ✓ Machine document exported → {filename}")
    return doc


def export_machine(program, result=None, filename="machine.tm.json"):
    doc = build_machine_document(program, result)
    return write_machine_document(doc, filename)


def reconstruct_program(doc):
    """Rebuild a composed program from a document by composing it again.

    Tape symbols and state names are checked the way the builder checks them;
    anything else raises ``ValueError``.
    """

    try:
        final_states = tuple(_state(s, "final state") for s in doc["final_states"])
        if not final_states:
            raise ValueError("Malformed machine document: no final state")
        definition = MachineDefinition(
            tape=tuple(_symbol(s) for s in doc["tape"]),
            initial_state=_state(doc["initial_state"], "initial state"),
            final_states=final_states,
            table=_table_from_payload(doc["instructions"]),
            compose=tuple(
                LibraryReference(_library_name(name)) for name in doc.get("compose", [])
            ),
            description=doc.get("description"),
        )
    except (KeyError, TypeError, IndexError) as exc:
        raise ValueError(f"Malformed machine document: {exc}") from exc
    program, _ = compose(definition)
    return program


def verify_machine_document(doc):
    """Ensure the stored composed table matches a fresh composition."""

    if "table" not in doc:
        raise ValueError("Machine document missing its composed table")
    program = reconstruct_program(doc)
    if _instructions_payload(program.table) != doc["table"]:
        raise ValueError("Composed table does not match the stored instructions")
    return True


def load_machine_document(filename):
    """Load and verify a machine document."""

    with open(filename, "r", encoding="utf-8") as f:
        doc = json.load(f)
    verify_machine_document(doc)
    return doc


def canonicalize_document(doc):
    """Normalize a document so equal machines produce identical JSON.

    The export timestamp is dropped; everything else is kept with sorted keys.
    """

    def sort_dict(d):
        if isinstance(d, dict):
            return {k: sort_dict(v) for k, v in sorted(d.items())}
        elif isinstance(d, list):
            return [sort_dict(x) for x in d]
        else:
            return d

    return sort_dict({k: v for k, v in doc.items() if k != "timestamp"})


def hash_machine_document(doc):
    """Compute the SHA-256 hash of an in-memory machine document."""

    canon = canonicalize_document(doc)
    data = json.dumps(canon, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def hash_machine_file(filename):
    doc = load_machine_document(filename)
    h = hash_machine_document(doc)
    print(f"SHA256({filename}) = {h}")
    return h


def diff_machine_files(file_a, file_b):
    """Compare two machine documents and report what differs."""

    a = load_machine_document(file_a)
    b = load_machine_document(file_b)
    ha, hb = hash_machine_document(a), hash_machine_document(b)
    if ha == hb:
        print(f"✓ Machines are identical ({ha})")
        return []

    print(f"✗ Machines differ\n  {file_a[:30]}…: {ha}\n  {file_b[:30]}…: {hb}")
    differences = []
    for key in ("tape", "initial_state", "final_states", "compose"):
        if a.get(key) != b.get(key):
            differences.append(key)
            print(f"  • {key} differs: {a.get(key)} vs {b.get(key)}")

    table_a = _table_from_payload(a["table"])
    table_b = _table_from_payload(b["table"])
    if not table_a.equivalent(table_b):
        differences.append("table")
        rows_a = {tuple(r) for r in a["table"]}
        rows_b = {tuple(r) for r in b["table"]}
        for row in sorted(rows_a - rows_b):
            print(f"    - ({', '.join(map(str, row))})")
        for row in sorted(rows_b - rows_a):
            print(f"    + ({', '.join(map(str, row))})")

    if a.get("evaluation") != b.get("evaluation"):
        differences.append("evaluation")
        ea, eb = a.get("evaluation") or {}, b.get("evaluation") or {}
        print(f"  • Evaluation differs: {ea.get('status')} vs {eb.get('status')}")
    return differences


__all__ = [
    "build_machine_document",
    "canonicalize_document",
    "definition_to_source",
    "diff_machine_files",
    "export_machine",
    "hash_machine_document",
    "hash_machine_file",
    "load_machine_document",
    "program_to_source",
    "reconstruct_program",
    "verify_machine_document",
    "write_machine_document",
]
