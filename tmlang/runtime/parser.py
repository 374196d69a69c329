"""Scanner and grammar for tmlang sources.

The grammar is::

    file        := description? header* instruction* EOF
    header      := tape | initial | final | compose
    tape        := "{" symbol* "}" ";"
    initial     := "I" "=" "{" state? "}" ";"
    final       := "F" "=" "{" (state ("," state)*)? "}" ";"
    compose     := "compose" "=" "{" (name ("," name)*)? "}" ";"
    instruction := "(" field "," field "," field "," field "," field ")" ";"

Headers may come in any order but each at most once, and all of them must
precede the first instruction. Fields are kept as raw tokens here; the
builder decides whether each one is a valid state, symbol or movement.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass, field
import logging
import re
from typing import Optional

from .core import SourcePosition
from .errors import SourceSyntaxError

logger = logging.getLogger(__name__)

INSTRUCTION_ARITY = 5

TOKEN_PATTERN = re.compile(
    r"(?P<COMMENT>//[^\n]*)"
    r"|(?P<WS>\s+)"
    r"|(?P<WORD>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z0-9_]+)*)"
    r"|(?P<NUMBER>[0-9]+)"
    r"|(?P<PUNCT>[{}();,=])"
)

PUNCTUATION = {
    "{": "LBRACE",
    "}": "RBRACE",
    "(": "LPAREN",
    ")": "RPAREN",
    ",": "COMMA",
    ";": "SEMI",
    "=": "EQUALS",
}

HEADER_KEYWORDS = {"I": "initial", "F": "final", "compose": "compose"}

HEADER_LABELS = {
    "tape": "tape",
    "initial": "initial state",
    "final": "final states",
    "compose": "composition",
}


class LineIndex:
    """Offsets of every line start in a source, for position lookups."""

    def __init__(self, source: str):
        self.starts = [0]
        self.starts.extend(m.end() for m in re.finditer("\n", source))

    def position(self, offset: int) -> SourcePosition:
        line = bisect_right(self.starts, offset)
        return SourcePosition(offset, line, offset - self.starts[line - 1] + 1)


@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: SourcePosition

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"<{self.kind} {self.text!r} @{self.position}>"


@dataclass(frozen=True)
class HeaderClause:
    tag: str
    items: tuple[Token, ...]
    position: SourcePosition


@dataclass(frozen=True)
class InstructionClause:
    fields: tuple[Token, ...]
    position: SourcePosition

    @property
    def text(self) -> str:
        return "(" + ", ".join(tok.text for tok in self.fields) + ")"


@dataclass
class ParseTree:
    """Untyped clauses of one source, before validation."""

    source: str
    description: Optional[str] = None
    headers: dict[str, HeaderClause] = field(default_factory=dict)
    instructions: list[InstructionClause] = field(default_factory=list)

    def header(self, tag: str) -> Optional[HeaderClause]:
        return self.headers.get(tag)

    def end_position(self) -> SourcePosition:
        return SourcePosition.from_offset(self.source, len(self.source))


def tokenize(source: str) -> tuple[list[Token], Optional[str]]:
    """Split *source* into tokens and extract the leading description.

    Whitespace and comments are dropped. The first comment becomes the
    description when nothing but whitespace precedes it.
    """

    lines = LineIndex(source)
    tokens: list[Token] = []
    description = None
    offset = 0
    while offset < len(source):
        match = TOKEN_PATTERN.match(source, offset)
        if not match:
            raise SourceSyntaxError(
                f"Unexpected character {source[offset]!r}", lines.position(offset)
            )
        kind = match.lastgroup
        text = match.group()
        if kind == "COMMENT":
            if not tokens and description is None:
                description = text.lstrip("/").strip() or None
        elif kind == "PUNCT":
            tokens.append(Token(PUNCTUATION[text], text, lines.position(offset)))
        elif kind != "WS":
            tokens.append(Token(kind, text, lines.position(offset)))
        offset = match.end()

    tokens.append(Token("EOF", "", lines.position(len(source))))
    return tokens, description


class _Parser:
    def __init__(self, source: str):
        self.source = source
        self.tokens, description = tokenize(source)
        self.index = 0
        self.tree = ParseTree(source, description=description)

    def peek(self, ahead: int = 0) -> Token:
        idx = min(self.index + ahead, len(self.tokens) - 1)
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.peek()
        if tok.kind != "EOF":
            self.index += 1
        return tok

    def expect(self, kind: str, what: str, opener: Optional[Token] = None) -> Token:
        tok = self.peek()
        if tok.kind == kind:
            return self.advance()
        if tok.kind == "EOF" and opener is not None:
            raise SourceSyntaxError(f"Unclosed {opener.text!r}", opener.position)
        found = "end of input" if tok.kind == "EOF" else repr(tok.text)
        raise SourceSyntaxError(f"Expected {what}, found {found}", tok.position)

    def parse(self) -> ParseTree:
        while self._at_header():
            self._parse_header()
        while self.peek().kind == "LPAREN":
            self._parse_instruction()

        tok = self.peek()
        if tok.kind != "EOF":
            if self._at_header():
                raise SourceSyntaxError(
                    "Header declarations must precede every instruction",
                    tok.position,
                )
            raise SourceSyntaxError(
                f"Expected an instruction, found {tok.text!r}", tok.position
            )

        if "tape" not in self.tree.headers:
            where = self.tree.instructions[0].position if self.tree.instructions else tok.position
            raise SourceSyntaxError("Missing tape declaration", where)
        return self.tree

    def _at_header(self) -> bool:
        tok = self.peek()
        if tok.kind == "LBRACE":
            return True
        return (
            tok.kind == "WORD"
            and tok.text in HEADER_KEYWORDS
            and self.peek(1).kind == "EQUALS"
        )

    def _store_header(self, tag: str, items, start: Token) -> None:
        self.tree.headers[tag] = HeaderClause(tag, tuple(items), start.position)
        logger.debug("Found %s header: %s", tag, [t.text for t in items])

    def _parse_header(self) -> None:
        start = self.peek()
        tag = "tape" if start.kind == "LBRACE" else HEADER_KEYWORDS[start.text]
        if tag in self.tree.headers:
            raise SourceSyntaxError(
                f"Duplicate {HEADER_LABELS[tag]} declaration", start.position
            )
        if tag == "tape":
            self._store_header(tag, self._parse_tape(), start)
            return

        self.advance()
        self.expect("EQUALS", "'='")
        opener = self.expect("LBRACE", "'{'")
        items = []
        if self.peek().kind != "RBRACE":
            items.append(self.expect("WORD", "an identifier", opener))
            while self.peek().kind == "COMMA":
                comma = self.advance()
                if tag == "initial":
                    raise SourceSyntaxError(
                        "Only one initial state may be declared", comma.position
                    )
                items.append(self.expect("WORD", "an identifier", opener))
        self.expect("RBRACE", "'}' or ','", opener)
        self.expect("SEMI", "';'")
        self._store_header(tag, items, start)

    def _parse_tape(self) -> list[Token]:
        opener = self.advance()
        symbols: list[Token] = []
        while self.peek().kind in ("NUMBER", "COMMA"):
            tok = self.advance()
            if tok.kind == "COMMA":
                continue
            start = tok.position
            for i, ch in enumerate(tok.text):
                # a number token never spans lines
                position = SourcePosition(start.offset + i, start.line, start.column + i)
                if ch not in "01":
                    raise SourceSyntaxError(
                        f"Tape symbols must be 0 or 1, found {ch!r}", position
                    )
                symbols.append(Token("SYMBOL", ch, position))
        self.expect("RBRACE", "'}' or a tape symbol", opener)
        self.expect("SEMI", "';'")
        return symbols

    def _parse_instruction(self) -> None:
        opener = self.advance()
        fields: list[Token] = []
        while True:
            tok = self.peek()
            if tok.kind not in ("WORD", "NUMBER"):
                self.expect("WORD", "an instruction field", opener)
            fields.append(self.advance())
            sep = self.peek()
            if sep.kind == "RPAREN":
                if len(fields) != INSTRUCTION_ARITY:
                    raise SourceSyntaxError(
                        f"Instruction has {len(fields)} fields, "
                        f"expected {INSTRUCTION_ARITY}",
                        sep.position,
                    )
                self.advance()
                break
            if sep.kind == "COMMA" and len(fields) >= INSTRUCTION_ARITY:
                raise SourceSyntaxError(
                    f"Instruction has more than {INSTRUCTION_ARITY} fields",
                    sep.position,
                )
            self.expect("COMMA", "',' or ')'", opener)
        self.expect("SEMI", "';'")
        clause = InstructionClause(tuple(fields), opener.position)
        self.tree.instructions.append(clause)
        logger.debug("Found instruction %s", clause.text)


def parse_source(source: str) -> ParseTree:
    """Parse raw source text into a :class:`ParseTree`."""

    return _Parser(source).parse()


__all__ = [
    "HeaderClause",
    "INSTRUCTION_ARITY",
    "InstructionClause",
    "ParseTree",
    "Token",
    "parse_source",
    "tokenize",
]
