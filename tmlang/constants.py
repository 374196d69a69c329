"""Shared constant values for the tmlang compiler and engine."""

SYMBOLS = (0, 1)
BLANK = 0

# Canonical movement codes and the head displacement each one applies.
MOVEMENTS = {
    "R": 1,
    "L": -1,
    "S": 0,
    "H": 0,
}

MOVEMENT_NAMES = {
    "R": "Right",
    "L": "Left",
    "S": "Stay",
    "H": "Halt",
}

# Localized spellings accepted by older sources (derecha / izquierda).
MOVEMENT_ALIASES = {
    "D": "R",
    "I": "L",
}

HALT = "H"

DOCUMENT_VERSION = "1.0"

DEFAULT_MAX_STEPS = 10_000
DEFAULT_LOOP_THRESHOLD = 1_000
DEFAULT_EXPLORE_LIMIT = 4_096

__all__ = [
    "SYMBOLS",
    "BLANK",
    "MOVEMENTS",
    "MOVEMENT_NAMES",
    "MOVEMENT_ALIASES",
    "HALT",
    "DOCUMENT_VERSION",
    "DEFAULT_MAX_STEPS",
    "DEFAULT_LOOP_THRESHOLD",
    "DEFAULT_EXPLORE_LIMIT",
]
