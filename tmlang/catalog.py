"""Built-in library machines.

Numbers are unary: ``n`` is written as ``n + 1`` consecutive ones and
arguments are separated by a single zero. Every library starts in ``q0`` with
the head on the first one of its argument and stops in ``qf`` with the head
on the first one of its result.
"""

BUILTIN_LIBRARIES = {
    "succ": """
        // n -> n + 1
        {}; I={q0}; F={qf};
        (q0, 1, 1, R, q0);
        (q0, 0, 1, L, q1);
        (q1, 1, 1, L, q1);
        (q1, 0, 0, R, qf);
    """,
    "pred": """
        // n -> n - 1, with pred(0) = 0
        {}; I={q0}; F={qf};
        (q0, 1, 1, R, q0);
        (q0, 0, 0, L, q1);
        (q1, 1, 0, L, q2);
        (q2, 1, 1, L, q3);
        (q2, 0, 0, R, q4);
        (q3, 1, 1, L, q3);
        (q3, 0, 0, R, qf);
        (q4, 0, 1, S, qf);
    """,
    "zero": """
        // n -> 0
        {}; I={q0}; F={qf};
        (q0, 1, 1, R, q1);
        (q1, 1, 0, R, q1);
        (q1, 0, 0, L, q2);
        (q2, 0, 0, L, q2);
        (q2, 1, 1, S, qf);
    """,
    "sum": """
        // a, b -> a + b
        {}; I={q0}; F={qf};
        (q0, 1, 1, R, q0);
        (q0, 0, 1, R, q1);
        (q1, 1, 1, R, q1);
        (q1, 0, 0, L, q2);
        (q2, 1, 0, L, q3);
        (q3, 1, 0, L, q4);
        (q4, 1, 1, L, q4);
        (q4, 0, 0, R, qf);
    """,
    "next": """
        // skip the current number and stop on the first cell of the next one
        {}; I={q0}; F={qf};
        (q0, 1, 1, R, q0);
        (q0, 0, 0, R, qf);
    """,
}

__all__ = ["BUILTIN_LIBRARIES"]
