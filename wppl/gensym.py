"""
Process-wide unique name generator.

Every name introduced by the CPS transform and the primitive wrapper comes from
here, so generated identifiers never collide with each other.
"""

import itertools

_counter = itertools.count()


def gensym(prefix):
    """Return prefix followed by the next value of the process-wide counter."""
    return f"{prefix}{next(_counter)}"


def reset_gensym():
    """Restart the counter at 0.

    Only for tests that assert on exact generated names: trees produced before
    the reset may collide with trees produced after it.
    """
    global _counter
    _counter = itertools.count()
