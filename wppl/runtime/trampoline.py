# ==========================================
# TRAMPOLINE
# ==========================================
"""
Drives CPS code without growing the Python stack.

Compiled code never calls a continuation directly from tail position; it
returns a TailCall describing the call, and trampoline() keeps executing those
until a plain value comes back.
"""

import contextvars

from wppl.errors import StepBudgetExceeded


class TailCall:
    """A pending call fn(*args)."""
    __slots__ = ("fn", "args")

    def __init__(self, fn, args):
        self.fn = fn
        self.args = args

    def __repr__(self):
        return f"TailCall({getattr(self.fn, '__name__', self.fn)!s}, {self.args!r})"


def trampoline(value, max_steps=None):
    """Execute TailCalls until a non-TailCall value is produced."""
    steps = 0
    while isinstance(value, TailCall):
        if max_steps is not None and steps >= max_steps:
            raise StepBudgetExceeded(max_steps)
        steps += 1
        value = value.fn(*value.args)
    return value


def identity(value):
    return value


def run(cps_fn, k=identity, *args, max_steps=None):
    """
    Run cps_fn(k, *args) to completion and return the final value.

    The run executes in a copy of the current context, so whatever effect
    handler it installs is gone afterwards even if the run fails part way.
    """
    context = contextvars.copy_context()
    return context.run(trampoline, TailCall(cps_fn, [k, *args]), max_steps)
