# ==========================================
# EFFECT HANDLERS ("COROUTINES")
# ==========================================
"""
The active effect handler and the free functions that forward to it.

Compiled programs call sample(k, erp, params), factor(k, score) and exit(value)
without knowing which inference algorithm is running; whichever coroutine is
installed in the current context decides what those calls mean. Installing
returns a token, and restoring with that token puts back exactly the handler
that was active before, so inference can nest.
"""

from abc import ABC, abstractmethod
from contextvars import ContextVar

from wppl.errors import InvalidConditioning
from wppl.runtime.trampoline import TailCall


class Coroutine(ABC):
    """Abstract effect handler."""

    @abstractmethod
    def sample(self, k, erp, params):
        pass

    @abstractmethod
    def factor(self, k, score):
        pass

    @abstractmethod
    def exit(self, value):
        pass


class DefaultCoroutine(Coroutine):
    """Handler in effect when no inference is running."""

    def sample(self, k, erp, params):
        return TailCall(k, [erp.sample(params)])

    def factor(self, k, score):
        raise InvalidConditioning(
            "factor called outside of inference",
            suggestion="Wrap the conditioned computation in Enumerate(...) or ParticleFilter(...)",
        )

    def exit(self, value):
        return value

    def __repr__(self):
        return "DefaultCoroutine()"


_coroutine = ContextVar("wppl_coroutine", default=DefaultCoroutine())


def current_coroutine():
    return _coroutine.get()


def install(handler):
    """Make `handler` the active coroutine; returns the token to restore with."""
    return _coroutine.set(handler)


def restore(token):
    """Reinstate the coroutine that was active when `token` was issued."""
    _coroutine.reset(token)


def sample(k, erp, params):
    return _coroutine.get().sample(k, erp, params)


def factor(k, score):
    return _coroutine.get().factor(k, score)


def exit(value):
    return _coroutine.get().exit(value)
