"""
Unit tests for the active effect handler and its default behavior.
"""
import pytest
import contextvars
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
from wppl.errors import InvalidConditioning
from wppl.runtime.coroutine import (
    Coroutine,
    DefaultCoroutine,
    current_coroutine,
    exit,
    factor,
    install,
    restore,
    sample,
)
from wppl.runtime.erp import bernoulliERP, make_delta_erp
from wppl.runtime.trampoline import TailCall, identity, trampoline


class Recorder(Coroutine):
    """Handler that records every effect it sees."""

    def __init__(self):
        self.events = []

    def sample(self, k, erp, params):
        self.events.append(("sample", erp.name, params))
        return TailCall(k, [True])

    def factor(self, k, score):
        self.events.append(("factor", score))
        return TailCall(k, [None])

    def exit(self, value):
        self.events.append(("exit", value))
        return value


@pytest.fixture
def isolated():
    """Run a callable in a fresh copy of the current context."""
    def runner(fn):
        return contextvars.copy_context().run(fn)
    return runner


class TestDefaultCoroutine:
    """Tests for behavior outside of inference."""

    def test_default_is_installed(self):
        assert isinstance(current_coroutine(), DefaultCoroutine)

    def test_sample_draws_directly(self):
        erp = make_delta_erp("x")
        assert trampoline(sample(identity, erp, [])) == "x"

    def test_factor_is_rejected(self):
        with pytest.raises(InvalidConditioning):
            factor(identity, 0.0)

    def test_exit_is_identity(self):
        assert exit(5) == 5

    def test_coroutine_is_abstract(self):
        with pytest.raises(TypeError):
            Coroutine()


class TestInstallRestore:
    """Tests for installing and restoring handlers."""

    def test_free_functions_forward_to_installed_handler(self, isolated):
        recorder = Recorder()

        def body():
            token = install(recorder)
            trampoline(sample(identity, bernoulliERP, [0.3]))
            trampoline(factor(identity, -1.5))
            exit("done")
            restore(token)

        isolated(body)
        assert recorder.events == [
            ("sample", "bernoulli", [0.3]),
            ("factor", -1.5),
            ("exit", "done"),
        ]

    def test_restore_reinstates_previous_handler(self, isolated):
        outer, inner = Recorder(), Recorder()

        def body():
            outer_token = install(outer)
            inner_token = install(inner)
            assert current_coroutine() is inner
            restore(inner_token)
            assert current_coroutine() is outer
            restore(outer_token)
            return current_coroutine()

        assert isinstance(isolated(body), DefaultCoroutine)

    def test_token_can_only_be_used_once(self, isolated):
        def body():
            token = install(Recorder())
            restore(token)
            with pytest.raises(RuntimeError):
                restore(token)

        isolated(body)

    def test_install_in_copied_context_does_not_leak(self, isolated):
        isolated(lambda: install(Recorder()))
        assert isinstance(current_coroutine(), DefaultCoroutine)
