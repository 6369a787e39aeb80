# ==========================================
# INFERENCE
# ==========================================
"""
Inference engines.

An inference function takes the current continuation and a CPS thunk (a
compiled function whose only parameter is its continuation). It installs a
coroutine that handles sample, factor and exit, runs the thunk with the
coroutine's exit as continuation, and when inference is done restores the
previous coroutine and continues the caller with an ERP for the normalized
marginal distribution on return values.
"""

import math
from typing import Any, Callable

import numpy as np
import scipy.special
from pydantic import BaseModel, ConfigDict

from wppl.debug import debug_log
from wppl.errors import DegenerateDistribution, InvalidConditioning, MissingSupport
from wppl.runtime.config import get_config
from wppl.runtime.coroutine import Coroutine, install, restore
from wppl.runtime.erp import MarginalAccumulator, generator, make_delta_erp
from wppl.runtime.trampoline import TailCall


class InferenceCoroutine(Coroutine):
    """
    Base class handling installation.

    start() records the active coroutine and installs this one; finish()
    restores the recorded one. finish() may run only once per engine.
    """

    def __init__(self, cc, wppl_fn):
        self.cc = cc
        self.wppl_fn = wppl_fn
        self._token = None
        self.exited = False

    def start(self):
        self._token = install(self)
        debug_log(f"{type(self).__name__}: started")
        return TailCall(self.wppl_fn, [self.exit])

    def finish(self, erp):
        if self.exited:
            raise RuntimeError(f"{type(self).__name__} already exited")
        self.exited = True
        restore(self._token)
        self._token = None
        return TailCall(self.cc, [erp])


# --- Forward sampling ---

class ForwardSampler(InferenceCoroutine):
    """Runs the program once, sampling every random choice."""

    def sample(self, k, erp, params):
        return TailCall(k, [erp.sample(params)])

    def factor(self, k, score):
        raise InvalidConditioning(
            "factor is not supported by Forward sampling",
            suggestion="Use Enumerate or ParticleFilter for conditioned models",
        )

    def exit(self, value):
        return self.finish(make_delta_erp(value))


def Forward(cc, wppl_fn):
    return ForwardSampler(cc, wppl_fn).start()


# --- Enumeration ---

class SuspendedPath(BaseModel):
    """An unexplored branch: resume `continuation` with `value` at `score`."""
    model_config = ConfigDict(frozen=True)

    continuation: Callable[[Any], Any]
    value: Any
    score: float


class Enumerator(InferenceCoroutine):
    """
    Exhaustive depth-first enumeration of every execution path.

    Each random choice must have finite support. Paths are explored from a
    LIFO stack, so the rightmost value of the most recent choice runs first.
    """

    def __init__(self, cc, wppl_fn):
        super().__init__(cc, wppl_fn)
        self.score = 0.0
        self.stack = []
        self.marginal = MarginalAccumulator()
        self.completed_paths = 0

    def sample(self, k, erp, params):
        if erp.support is None:
            raise MissingSupport(erp)
        for value in erp.support(params):
            self.stack.append(SuspendedPath(
                continuation=k,
                value=value,
                score=self.score + erp.score(params, value),
            ))
        return self._next_path()

    def factor(self, k, score):
        self.score += score
        return TailCall(k, [None])

    def exit(self, value):
        self.marginal.add(value, math.exp(self.score))
        self.completed_paths += 1
        return self._next_path()

    def _next_path(self):
        if self.stack:
            path = self.stack.pop()
            self.score = path.score
            return TailCall(path.continuation, [path.value])
        debug_log(f"Enumerate: {self.completed_paths} paths, {len(self.marginal)} distinct values")
        return self.finish(self.marginal.to_erp("enumerate"))


def Enumerate(cc, wppl_fn):
    return Enumerator(cc, wppl_fn).start()


# --- Particle filtering ---

def logsumexp(log_weights):
    weights = np.asarray(log_weights, dtype=float)
    if not np.any(weights > -np.inf):
        return -math.inf
    return float(scipy.special.logsumexp(weights))


def normalized_weights(log_weights):
    weights = np.asarray(log_weights, dtype=float)
    return np.exp(weights - scipy.special.logsumexp(weights))


def effective_sample_size(log_weights):
    """Effective sample size in [1, len(log_weights)]."""
    weights = normalized_weights(log_weights)
    return float(1.0 / np.sum(weights ** 2))


def multinomial_resample(log_weights, n):
    """n ancestor indices drawn independently in proportion to the weights."""
    weights = normalized_weights(log_weights)
    return generator().choice(len(weights), size=n, p=weights).tolist()


def systematic_resample(log_weights, n):
    """n ancestor indices from one uniform offset and evenly spaced positions."""
    cumsum = np.cumsum(normalized_weights(log_weights))
    positions = (np.arange(n) + generator().random()) / n
    indices = np.searchsorted(cumsum, positions, side="right")
    return np.minimum(indices, len(cumsum) - 1).tolist()


RESAMPLERS = {
    "multinomial": multinomial_resample,
    "systematic": systematic_resample,
}


class Particle(BaseModel):
    """One execution of the program, paused at its latest factor."""
    continuation: Callable[[Any], Any]
    log_weight: float = 0.0
    value: Any = None
    active: bool = True


class ParticleFilterSampler(InferenceCoroutine):
    """
    Sequential importance resampling.

    Particles run one at a time up to their next factor (or to exit). Once
    every running particle has reached its factor, the running group is
    resampled in proportion to weight and the sweep starts again. Particles
    that already exited keep their value and weight.
    """

    def __init__(self, cc, wppl_fn, num_particles, resampling="multinomial"):
        super().__init__(cc, wppl_fn)
        if resampling not in RESAMPLERS:
            raise ValueError(f"Unknown resampling method: {resampling}")
        self.resample_indices = RESAMPLERS[resampling]
        self.particles = [Particle(continuation=self._begin) for _ in range(num_particles)]
        self.index = 0
        self.log_marginal_estimate = 0.0

    def _begin(self, _value):
        return TailCall(self.wppl_fn, [self.exit])

    @property
    def current(self):
        return self.particles[self.index]

    def sample(self, k, erp, params):
        return TailCall(k, [erp.sample(params)])

    def factor(self, k, score):
        particle = self.current
        particle.continuation = k
        particle.log_weight += score
        return self._advance()

    def exit(self, value):
        particle = self.current
        particle.value = value
        particle.active = False
        return self._advance()

    def _advance(self):
        """Resume the next running particle, resampling at the end of a sweep."""
        self.index += 1
        while self.index < len(self.particles) and not self.current.active:
            self.index += 1
        if self.index < len(self.particles):
            return TailCall(self.current.continuation, [None])

        running = [i for i, p in enumerate(self.particles) if p.active]
        if not running:
            return self._finish()
        self._resample(running)
        self.index = -1
        return self._advance()

    def _resample(self, running):
        log_weights = [self.particles[i].log_weight for i in running]
        total = logsumexp(log_weights)
        if total == -math.inf:
            raise DegenerateDistribution(
                "All particles have zero weight",
                suggestion="Use more particles or check that the factors can be satisfied",
            )
        debug_log(f"ParticleFilter: resampling {len(running)} particles, "
                  f"ESS={effective_sample_size(log_weights):.1f}")

        # Survivors share the mean weight, so the group's total mass is unchanged.
        log_mean = total - math.log(len(running))
        ancestors = self.resample_indices(log_weights, len(running))
        survivors = [self.particles[running[a]] for a in ancestors]
        for i, ancestor in zip(running, survivors):
            self.particles[i] = ancestor.model_copy(update={"log_weight": log_mean})
        self._update_estimate()

    def _update_estimate(self):
        """log Z estimate: log of the mean weight over every particle."""
        log_weights = [p.log_weight for p in self.particles]
        self.log_marginal_estimate = logsumexp(log_weights) - math.log(len(log_weights))

    def _finish(self):
        log_weights = [p.log_weight for p in self.particles]
        if logsumexp(log_weights) == -math.inf:
            raise DegenerateDistribution(
                "All particles have zero weight",
                suggestion="Use more particles or check that the factors can be satisfied",
            )
        self._update_estimate()
        marginal = MarginalAccumulator()
        for particle, weight in zip(self.particles, normalized_weights(log_weights)):
            marginal.add(particle.value, float(weight))
        debug_log(f"ParticleFilter: {len(self.particles)} particles, {len(marginal)} distinct values, "
                  f"log Z={self.log_marginal_estimate:.4f}")
        return self.finish(marginal.to_erp("particle filter"))


def ParticleFilter(cc, wppl_fn, num_particles=None):
    config = get_config()
    if num_particles is None:
        num_particles = config.particles
    return ParticleFilterSampler(cc, wppl_fn, int(num_particles), config.resampling).start()
