# ==========================================
# ELEMENTARY RANDOM PRIMITIVES (ERPs)
# ==========================================
"""
ERPs are the representation of distributions.

erp.sample(params) draws a value, erp.score(params, value) returns its log
probability, and erp.support(params), when the distribution is finite, lists
every value it can take. Not every ERP has a support; Enumerate refuses those.

Every draw comes from one numpy Generator, reseeded by seed().
"""

import math
from typing import Any, Callable, List, Optional, Sequence

import numpy as np
from pydantic import BaseModel, ConfigDict

from wppl.errors import DegenerateDistribution

_rng = np.random.default_rng()


def seed(value):
    """Seed the generator every ERP draws from."""
    global _rng
    _rng = np.random.default_rng(value)


def generator():
    """The shared numpy Generator."""
    return _rng


def safe_log(x):
    return math.log(x) if x > 0 else -math.inf


class ERP(BaseModel):
    """An immutable bundle of sample / score / optional support."""
    model_config = ConfigDict(frozen=True)

    name: str = "erp"
    sample: Callable[[Sequence[Any]], Any]
    score: Callable[[Sequence[Any], Any], float]
    support: Optional[Callable[[Sequence[Any]], List[Any]]] = None

    def __repr__(self):
        return f"ERP({self.name})"


def _choose_index(weights):
    """Index drawn in proportion to the unnormalized `weights`."""
    p = np.asarray(weights, dtype=float)
    return int(_rng.choice(len(p), p=p / p.sum()))


# --- Bernoulli ---

def _flip_sample(params):
    weight = params[0]
    return bool(_rng.random() < weight)


def _flip_score(params, value):
    weight = params[0]
    return safe_log(weight) if value else safe_log(1 - weight)


bernoulliERP = ERP(
    name="bernoulli",
    sample=_flip_sample,
    score=_flip_score,
    support=lambda params: [True, False],
)


# --- Uniform integer in [0, n) ---

def _random_integer_score(params, value):
    n = params[0]
    if isinstance(value, int) and not isinstance(value, bool) and 0 <= value < n:
        return -math.log(n)
    return -math.inf


randomIntegerERP = ERP(
    name="randomInteger",
    sample=lambda params: int(_rng.integers(params[0])),
    score=_random_integer_score,
    support=lambda params: list(range(params[0])),
)


# --- Discrete over indices, with unnormalized weights ---

def _discrete_score(params, value):
    weights = params[0]
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value < len(weights):
        return -math.inf
    return safe_log(weights[value] / sum(weights))


discreteERP = ERP(
    name="discrete",
    sample=lambda params: _choose_index(params[0]),
    score=_discrete_score,
    support=lambda params: list(range(len(params[0]))),
)


# --- Continuous (no support) ---

def _uniform_score(params, value):
    a, b = params
    if a <= value <= b:
        return -math.log(b - a)
    return -math.inf


uniformERP = ERP(
    name="uniform",
    sample=lambda params: float(_rng.uniform(params[0], params[1])),
    score=_uniform_score,
)


def _gaussian_score(params, value):
    mu, sigma = params
    return -0.5 * math.log(2 * math.pi * sigma * sigma) - (value - mu) ** 2 / (2 * sigma * sigma)


gaussianERP = ERP(
    name="gaussian",
    sample=lambda params: float(_rng.normal(params[0], params[1])),
    score=_gaussian_score,
)


# --- ERPs built by inference ---

def make_delta_erp(value):
    """All mass on `value`: score 0 there and -inf everywhere else."""
    return ERP(
        name="delta",
        sample=lambda params: value,
        score=lambda params, other: 0.0 if other == value else -math.inf,
        support=lambda params: [value],
    )


def marginal_key(value):
    """Hashable stand-in for a return value; True and 1 stay distinct."""
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, (list, tuple)):
        return ("seq", tuple(marginal_key(v) for v in value))
    if isinstance(value, dict):
        return ("map", tuple(sorted((k, marginal_key(v)) for k, v in value.items())))
    return value


class MarginalAccumulator:
    """Unnormalized mass per distinct return value, in first-seen order."""

    def __init__(self):
        self._values = {}
        self._masses = {}

    def add(self, value, mass):
        key = marginal_key(value)
        if key not in self._values:
            self._values[key] = value
            self._masses[key] = 0.0
        self._masses[key] += mass

    def total(self):
        return sum(self._masses.values())

    def items(self):
        """(value, unnormalized mass) pairs."""
        return [(self._values[key], mass) for key, mass in self._masses.items()]

    def __len__(self):
        return len(self._values)

    def to_erp(self, name="marginal"):
        """Normalize and freeze into an ERP over the accumulated values."""
        total = self.total()
        if not total > 0:
            raise DegenerateDistribution(
                "Every execution path has zero probability",
                suggestion="Check factor statements: the conditions can never all be satisfied",
            )
        keys = list(self._values)
        values = [self._values[key] for key in keys]
        probabilities = [self._masses[key] / total for key in keys]
        normalized = dict(zip(keys, probabilities))

        def score(params, value):
            return safe_log(normalized.get(marginal_key(value), 0.0))

        return ERP(
            name=name,
            sample=lambda params: values[_choose_index(probabilities)],
            score=score,
            support=lambda params: list(values),
        )
