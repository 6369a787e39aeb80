# WebPPL Runtime Components
"""
Runtime modules that compiled WebPPL programs import.

The generated code pulls every name the primitive wrapper treats as already
CPS from this package, so the export list below and
wppl.primitives.DEFAULT_CPS_NAMES must stay in step.
"""

from .trampoline import TailCall, trampoline, run, identity
from .coroutine import Coroutine, DefaultCoroutine, current_coroutine, install, restore, sample, factor, exit
from .erp import (
    ERP,
    seed,
    bernoulliERP,
    randomIntegerERP,
    discreteERP,
    uniformERP,
    gaussianERP,
    make_delta_erp,
)
from .builtins import flip, randomInteger, discrete, uniform, gaussian, uniformDraw, display, get_property
from .inference import (
    Forward,
    Enumerate,
    ParticleFilter,
    ForwardSampler,
    Enumerator,
    ParticleFilterSampler,
)
from .config import RuntimeConfig, load_config, get_config, set_config

__all__ = [
    'TailCall', 'trampoline', 'run', 'identity',
    'Coroutine', 'DefaultCoroutine', 'current_coroutine', 'install', 'restore',
    'sample', 'factor', 'exit',
    'ERP', 'seed', 'make_delta_erp',
    'bernoulliERP', 'randomIntegerERP', 'discreteERP', 'uniformERP', 'gaussianERP',
    'flip', 'randomInteger', 'discrete', 'uniform', 'gaussian', 'uniformDraw',
    'display', 'get_property',
    'Forward', 'Enumerate', 'ParticleFilter',
    'ForwardSampler', 'Enumerator', 'ParticleFilterSampler',
    'RuntimeConfig', 'load_config', 'get_config', 'set_config',
]
