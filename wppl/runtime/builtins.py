# ==========================================
# BUILTINS
# ==========================================
"""
Helpers available to every compiled program.

flip, randomInteger, discrete, uniform, gaussian and uniformDraw are written
in continuation-passing form already (continuation first), so the primitive
wrapper leaves them alone. display and get_property are direct-style host
functions, and the operator helpers at the end give ===, !==, + and % their
JavaScript meaning in generated code.
"""

import math
import sys

from wppl.runtime.coroutine import sample
from wppl.runtime.erp import (
    bernoulliERP,
    discreteERP,
    gaussianERP,
    randomIntegerERP,
    uniformERP,
)
from wppl.runtime.trampoline import TailCall


def flip(k, p=0.5):
    return sample(k, bernoulliERP, [p])


def randomInteger(k, n):
    return sample(k, randomIntegerERP, [n])


def discrete(k, weights):
    return sample(k, discreteERP, [weights])


def uniform(k, a, b):
    return sample(k, uniformERP, [a, b])


def gaussian(k, mu, sigma):
    return sample(k, gaussianERP, [mu, sigma])


def uniformDraw(k, items):
    """Pick one element of `items`, each with equal probability."""
    items = list(items)
    return sample(lambda i: TailCall(k, [items[i]]), randomIntegerERP, [len(items)])


def format_value(value):
    """Render a value the way the program would write it."""
    if value is True:
        return "true"
    if value is False:
        return "false"
    if value is None:
        return "undefined"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(format_value(v) for v in value) + "]"
    return str(value)


def display(*values):
    print(" ".join(format_value(v) for v in values), file=sys.stdout)


def get_property(obj, name):
    """obj.name for lists, mappings and ordinary objects."""
    if name == "length" and hasattr(obj, "__len__"):
        return len(obj)
    if isinstance(obj, dict):
        return obj[name]
    return getattr(obj, name)


# --- Operators whose JavaScript meaning differs from Python's ---

def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_js_string(value):
    """String conversion used by + when either operand is a string."""
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer():
            return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join("" if v is None else to_js_string(v) for v in value)
    return format_value(value)


def strict_equals(a, b):
    """a === b: no conversions, and arrays compare by identity."""
    if _is_number(a) and _is_number(b):
        return a == b
    if isinstance(a, (list, dict)) or isinstance(b, (list, dict)):
        return a is b
    if type(a) is not type(b):
        return False
    return a == b


def strict_not_equals(a, b):
    return not strict_equals(a, b)


def add(a, b):
    """a + b: concatenation as soon as either side is a string or an array."""
    if isinstance(a, (str, list)) or isinstance(b, (str, list)):
        return to_js_string(a) + to_js_string(b)
    return a + b


def remainder(a, b):
    """a % b: the result takes the sign of the dividend."""
    if b == 0:
        return math.nan
    if isinstance(a, int) and isinstance(b, int):
        r = abs(a) % abs(b)
        return r if a >= 0 else -r
    return math.fmod(a, b)
