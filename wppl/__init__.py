# WebPPL - Core Compiler Components
"""
Core modules for the WebPPL compiler:
- errors: Compile-time and runtime error hierarchy
- gensym: Unique name generation for introduced identifiers
- ast: Immutable syntax tree nodes
- grammar / reader: Lark grammar and parse-tree to AST conversion
- primitives: Wrapping of direct-style host functions for CPS code
- cps: Continuation-passing style transform
- codegen: CPS trees rendered as trampolined Python source
- runtime: Effect handlers, ERPs and inference engines used by compiled code
"""

from .errors import WebPPLError, WebPPLCompileError, WebPPLRuntimeError
from .gensym import gensym
from .reader import read
from .primitives import PrimitiveWrapper, DEFAULT_CPS_NAMES
from .cps import cps, CpsTransformer
from .codegen import generate

__all__ = [
    'WebPPLError',
    'WebPPLCompileError',
    'WebPPLRuntimeError',
    'gensym',
    'read',
    'PrimitiveWrapper',
    'DEFAULT_CPS_NAMES',
    'cps',
    'CpsTransformer',
    'generate',
]
