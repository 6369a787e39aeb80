import sys

from wppl.ast import Program
from wppl.codegen import generate, python_name
from wppl.cps import cps
from wppl.debug import set_verbose, debug_log
from wppl.errors import WebPPLError, WebPPLCompileError
from wppl.primitives import DEFAULT_CPS_NAMES, PrimitiveWrapper, prepend
from wppl.reader import read
from wppl.runtime import Enumerate, Forward, ParticleFilter, display, run
from wppl.runtime.config import get_config
from wppl.runtime.erp import MarginalAccumulator, seed as seed_rng
from wppl.runtime.trampoline import identity

__all__ = [
    'parse_source',
    'compile_ast',
    'compile_source',
    'load_program',
    'run_source',
    'infer',
    'set_verbose',
    'debug_log',
]

# Name of the continuation parameter of the generated entry point
TOP_CONTINUATION = "topK"
ENTRY_POINT = "main"

# Direct-style host functions every program can call
DEFAULT_PRIMITIVES = {
    "display": display,
}

METHODS = ("forward", "enumerate", "particles")


def parse_source(source_code):
    debug_log(f"Parsing {len(source_code)} characters")
    return read(source_code)


def compile_ast(program, continuation=TOP_CONTINUATION, cps_names=DEFAULT_CPS_NAMES):
    """
    Wrap free primitives, CPS-transform, and put the wrappers in front.

    Returns a new Program whose value is delivered to `continuation`.
    """
    if not isinstance(program, Program):
        raise WebPPLCompileError(
            f"Expected a Program, got {type(program).__name__}",
            suggestion="Parse the source with parse_source() first",
        )
    wrappers, rewritten = PrimitiveWrapper(cps_names).wrap(program)
    transformed = cps(rewritten, continuation)
    debug_log(f"CPS transform produced {len(transformed.body)} top-level statements")
    return prepend(wrappers, transformed)


def compile_source(source_code, continuation=TOP_CONTINUATION, cps_names=DEFAULT_CPS_NAMES):
    """Compile program text into Python source defining main(<continuation>)."""
    # STEP 1: PARSE
    program = parse_source(source_code)

    # STEP 2: CPS
    try:
        transformed = compile_ast(program, continuation, cps_names)
    except WebPPLError:
        raise  # Re-raise our custom errors
    except Exception as e:
        raise WebPPLCompileError(
            message=f"Transformation error: {str(e)}",
            suggestion="Check syntax around the reported construct",
        ) from e

    # STEP 3: GENERATE PYTHON
    try:
        code = generate(transformed, continuation, ENTRY_POINT, DEFAULT_CPS_NAMES)
    except WebPPLError:
        raise
    except Exception as e:
        raise WebPPLCompileError(
            message=f"Code generation error: {str(e)}",
            suggestion="Check syntax around the reported construct",
        ) from e

    debug_log(f"Generated {len(code.splitlines())} lines of Python")
    return code


def load_program(source_code, primitives=None, cps_primitives=None):
    """
    Compile and execute the program text, returning its CPS entry point.

    `primitives` maps names to direct-style host functions; `cps_primitives`
    maps names to functions already written in continuation-passing style.
    The result takes one argument, the top-level continuation.
    """
    cps_primitives = cps_primitives or {}
    env = {"__name__": "wppl_program"}
    for name, fn in {**DEFAULT_PRIMITIVES, **(primitives or {}), **cps_primitives}.items():
        env[python_name(name)] = fn

    code = compile_source(source_code, cps_names=DEFAULT_CPS_NAMES | frozenset(cps_primitives))
    try:
        exec(compile(code, "<wppl>", "exec"), env)
    except SyntaxError as e:
        raise WebPPLCompileError(
            message=f"Generated code could not be compiled: {e.msg}",
            suggestion="Deeply nested programs can exceed Python's indentation limit; split them into functions",
        ) from e
    return env[ENTRY_POINT]


def run_source(source_code, primitives=None, k=identity, max_steps=None, cps_primitives=None):
    """Run the program under the default handler and return what `k` returns."""
    main = load_program(source_code, primitives, cps_primitives)
    if max_steps is None:
        max_steps = get_config().max_steps
    return run(main, k, max_steps=max_steps)


def infer(source_code, method="enumerate", primitives=None, samples=None, particles=None,
          seed=None, max_steps=None, cps_primitives=None):
    """
    Compute the marginal distribution on the program's return value.

    method is "forward" (independent runs), "enumerate" (exact) or
    "particles" (particle filter). Returns an ERP.
    """
    if method not in METHODS:
        raise ValueError(f"Unknown inference method '{method}', expected one of: {', '.join(METHODS)}")

    config = get_config()
    if seed is None:
        seed = config.seed
    if seed is not None:
        seed_rng(seed)
    if max_steps is None:
        max_steps = config.max_steps

    main = load_program(source_code, primitives, cps_primitives)
    debug_log(f"Running inference: {method}")

    if method == "enumerate":
        return run(Enumerate, identity, main, max_steps=max_steps)
    if method == "particles":
        return run(ParticleFilter, identity, main, particles or config.particles, max_steps=max_steps)

    samples = samples or config.samples
    marginal = MarginalAccumulator()
    for _ in range(samples):
        erp = run(Forward, identity, main, max_steps=max_steps)
        marginal.add(erp.sample([]), 1.0)
    debug_log(f"Forward sampling: {samples} runs, {len(marginal)} distinct values")
    return marginal.to_erp("forward")


if __name__ == "__main__":
    if len(sys.argv) > 1:
        with open(sys.argv[1], 'r') as f:
            print(compile_source(f.read()))
