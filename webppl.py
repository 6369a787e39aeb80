import argparse
import json
import math
import os
import sys

from compiler import compile_source, infer, run_source, set_verbose
from wppl.errors import WebPPLError
from wppl.runtime.builtins import format_value
from wppl.runtime.config import CONFIG_FILE, RuntimeConfig, load_config, set_config


def log(message):
    """Log informational messages to stderr."""
    print(f"\033[92m\033[1mINFO:\033[0m {message}", file=sys.stderr)


def read_program(filename):
    if filename is None or filename == "-":
        return sys.stdin.read()
    if not os.path.exists(filename):
        print(f"Error: File '{filename}' not found.", file=sys.stderr)
        sys.exit(1)
    with open(filename, 'r') as f:
        return f.read()


def print_marginal(erp):
    """Print a marginal distribution as a probability table, most likely first."""
    rows = [(format_value(v), erp.score([], v)) for v in erp.support([])]
    rows.sort(key=lambda row: row[1], reverse=True)

    print("┌─────────────────────────┬──────────────┐")
    print("│ Value                   │ Probability  │")
    print("├─────────────────────────┼──────────────┤")
    for value, score in rows:
        value_display = value[:23].ljust(23)
        prob_display = f"{math.exp(score):.6f}".ljust(12)
        print(f"│ {value_display} │ {prob_display} │")
    print("└─────────────────────────┴──────────────┘")


def cmd_compile(args):
    source_code = read_program(args.filename)
    print(compile_source(source_code))


def cmd_run(args):
    source_code = read_program(args.filename)
    if args.config:
        set_config(load_config(args.config))

    if args.method is None:
        result = run_source(source_code)
        if result is not None:
            print(format_value(result))
        return

    log(f"Running {args.method} inference...")
    erp = infer(
        source_code,
        method=args.method,
        samples=args.samples,
        particles=args.particles,
        seed=args.seed,
    )
    print_marginal(erp)


def cmd_init_config(args):
    if os.path.exists(CONFIG_FILE) and not args.force:
        print(f"Error: {CONFIG_FILE} already exists (use --force to overwrite).", file=sys.stderr)
        sys.exit(1)
    with open(CONFIG_FILE, "w") as f:
        json.dump(RuntimeConfig().model_dump(), f, indent=2)
    log(f"Wrote default settings to {CONFIG_FILE}.")


def main(argv=None):
    parser = argparse.ArgumentParser(description="WebPPL CLI")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output (sent to stderr)")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("compile", help="Print the compiled Python code").add_argument(
        "filename", nargs="?", default="-", help="File to compile (default: read from stdin)")

    run = subparsers.add_parser("run", help="Run file, optionally under inference")
    run.add_argument("filename", nargs="?", default="-", help="File to run (default: read from stdin)")
    run.add_argument("--method", choices=["forward", "enumerate", "particles"],
                     help="Inference method; without it the program runs once")
    run.add_argument("--samples", type=int, help="Number of runs for forward sampling")
    run.add_argument("--particles", type=int, help="Number of particles for the particle filter")
    run.add_argument("--seed", type=int, help="Random seed")
    run.add_argument("--config", help=f"Settings file (default: {CONFIG_FILE})")

    init = subparsers.add_parser("init-config", help=f"Write a default {CONFIG_FILE}")
    init.add_argument("--force", action="store_true", help="Overwrite an existing file")

    args = parser.parse_args(argv)
    set_verbose(args.verbose)

    try:
        if args.command == "compile": cmd_compile(args)
        elif args.command == "run": cmd_run(args)
        elif args.command == "init-config": cmd_init_config(args)
        else: parser.print_help()
    except WebPPLError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
