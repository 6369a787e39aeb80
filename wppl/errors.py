"""
Error handling utilities for the WebPPL compiler and runtime.

Compile-time failures derive from WebPPLCompileError, failures raised while a
compiled program runs derive from WebPPLRuntimeError, so callers can branch on
the kind of error instead of its message.
"""


class WebPPLError(Exception):
    """Base exception with optional source position, context and hint."""
    def __init__(self, message, line_number=None, column=None, context=None, suggestion=None):
        self.message = message
        self.line_number = line_number
        self.column = column
        self.context = context  # The offending line
        self.suggestion = suggestion  # How to fix it
        super().__init__(self._format_error())

    def _format_error(self):
        """Format the error message with context and suggestion."""
        lines = [f"\n{self.title}"]
        if self.line_number:
            lines.append(f" at line {self.line_number}")
            if self.column:
                lines.append(f", column {self.column}")
        lines.append(":\n")

        lines.append(f"   {self.message}\n")

        if self.context:
            lines.append(f"   > {self.context}\n")

        if self.suggestion:
            lines.append(f"   Hint: {self.suggestion}\n")

        return "".join(lines)

    title = "WebPPL Error"


class WebPPLCompileError(WebPPLError):
    title = "Compilation Error"


class WebPPLRuntimeError(WebPPLError):
    title = "Runtime Error"


class WebPPLSyntaxError(WebPPLCompileError):
    """The reader could not parse the program text."""


class UnsupportedSyntax(WebPPLCompileError):
    """The CPS transform reached a node kind it has no rule for."""
    def __init__(self, kind):
        self.kind = kind
        super().__init__(
            f"Unsupported syntax: {kind}",
            suggestion="Rewrite this construct using calls, conditionals (a ? b : c) and var declarations",
        )


class MalformedContinuationPrimitive(WebPPLCompileError):
    """The __cps marker was used with the wrong shape."""


class MissingSupport(WebPPLRuntimeError):
    """Enumerate needs every random choice to expose a finite support."""
    def __init__(self, erp):
        self.erp = erp
        super().__init__(
            f"ERP '{getattr(erp, 'name', erp)}' has no support",
            suggestion="Enumerate only works with finite discrete distributions; use ParticleFilter or Forward",
        )


class InvalidConditioning(WebPPLRuntimeError):
    """factor was called where no inference engine can weigh the path."""


class DegenerateDistribution(WebPPLRuntimeError):
    """All paths (or particles) of an inference run carry zero probability."""


class StepBudgetExceeded(WebPPLRuntimeError):
    """The trampoline ran more steps than the configured budget allows."""
    def __init__(self, max_steps):
        self.max_steps = max_steps
        super().__init__(
            f"Program exceeded the step budget of {max_steps} steps",
            suggestion="Raise max_steps in wppl.json or check for unbounded recursion",
        )


def get_line_context(source_code, line_number):
    """Extract the line of code from source by line number (1-based)."""
    if not source_code or line_number is None:
        return None
    source_lines = source_code.split('\n')
    if 0 < line_number <= len(source_lines):
        return source_lines[line_number - 1].strip()
    return None


def detect_common_error_patterns(source_code):
    """Detect common mistakes and return a helpful suggestion."""
    open_braces = source_code.count('{')
    close_braces = source_code.count('}')
    if open_braces != close_braces:
        return f"Unmatched braces: found {open_braces} '{{' but {close_braces} '}}'"

    open_parens = source_code.count('(')
    close_parens = source_code.count(')')
    if open_parens != close_parens:
        return f"Unmatched parentheses: found {open_parens} '(' but {close_parens} ')'"

    open_brackets = source_code.count('[')
    close_brackets = source_code.count(']')
    if open_brackets != close_brackets:
        return f"Unmatched brackets: found {open_brackets} '[' but {close_brackets} ']'"

    if '=>' in source_code:
        return "Arrow functions are not supported: use 'function(x) { ... }'"

    return None
