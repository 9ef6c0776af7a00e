"""
Harness Error Taxonomy

Typed, catchable failures raised by the generators, orchestrator and
validators. Semantic validation mismatches are never exceptions; they are
returned as ValidationResult objects with passed=False.
"""


class HarnessError(Exception):
    """Base class for every typed harness failure."""
    pass


class InvalidInputError(HarnessError, ValueError):
    """Raised for unknown regimes/patterns or malformed generator input."""
    pass


class SafetyViolation(HarnessError):
    """Raised when a non-synthetic record or a real outbound call is attempted."""
    pass


class UsageError(HarnessError):
    """Raised when an operation is called with insufficient or invalid arguments."""
    pass


class HarnessEnvironmentError(HarnessError):
    """Raised when environment overlay or interceptor install/restore fails."""
    pass


class HarnessTimeoutError(HarnessError, TimeoutError):
    """Raised when an orchestrator operation exceeds its configured timeout."""
    pass
