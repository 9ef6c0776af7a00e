"""
Validation Framework

Uniform result type and the collector validators use to aggregate every
sub-failure into a single ValidationResult.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Type, TypeVar

from harness_errors import InvalidInputError
from orchestration.snapshot import SystemSnapshot

T = TypeVar("T")


@dataclass
class ValidationResult:
    passed: bool
    phase: str
    requirement: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    expected: Any = None
    actual: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'passed': self.passed,
            'phase': self.phase,
            'requirement': self.requirement,
            'message': self.message,
            'details': self.details,
            'expected': self.expected,
            'actual': self.actual,
        }

    def __bool__(self) -> bool:
        return self.passed


@dataclass
class CheckFailure:
    check: str
    message: str
    expected: Any = None
    actual: Any = None
    details: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'check': self.check, 'message': self.message,
                'expected': self.expected, 'actual': self.actual}
        if self.details:
            data['details'] = self.details
        return data


class CheckCollector:
    """
    Accumulates named sub-check failures for one validator run.

    Example:
        checks = CheckCollector("Engine B", "8.1")
        checks.fail("shadow_execution", "broker called", expected=False, actual=True)
        return checks.result("Engine B behaviour valid")
    """

    def __init__(self, phase: str, requirement: str):
        self.phase = phase
        self.requirement = requirement
        self.failures: List[CheckFailure] = []
        self.checked: List[str] = []

    def passed_check(self, check: str) -> None:
        self.checked.append(check)

    def fail(self, check: str, message: str, expected: Any = None, actual: Any = None,
             details: Optional[Dict[str, Any]] = None) -> None:
        self.checked.append(check)
        self.failures.append(CheckFailure(check, message, expected, actual, details))

    def expect(self, condition: bool, check: str, message: str,
               expected: Any = None, actual: Any = None, **details) -> bool:
        if condition:
            self.passed_check(check)
        else:
            self.fail(check, message, expected, actual, details or None)
        return condition

    @property
    def ok(self) -> bool:
        return not self.failures

    def result(self, success_message: str) -> ValidationResult:
        if self.ok:
            return ValidationResult(
                passed=True,
                phase=self.phase,
                requirement=self.requirement,
                message=success_message,
                details={'checks': list(dict.fromkeys(self.checked))},
            )

        first = self.failures[0]
        message = f"{self.phase} validation failed: " + "; ".join(f.message for f in self.failures)
        return ValidationResult(
            passed=False,
            phase=self.phase,
            requirement=self.requirement,
            message=message,
            details={
                'failures': [f.to_dict() for f in self.failures],
                'failed_checks': [f.check for f in self.failures],
            },
            expected=first.expected,
            actual=first.actual,
        )


def approx_equal(left: Optional[float], right: Optional[float], tolerance: float) -> bool:
    """abs(left - right) <= tolerance; None only equals None."""
    if left is None or right is None:
        return left is None and right is None
    return abs(left - right) <= tolerance


def require_snapshot(snapshot: Any) -> SystemSnapshot:
    if not isinstance(snapshot, SystemSnapshot):
        raise InvalidInputError(f"Expected SystemSnapshot, got {type(snapshot).__name__}")
    return snapshot


def require_expectation(expectation: Any, expected_type: Type[T]) -> T:
    if not isinstance(expectation, expected_type):
        raise InvalidInputError(
            f"Expected {expected_type.__name__}, got {type(expectation).__name__}"
        )
    return expectation
