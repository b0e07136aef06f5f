"""Error taxonomy for suite assembly and request execution.

Every error is local to one test iteration: the orchestrator never retries
or suppresses them, it lets them reach the runner's per-test failure channel.
"""

from typing import Any


class ApiSuiteError(Exception):
    """Base class for all api-suite errors."""


class ConfigurationError(ApiSuiteError):
    """A declared specification cannot be executed as written."""


class UnsupportedMethodError(ConfigurationError):
    def __init__(self, method: str | None):
        self.method = method
        super().__init__(f"Unsupported HTTP method: {method!r}")


class UnsupportedAssertionError(ConfigurationError):
    def __init__(self, kind: str, path: str):
        self.kind = kind
        self.path = path
        super().__init__(f"Unsupported assertion {kind!r} for body path {path!r}")


class MalformedSpecError(ConfigurationError):
    """A resolved ApiSpec is missing the method or path it needs to run."""


class SpecificationConflictError(ConfigurationError):
    def __init__(self, member: str, field: str, old: Any, new: Any):
        self.member = member
        self.field = field
        self.old = old
        self.new = new
        super().__init__(f"Conflicting values for {field!r} on {member!r}: {old!r} then {new!r}")


class DecoratorUsageError(ConfigurationError):
    """A decorator was applied to the wrong kind of target."""


class TransportError(ApiSuiteError):
    """The transport failed before a response was produced."""

    def __init__(self, method: str, url: str, cause: BaseException):
        self.method = method
        self.url = url
        self.cause = cause
        super().__init__(f"{method} {url} failed: {cause}")


# Name used by the request engine contract.
RequestError = TransportError


class AssertionFailure(ApiSuiteError, AssertionError):
    """A response did not match a declared expectation."""

    def __init__(self, message: str, expected: Any = None, actual: Any = None, path: str | None = None):
        self.expected = expected
        self.actual = actual
        self.path = path
        super().__init__(message)


class HookError(ApiSuiteError):
    """One or more once-per-suite hooks raised."""

    def __init__(self, phase: str, failures: list[tuple[str, BaseException]]):
        self.phase = phase
        self.failures = failures
        names = ", ".join(f"{name}: {exc}" for name, exc in failures)
        super().__init__(f"{phase} hook(s) failed: {names}")
