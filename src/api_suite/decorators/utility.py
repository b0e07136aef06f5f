"""Execution modifiers usable on both suite classes and test methods."""

from api_suite.decorators.base import options_of, write_either


def skip(reason: str | None = None):
    return lambda target: write_either(target, options_of(skip=True, skip_reason=reason))


def only():
    return lambda target: write_either(target, options_of(only=True))


def tag(*tags: str):
    return lambda target: write_either(target, options_of(tags=list(tags)))


def slow(reason: str | None = None):
    return lambda target: write_either(target, options_of(slow=True, slow_reason=reason))


def fail(reason: str | None = None):
    """Expect the test (or every test in the suite) to fail."""
    return lambda target: write_either(target, options_of(fail=True, fail_reason=reason))


def fixme(reason: str | None = None):
    """Skip with a fixme reason."""
    return lambda target: write_either(target, options_of(skip=True, skip_reason=f"fixme: {reason}" if reason else "fixme"))
