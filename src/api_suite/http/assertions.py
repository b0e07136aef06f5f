"""Response expectations: status, dot-path body assertions and (unenforced) schema."""

import logging
from collections.abc import Mapping
from typing import Any

from api_suite.errors import AssertionFailure, UnsupportedAssertionError
from api_suite.metadata.models import Assertion, AssertionKind, Expectations

logger = logging.getLogger(__name__)


class _Undefined:
    """Marker for a path that does not resolve. Distinct from JSON null."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"


UNDEFINED = _Undefined()


def _step(value: Any, segment: str) -> Any:
    if isinstance(value, Mapping):
        return value[segment] if segment in value else UNDEFINED
    if isinstance(value, (list, tuple)):
        if segment == "length":
            return len(value)
        if not segment.isdigit():
            return UNDEFINED
        index = int(segment)
        return value[index] if index < len(value) else UNDEFINED
    if isinstance(value, str) and segment == "length":
        return len(value)
    return UNDEFINED


def extract(payload: Any, path: str) -> Any:
    """Walk a dot-separated path. Returns UNDEFINED instead of raising."""
    current = payload
    for segment in path.split("."):
        if current is None or current is UNDEFINED:
            return UNDEFINED
        current = _step(current, segment)
    return current


def deep_equal(left: Any, right: Any) -> bool:
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, Mapping) and isinstance(right, Mapping):
        return left.keys() == right.keys() and all(deep_equal(left[k], right[k]) for k in left)
    if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
        return len(left) == len(right) and all(deep_equal(a, b) for a, b in zip(left, right))
    if left is UNDEFINED or right is UNDEFINED:
        return left is right
    return left == right


def _contains(container: Any, item: Any) -> bool:
    if isinstance(container, str):
        return isinstance(item, str) and item in container
    if isinstance(container, (list, tuple)):
        return any(deep_equal(element, item) for element in container)
    if isinstance(container, Mapping):
        return item in container
    return False


def evaluate(assertion: Assertion, payload: Any, path: str) -> None:
    """Raise AssertionFailure if the value at path does not satisfy assertion."""
    actual = extract(payload, path)
    expected = assertion.value

    if assertion.kind == AssertionKind.DEFINED:
        if actual is UNDEFINED:
            raise AssertionFailure(f"Expected body path {path!r} to be defined", "defined", actual, path)
    elif assertion.kind == AssertionKind.EQUALS:
        if not deep_equal(actual, expected):
            raise AssertionFailure(
                f"Body path {path!r}: expected {expected!r}, got {actual!r}", expected, actual, path
            )
    elif assertion.kind == AssertionKind.CONTAINS:
        if not _contains(actual, expected):
            raise AssertionFailure(
                f"Body path {path!r}: expected {actual!r} to contain {expected!r}", expected, actual, path
            )
    else:
        raise UnsupportedAssertionError(assertion.kind, path)


def response_json(response: Any) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise AssertionFailure(f"Response body is not valid JSON: {e}", "JSON body", None) from e


def check_expectations(expect: Expectations, response: Any) -> None:
    """Check status first, then every body assertion in declaration order."""
    # unknown kinds are configuration errors, report them before any mismatch
    for path, assertion in expect.body.items():
        if assertion.kind not in AssertionKind.ALL:
            raise UnsupportedAssertionError(assertion.kind, path)

    if expect.status is not None:
        actual = response.status_code
        if actual != expect.status:
            raise AssertionFailure(
                f"Expected status {expect.status}, got {actual}", expect.status, actual
            )

    if expect.body:
        payload = response_json(response)
        for path, assertion in expect.body.items():
            logger.debug("Checking body path %r (%s)", path, assertion.kind)
            evaluate(assertion, payload, path)

    if expect.json_schema is not None:
        logger.debug("Schema expectation recorded but not enforced")
