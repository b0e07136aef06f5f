"""Request and response decorators for API tests.

A test becomes API-eligible once both method and path are declared; the
response is then injected as ``ctx.response`` before the body runs.
"""

from typing import Any, Mapping

from api_suite.decorators.base import write_api
from api_suite.metadata.models import Assertion, AssertionKind, Expectations


def _slice(**fields: Any):
    def decorator(fn):
        write_api(fn, **fields)
        return fn

    return decorator


def _params(params: Mapping[str, Any] | None, extra: dict[str, Any]) -> dict[str, Any]:
    merged = dict(params or {})
    merged.update(extra)
    return merged


def api_endpoint(method: str, path: str):
    return _slice(method=method, path=path)


def path_params(params: Mapping[str, Any] | None = None, **kwargs: Any):
    return _slice(path_params=_params(params, kwargs))


def query_params(params: Mapping[str, Any] | None = None, **kwargs: Any):
    """List values are sent as one key=value pair per element."""
    return _slice(query_params=_params(params, kwargs))


def headers(values: Mapping[str, str] | None = None, **kwargs: str):
    return _slice(headers=_params(values, kwargs))


def request_body(body: Any):
    """Strings are sent as-is; other values are sent as JSON."""
    return _slice(body=body)


def expect_status(status: int):
    return _slice(expect=Expectations(status=status))


def expect_schema(schema: Mapping[str, Any]):
    """Record a JSON schema for the response. Not enforced."""
    return _slice(expect=Expectations(json_schema=dict(schema)))


class _BodyExpectation:
    def __init__(self, path: str):
        self.path = path

    def _assert(self, assertion: Assertion):
        return _slice(expect=Expectations(body={self.path: assertion}))

    def to_be_defined(self):
        return self._assert(Assertion(kind=AssertionKind.DEFINED))

    def to_equal(self, value: Any):
        return self._assert(Assertion(kind=AssertionKind.EQUALS, value=value))

    def to_contain(self, value: Any):
        return self._assert(Assertion(kind=AssertionKind.CONTAINS, value=value))


def expect_body(path: str) -> _BodyExpectation:
    """Assert on a dot-path of the JSON response, e.g. ``@expect_body("user.id").to_equal(1)``."""
    return _BodyExpectation(path)
