"""Turn a resolved ApiSpec into an HTTP call and check its expectations."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

from api_suite.errors import ConfigurationError, MalformedSpecError, TransportError, UnsupportedMethodError
from api_suite.http.assertions import check_expectations
from api_suite.metadata.models import ApiSpec

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD")

_PLACEHOLDER = re.compile(r"\{([^{}/]+)\}")


@dataclass
class PreparedCall:
    method: str
    url: str
    headers: dict[str, str]
    data: Any = None


def stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def substitute_path(path: str, params: dict[str, Any] | None) -> str:
    """Replace every {key} occurrence; unknown placeholders are left in place."""
    for key, value in (params or {}).items():
        placeholder = f"{{{key}}}"
        if placeholder not in path:
            logger.warning("Path parameter %r not found in %s", key, path)
            continue
        path = path.replace(placeholder, stringify(value))

    leftover = _PLACEHOLDER.findall(path)
    if leftover:
        logger.warning("Unresolved path placeholders %s in %s", leftover, path)
    return path


def build_query(params: dict[str, Any] | None) -> str:
    """Encode params; list values repeat the key once per element, in order."""
    pairs = []
    for key, value in (params or {}).items():
        if isinstance(value, (list, tuple)):
            pairs.extend((key, stringify(v)) for v in value)
        else:
            pairs.append((key, stringify(value)))
    return urlencode(pairs)


def build_url(path: str, path_params: dict | None = None, query_params: dict | None = None) -> str:
    url = substitute_path(path, path_params)
    query = build_query(query_params)
    if query:
        url = f"{url}{'&' if '?' in url else '?'}{query}"
    return url


def has_content_type(headers: dict[str, str]) -> bool:
    return any(name.lower() == "content-type" for name in headers)


def serialize_body(body: Any, headers: dict[str, str]) -> Any:
    """Strings and bytes pass through; structured data becomes JSON text."""
    if body is None or isinstance(body, (str, bytes)):
        return body
    if not has_content_type(headers):
        headers["Content-Type"] = "application/json"
    return json.dumps(body)


def normalize_method(method: str | None) -> str:
    if not isinstance(method, str) or method.upper() not in SUPPORTED_METHODS:
        raise UnsupportedMethodError(method)
    return method.upper()


def assemble_request(spec: ApiSpec) -> PreparedCall:
    if not spec.is_complete:
        raise MalformedSpecError(f"API spec needs both method and path, got {spec.method!r} {spec.path!r}")
    method = normalize_method(spec.method)
    headers = dict(spec.headers)
    data = serialize_body(spec.body, headers)
    url = build_url(spec.path, spec.path_params, spec.query_params)
    return PreparedCall(method=method, url=url, headers=headers, data=data)


def execute(spec: ApiSpec, transport: Any) -> Any:
    """Send the request described by spec through transport and check expectations.

    Raises ConfigurationError before any transport access when spec cannot
    run, TransportError when the transport raises, and AssertionFailure when the
    response does not match. Returns the transport's response object.
    """
    call = assemble_request(spec)

    sender = getattr(transport, call.method.lower(), None)
    if sender is None:
        raise ConfigurationError(f"Transport {type(transport).__name__} has no {call.method.lower()}() method")

    logger.info("%s %s", call.method, call.url)
    try:
        response = sender(call.url, headers=call.headers, data=call.data)
    except Exception as e:
        raise TransportError(call.method, call.url, e) from e

    logger.debug("%s %s -> %s", call.method, call.url, getattr(response, "status_code", "?"))
    if spec.expect is not None:
        check_expectations(spec.expect, response)
    return response
