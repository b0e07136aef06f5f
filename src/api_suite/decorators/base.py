"""Fragment writers shared by every decorator.

Each decorator writes only its own slice. Member fragments are filed under the
function's MemberRef; class fragments under the class object.
"""

import os
from functools import lru_cache
from typing import Any, Callable

from api_suite.config import load_settings
from api_suite.errors import DecoratorUsageError
from api_suite.metadata.models import ApiSpec, MetadataRecord, RecordKind, SpecificationOptions
from api_suite.metadata.registry import MemberRef, get_registry
from api_suite.metadata.resolver import merge_options


@lru_cache(maxsize=8)
def _strict_for(flag: str | None, config_path: str | None) -> bool:
    return load_settings().strict_merge


def strict_merge() -> bool:
    """Whether merge conflicts raise, read once per environment."""
    return _strict_for(os.getenv("API_SUITE_STRICT_MERGE"), os.getenv("API_SUITE_CONFIG"))


def options_of(**values: Any) -> SpecificationOptions:
    """SpecificationOptions with only the meaningful values marked as set."""
    return SpecificationOptions(**{k: v for k, v in values.items() if v not in (None, False, (), [])})


def _function(target: Any) -> Callable[..., Any]:
    fn = getattr(target, "__func__", target)
    if isinstance(fn, type) or not callable(fn):
        raise DecoratorUsageError(f"Expected a function, got {target!r}")
    return fn


def write_member(target: Any, options: SpecificationOptions, kind: RecordKind | None = None, name: str | None = None) -> None:
    """Merge options into the record for target's member.

    With kind, the member is (re)declared as that kind; otherwise an existing
    record keeps its kind and a new one defaults to a test.
    """
    fn = _function(target)
    # closures share a qualname across every member they wrap, so they are filed by object
    token = MemberRef.for_function(fn) if is_method(fn) else fn
    registry = get_registry()
    existing = registry.get(token)

    merged = merge_options(
        existing.options if existing is not None else None,
        options,
        member=fn.__qualname__,
        strict=strict_merge(),
    )
    if kind is None:
        kind = existing.kind if existing is not None else RecordKind.TEST
    if name is None:
        name = existing.name if existing is not None and existing.kind is kind else fn.__name__
    registry.store(token, MetadataRecord(kind=kind, name=name, options=merged))


def write_api(target: Any, **fields: Any) -> None:
    write_member(target, SpecificationOptions(api=ApiSpec(**fields)))


def write_suite(cls: type, options: SpecificationOptions) -> None:
    registry = get_registry()
    existing = registry.get(cls)
    merged = merge_options(
        existing.options if existing is not None else None,
        options,
        member=cls.__qualname__,
        strict=strict_merge(),
    )
    registry.store(cls, MetadataRecord(kind=RecordKind.SUITE, name=merged.name or cls.__name__, options=merged))


def write_either(target: Any, options: SpecificationOptions) -> Any:
    """Apply a modifier to a suite class or a member function."""
    if isinstance(target, type):
        write_suite(target, options)
    else:
        write_member(target, options)
    return target


def is_method(fn: Callable[..., Any]) -> bool:
    owner, _, _ = getattr(fn, "__qualname__", "").rpartition(".")
    return bool(owner) and not owner.endswith("<locals>")
