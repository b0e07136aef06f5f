"""Collapse every fragment describing one class member into a single record.

The same logical member can be filed under several identity tokens: its
MemberRef, the function object in the class slot, a wrapper function, or a
bare name string. Resolution gathers all of them in registry insertion order
and merges field by field, later fragments winning.
"""

import logging
from typing import Any, Hashable, Iterable

from api_suite.config import load_settings
from api_suite.errors import SpecificationConflictError
from api_suite.metadata.models import (
    ApiSpec,
    HookPhase,
    MetadataRecord,
    RecordKind,
    SpecificationOptions,
)
from api_suite.metadata.registry import MemberRef, MetadataRegistry, get_registry

logger = logging.getLogger(__name__)

FLAG_FIELDS = ("only", "skip", "slow", "fail", "shared_instance")
MAPPING_FIELDS = ("path_params", "query_params", "headers")


# -- merging ----------------------------------------------------------------


def _conflict(member: str, field: str, old: Any, new: Any, strict: bool) -> None:
    if old is None or old == new:
        return
    if strict:
        raise SpecificationConflictError(member, field, old, new)
    logger.warning("%s: %s set to %r, overriding earlier %r", member, field, new, old)


def _merge_mapping(old: dict, new: dict, member: str, field: str, strict: bool) -> dict:
    merged = dict(old)
    for key, value in new.items():
        _conflict(member, f"{field}.{key}", merged.get(key), value, strict)
        merged[key] = value
    return merged


def _merge_expect(old: dict, new: dict, member: str, strict: bool) -> dict:
    merged = dict(old)
    for key, value in new.items():
        if key == "body":
            merged["body"] = _merge_mapping(merged.get("body", {}), value, member, "expect.body", strict)
        else:
            _conflict(member, f"expect.{key}", merged.get(key), value, strict)
            merged[key] = value
    return merged


def _merge_api_dicts(old: dict, new: dict, member: str, strict: bool) -> dict:
    merged = dict(old)
    for key, value in new.items():
        if key not in merged:
            merged[key] = value
        elif key in MAPPING_FIELDS:
            merged[key] = _merge_mapping(merged[key], value, member, key, strict)
        elif key == "expect":
            merged[key] = _merge_expect(merged[key] or {}, value or {}, member, strict)
        else:
            _conflict(member, key, merged[key], value, strict)
            merged[key] = value
    return merged


def merge_api(
    base: ApiSpec | None,
    update: ApiSpec | None,
    member: str = "<member>",
    strict: bool = False,
) -> ApiSpec | None:
    """Field-level merge of two ApiSpec fragments; update wins on overlap."""
    if update is None:
        return base
    if base is None:
        return update.model_copy(deep=True)
    merged = _merge_api_dicts(
        base.model_dump(exclude_unset=True),
        update.model_dump(exclude_unset=True),
        member,
        strict,
    )
    return ApiSpec.model_validate(merged)


def merge_options(
    base: SpecificationOptions | None,
    update: SpecificationOptions | None,
    member: str = "<member>",
    strict: bool = False,
) -> SpecificationOptions:
    """Merge modifier and API fragments.

    Flags OR together, tags union in first-seen order, mappings merge key by
    key, every other field is overwritten by the later fragment.
    """
    merged = base.model_dump(exclude_unset=True) if base is not None else {}
    incoming = update.model_dump(exclude_unset=True) if update is not None else {}

    for key, value in incoming.items():
        if key in FLAG_FIELDS:
            merged[key] = bool(merged.get(key)) or bool(value)
        elif key == "tags":
            tags = list(merged.get("tags", []))
            tags.extend(t for t in value if t not in tags)
            merged["tags"] = tags
        elif key == "api":
            if value is None:
                continue
            merged["api"] = _merge_api_dicts(merged.get("api") or {}, value, member, strict)
        elif value is None:
            continue
        else:
            _conflict(member, key, merged.get(key), value, strict)
            merged[key] = value

    return SpecificationOptions.model_validate(merged)


# -- identity ---------------------------------------------------------------


def _unwrap(slot: Any) -> Any:
    # staticmethod / classmethod keep the function on __func__
    return getattr(slot, "__func__", slot)


def find_slot(cls: type, name: str) -> Any:
    """The raw attribute for name, looked up along the MRO without binding."""
    for klass in cls.__mro__:
        if name in vars(klass):
            return _unwrap(vars(klass)[name])
    return None


def declared_members(cls: type) -> list[str]:
    """Callable members in declaration order, base classes first."""
    names: list[str] = []
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name, value in vars(klass).items():
            if name.startswith("__") or name in names:
                continue
            if callable(_unwrap(value)) and not isinstance(value, type):
                names.append(name)
    return names


def member_tokens(cls: type, name: str) -> list[Hashable]:
    """Every token a fragment for cls.name may have been filed under."""
    tokens: list[Hashable] = [
        MemberRef.for_member(klass, name) for klass in cls.__mro__ if klass is not object
    ]
    fn = find_slot(cls, name)
    if fn is not None and callable(fn):
        tokens.append(fn)
        tokens.append(MemberRef.for_function(fn))
    tokens.append(name)
    return tokens


class SpecificationResolver:
    """Read-only view over a registry that merges fragments per member."""

    def __init__(self, registry: MetadataRegistry | None = None, strict: bool | None = None):
        self.registry = registry if registry is not None else get_registry()
        self.strict = load_settings().strict_merge if strict is None else strict

    def _matches(self, token: Hashable, name: str, candidates: list[Hashable]) -> bool:
        if isinstance(token, str):
            return token == name
        if isinstance(token, MemberRef):
            return token in candidates
        if isinstance(token, type):
            return False
        if callable(token):
            if any(token is c for c in candidates):
                return True
            # a wrapper or earlier function object for the same declared member
            return getattr(token, "__name__", None) == name and MemberRef.for_function(token) in candidates
        return False

    def entries_for(self, cls: type, name: str) -> list[tuple[Hashable, MetadataRecord]]:
        candidates = member_tokens(cls, name)
        return [
            (token, record)
            for token, record in self.registry.get_all()
            if self._matches(token, name, candidates)
        ]

    def resolve_member(self, cls: type, name: str) -> MetadataRecord | None:
        """Merge every fragment for cls.name, or None if nothing was declared."""
        entries = [
            (token, record)
            for token, record in self.entries_for(cls, name)
            if record.kind is not RecordKind.SUITE
        ]
        if not entries:
            return None

        member = f"{cls.__qualname__}.{name}"
        options: SpecificationOptions | None = None
        kind = RecordKind.TEST
        record_name = name
        for token, record in entries:
            logger.debug("%s: merging fragment filed under %r", member, token)
            options = merge_options(options, record.options, member=member, strict=self.strict)
            if record.kind is RecordKind.HOOK:
                kind = RecordKind.HOOK
                record_name = record.name

        if kind is RecordKind.HOOK and record_name not in {p.value for p in HookPhase}:
            logger.warning("%s: hook record carries unknown phase %r", member, record_name)
        return MetadataRecord(kind=kind, name=record_name, options=options)

    def resolve_suite(self, cls: type) -> MetadataRecord | None:
        options: SpecificationOptions | None = None
        name = cls.__name__
        found = False
        for token, record in self.registry.get_all():
            if token is not cls:
                continue
            found = True
            options = merge_options(options, record.options, member=cls.__qualname__, strict=self.strict)
            name = record.name
        if not found:
            return None
        return MetadataRecord(kind=RecordKind.SUITE, name=options.name or name, options=options)

    def resolve_all(self, cls: type, names: Iterable[str] | None = None) -> dict[str, MetadataRecord]:
        resolved = {}
        for name in names if names is not None else declared_members(cls):
            record = self.resolve_member(cls, name)
            if record is not None:
                resolved[name] = record
        return resolved


def is_suite(obj: Any, registry: MetadataRegistry | None = None) -> bool:
    registry = registry if registry is not None else get_registry()
    if not isinstance(obj, type):
        return False
    return bool(vars(obj).get("__api_suite__")) and registry.has(obj)
