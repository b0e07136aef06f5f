"""Process-wide store of specification fragments.

A flat overwrite-by-key map: deep merging is the resolver's job. Entries keep
their first insertion position when overwritten, so iteration order is stable
and merge results are deterministic.
"""

from dataclasses import dataclass
from typing import Any, Callable, Hashable, Iterator

from api_suite.metadata.models import MetadataRecord


@dataclass(frozen=True)
class MemberRef:
    """Stable identity for a class member: module + owning class qualname + name."""

    module: str
    owner: str
    name: str

    @classmethod
    def for_function(cls, fn: Callable[..., Any]) -> "MemberRef":
        qualname = getattr(fn, "__qualname__", fn.__name__)
        owner, _, name = qualname.rpartition(".")
        return cls(module=fn.__module__, owner=owner, name=name or fn.__name__)

    @classmethod
    def for_member(cls, owner_cls: type, name: str) -> "MemberRef":
        return cls(module=owner_cls.__module__, owner=owner_cls.__qualname__, name=name)

    def __str__(self) -> str:
        return f"{self.module}:{self.owner}.{self.name}"


class MetadataRegistry:
    def __init__(self) -> None:
        self._records: dict[Hashable, MetadataRecord] = {}

    def store(self, token: Hashable, record: MetadataRecord) -> None:
        """Associate record with token, replacing any previous record."""
        self._records[token] = record

    def get(self, token: Hashable) -> MetadataRecord | None:
        return self._records.get(token)

    def has(self, token: Hashable) -> bool:
        return token in self._records

    def get_all(self) -> list[tuple[Hashable, MetadataRecord]]:
        """All (token, record) pairs in insertion order."""
        return list(self._records.items())

    def __iter__(self) -> Iterator[tuple[Hashable, MetadataRecord]]:
        return iter(self.get_all())

    def __len__(self) -> int:
        return len(self._records)


_REGISTRY = MetadataRegistry()


def get_registry() -> MetadataRegistry:
    """Return the process-wide registry used by the decorators."""
    return _REGISTRY
