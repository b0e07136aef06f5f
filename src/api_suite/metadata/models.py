"""Specification data models.

Annotations write these as fragments; the resolver merges fragments for one
class member into a single effective MetadataRecord.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RecordKind(str, Enum):
    SUITE = "suite"
    TEST = "test"
    HOOK = "hook"


class HookPhase(str, Enum):
    BEFORE_ALL = "before_all"
    BEFORE_EACH = "before_each"
    AFTER_EACH = "after_each"
    AFTER_ALL = "after_all"


class AssertionKind:
    """Accepted values for Assertion.kind."""

    DEFINED = "defined"
    EQUALS = "equals"
    CONTAINS = "contains"

    ALL = (DEFINED, EQUALS, CONTAINS)


class Assertion(BaseModel):
    """A check applied to a value extracted from the response body."""

    kind: str  # validated by the engine, see AssertionKind
    value: Any = None


class Expectations(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: int | None = None
    body: dict[str, Assertion] = {}  # dot-path -> assertion
    json_schema: dict[str, Any] | None = Field(default=None, alias="schema")


class ApiSpec(BaseModel):
    """Declarative HTTP request plus response expectations."""

    method: str | None = None
    path: str | None = None  # template, e.g. /users/{id}
    path_params: dict[str, Any] = {}
    query_params: dict[str, Any] = {}
    headers: dict[str, str] = {}
    body: Any = None
    expect: Expectations | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.method) and bool(self.path)


class SpecificationOptions(BaseModel):
    name: str | None = None
    only: bool = False
    skip: bool = False
    skip_reason: str | None = None
    slow: bool = False
    slow_reason: str | None = None
    fail: bool = False
    fail_reason: str | None = None
    tags: list[str] = []
    shared_instance: bool = False
    api: ApiSpec | None = None


class MetadataRecord(BaseModel):
    kind: RecordKind = Field(frozen=True)
    name: str
    options: SpecificationOptions = Field(default_factory=SpecificationOptions)

    @property
    def api_eligible(self) -> bool:
        return self.options.api is not None and self.options.api.is_complete
