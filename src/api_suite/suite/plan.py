"""Execution plan for one suite class: hooks bucketed by phase, tests in order."""

from dataclasses import dataclass, field
from typing import Any

from api_suite.errors import ConfigurationError
from api_suite.metadata.models import ApiSpec, HookPhase, MetadataRecord, RecordKind, SpecificationOptions
from api_suite.metadata.resolver import SpecificationResolver, declared_members


@dataclass(frozen=True)
class TestEntry:
    __test__ = False

    member: str
    record: MetadataRecord

    @property
    def options(self) -> SpecificationOptions:
        return self.record.options

    @property
    def title(self) -> str:
        return self.options.name or self.member

    @property
    def api(self) -> ApiSpec | None:
        return self.options.api

    @property
    def api_eligible(self) -> bool:
        return self.record.api_eligible


@dataclass(frozen=True)
class SuitePlan:
    cls: type
    title: str
    options: SpecificationOptions
    hooks: dict[HookPhase, tuple[str, ...]] = field(default_factory=dict)
    tests: tuple[TestEntry, ...] = ()

    def hooks_for(self, phase: HookPhase) -> tuple[str, ...]:
        return self.hooks.get(phase, ())

    def to_dict(self) -> dict[str, Any]:
        """Plain-data view for listing and export."""
        tests = []
        for entry in self.tests:
            item: dict[str, Any] = {"title": entry.title, "member": entry.member}
            modifiers = entry.options.model_dump(exclude={"api", "name", "shared_instance"}, exclude_defaults=True)
            if modifiers:
                item["modifiers"] = modifiers
            if entry.api is not None:
                item["api"] = entry.api.model_dump(exclude_defaults=True, by_alias=True)
                item["api_eligible"] = entry.api_eligible
            tests.append(item)
        return {
            "suite": self.title,
            "class": f"{self.cls.__module__}.{self.cls.__qualname__}",
            "shared_instance": self.options.shared_instance,
            "hooks": {phase.value: list(names) for phase, names in self.hooks.items() if names},
            "tests": tests,
        }


def build_plan(cls: type, resolver: SpecificationResolver | None = None) -> SuitePlan:
    """Resolve the suite record and every declared member of cls."""
    resolver = resolver or SpecificationResolver()
    suite_record = resolver.resolve_suite(cls)
    options = suite_record.options if suite_record is not None else SpecificationOptions()
    title = suite_record.name if suite_record is not None else cls.__name__

    hooks: dict[HookPhase, list[str]] = {phase: [] for phase in HookPhase}
    tests: list[TestEntry] = []
    for name, record in resolver.resolve_all(cls, declared_members(cls)).items():
        if record.kind is RecordKind.HOOK:
            try:
                phase = HookPhase(record.name)
            except ValueError:
                raise ConfigurationError(f"{cls.__qualname__}.{name}: unknown hook phase {record.name!r}") from None
            hooks[phase].append(name)
        elif record.kind is RecordKind.TEST:
            tests.append(TestEntry(member=name, record=record))

    return SuitePlan(
        cls=cls,
        title=title,
        options=options,
        hooks={phase: tuple(names) for phase, names in hooks.items()},
        tests=tuple(tests),
    )
