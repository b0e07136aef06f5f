"""Contract between the suite orchestrator and a host test runner."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable

from api_suite.http.client import HttpClient
from api_suite.metadata.models import SpecificationOptions


@dataclass
class TestContext:
    """What hooks and test bodies receive: transport handle plus the injected response."""

    __test__ = False

    request: Any = None
    response: Any = None
    title: str = ""
    tags: list[str] = field(default_factory=list)
    annotations: list[tuple[str, str]] = field(default_factory=list)


Callback = Callable[[TestContext], Any]


class Runner(ABC):
    """Scheduling primitives a suite is registered against.

    describe() calls body() synchronously; inside it the orchestrator registers
    once-hooks and tests for that suite.
    """

    def __init__(self, transport_factory: Callable[[], Any] | None = None):
        self.transport_factory = transport_factory or HttpClient
        self._transport = None

    @property
    def transport(self) -> Any:
        if self._transport is None:
            self._transport = self.transport_factory()
        return self._transport

    def context(self, title: str = "", options: SpecificationOptions | None = None) -> TestContext:
        context = TestContext(request=self.transport, title=title)
        if options is not None:
            context.tags = list(options.tags)
            if options.slow:
                context.annotations.append(("slow", options.slow_reason or "Marked as slow"))
            if options.tags:
                context.annotations.append(("tag", ", ".join(options.tags)))
        return context

    def close(self) -> None:
        if self._transport is not None and hasattr(self._transport, "close"):
            self._transport.close()
        self._transport = None

    @abstractmethod
    def describe(self, title: str, body: Callable[[], None], options: SpecificationOptions) -> None: ...

    @abstractmethod
    def test(self, title: str, fn: Callback, options: SpecificationOptions) -> None: ...

    @abstractmethod
    def before_all(self, fn: Callback) -> None: ...

    @abstractmethod
    def after_all(self, fn: Callback) -> None: ...
