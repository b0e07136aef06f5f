"""Build a pytest-collectable class from a registered suite."""

import re
from typing import Any, Callable

import pytest

from api_suite.errors import HookError
from api_suite.metadata.models import SpecificationOptions
from api_suite.runner.base import Callback, Runner

_UNSAFE = re.compile(r"[^a-zA-Z0-9_]+")

BEFORE_ALL_ITEM = "test__before_all"


def _ident(title: str) -> str:
    return _UNSAFE.sub("_", title).strip("_") or "unnamed"


class PytestRunner(Runner):
    """describe() yields one class in self.built with a test_* method per test.

    Once-hooks run from a class-scoped autouse fixture. A before_all failure is
    kept and reported by its own ``test__before_all`` item, so the suite's tests
    still run; after_all hooks and closing the transport happen in the fixture's
    teardown whatever the outcome. `only` is expressed as the api_only marker;
    the plugin deselects everything else when any is present.
    """

    def __init__(self, transport_factory: Callable[[], Any] | None = None):
        super().__init__(transport_factory)
        self.built: type | None = None
        self.hook_error: HookError | None = None
        self._attrs: dict[str, Any] | None = None
        self._suite_options = SpecificationOptions()
        self._before_all: list[Callback] = []
        self._after_all: list[Callback] = []

    def _namespace(self) -> dict[str, Any]:
        if self._attrs is None:
            raise RuntimeError("test and hook registration must happen inside describe()")
        return self._attrs

    def describe(self, title: str, body: Callable[[], None], options: SpecificationOptions) -> None:
        self._attrs = {"__doc__": title, "__test__": True}
        self._suite_options = options
        self._before_all, self._after_all = [], []
        self.hook_error = None
        try:
            body()
            self._attrs["_api_suite_lifecycle"] = self._lifecycle()
            self.built = type(f"Test{_ident(title)}", (), self._attrs)
        finally:
            self._attrs = None

    def _lifecycle(self):
        runner = self
        before_all, after_all = list(self._before_all), list(self._after_all)

        def lifecycle(self_):
            try:
                for fn in before_all:
                    try:
                        fn(runner.context("[before_all]"))
                    except HookError as e:
                        runner.hook_error = e
                yield
            finally:
                try:
                    for fn in after_all:
                        fn(runner.context("[after_all]"))
                finally:
                    runner.close()

        return pytest.fixture(scope="class", autouse=True)(lifecycle)

    def _marks(self, options: SpecificationOptions) -> list[Any]:
        suite = self._suite_options
        marks = []
        if options.skip or suite.skip:
            marks.append(pytest.mark.skip(reason=options.skip_reason or suite.skip_reason or ""))
        if options.fail or suite.fail:
            marks.append(pytest.mark.xfail(reason=options.fail_reason or suite.fail_reason or "", strict=True))
        if options.only or suite.only:
            marks.append(pytest.mark.api_only)
        if options.slow:
            marks.append(pytest.mark.slow(reason=options.slow_reason or "Marked as slow"))
        tags = [*suite.tags, *(t for t in options.tags if t not in suite.tags)]
        if tags:
            marks.append(pytest.mark.api_tag(*tags))
        return marks

    def test(self, title: str, fn: Callback, options: SpecificationOptions) -> None:
        namespace = self._namespace()
        runner = self

        def run(self_):
            return fn(runner.context(title, options))

        name = base = f"test_{_ident(title)}"
        counter = 1
        while name in namespace:
            counter += 1
            name = f"{base}_{counter}"
        run.__name__ = name
        run.__qualname__ = name
        run.__doc__ = title
        for mark in self._marks(options):
            run = mark(run)
        namespace[name] = run

    def before_all(self, fn: Callback) -> None:
        namespace = self._namespace()
        self._before_all.append(fn)
        if BEFORE_ALL_ITEM in namespace:
            return
        runner = self

        def report(self_):
            if runner.hook_error is not None:
                raise runner.hook_error

        report.__name__ = report.__qualname__ = BEFORE_ALL_ITEM
        report.__doc__ = "[before_all]"
        suite = self._suite_options
        if suite.skip:
            report = pytest.mark.skip(reason=suite.skip_reason or "")(report)
        if suite.only:
            report = pytest.mark.api_only(report)
        namespace[BEFORE_ALL_ITEM] = report

    def after_all(self, fn: Callback) -> None:
        self._namespace()
        self._after_all.append(fn)
