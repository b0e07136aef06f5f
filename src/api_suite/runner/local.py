"""In-process runner used by the command-line tool.

Runs suites sequentially in registration order and reports one TestOutcome
per scheduled test. Once-before failures are reported as their own outcome
and do not stop the suite's tests from running.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from api_suite.metadata.models import SpecificationOptions
from api_suite.runner.base import Callback, Runner

logger = logging.getLogger(__name__)

PASSED = "passed"
FAILED = "failed"
SKIPPED = "skipped"
XFAILED = "xfailed"
XPASSED = "xpassed"


@dataclass
class TestOutcome:
    __test__ = False

    suite: str
    title: str
    status: str
    error: BaseException | None = None
    duration: float = 0.0
    tags: list[str] = field(default_factory=list)
    annotations: list[tuple[str, str]] = field(default_factory=list)
    result: Any = None

    @property
    def ok(self) -> bool:
        return self.status not in (FAILED, XPASSED)


@dataclass
class _ScheduledTest:
    title: str
    fn: Callback
    options: SpecificationOptions


@dataclass
class _SuiteBlock:
    title: str
    options: SpecificationOptions
    tests: list[_ScheduledTest] = field(default_factory=list)
    before_all: list[Callback] = field(default_factory=list)
    after_all: list[Callback] = field(default_factory=list)


class LocalRunner(Runner):
    def __init__(self, transport_factory: Callable[[], Any] | None = None, tags: Iterable[str] = ()):
        super().__init__(transport_factory)
        self.tag_filter = set(tags)
        self.suites: list[_SuiteBlock] = []
        self._current: _SuiteBlock | None = None

    def _block(self) -> _SuiteBlock:
        if self._current is None:
            raise RuntimeError("test and hook registration must happen inside describe()")
        return self._current

    def describe(self, title: str, body: Callable[[], None], options: SpecificationOptions) -> None:
        block = _SuiteBlock(title=title, options=options)
        self._current = block
        try:
            body()
        finally:
            self._current = None
        self.suites.append(block)

    def test(self, title: str, fn: Callback, options: SpecificationOptions) -> None:
        self._block().tests.append(_ScheduledTest(title, fn, options))

    def before_all(self, fn: Callback) -> None:
        self._block().before_all.append(fn)

    def after_all(self, fn: Callback) -> None:
        self._block().after_all.append(fn)

    # -- execution ------------------------------------------------------------

    def _focused(self) -> bool:
        return any(b.options.only or any(t.options.only for t in b.tests) for b in self.suites)

    def _selected(self, block: _SuiteBlock, test: _ScheduledTest, focused: bool) -> bool:
        if focused and not (block.options.only or test.options.only):
            return False
        if self.tag_filter:
            tags = set(block.options.tags) | set(test.options.tags)
            return bool(tags & self.tag_filter)
        return True

    def run(self) -> list[TestOutcome]:
        focused = self._focused()
        outcomes: list[TestOutcome] = []
        try:
            for block in self.suites:
                selected = [t for t in block.tests if self._selected(block, t, focused)]
                if selected:
                    outcomes.extend(self._run_block(block, selected))
        finally:
            self.close()
        return outcomes

    def _once(self, block: _SuiteBlock, label: str, hooks: list[Callback]) -> TestOutcome | None:
        for fn in hooks:
            try:
                fn(self.context(label))
            except Exception as e:
                return TestOutcome(block.title, label, FAILED, error=e)
        return None

    def _run_block(self, block: _SuiteBlock, tests: list[_ScheduledTest]) -> list[TestOutcome]:
        outcomes = []
        runnable = [t for t in tests if not (block.options.skip or t.options.skip)]

        if runnable:
            failure = self._once(block, "[before_all]", block.before_all)
            if failure is not None:
                outcomes.append(failure)

        for scheduled in tests:
            if scheduled in runnable:
                outcomes.append(self._run_test(block, scheduled))
            else:
                reason = scheduled.options.skip_reason or block.options.skip_reason or ""
                outcomes.append(TestOutcome(block.title, scheduled.title, SKIPPED, tags=list(scheduled.options.tags),
                                            annotations=[("skip", reason)]))

        if runnable:
            failure = self._once(block, "[after_all]", block.after_all)
            if failure is not None:
                outcomes.append(failure)
        return outcomes

    def _run_test(self, block: _SuiteBlock, scheduled: _ScheduledTest) -> TestOutcome:
        options = scheduled.options
        context = self.context(scheduled.title, options)
        outcome = TestOutcome(block.title, scheduled.title, PASSED, tags=context.tags, annotations=context.annotations)
        started = time.perf_counter()
        try:
            outcome.result = scheduled.fn(context)
        except Exception as e:
            outcome.error = e
            outcome.status = FAILED
            logger.debug("%s > %s failed: %s", block.title, scheduled.title, e)
        outcome.duration = time.perf_counter() - started

        if options.fail or block.options.fail:
            # expected to fail: invert the result
            outcome.status = XFAILED if outcome.status == FAILED else XPASSED
        return outcome
