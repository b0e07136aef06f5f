"""Drive a resolved suite plan against a runner.

Per test: before_each hooks -> request (API-eligible tests) -> body -> after_each
hooks. Once-hooks run around all tests. A failure is local to one test.
"""

import asyncio
import copy
import inspect
import logging
from enum import Enum
from functools import partial
from typing import Any, Callable

from api_suite.errors import HookError
from api_suite.http.engine import execute
from api_suite.metadata.models import HookPhase
from api_suite.metadata.resolver import SpecificationResolver
from api_suite.runner.base import Runner, TestContext
from api_suite.suite.plan import SuitePlan, TestEntry, build_plan

logger = logging.getLogger(__name__)


class SuiteState(str, Enum):
    RESOLVED = "resolved"
    INSTANTIATED = "instantiated"
    EXECUTING = "executing"
    TORN_DOWN = "torn_down"


def invoke(method: Callable[..., Any], context: TestContext) -> Any:
    """Call a hook or test body, passing the context only if it takes an argument."""
    try:
        params = inspect.signature(method).parameters.values()
    except (TypeError, ValueError):
        params = None
    if params is None or any(
        p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD, p.VAR_POSITIONAL) for p in params
    ):
        result = method(context)
    else:
        result = method()
    if inspect.iscoroutine(result):
        result = asyncio.run(result)
    return result


class SuiteExecution:
    """One run of one suite: owns the lazily built instance and hook sequencing."""

    def __init__(self, plan: SuitePlan):
        self.plan = plan
        self.state = SuiteState.RESOLVED
        self._instance = None

    @property
    def shared(self) -> bool:
        return self.plan.options.shared_instance

    def suite_instance(self) -> Any:
        if self._instance is None:
            self._instance = self.plan.cls()
            self.state = SuiteState.INSTANTIATED
            logger.debug("Instantiated %s", self.plan.cls.__qualname__)
        return self._instance

    def instance_for_test(self) -> Any:
        """The shared instance, or a deep copy seeded from once-hook state."""
        instance = self.suite_instance()
        return instance if self.shared else copy.deepcopy(instance)

    def _run_once_hooks(self, phase: HookPhase, context: TestContext) -> None:
        failures = []
        for name in self.plan.hooks_for(phase):
            try:
                invoke(getattr(self.suite_instance(), name), context)
            except Exception as e:
                logger.error("%s hook %s.%s failed: %s", phase.value, self.plan.title, name, e)
                failures.append((name, e))
        if failures:
            raise HookError(phase.value, failures)

    def run_before_all(self, context: TestContext) -> None:
        self.state = SuiteState.EXECUTING
        self._run_once_hooks(HookPhase.BEFORE_ALL, context)

    def run_after_all(self, context: TestContext) -> None:
        try:
            self._run_once_hooks(HookPhase.AFTER_ALL, context)
        finally:
            self.state = SuiteState.TORN_DOWN

    def _run_after_each(self, instance: Any, context: TestContext, primary_failed: bool) -> None:
        for name in self.plan.hooks_for(HookPhase.AFTER_EACH):
            try:
                invoke(getattr(instance, name), context)
            except Exception:
                if not primary_failed:
                    raise
                logger.exception("after_each hook %s failed after a test failure", name)

    def run_test(self, entry: TestEntry, context: TestContext) -> Any:
        self.state = SuiteState.EXECUTING
        instance = self.instance_for_test()

        # a before_each failure fails the test; body and after_each are skipped
        for name in self.plan.hooks_for(HookPhase.BEFORE_EACH):
            invoke(getattr(instance, name), context)

        try:
            if entry.api_eligible:
                context.response = execute(entry.api, context.request)
            result = invoke(getattr(instance, entry.member), context)
        except Exception:
            self._run_after_each(instance, context, primary_failed=True)
            raise
        self._run_after_each(instance, context, primary_failed=False)
        return result


def register_suite(
    cls: type,
    runner: Runner,
    resolver: SpecificationResolver | None = None,
) -> SuiteExecution:
    """Resolve cls and schedule its hooks and tests on runner."""
    plan = build_plan(cls, resolver)
    execution = SuiteExecution(plan)

    def body() -> None:
        if plan.hooks_for(HookPhase.BEFORE_ALL):
            runner.before_all(execution.run_before_all)
        for entry in plan.tests:
            runner.test(entry.title, partial(execution.run_test, entry), entry.options)
        runner.after_all(execution.run_after_all)

    logger.debug("Registering suite %s with %d test(s)", plan.title, len(plan.tests))
    runner.describe(plan.title, body, plan.options)
    return execution
