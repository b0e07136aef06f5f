import pytest

from api_suite.decorators.api import api_endpoint, expect_body, expect_status, path_params
from api_suite.decorators.hooks import after_all, after_each, before_all, before_each
from api_suite.decorators.suite import suite, test
from api_suite.decorators.utility import fail, only, skip, slow, tag
from api_suite.errors import AssertionFailure, ConfigurationError, HookError
from api_suite.metadata.models import HookPhase, MetadataRecord, RecordKind, SpecificationOptions
from api_suite.metadata.registry import MemberRef, MetadataRegistry
from api_suite.metadata.resolver import SpecificationResolver
from api_suite.runner.base import TestContext
from api_suite.runner.local import FAILED, PASSED, SKIPPED, XFAILED, XPASSED, LocalRunner
from api_suite.suite.orchestrator import SuiteState, invoke, register_suite
from api_suite.suite.plan import build_plan


def _run(transport, *suites, tags=()):
    runner = LocalRunner(transport_factory=lambda: transport, tags=tags)
    for cls in suites:
        register_suite(cls, runner)
    return runner.run()


def _statuses(outcomes):
    return [(o.title, o.status) for o in outcomes]


class TestInvoke:
    def test_passes_context_when_accepted(self):
        ctx = TestContext(title="t")
        assert invoke(lambda c: c.title, ctx) == "t"

    def test_omits_context_when_not_accepted(self):
        assert invoke(lambda: "ok", TestContext()) == "ok"

    def test_runs_coroutines(self):
        async def body(ctx):
            return ctx.title

        assert invoke(body, TestContext(title="async")) == "async"


class TestBuildPlan:
    def test_buckets_hooks_and_orders_tests(self):
        @suite(name="Users", tags=["users"])
        class Users:
            @before_all()
            def start(self):
                pass

            @test()
            def first(self):
                pass

            @before_each()
            def setup(self):
                pass

            @test(name="second test")
            @api_endpoint("GET", "/users")
            def second(self, ctx):
                pass

            def helper(self):
                pass

        plan = build_plan(Users)
        assert plan.title == "Users"
        assert plan.hooks_for(HookPhase.BEFORE_ALL) == ("start",)
        assert [t.title for t in plan.tests] == ["first", "second test"]
        assert [t.api_eligible for t in plan.tests] == [False, True]

        data = plan.to_dict()
        assert data["suite"] == "Users"
        assert data["hooks"] == {"before_all": ["start"], "before_each": ["setup"]}
        assert data["tests"][1]["api"] == {"method": "GET", "path": "/users"}

    def test_inherited_tests_run_first(self):
        class Base:
            @test()
            def health(self):
                pass

        @suite()
        class Users(Base):
            @test()
            def list_users(self):
                pass

        assert [t.member for t in build_plan(Users).tests] == ["health", "list_users"]

    def test_unknown_hook_phase(self):
        class Odd:
            def during(self):
                pass

        registry = MetadataRegistry()
        registry.store(MemberRef.for_member(Odd, "during"), MetadataRecord(kind=RecordKind.HOOK, name="during_each"))
        with pytest.raises(ConfigurationError, match="during_each"):
            build_plan(Odd, SpecificationResolver(registry))


class TestLifecycle:
    def test_hook_order(self, transport_factory):
        events = []

        @suite()
        class Lifecycle:
            @before_all()
            def start(self):
                events.append("before_all")

            @before_each()
            def setup(self):
                events.append("before_each")

            @after_each()
            def teardown(self):
                events.append("after_each")

            @after_all()
            def stop(self):
                events.append("after_all")

            @test()
            def first(self):
                events.append("first")

            @test()
            def second(self):
                events.append("second")

        outcomes = _run(transport_factory(), Lifecycle)
        assert _statuses(outcomes) == [("first", PASSED), ("second", PASSED)]
        assert events == [
            "before_all",
            "before_each", "first", "after_each",
            "before_each", "second", "after_each",
            "after_all",
        ]

    def test_before_all_failure_does_not_stop_tests(self, transport_factory):
        ran = []

        @suite()
        class Broken:
            @before_all()
            def start(self):
                raise RuntimeError("seed failed")

            @test()
            def one(self):
                ran.append("one")

            @test()
            def two(self):
                ran.append("two")

        outcomes = _run(transport_factory(), Broken)
        assert _statuses(outcomes) == [("[before_all]", FAILED), ("one", PASSED), ("two", PASSED)]
        assert isinstance(outcomes[0].error, HookError)
        assert ran == ["one", "two"]

    def test_before_each_failure_skips_body_and_after_each(self, transport_factory):
        events = []

        @suite()
        class Guarded:
            @before_each()
            def setup(self):
                raise ValueError("no fixture")

            @after_each()
            def teardown(self):
                events.append("after_each")

            @test()
            def body(self):
                events.append("body")

        outcomes = _run(transport_factory(), Guarded)
        assert outcomes[0].status == FAILED
        assert isinstance(outcomes[0].error, ValueError)
        assert events == []

    def test_after_each_runs_after_body_failure(self, transport_factory):
        events = []

        @suite()
        class Cleanup:
            @after_each()
            def teardown(self):
                events.append("after_each")
                raise RuntimeError("cleanup failed too")

            @test()
            def body(self):
                raise KeyError("body failed")

        outcomes = _run(transport_factory(), Cleanup)
        assert isinstance(outcomes[0].error, KeyError)
        assert events == ["after_each"]

    def test_fresh_instance_per_test(self, transport_factory):
        seen = []

        @suite()
        class Counter:
            @before_all()
            def seed(self):
                self.count = 0
                self.items = []

            @test()
            def one(self):
                self.count += 1
                self.items.append("one")
                seen.append(self.count)

            @test()
            def two(self):
                self.count += 1
                seen.append((self.count, list(self.items)))

        _run(transport_factory(), Counter)
        assert seen == [1, (1, [])]

    def test_mutations_do_not_leak_between_tests(self, transport_factory):
        @suite()
        class Cart:
            def __init__(self):
                self.items = []
                self.meta = {"owner": "a"}

            @test()
            def first(self):
                self.items.append("first")
                self.meta["owner"] = "b"

            @test()
            def second(self):
                assert self.items == [], f"leaked state: {self.items}"
                assert self.meta == {"owner": "a"}

        outcomes = _run(transport_factory(), Cart)
        assert _statuses(outcomes) == [("first", PASSED), ("second", PASSED)]

    def test_shared_instance(self, transport_factory):
        seen = []

        @suite(shared_instance=True)
        class Counter:
            @before_all()
            def seed(self):
                self.count = 0

            @test()
            def one(self):
                self.count += 1
                seen.append(self.count)

            @test()
            def two(self):
                self.count += 1
                seen.append(self.count)

        _run(transport_factory(), Counter)
        assert seen == [1, 2]

    def test_execution_state(self, transport_factory):
        @suite()
        class Tiny:
            @test()
            def one(self):
                pass

        runner = LocalRunner(transport_factory=transport_factory)
        execution = register_suite(Tiny, runner)
        assert execution.state is SuiteState.RESOLVED
        runner.run()
        assert execution.state is SuiteState.TORN_DOWN


class TestApiTests:
    def test_response_is_injected(self, transport_factory, response_factory):
        seen = []

        @suite()
        class Users:
            @test()
            @api_endpoint("GET", "/users/{id}")
            @path_params(id=1)
            @expect_status(200)
            @expect_body("id").to_equal(1)
            def get_user(self, ctx):
                seen.append(ctx.response.json()["name"])

        transport = transport_factory(response_factory(200, {"id": 1, "name": "A"}))
        outcomes = _run(transport, Users)
        assert _statuses(outcomes) == [("get_user", PASSED)]
        assert seen == ["A"]
        assert transport.calls[0]["url"] == "/users/1"

    def test_expectation_failure_skips_body(self, transport_factory, response_factory):
        seen = []

        @suite()
        class Users:
            @test()
            @api_endpoint("GET", "/users/{id}")
            @path_params(id=1)
            @expect_status(200)
            def get_user(self, ctx):
                seen.append("body")

        outcomes = _run(transport_factory(response_factory(404)), Users)
        assert outcomes[0].status == FAILED
        assert isinstance(outcomes[0].error, AssertionFailure)
        assert seen == []

    def test_unsupported_method_fails_only_that_test(self, transport_factory):
        @suite()
        class Users:
            @test()
            @api_endpoint("TRACE", "/users")
            def trace(self, ctx):
                pass

            @test()
            def plain(self, ctx):
                pass

        transport = transport_factory()
        outcomes = _run(transport, Users)
        assert _statuses(outcomes) == [("trace", FAILED), ("plain", PASSED)]
        assert isinstance(outcomes[0].error, ConfigurationError)
        assert transport.calls == []

    def test_context_carries_transport(self, transport_factory):
        transport = transport_factory()

        @suite()
        class Users:
            @test()
            def manual(self, ctx):
                return ctx.request.get("/ping")

        outcomes = _run(transport, Users)
        assert outcomes[0].status == PASSED
        assert transport.calls[0]["url"] == "/ping"


class TestSelection:
    def test_only_applies_across_suites(self, transport_factory):
        @suite()
        class First:
            @test()
            @only()
            def focused(self):
                pass

            @test()
            def other(self):
                pass

        @suite()
        class Second:
            @test()
            def unrelated(self):
                pass

        outcomes = _run(transport_factory(), First, Second)
        assert _statuses(outcomes) == [("focused", PASSED)]

    def test_skipped_suite_skips_hooks(self, transport_factory):
        events = []

        @suite(skip=True)
        class Skipped:
            @before_all()
            def start(self):
                events.append("before_all")

            @test()
            def one(self):
                events.append("one")

        outcomes = _run(transport_factory(), Skipped)
        assert _statuses(outcomes) == [("one", SKIPPED)]
        assert events == []

    def test_skipped_test(self, transport_factory):
        @suite()
        class Users:
            @test()
            @skip("upstream down")
            def one(self):
                raise AssertionError("should not run")

        outcomes = _run(transport_factory(), Users)
        assert outcomes[0].status == SKIPPED
        assert outcomes[0].annotations == [("skip", "upstream down")]

    def test_tag_filter(self, transport_factory):
        @suite()
        class Users:
            @test()
            @tag("smoke")
            def one(self):
                pass

            @test()
            def two(self):
                pass

        @suite()
        @tag("smoke")
        class Orders:
            @test()
            def three(self):
                pass

        outcomes = _run(transport_factory(), Users, Orders, tags=["smoke"])
        assert _statuses(outcomes) == [("one", PASSED), ("three", PASSED)]

    def test_expected_failure(self, transport_factory):
        @suite()
        class Known:
            @test()
            @fail("bug 12")
            def broken(self):
                raise AssertionError("still broken")

            @test()
            @fail()
            def fixed(self):
                pass

        outcomes = _run(transport_factory(), Known)
        assert _statuses(outcomes) == [("broken", XFAILED), ("fixed", XPASSED)]
        assert outcomes[0].ok
        assert not outcomes[1].ok

    def test_slow_and_tags_annotated(self, transport_factory):
        @suite()
        class Users:
            @test(tags=["read"])
            @slow("paginates")
            def one(self, ctx):
                return ctx.annotations

        outcome = _run(transport_factory(), Users)[0]
        assert outcome.tags == ["read"]
        assert outcome.result == [("slow", "paginates"), ("tag", "read")]

    def test_registration_outside_describe(self, transport_factory):
        runner = LocalRunner(transport_factory=transport_factory)
        with pytest.raises(RuntimeError):
            runner.test("loose", lambda ctx: None, SpecificationOptions())

    def test_transport_closed_after_run(self):
        class Closing:
            closed = False

            def close(self):
                self.closed = True

        transport = Closing()

        @suite()
        class Users:
            @test()
            def one(self, ctx):
                pass

        _run(transport, Users)
        assert transport.closed
