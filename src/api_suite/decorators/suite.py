"""@suite and @test."""

from typing import Iterable

from api_suite.decorators.base import options_of, write_member, write_suite
from api_suite.errors import DecoratorUsageError
from api_suite.metadata.models import RecordKind


def suite(
    name: str | None = None,
    only: bool = False,
    skip: bool = False,
    tags: Iterable[str] = (),
    shared_instance: bool = False,
):
    """Mark a class as a test suite.

    By default every test runs on its own shallow copy of the suite instance;
    pass shared_instance=True to run all hooks and tests on one instance.

    Example::

        @suite()
        class UserApiTests:
            @test()
            @api_endpoint("GET", "/users/{id}")
            @path_params(id=1)
            @expect_status(200)
            def get_user(self, ctx):
                assert ctx.response.json()["id"] == 1
    """

    def decorator(cls):
        if not isinstance(cls, type):
            raise DecoratorUsageError("@suite can only be applied to a class")
        write_suite(cls, options_of(name=name, only=only, skip=skip, tags=list(tags), shared_instance=shared_instance))
        cls.__api_suite__ = True
        return cls

    return decorator


def test(name: str | None = None, only: bool = False, skip: bool = False, tags: Iterable[str] = ()):
    """Mark a method as a test. Without name, the method name is the title."""

    def decorator(fn):
        if isinstance(fn, type):
            raise DecoratorUsageError("@test can only be applied to a method")
        write_member(fn, options_of(name=name, only=only, skip=skip, tags=list(tags)), kind=RecordKind.TEST)
        return fn

    return decorator


# keep pytest from collecting the decorator factory when it is imported into a test module
test.__test__ = False
