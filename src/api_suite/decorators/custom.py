"""Factories for project-specific decorators built on the same registry."""

from typing import Any

from api_suite.decorators.base import is_method, options_of, write_member, write_suite
from api_suite.errors import DecoratorUsageError
from api_suite.metadata.models import RecordKind


def create_test_decorator(name: str, **options: Any):
    """Decorator declaring a test with preset options, e.g. ``smoke = create_test_decorator("smoke", tags=["smoke"])``."""

    def decorator(fn):
        if isinstance(fn, type) or not callable(fn) or not is_method(fn):
            raise DecoratorUsageError(f"@{name} decorator can only be applied to a method")
        write_member(fn, options_of(**options), kind=RecordKind.TEST)
        return fn

    return decorator


def create_suite_decorator(name: str, **options: Any):
    def decorator(cls):
        if not isinstance(cls, type):
            raise DecoratorUsageError(f"@{name} decorator can only be applied to a class")
        write_suite(cls, options_of(**options))
        cls.__api_suite__ = True
        return cls

    return decorator


def create_suite_and_test_decorator(name: str, **options: Any):
    suite_decorator = create_suite_decorator(name, **options)
    test_decorator = create_test_decorator(name, **options)

    def decorator(target):
        if isinstance(target, type):
            return suite_decorator(target)
        return test_decorator(target)

    return decorator
