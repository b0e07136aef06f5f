"""Lifecycle hooks. The target class must be decorated with @suite."""

from api_suite.decorators.base import write_member
from api_suite.errors import DecoratorUsageError
from api_suite.metadata.models import HookPhase, RecordKind, SpecificationOptions


def _hook(phase: HookPhase):
    def factory():
        def decorator(fn):
            if isinstance(fn, type):
                raise DecoratorUsageError(f"@{phase.value} can only be applied to a method")
            write_member(fn, SpecificationOptions(), kind=RecordKind.HOOK, name=phase.value)
            return fn

        return decorator

    factory.__name__ = phase.value
    factory.__doc__ = f"Run the decorated method {phase.value.replace('_', ' ')} test(s) in the suite."
    return factory


before_all = _hook(HookPhase.BEFORE_ALL)
before_each = _hook(HookPhase.BEFORE_EACH)
after_each = _hook(HookPhase.AFTER_EACH)
after_all = _hook(HookPhase.AFTER_ALL)
