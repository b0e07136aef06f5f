import functools
import logging

logger = logging.getLogger(__name__)


def step(name: str | None = None):
    """Log the decorated method as a named step; errors propagate unchanged."""

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            title = name or f"{type(self).__name__}.{fn.__name__}"
            logger.info("step: %s", title)
            try:
                return fn(self, *args, **kwargs)
            except Exception:
                logger.error("step failed: %s", title)
                raise

        return wrapper

    return decorator
