"""pytest integration: collect @suite classes as test classes.

Enable with ``pytest_plugins = ["api_suite.pytest_plugin"]`` in a conftest.py
or ``-p api_suite.pytest_plugin`` on the command line.
"""

from functools import partial

import pytest

from api_suite.http.client import HttpClient
from api_suite.metadata.resolver import is_suite
from api_suite.runner.pytest_runner import PytestRunner
from api_suite.suite.orchestrator import register_suite


def pytest_addoption(parser):
    group = parser.getgroup("api-suite")
    group.addoption("--api-base-url", default=None, help="Base URL for relative API endpoint paths.")
    group.addoption("--api-token", default=None, help="Bearer token sent with every API request.")


def pytest_configure(config):
    config.addinivalue_line("markers", "api_tag(*tags): tags declared on an api-suite test or suite.")
    config.addinivalue_line("markers", "api_only: focused api-suite test; others are deselected.")
    config.addinivalue_line("markers", "slow(reason): test declared slow.")


def pytest_pycollect_makeitem(collector, name, obj):
    if not is_suite(obj):
        return None
    factory = partial(
        HttpClient,
        base_url=collector.config.getoption("api_base_url"),
        token=collector.config.getoption("api_token"),
    )
    runner = PytestRunner(transport_factory=factory)
    register_suite(obj, runner)
    klass = pytest.Class.from_parent(collector, name=name)
    klass.obj = runner.built
    return klass


def pytest_collection_modifyitems(config, items):
    focused = [item for item in items if item.get_closest_marker("api_only") is not None]
    if not focused:
        return
    deselected = [item for item in items if item.get_closest_marker("api_only") is None]
    config.hook.pytest_deselected(items=deselected)
    items[:] = focused
