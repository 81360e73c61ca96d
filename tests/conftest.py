import pytest

from watchful import ReactivePlugin, proxy, scheduler
from watchful.batch import batcher
from watchful.tracking import tracker


def noop():
    pass


@pytest.fixture
def noop_request_flush():
    old_callback = scheduler.request_flush
    scheduler.register_request_flush(noop)
    try:
        yield
    finally:
        scheduler.register_request_flush(old_callback)


@pytest.fixture(autouse=True)
def clear():
    try:
        yield
    finally:
        scheduler.clear()
        proxy.clear_plugins()


@pytest.fixture(autouse=True)
def balanced_stacks():
    yield
    # whatever a test did, nothing should be left on the stacks
    assert tracker.stack == []
    assert batcher.stack == []


@pytest.fixture
def reactive():
    plugin = ReactivePlugin()
    proxy.use(plugin)
    return plugin
